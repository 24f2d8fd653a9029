
# INCR the key and set its expiry only when the key was just created.
# ARGV[1] is the window in ms, 0 means "no expiry".
# Returns [counter, pttl_ms]
LUA_INCR_WITH_PEXPIRE = """
local counter = redis.call("INCR", KEYS[1])
local window_ms = tonumber(ARGV[1])
if window_ms > 0 then
  if tonumber(counter) == 1 then
    redis.call("PEXPIRE", KEYS[1], window_ms)
  else
    -- a counter that lost its TTL would never reset
    local ttl = redis.call("PTTL", KEYS[1])
    if ttl < 0 then
      redis.call("PEXPIRE", KEYS[1], window_ms)
    end
  end
end
local ttl = redis.call("PTTL", KEYS[1])
return {counter, ttl}
"""

# Delete KEYS[1] only while it still holds ARGV[1]. Returns 1 when deleted.
LUA_COMPARE_AND_DELETE = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
  return redis.call("DEL", KEYS[1])
else
  return 0
end
"""

# INCR KEYS[1] (window semantics as above) and, once the counter reaches
# ARGV[2], write ARGV[3] to KEYS[2] unless it is already set.
# ARGV[1] counter window ms, ARGV[4] flag ttl ms (0 means no expiry).
# Returns [counter, flagged]
LUA_INCR_AND_FLAG = """
local counter = redis.call("INCR", KEYS[1])
local window_ms = tonumber(ARGV[1])
if window_ms > 0 and redis.call("PTTL", KEYS[1]) < 0 then
  redis.call("PEXPIRE", KEYS[1], window_ms)
end
if tonumber(counter) >= tonumber(ARGV[2]) then
  local flag_ttl_ms = tonumber(ARGV[4])
  if flag_ttl_ms > 0 then
    redis.call("SET", KEYS[2], ARGV[3], "PX", flag_ttl_ms, "NX")
  else
    redis.call("SET", KEYS[2], ARGV[3], "NX")
  end
  return {counter, 1}
end
return {counter, 0}
"""
