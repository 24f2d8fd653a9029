RATE_LIMIT_PREFIX = "rl"

# limiting axes
IDENTITY_SCOPE = "identity"
ORIGIN_SCOPE = "origin"
PIN_SCOPE = "pin"

UNKNOWN_ORIGIN = "unknown"
