import asyncio
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple
import redis.asyncio as redis
from redis.exceptions import NoScriptError, RedisError
from eventauth.cache.lua_scripts import LUA_COMPARE_AND_DELETE, LUA_INCR_AND_FLAG, LUA_INCR_WITH_PEXPIRE
from eventauth.cache.utils import build_key, deserialize, serialize

# redis PTTL conventions
TTL_MISSING = -2
TTL_PERSISTENT = -1


class EphemeralStore(ABC):
    """
    Key -> value store with per-key expiry.

    Every key handed to the store is namespaced with `prefix`. Values go
    through orjson so counters written by incr() read back as ints.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return build_key(self.prefix, key)

    @abstractmethod
    async def get(self, key: str) -> Any:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Remove all `keys` in one step. Returns how many existed."""

    @abstractmethod
    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> Tuple[int, int]:
        """
        Atomically increment a counter, creating it with `ttl_seconds` expiry if absent.
        Returns (count, pttl_ms).
        """

    @abstractmethod
    async def incr_and_flag(
        self,
        key: str,
        ttl_seconds: Optional[int],
        threshold: int,
        flag_key: str,
        flag_value: Any,
        flag_ttl_seconds: Optional[int] = None,
    ) -> Tuple[int, bool]:
        """
        incr() `key`, and in the same atomic step set `flag_key` (if absent)
        once the count reaches `threshold`. Returns (count, threshold_reached).
        """

    @abstractmethod
    async def compare_and_delete(self, key: str, expected: Any) -> bool:
        """Delete `key` only if it still holds `expected`."""

    @abstractmethod
    async def ttl_ms(self, key: str) -> int:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class RedisStore(EphemeralStore):

    def __init__(self, client: redis.Redis, prefix: str = ""):
        super().__init__(prefix)
        self.client = client
        self._incr_sha: Optional[str] = None
        self._script_lock = asyncio.Lock()

    async def _ensure_lua_loaded(self) -> Optional[str]:
        """Load the incr script into the redis script cache once, lazily."""
        if self._incr_sha:
            return self._incr_sha
        async with self._script_lock:
            if self._incr_sha:
                return self._incr_sha
            try:
                self._incr_sha = await self.client.script_load(LUA_INCR_WITH_PEXPIRE)
            except RedisError:
                # EVAL still works without the cached sha
                self._incr_sha = None
            return self._incr_sha

    async def get(self, key: str) -> Any:
        return deserialize(await self.client.get(self._k(key)))

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        await self.client.set(self._k(key), serialize(value), ex=ttl_seconds or None)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.client.delete(*(self._k(k) for k in keys)))

    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> Tuple[int, int]:
        window_ms = int(ttl_seconds * 1000) if ttl_seconds else 0
        full_key = self._k(key)
        sha = await self._ensure_lua_loaded()
        if sha:
            try:
                res = await self.client.evalsha(sha, 1, full_key, window_ms)
            except NoScriptError:
                self._incr_sha = None
                res = await self.client.eval(LUA_INCR_WITH_PEXPIRE, 1, full_key, window_ms)
        else:
            res = await self.client.eval(LUA_INCR_WITH_PEXPIRE, 1, full_key, window_ms)
        return int(res[0]), int(res[1])

    async def incr_and_flag(
        self,
        key: str,
        ttl_seconds: Optional[int],
        threshold: int,
        flag_key: str,
        flag_value: Any,
        flag_ttl_seconds: Optional[int] = None,
    ) -> Tuple[int, bool]:
        window_ms = int(ttl_seconds * 1000) if ttl_seconds else 0
        flag_ttl_ms = int(flag_ttl_seconds * 1000) if flag_ttl_seconds else 0
        res = await self.client.eval(
            LUA_INCR_AND_FLAG,
            2,
            self._k(key),
            self._k(flag_key),
            window_ms,
            threshold,
            serialize(flag_value),
            flag_ttl_ms,
        )
        return int(res[0]), int(res[1]) == 1

    async def compare_and_delete(self, key: str, expected: Any) -> bool:
        res = await self.client.eval(LUA_COMPARE_AND_DELETE, 1, self._k(key), serialize(expected))
        return int(res) == 1

    async def ttl_ms(self, key: str) -> int:
        return int(await self.client.pttl(self._k(key)))

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


class MemoryStore(EphemeralStore):
    """
    Single-process store. Expired entries are treated as absent on read,
    so correctness never depends on a background sweep.
    """

    def __init__(self, prefix: str = "", clock: Callable[[], float] = time.monotonic):
        super().__init__(prefix)
        self._clock = clock
        self._data: Dict[str, Tuple[bytes, Optional[float]]] = {}
        self._lock = asyncio.Lock()

    def _live(self, full_key: str) -> Optional[Tuple[bytes, Optional[float]]]:
        # called under lock
        entry = self._data.get(full_key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[full_key]
            return None
        return entry

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[float]:
        return self._clock() + ttl_seconds if ttl_seconds else None

    def _pttl(self, entry: Optional[Tuple[bytes, Optional[float]]]) -> int:
        if entry is None:
            return TTL_MISSING
        expires_at = entry[1]
        if expires_at is None:
            return TTL_PERSISTENT
        return max(0, math.ceil((expires_at - self._clock()) * 1000))

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._live(self._k(key))
        return deserialize(entry[0]) if entry else None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        raw = serialize(value)
        async with self._lock:
            self._data[self._k(key)] = (raw, self._expiry(ttl_seconds))

    async def delete(self, *keys: str) -> int:
        removed = 0
        async with self._lock:
            for key in keys:
                full_key = self._k(key)
                if self._live(full_key) is not None:
                    del self._data[full_key]
                    removed += 1
        return removed

    def _incr_locked(self, full_key: str, ttl_seconds: Optional[int]) -> Tuple[int, int]:
        # called under lock
        entry = self._live(full_key)
        if entry is None:
            count = 1
            expires_at = self._expiry(ttl_seconds)
        else:
            count = int(deserialize(entry[0])) + 1
            expires_at = entry[1]
            if expires_at is None and ttl_seconds:
                expires_at = self._expiry(ttl_seconds)
        new_entry = (serialize(count), expires_at)
        self._data[full_key] = new_entry
        return count, self._pttl(new_entry)

    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> Tuple[int, int]:
        async with self._lock:
            return self._incr_locked(self._k(key), ttl_seconds)

    async def incr_and_flag(
        self,
        key: str,
        ttl_seconds: Optional[int],
        threshold: int,
        flag_key: str,
        flag_value: Any,
        flag_ttl_seconds: Optional[int] = None,
    ) -> Tuple[int, bool]:
        raw = serialize(flag_value)
        async with self._lock:
            count, _ = self._incr_locked(self._k(key), ttl_seconds)
            if count < threshold:
                return count, False
            full_flag = self._k(flag_key)
            if self._live(full_flag) is None:
                self._data[full_flag] = (raw, self._expiry(flag_ttl_seconds))
            return count, True

    async def compare_and_delete(self, key: str, expected: Any) -> bool:
        raw = serialize(expected)
        async with self._lock:
            full_key = self._k(key)
            entry = self._live(full_key)
            if entry is None or entry[0] != raw:
                return False
            del self._data[full_key]
            return True

    async def ttl_ms(self, key: str) -> int:
        async with self._lock:
            return self._pttl(self._live(self._k(key)))

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()
