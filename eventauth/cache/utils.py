import hashlib
from typing import Any, Optional
import orjson

MAX_KEY_LENGTH = 200


def build_key(*parts: Optional[str]) -> str:
    joined = ":".join(str(p) for p in parts if p is not None and p != "")
    if len(joined) > MAX_KEY_LENGTH:
        return hashlib.sha256(joined.encode()).hexdigest()
    return joined


def serialize(value: Any) -> bytes:
    return orjson.dumps(value)


def deserialize(b: Optional[bytes]) -> Any:
    if b is None:
        return None
    return orjson.loads(b)
