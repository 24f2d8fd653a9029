import asyncio
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import orjson
from eventauth.auth.utils import normalize_email_address
from eventauth.common.logging_setup import get_logger
from eventauth.common.utils import now
from eventauth.events.models import Event

logger = get_logger("eventauth.events")

EVENT_ID_PATTERN = re.compile(r"[A-Za-z0-9]{8}")


def is_valid_event_id(event_id: Optional[str]) -> bool:
    return bool(event_id) and bool(EVENT_ID_PATTERN.fullmatch(event_id))


def is_administrator(event: Event, email: Optional[str]) -> bool:
    identity = normalize_email_address(email)
    if identity is None:
        return False
    return any(normalize_email_address(a) == identity for a in event.administrators)


class EventRepository(ABC):

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[Event]:
        ...

    @abstractmethod
    async def save_event(self, event: Event) -> Event:
        ...

    async def update_pin(self, event_id: str, pin: str) -> Optional[Event]:
        event = await self.get_event(event_id)
        if event is None:
            return None
        ts = now()
        updated = event.model_copy(update={"pin": pin, "pin_generated_at": ts, "updated_at": ts})
        return await self.save_event(updated)


class FileEventRepository(EventRepository):
    """One JSON document per event: <data_dir>/<event_id>.json"""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _path(self, event_id: str) -> Path:
        return self.data_dir / f"{event_id}.json"

    def _lock_for(self, event_id: str) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = self._locks[event_id] = asyncio.Lock()
        return lock

    @staticmethod
    def _read(path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _write(path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)

    async def get_event(self, event_id: str) -> Optional[Event]:
        if not is_valid_event_id(event_id):
            return None
        raw = await asyncio.to_thread(self._read, self._path(event_id))
        if raw is None:
            return None
        return Event.model_validate(orjson.loads(raw))

    async def save_event(self, event: Event) -> Event:
        if not is_valid_event_id(event.event_id):
            raise ValueError(f"invalid event id: {event.event_id!r}")
        data = orjson.dumps(event.model_dump(mode="json"), option=orjson.OPT_INDENT_2)
        await asyncio.to_thread(self._write, self._path(event.event_id), data)
        return event

    async def update_pin(self, event_id: str, pin: str) -> Optional[Event]:
        async with self._lock_for(event_id):
            event = await super().update_pin(event_id, pin)
        if event is not None:
            logger.info("event.pin_updated", extra={"event_id": event_id})
        return event
