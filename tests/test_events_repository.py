import asyncio
import orjson
import pytest
from eventauth.events.models import Event
from eventauth.events.repository import FileEventRepository, is_administrator, is_valid_event_id


@pytest.fixture
def repo(tmp_path):
    return FileEventRepository(tmp_path)


async def test_save_and_load_round_trip_on_disk(repo, tmp_path):
    await repo.save_event(Event(event_id="AbCd1234", name="Gala", pin="654321", administrators=["a@example.com"]))

    on_disk = orjson.loads((tmp_path / "AbCd1234.json").read_bytes())
    assert on_disk["pin"] == "654321"

    loaded = await repo.get_event("AbCd1234")
    assert loaded.name == "Gala"
    assert loaded.administrators == ["a@example.com"]


async def test_missing_and_malformed_ids(repo):
    assert await repo.get_event("NOTTHERE") is None
    assert await repo.get_event("../../etc/passwd") is None
    with pytest.raises(ValueError):
        await repo.save_event(Event(event_id="short"))


async def test_update_pin_stamps_time(repo):
    await repo.save_event(Event(event_id="EVENT777", pin=None))
    updated = await repo.update_pin("EVENT777", "111222")
    assert updated.pin == "111222"
    assert updated.pin_generated_at is not None
    assert (await repo.get_event("EVENT777")).pin == "111222"

    assert await repo.update_pin("NOTTHERE", "111222") is None


async def test_concurrent_pin_updates_leave_one_winner(repo):
    await repo.save_event(Event(event_id="EVENT777", pin="000001"))
    pins = [f"{100000 + i}" for i in range(10)]
    await asyncio.gather(*(repo.update_pin("EVENT777", p) for p in pins))
    assert (await repo.get_event("EVENT777")).pin in pins


def test_event_id_rules():
    assert is_valid_event_id("A1b2C3d4")
    assert not is_valid_event_id("A1b2C3d")
    assert not is_valid_event_id("A1b2C3d45")
    assert not is_valid_event_id("A1b2-3d4")
    assert not is_valid_event_id("EVENT001\n")
    assert not is_valid_event_id("EVENT\n01")
    assert not is_valid_event_id(None)


def test_administrator_match_is_normalized():
    event = Event(event_id="EVENT001", administrators=["Organiser@Example.com"])
    assert is_administrator(event, " organiser@example.COM ")
    assert not is_administrator(event, "guest@example.com")
    assert not is_administrator(event, None)


def test_public_view_hides_pin():
    view = Event(event_id="EVENT001", pin="123456").public_view()
    assert "pin" not in view
    assert "pin_generated_at" not in view
