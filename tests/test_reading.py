import pytest

from errors import ValidationError
from utils.reading import ReadingService


@pytest.fixture
def service(store, clock):
    return ReadingService(store, clock)


@pytest.mark.asyncio
async def test_one_entry_per_chapter_accumulates_verses(service, store, clock):
    await service.save_reading_position(18, 1)
    clock.advance(1_000)
    entry = await service.save_reading_position(18, 10, "mushaf")

    assert entry.verse_number == 10
    assert entry.reading_mode == "mushaf"
    assert entry.verses_read == [1, 10]
    assert entry.timestamp == clock.now
    assert entry.version == 2
    assert await store.count("reading_history") == 1


@pytest.mark.asyncio
async def test_last_read_and_history_are_most_recent_first(service, clock):
    await service.save_reading_position(1, 7)
    clock.advance(1_000)
    await service.save_reading_position(36, 12, "word-by-word")
    clock.advance(1_000)
    await service.save_reading_position(67, 1)

    last = await service.get_last_read()
    assert last.chapter_id == 67
    history = await service.get_reading_history(limit=2)
    assert [entry.chapter_id for entry in history] == [67, 36]


@pytest.mark.asyncio
async def test_rejects_bad_positions(service):
    assert await service.get_last_read() is None
    with pytest.raises(ValidationError):
        await service.save_reading_position(115, 1)
    with pytest.raises(ValidationError):
        await service.save_reading_position(1, 0)
    with pytest.raises(ValidationError):
        await service.save_reading_position(1, 1, "audio")
