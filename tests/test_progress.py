import asyncio

import pytest

from errors import ValidationError
from utils.clock import DAY_MS, local_date
from utils.progress import MemorizationService


@pytest.fixture
def service(store, clock):
    return MemorizationService(store, clock)


@pytest.mark.asyncio
async def test_first_mark_starts_schedule_at_one_day(service, clock):
    progress = await service.mark_verse("2:255", "new")
    assert progress.confidence == "new"
    assert progress.interval_days == 1
    assert progress.ease_factor == 2.5
    assert progress.streak == 1
    assert progress.review_count == 1
    assert progress.next_review_at == clock.now + DAY_MS
    assert progress.dirty is True


@pytest.mark.asyncio
async def test_second_good_review_moves_to_six_days(service, clock):
    await service.mark_verse("2:255", "new")
    clock.advance(DAY_MS)
    progress = await service.mark_verse("2:255", "good")
    assert progress.streak == 2
    assert progress.interval_days == 6
    assert progress.review_count == 2
    assert progress.version == 2
    assert progress.next_review_at == clock.now + 6 * DAY_MS


@pytest.mark.asyncio
async def test_first_solid_mark_uses_solid_schedule(service):
    progress = await service.mark_verse("1:1", "solid")
    assert progress.interval_days == 2
    assert progress.ease_factor == pytest.approx(2.6)


@pytest.mark.asyncio
async def test_forgetting_resets_streak(service):
    await service.mark_verse("1:1", "good")
    progress = await service.mark_verse("1:1", "new")
    assert progress.streak == 0
    assert progress.interval_days == 1
    assert progress.ease_factor == pytest.approx(2.3)


@pytest.mark.asyncio
async def test_invalid_input_writes_nothing(service, store):
    with pytest.raises(ValidationError):
        await service.mark_verse("115:1", "good")
    with pytest.raises(ValidationError):
        await service.mark_verse("1:1", "perfect")
    assert await store.count("memorization_progress") == 0
    assert await store.count("review_log") == 0


@pytest.mark.asyncio
async def test_due_reviews_include_boundary(service, clock):
    start = clock.now
    await service.mark_verse("1:2", "good")
    clock.advance(1)
    await service.mark_verse("1:1", "good")

    clock.now = start + DAY_MS - 1
    assert await service.get_due_reviews() == []

    clock.now = start + DAY_MS
    due = await service.get_due_reviews()
    assert [item.verse_key for item in due] == ["1:2"]

    clock.advance(1)
    due = await service.get_due_reviews()
    assert [item.verse_key for item in due] == ["1:2", "1:1"]
    assert await service.get_due_count() == 2
    assert len(await service.get_due_reviews(limit=1)) == 1


@pytest.mark.asyncio
async def test_streak_counts_consecutive_days(service, clock):
    assert await service.get_streak() == 0
    await service.mark_verse("1:1", "good")
    clock.advance(DAY_MS)
    await service.mark_verse("1:2", "good")
    clock.advance(DAY_MS)
    await service.mark_verse("1:3", "good")
    assert await service.get_streak() == 3

    clock.advance(DAY_MS)
    assert await service.get_streak() == 3

    clock.advance(DAY_MS)
    assert await service.get_streak() == 0


@pytest.mark.asyncio
async def test_total_and_chapter_progress(service):
    await service.mark_verse("1:1", "good")
    await service.mark_verse("1:2", "solid")
    await service.mark_verse("1:3", "shaky")
    await service.mark_verse("2:1", "new")

    totals = await service.get_total_progress()
    assert totals["total"] == 6236
    assert totals["tracked"] == 4
    assert totals["memorized"] == 2
    assert totals["learning"] == 1
    assert totals["new"] == 1
    assert totals["percent"] == 0.0
    assert totals["by_confidence"]["shaky"] == 1

    chapter = await service.get_chapter_progress(1)
    assert chapter["total"] == 3
    assert chapter["good"] == 1
    assert chapter["solid"] == 1
    assert chapter["new"] == 0


@pytest.mark.asyncio
async def test_daily_count_and_calendar(service, clock):
    await service.mark_verse("1:1", "good")
    await service.mark_verse("1:1", "good")
    today = local_date(clock.now)
    assert await service.get_daily_review_count() == 2
    calendar = await service.get_review_calendar(today.year, today.month)
    assert calendar == {today.day: 2}


@pytest.mark.asyncio
async def test_concurrent_first_marks_count_both_reviews(service, store):
    first, second = await asyncio.gather(
        service.mark_verse("112:1", "good"),
        service.mark_verse("112:1", "good"),
    )

    progress = await service.get_verse_progress("112:1")
    assert progress.review_count == 2
    assert {first.id, second.id} == {progress.id}
    assert await store.count("memorization_progress") == 1
    assert await store.count("review_log", where={"verse_key": "112:1"}) == 2
