from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from db.store import LocalRecordStore
from errors import ConflictError
from models.memorization import MemorizationProgress
from utils.clock import day_bounds, local_date, now_ms
from utils.mastery import confidence_counts, mastery_bucket, mastery_percent
from utils.sm2 import (
    DEFAULT_EASE,
    QUALITY_GOOD,
    compute_next_state,
    confidence_to_quality,
    next_review_at,
)
from utils.verses import TOTAL_VERSES, make_verse_key, parse_verse_key

logger = logging.getLogger(__name__)

PROGRESS_TABLE = "memorization_progress"
REVIEW_LOG_TABLE = "review_log"


class MemorizationService:
    """Hifz review bookkeeping on top of the local record store."""

    def __init__(self, store: LocalRecordStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    async def mark_verse(self, verse_key: str, confidence: str) -> MemorizationProgress:
        """Record a review of ``verse_key`` and reschedule it with SM-2.

        The first mark of a verse is scored at least as "good": a verse that
        was never tracked cannot have been forgotten, so it starts with a
        streak of 1 and the default ease.
        """
        chapter_id, verse_number = parse_verse_key(verse_key)
        quality = confidence_to_quality(confidence)
        label = getattr(confidence, "value", confidence)
        key = make_verse_key(chapter_id, verse_number)
        now = self.clock()

        existing = await self.store.get_by(PROGRESS_TABLE, verse_key=key)
        if existing is None:
            applied_quality = max(quality, QUALITY_GOOD)
            state = compute_next_state(applied_quality, DEFAULT_EASE, 0, 0)
            try:
                record_id = await self.store.create(
                    PROGRESS_TABLE,
                    {
                        "verse_key": key,
                        "chapter_id": chapter_id,
                        "verse_number": verse_number,
                        "confidence": label,
                        "last_reviewed_at": now,
                        "next_review_at": next_review_at(state.interval, now),
                        "review_count": 1,
                        "ease_factor": state.ease,
                        "interval_days": state.interval,
                        "streak": state.streak,
                    },
                )
            except ConflictError:
                # A concurrent first mark created the row; review it instead
                existing = await self.store.get_by(PROGRESS_TABLE, verse_key=key)
                if existing is None:
                    raise
                logger.debug("Verse %s created concurrently, updating", key)
        if existing is not None:
            applied_quality = quality
            state = compute_next_state(
                quality, existing.ease_factor, existing.interval_days, existing.streak
            )
            record_id = existing.id
            await self.store.update(
                PROGRESS_TABLE,
                record_id,
                {
                    "confidence": label,
                    "last_reviewed_at": now,
                    "next_review_at": next_review_at(state.interval, now),
                    "review_count": existing.review_count + 1,
                    "ease_factor": state.ease,
                    "interval_days": state.interval,
                    "streak": state.streak,
                },
            )
        await self.store.create(
            REVIEW_LOG_TABLE,
            {
                "verse_key": key,
                "confidence": label,
                "quality": applied_quality,
                "reviewed_at": now,
            },
        )
        logger.debug(
            "Marked %s as %s: interval=%d ease=%.2f streak=%d",
            key, label, state.interval, state.ease, state.streak,
        )
        return await self.store.get(PROGRESS_TABLE, record_id)

    async def get_verse_progress(self, verse_key: str) -> Optional[MemorizationProgress]:
        chapter_id, verse_number = parse_verse_key(verse_key)
        return await self.store.get_by(
            PROGRESS_TABLE, verse_key=make_verse_key(chapter_id, verse_number)
        )

    async def get_due_reviews(self, limit: Optional[int] = None) -> List[MemorizationProgress]:
        return await self.store.list(
            PROGRESS_TABLE,
            between=("next_review_at", None, self.clock()),
            order_by="next_review_at",
            limit=limit,
        )

    async def get_due_count(self) -> int:
        return len(await self.get_due_reviews())

    async def _review_days(self) -> set:
        days = set()
        for entry in await self.store.list(REVIEW_LOG_TABLE):
            days.add(local_date(entry.reviewed_at))
        progress = await self.store.list(
            PROGRESS_TABLE, predicate=lambda item: item.last_reviewed_at is not None
        )
        for item in progress:
            days.add(local_date(item.last_reviewed_at))
        return days

    async def get_streak(self) -> int:
        """Consecutive days with at least one review, ending today or yesterday."""
        days = await self._review_days()
        if not days:
            return 0
        current = local_date(self.clock())
        if current not in days:
            current -= timedelta(days=1)
        streak = 0
        while current in days:
            streak += 1
            current -= timedelta(days=1)
        return streak

    async def get_total_progress(self) -> Dict[str, float]:
        records = await self.store.list(PROGRESS_TABLE)
        counts = confidence_counts(record.confidence for record in records)
        buckets = {"memorized": 0, "learning": 0, "new": 0}
        for record in records:
            buckets[mastery_bucket(record.confidence)] += 1
        return {
            "total": TOTAL_VERSES,
            "tracked": counts.pop("total"),
            "memorized": buckets["memorized"],
            "learning": buckets["learning"],
            "new": buckets["new"],
            "percent": mastery_percent(buckets["memorized"], TOTAL_VERSES),
            "by_confidence": counts,
        }

    async def get_chapter_progress(self, chapter_id: int) -> Dict[str, int]:
        records = await self.store.list(PROGRESS_TABLE, where={"chapter_id": int(chapter_id)})
        return confidence_counts(record.confidence for record in records)

    async def get_daily_review_count(self, day: Optional[date] = None) -> int:
        start, end = day_bounds(day or local_date(self.clock()))
        entries = await self.store.list(REVIEW_LOG_TABLE, between=("reviewed_at", start, end - 1))
        return len(entries)

    async def get_review_calendar(self, year: int, month: int) -> Dict[int, int]:
        """Reviews per day of month, for days with at least one review."""
        last_day = calendar.monthrange(year, month)[1]
        start, _ = day_bounds(date(year, month, 1))
        _, end = day_bounds(date(year, month, last_day))
        entries = await self.store.list(REVIEW_LOG_TABLE, between=("reviewed_at", start, end - 1))
        per_day: Dict[int, int] = {}
        for entry in entries:
            day = local_date(entry.reviewed_at).day
            per_day[day] = per_day.get(day, 0) + 1
        return per_day
