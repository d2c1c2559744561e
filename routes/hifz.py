from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app_state import AppState, get_app_state
from models.memorization import MarkVerse
from utils.verses import CHAPTER_COUNT

router = APIRouter()


@router.post("/mark")
async def mark_verse(payload: MarkVerse, state: AppState = Depends(get_app_state)):
    """Record a review and return the rescheduled progress record."""
    return await state.memorization.mark_verse(payload.verse_key, payload.confidence)


@router.get("/verse/{verse_key}")
async def verse_progress(verse_key: str, state: AppState = Depends(get_app_state)):
    progress = await state.memorization.get_verse_progress(verse_key)
    if progress is None:
        raise HTTPException(status_code=404, detail="Verse not tracked")
    return progress


@router.get("/due")
async def due_reviews(
    limit: Optional[int] = Query(default=None, ge=1),
    state: AppState = Depends(get_app_state),
):
    return await state.memorization.get_due_reviews(limit)


@router.get("/due/count")
async def due_count(state: AppState = Depends(get_app_state)):
    return {"due": await state.memorization.get_due_count()}


@router.get("/stats")
async def total_progress(state: AppState = Depends(get_app_state)):
    return await state.memorization.get_total_progress()


@router.get("/stats/{chapter_id}")
async def chapter_progress(chapter_id: int, state: AppState = Depends(get_app_state)):
    if not 1 <= chapter_id <= CHAPTER_COUNT:
        raise HTTPException(status_code=404, detail="Chapter not found")
    return await state.memorization.get_chapter_progress(chapter_id)


@router.get("/streak")
async def streak(state: AppState = Depends(get_app_state)):
    memorization = state.memorization
    return {
        "streak": await memorization.get_streak(),
        "today": await memorization.get_daily_review_count(),
    }


@router.get("/calendar")
async def review_calendar(
    year: Optional[int] = Query(default=None),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    state: AppState = Depends(get_app_state),
):
    """Reviews per day for one month, defaulting to the current one."""
    today = date.today()
    year = year or today.year
    month = month or today.month
    days = await state.memorization.get_review_calendar(year, month)
    return {"year": year, "month": month, "days": days}
