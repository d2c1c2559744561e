from fastapi import APIRouter, Depends, HTTPException, Query

from app_state import AppState, get_app_state
from models.reading import ReadingPosition

router = APIRouter()


@router.post("/position")
async def save_position(payload: ReadingPosition, state: AppState = Depends(get_app_state)):
    return await state.reading.save_reading_position(
        payload.chapter_id, payload.verse_number, payload.reading_mode
    )


@router.get("/last")
async def last_read(state: AppState = Depends(get_app_state)):
    entry = await state.reading.get_last_read()
    if entry is None:
        raise HTTPException(status_code=404, detail="Nothing read yet")
    return entry


@router.get("/history")
async def reading_history(
    limit: int = Query(default=20, ge=1, le=114),
    state: AppState = Depends(get_app_state),
):
    return await state.reading.get_reading_history(limit)
