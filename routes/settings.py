from fastapi import APIRouter, Depends

from app_state import AppState, get_app_state
from models.settings import SettingUpdate

router = APIRouter()


@router.get("/")
async def all_settings(state: AppState = Depends(get_app_state)):
    return await state.settings.get_all_settings()


@router.get("/{key}")
async def get_setting(key: str, state: AppState = Depends(get_app_state)):
    return {"key": key, "value": await state.settings.get_setting(key)}


@router.put("/{key}")
async def set_setting(key: str, payload: SettingUpdate, state: AppState = Depends(get_app_state)):
    await state.settings.set_setting(key, payload.value)
    return {"key": key, "value": await state.settings.get_setting(key)}
