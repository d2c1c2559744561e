from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app_state import AppState, get_app_state

router = APIRouter()


class SignIn(BaseModel):
    user_id: str


class Connectivity(BaseModel):
    online: bool


def _status(state: AppState) -> dict:
    coordinator = state.sync
    return {
        **coordinator.state.model_dump(mode="json"),
        "label": coordinator.status_label(),
        "signed_in": coordinator.user_id is not None,
    }


@router.get("/status")
async def sync_status(state: AppState = Depends(get_app_state)):
    return _status(state)


@router.post("/trigger")
async def trigger_sync(state: AppState = Depends(get_app_state)):
    """Run a sync cycle now; a cycle already in flight absorbs the trigger."""
    await state.sync.sync_all()
    return _status(state)


@router.post("/sign-in")
async def sign_in(payload: SignIn, state: AppState = Depends(get_app_state)):
    await state.sync.sign_in(payload.user_id)
    return _status(state)


@router.post("/sign-out")
async def sign_out(state: AppState = Depends(get_app_state)):
    await state.sync.sign_out()
    return _status(state)


@router.post("/connectivity")
async def connectivity(payload: Connectivity, state: AppState = Depends(get_app_state)):
    await state.sync.set_online(payload.online)
    return _status(state)
