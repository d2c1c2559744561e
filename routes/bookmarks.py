from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app_state import AppState, get_app_state
from models.bookmark import BookmarkCreate, BookmarkUpdate
from models.collection import CollectionCreate, CollectionUpdate

router = APIRouter()


class Reorder(BaseModel):
    ids: List[str]


# Collections

@router.get("/collections")
async def list_collections(state: AppState = Depends(get_app_state)):
    return await state.bookmarks.get_collections()


@router.post("/collections", status_code=status.HTTP_201_CREATED)
async def create_collection(payload: CollectionCreate, state: AppState = Depends(get_app_state)):
    collection_id = await state.bookmarks.create_collection(
        payload.name, payload.description, payload.color, payload.icon
    )
    return await state.bookmarks.get_collection(collection_id)


@router.post("/collections/reorder")
async def reorder_collections(payload: Reorder, state: AppState = Depends(get_app_state)):
    await state.bookmarks.reorder_collections(payload.ids)
    return await state.bookmarks.get_collections()


@router.get("/collections/{collection_id}")
async def get_collection(collection_id: str, state: AppState = Depends(get_app_state)):
    collection = await state.bookmarks.get_collection(collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return {
        "collection": collection,
        "bookmarks": await state.bookmarks.get_bookmarks_by_collection(collection_id),
    }


@router.patch("/collections/{collection_id}")
async def update_collection(
    collection_id: str, payload: CollectionUpdate, state: AppState = Depends(get_app_state)
):
    fields = payload.model_dump(exclude_unset=True)
    if not await state.bookmarks.update_collection(collection_id, fields):
        raise HTTPException(status_code=404, detail="Collection not found")
    return await state.bookmarks.get_collection(collection_id)


@router.delete("/collections/{collection_id}")
async def delete_collection(collection_id: str, state: AppState = Depends(get_app_state)):
    """Delete a collection together with its bookmarks."""
    if await state.bookmarks.get_collection(collection_id) is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    removed = await state.bookmarks.delete_collection(collection_id)
    return {"deleted": collection_id, "bookmarks_removed": removed}


@router.post("/collections/{collection_id}/reorder")
async def reorder_bookmarks(
    collection_id: str, payload: Reorder, state: AppState = Depends(get_app_state)
):
    await state.bookmarks.reorder_bookmarks(collection_id, payload.ids)
    return await state.bookmarks.get_bookmarks_by_collection(collection_id)


# Bookmarks

@router.post("/bookmarks", status_code=status.HTTP_201_CREATED)
async def add_bookmark(payload: BookmarkCreate, state: AppState = Depends(get_app_state)):
    bookmark_id = await state.bookmarks.add_bookmark(
        payload.collection_id, payload.verse_key, payload.note, payload.color
    )
    return await state.store.get("bookmarks", bookmark_id)


@router.get("/bookmarks/verse/{verse_key}")
async def bookmark_by_verse(verse_key: str, state: AppState = Depends(get_app_state)):
    """Bookmark state for one verse, including every collection holding it."""
    return {
        "bookmarked": await state.bookmarks.is_verse_bookmarked(verse_key),
        "bookmark": await state.bookmarks.get_bookmark_by_verse(verse_key),
        "collections": await state.bookmarks.get_bookmark_collections(verse_key),
    }


@router.patch("/bookmarks/{bookmark_id}")
async def update_bookmark(
    bookmark_id: str, payload: BookmarkUpdate, state: AppState = Depends(get_app_state)
):
    fields = payload.model_dump(exclude_unset=True)
    if not await state.bookmarks.update_bookmark(bookmark_id, fields):
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return await state.store.get("bookmarks", bookmark_id)


@router.delete("/bookmarks/{bookmark_id}")
async def remove_bookmark(bookmark_id: str, state: AppState = Depends(get_app_state)):
    if not await state.bookmarks.remove_bookmark(bookmark_id):
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return {"deleted": bookmark_id}
