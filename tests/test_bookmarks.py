import pytest

from db.store import BOOKMARK_ENTITY
from errors import ValidationError
from utils.bookmarks import BookmarkService


@pytest.fixture
def service(store):
    return BookmarkService(store)


@pytest.mark.asyncio
async def test_same_verse_in_two_collections(service):
    first = await service.create_collection("Morning")
    second = await service.create_collection("Evening")
    await service.add_bookmark(first, "2:255")
    await service.add_bookmark(second, "2:255", note="before sleep")

    assert sorted(await service.get_bookmark_collections("2:255")) == sorted([first, second])
    assert await service.is_verse_bookmarked("2:255")
    assert not await service.is_verse_bookmarked("2:256")


@pytest.mark.asyncio
async def test_deleting_collection_removes_its_bookmarks(service):
    doomed = await service.create_collection("Doomed")
    await service.add_bookmark(doomed, "18:10")
    await service.add_bookmark(doomed, "18:11")

    assert await service.delete_collection(doomed) == 2

    assert await service.get_collection(doomed) is None
    assert await service.get_bookmarks_by_collection(doomed) == []
    assert not await service.is_verse_bookmarked("18:10")
    assert await service.store.list_pending_deletes(BOOKMARK_ENTITY) == ["18:10", "18:11"]


@pytest.mark.asyncio
async def test_add_bookmark_validates_input(service):
    collection_id = await service.create_collection("Study")
    with pytest.raises(ValidationError):
        await service.add_bookmark(collection_id, "0:1")
    with pytest.raises(ValidationError):
        await service.add_bookmark(collection_id, "not-a-key")
    with pytest.raises(ValidationError):
        await service.add_bookmark("missing", "1:1")
    with pytest.raises(ValidationError):
        await service.create_collection("   ")
    assert await service.store.count("bookmarks") == 0


@pytest.mark.asyncio
async def test_reorder_bookmarks_within_collection(service):
    collection_id = await service.create_collection("Study")
    a = await service.add_bookmark(collection_id, "1:1")
    b = await service.add_bookmark(collection_id, "1:2")
    c = await service.add_bookmark(collection_id, "1:3")

    await service.reorder_bookmarks(collection_id, [c, a, b])

    ordered = await service.get_bookmarks_by_collection(collection_id)
    assert [bookmark.id for bookmark in ordered] == [c, a, b]


@pytest.mark.asyncio
async def test_reorder_collections(service):
    ids = [collection.id for collection in await service.get_collections()]
    await service.reorder_collections(list(reversed(ids)))
    assert [collection.id for collection in await service.get_collections()] == list(reversed(ids))


@pytest.mark.asyncio
async def test_update_and_remove_bookmark(service):
    source = await service.create_collection("Source")
    target = await service.create_collection("Target")
    bookmark_id = await service.add_bookmark(source, "36:1")

    assert await service.update_bookmark(bookmark_id, {"note": "Ya-Sin", "collection_id": target})
    bookmark = await service.get_bookmark_by_verse("36:1")
    assert bookmark.note == "Ya-Sin"
    assert bookmark.collection_id == target
    with pytest.raises(ValidationError):
        await service.update_bookmark(bookmark_id, {"collection_id": "missing"})

    assert await service.remove_bookmark(bookmark_id)
    assert await service.get_bookmark_by_verse("36:1") is None
    assert await service.update_collection(target, {"name": "Renamed"})
    assert (await service.get_collection(target)).name == "Renamed"


@pytest.mark.asyncio
async def test_moved_bookmark_goes_to_end_of_target(service):
    source = await service.create_collection("Source")
    target = await service.create_collection("Target")
    await service.add_bookmark(target, "1:1")
    await service.add_bookmark(target, "1:2")
    moved = await service.add_bookmark(source, "1:3")

    assert await service.update_bookmark(moved, {"collection_id": target})

    ordered = await service.get_bookmarks_by_collection(target)
    assert [bookmark.verse_key for bookmark in ordered] == ["1:1", "1:2", "1:3"]
    assert ordered[-1].sort_order == 2
