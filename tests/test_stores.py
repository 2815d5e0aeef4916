import pytest

from conftest import make_helper_config
from shared.errors import StorageError
from shared.models.conversation import TurnRole
from shared.stores.memory.ConversationStoreMemory import ConversationStoreMemory
from shared.stores.memory.DocumentStoreMemory import DocumentStoreMemory
from shared.stores.memory.OwnerStoreMemory import OwnerStoreMemory


@pytest.mark.asyncio
async def test_written_turn_is_read_back_unchanged():
    store = ConversationStoreMemory(helper_config=make_helper_config())
    written = await store.append("o1", "s1", TurnRole.USER, "What is on my calendar?")
    (read,) = await store.get_session_turns("o1", "s1")
    assert (read.content, read.role, read.timestamp) == (written.content, written.role, written.timestamp)


@pytest.mark.asyncio
async def test_session_turns_are_ascending_and_isolated():
    store = ConversationStoreMemory(helper_config=make_helper_config())
    for i in range(4):
        await store.append("o1", "s1", TurnRole.USER, f"m{i}")
    await store.append("o1", "s2", TurnRole.USER, "other session")
    await store.append("o2", "s1", TurnRole.USER, "other owner")

    turns = await store.get_session_turns("o1", "s1")
    assert [t.content for t in turns] == ["m0", "m1", "m2", "m3"]
    assert all(a.timestamp <= b.timestamp for a, b in zip(turns, turns[1:]))


@pytest.mark.asyncio
async def test_recent_turns_are_most_recent_first_and_respect_before_id():
    store = ConversationStoreMemory(helper_config=make_helper_config())
    turns = [await store.append("o1", "s1", TurnRole.USER, f"m{i}") for i in range(6)]

    recent = await store.get_recent_turns("o1", "s1", limit=3)
    assert [t.content for t in recent] == ["m5", "m4", "m3"]
    before = await store.get_recent_turns("o1", "s1", limit=3, before_id=turns[5].id)
    assert [t.content for t in before] == ["m4", "m3", "m2"]


@pytest.mark.asyncio
async def test_session_preview_is_at_most_sixty_characters():
    store = ConversationStoreMemory(helper_config=make_helper_config())
    await store.append("o1", "s1", TurnRole.USER, "a" * 200)
    await store.append("o1", "s1", TurnRole.ASSISTANT, "answer")
    (summary,) = await store.list_sessions("o1")
    assert len(summary.preview) == 60
    assert summary.preview.endswith("...")
    assert summary.message_count == 2


@pytest.mark.asyncio
async def test_turn_without_session_is_rejected():
    store = ConversationStoreMemory(helper_config=make_helper_config())
    with pytest.raises(StorageError):
        await store.append("o1", "", TurnRole.USER, "hello")


@pytest.mark.asyncio
async def test_document_store_rejects_incomplete_documents():
    store = DocumentStoreMemory(helper_config=make_helper_config())
    with pytest.raises(StorageError):
        await store.add("", {}, [1.0], "o1")
    with pytest.raises(StorageError):
        await store.add("content", {}, [], "o1")
    with pytest.raises(StorageError):
        await store.add("content", {}, [1.0], "")


@pytest.mark.asyncio
async def test_document_store_purges_one_owner_only():
    store = DocumentStoreMemory(helper_config=make_helper_config())
    first = await store.add("a", {"type": "email"}, [1.0], "o1")
    await store.add("b", {"type": "email"}, [1.0], "o2")
    second = await store.add("c", {"type": "contact"}, [1.0], "o1")

    assert second.id > first.id
    assert await store.count_by_owner("o1") == 2
    assert await store.purge_owner("o1") == 2
    assert [doc.content for doc in await store.list_all()] == ["b"]


@pytest.mark.asyncio
async def test_owner_store_creates_owner_for_instructions():
    store = OwnerStoreMemory(helper_config=make_helper_config())
    owner = await store.set_standing_instructions("o1", "  Create contacts for new senders.  ")
    assert owner.name == "o1"
    assert owner.standing_instructions == "Create contacts for new senders."
    cleared = await store.set_standing_instructions("o1", "   ")
    assert cleared.standing_instructions is None
