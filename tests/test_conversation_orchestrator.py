import pytest

from conftest import FakeEmbedClient, FakeLLMClient, make_helper_config, text_completion, tool_completion
from server.core.AppServices import AppServices
from services.chat.ConversationOrchestrator import PROCESSING_APOLOGY
from services.chat.ToolCallLoop import TECHNICAL_APOLOGY
from services.chat.ToolExecutor import ToolSpec
from shared.errors import ProviderError, StorageError
from shared.models.conversation import TurnRole
from shared.models.owner import Owner
from shared.models.tools import ToolArguments

OWNER = Owner(id="advisor-1", name="Jane Advisor", email="jane@example.com")


def _services(script: list, embed_client: FakeEmbedClient | None = None, **overrides) -> tuple[AppServices, FakeLLMClient]:
    llm = FakeLLMClient(script)
    services = AppServices(helper_config=make_helper_config(**overrides), llm_client=llm, embed_client=embed_client or FakeEmbedClient())
    return services, llm


@pytest.mark.asyncio
async def test_process_persists_both_turns():
    services, _ = _services([text_completion("Hello Jane")])
    reply = await services.orchestrator.process(OWNER, "Hi there", "s1")

    assert reply == "Hello Jane"
    history = await services.orchestrator.get_chat_history(OWNER, "s1")
    assert [(t.role, t.content) for t in history] == [(TurnRole.USER, "Hi there"), (TurnRole.ASSISTANT, "Hello Jane")]


@pytest.mark.asyncio
async def test_only_five_most_recent_turns_reach_the_prompt():
    services, llm = _services([text_completion("ok")])
    for i in range(7):
        role = TurnRole.USER if i % 2 == 0 else TurnRole.ASSISTANT
        await services.conversation_store.append(OWNER.id, "s1", role, f"turn {i}")
    assert [t.content for t in await services.orchestrator.get_chat_history(OWNER, "s1")] == [f"turn {i}" for i in range(7)]

    await services.orchestrator.process(OWNER, "new question", "s1")

    messages = llm.calls[0]["messages"]
    assert messages[0]["role"] == "system"
    assert [m["content"] for m in messages[1:-1]] == ["turn 2", "turn 3", "turn 4", "turn 5", "turn 6"]
    assert messages[-1] == {"role": "user", "content": "new question"}
    assert len(await services.orchestrator.get_chat_history(OWNER, "s1")) == 9


@pytest.mark.asyncio
async def test_owner_scoped_context_and_instructions_reach_the_system_prompt():
    services, llm = _services([text_completion("ok")])
    await services.document_store.add("Bob Miller prefers morning meetings.", {"type": "contact"}, [1.0, 0.0], OWNER.id)
    await services.document_store.add("Secret of another advisor.", {"type": "email"}, [1.0, 0.0], "advisor-2")
    await services.owner_store.upsert(OWNER)
    owner = await services.orchestrator.update_standing_instructions(OWNER, "Always cc my assistant.")
    assert owner.standing_instructions == "Always cc my assistant."

    await services.orchestrator.process(owner, "When does Bob like to meet?", "s1")

    system_prompt = llm.calls[0]["messages"][0]["content"]
    assert "RELEVANT CONTEXT FROM YOUR DATA:" in system_prompt
    assert "1. Bob Miller prefers morning meetings." in system_prompt
    assert "Secret of another advisor." not in system_prompt
    assert "Always cc my assistant." in system_prompt
    assert "- Name: Jane Advisor" in system_prompt


@pytest.mark.asyncio
async def test_provider_failure_returns_apology_and_keeps_user_turn():
    services, _ = _services([ProviderError("unauthorized", status_code=401)])
    reply = await services.orchestrator.process(OWNER, "Hi", "s1")

    assert reply == PROCESSING_APOLOGY
    history = await services.orchestrator.get_chat_history(OWNER, "s1")
    assert [(t.role, t.content) for t in history] == [(TurnRole.USER, "Hi")]


@pytest.mark.asyncio
async def test_embedding_failure_returns_apology():
    services, llm = _services([text_completion("unused")], embed_client=FakeEmbedClient(error=ProviderError("embed down")))
    assert await services.orchestrator.process(OWNER, "Hi", "s1") == PROCESSING_APOLOGY
    assert llm.calls == []


@pytest.mark.asyncio
async def test_storage_failure_returns_apology():
    services, _ = _services([text_completion("unused")])

    async def failing_append(*args, **kwargs):
        raise StorageError("disk full")

    services.conversation_store.append = failing_append
    assert await services.orchestrator.process(OWNER, "Hi", "s1") == PROCESSING_APOLOGY


@pytest.mark.asyncio
async def test_tool_failure_never_escapes_process():
    services, _ = _services([
        tool_completion("sendEmail", '{"to": "bob@example.com", "subject": "Hi", "body": "Hello"}'),
        text_completion("Mail is not connected yet."),
    ])
    assert await services.orchestrator.process(OWNER, "Email Bob", "s1") == "Mail is not connected yet."


@pytest.mark.asyncio
async def test_raising_tool_handler_still_yields_text():
    async def handler(owner, args):
        raise RuntimeError("boom")

    services, llm = _services([tool_completion("explode"), text_completion("That action failed: boom.")])
    services.tool_executor.register(
        ToolSpec(name="explode", description="Always fails.", prompt_hint="fails", args_model=ToolArguments, handler=handler)
    )
    assert await services.orchestrator.process(OWNER, "Do it", "s1") == "That action failed: boom."
    assert '"System error during function execution: boom"' in llm.calls[1]["messages"][-1]["content"]

    services.llm_client.script = [tool_completion("explode"), ProviderError("down")]
    assert await services.orchestrator.process(OWNER, "Again", "s1") == TECHNICAL_APOLOGY


@pytest.mark.asyncio
async def test_sessions_are_listed_and_cleared():
    services, _ = _services([text_completion("first answer"), text_completion("second answer")])
    await services.orchestrator.process(OWNER, "x" * 80, "s1")
    await services.orchestrator.process(OWNER, "short", "s2")

    sessions = await services.orchestrator.list_sessions(OWNER)
    assert [s.session_id for s in sessions] == ["s2", "s1"]
    assert sessions[1].preview == "x" * 57 + "..."
    assert sessions[1].message_count == 2

    assert await services.orchestrator.clear_history(OWNER, "s1") == 2
    assert [s.session_id for s in await services.orchestrator.list_sessions(OWNER)] == ["s2"]
