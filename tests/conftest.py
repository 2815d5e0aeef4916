import copy
import logging

import pytest

from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.llm import ChatCompletion
from shared.models.owner import Owner
from shared.models.tools import ToolInvocationRequest
from shared.models.workspace import Contact


def make_helper_config(**overrides) -> HelperConfig:
    logger = ColorLogger(logging.getLogger("advisor_ai_bridge.tests"))
    values = {"APP_API_KEY": "test-key", "TIMEZONE": "Europe/Berlin", "LOG_TO_FILE": "false"}
    values.update({k: str(v) for k, v in overrides.items()})
    return HelperConfig(logger=logger, overrides=values)


class FakeEmbedClient:
    """Returns fixed vectors; unknown texts get ``default``."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default: list[float] | None = None, error: Exception | None = None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0]
        self.error = error
        self.calls: list[str] = []

    async def do_embed_text(self, text: str | None) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vectors.get(text, self.default)


class FakeLLMClient:
    """Answers completions from a script of ChatCompletion objects or exceptions."""

    followup_max_tokens = 1000

    def __init__(self, script: list):
        self.script = list(script)
        self.calls: list[dict] = []

    async def do_complete(self, messages: list[dict], tools: list[dict] | None = None, max_tokens: int | None = None) -> ChatCompletion:
        self.calls.append({"messages": copy.deepcopy(messages), "tools": tools, "max_tokens": max_tokens})
        if not self.script:
            raise ProviderError("No scripted completion left")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    def build_tool_call_message(self, call: ToolInvocationRequest) -> dict:
        return {"role": "assistant", "content": None, "tool_calls": [{"id": call.call_id, "function": {"name": call.name, "arguments": call.arguments_json}}]}

    def build_tool_result_message(self, call: ToolInvocationRequest, result: str) -> dict:
        return {"role": "tool", "tool_call_id": call.call_id, "content": result}


class FakeMailClient:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent: list[tuple[str, str, str]] = []

    def get_engine_name(self) -> str:
        return "gmail"

    async def do_send_email(self, owner: Owner, to: str, subject: str, body: str) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append((to, subject, body))
        return f"msg-{len(self.sent)}"

    async def do_fetch_recent_messages(self, owner: Owner, limit: int = 100) -> list:
        return []


class FakeCRMClient:
    def __init__(self, contacts: list[Contact] | None = None):
        self.contacts = contacts or []
        self.created: list[Contact] = []

    def get_engine_name(self) -> str:
        return "hubspot"

    async def do_search_contacts(self, owner: Owner, query: str, limit: int = 10) -> list[Contact]:
        needle = query.lower()
        return [c for c in self.contacts if needle in c.full_name.lower() or needle in c.email.lower()][:limit]

    async def do_list_contacts(self, owner: Owner, limit: int = 100) -> list[Contact]:
        return self.contacts[:limit]

    async def do_create_contact(self, owner: Owner, name: str, email: str, company: str | None = None, notes: str | None = None) -> Contact:
        first_name, _, last_name = name.partition(" ")
        contact = Contact(id=str(100 + len(self.created)), first_name=first_name, last_name=last_name, email=email, company=company, notes=notes)
        self.created.append(contact)
        self.contacts.append(contact)
        return contact


def text_completion(text: str) -> ChatCompletion:
    return ChatCompletion(text=text)


def tool_completion(name: str, arguments_json: str = "{}") -> ChatCompletion:
    return ChatCompletion(tool_call=ToolInvocationRequest(name=name, arguments_json=arguments_json, call_id="call_1"))


@pytest.fixture
def helper_config() -> HelperConfig:
    return make_helper_config()


@pytest.fixture
def owner() -> Owner:
    return Owner(id="advisor-1", name="Jane Advisor", email="jane@example.com")
