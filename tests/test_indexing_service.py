import asyncio
import base64
import logging
from datetime import datetime

import httpx
import pytest
import pytz

from conftest import FakeCRMClient, FakeEmbedClient, FakeLLMClient, make_helper_config
from server.core.AppServices import AppServices
from services.rag.IndexingService import (
    CHUNK_SIZE,
    MAX_CONTENT_LENGTH,
    IndexingService,
    build_contact_piece,
    build_email_pieces,
    build_event_piece,
)
from shared.clients.mail.gmail.MailClientGmail import MailClientGmail
from shared.errors import ProviderError
from shared.models.owner import Owner
from shared.models.workspace import CalendarEvent, Contact, MailMessage
from shared.stores.memory.DocumentStoreMemory import DocumentStoreMemory

OWNER = Owner(id="advisor-1", name="Jane Advisor", email="jane@example.com")


class FakeMailbox:
    def __init__(self, messages):
        self.messages = messages

    async def do_fetch_recent_messages(self, owner, limit=100):
        return self.messages[:limit]


def _message(body: str) -> MailMessage:
    return MailMessage(
        id="m1",
        sender="Bob Miller <bob@example.com>",
        recipient="jane@example.com",
        subject="Retirement plan",
        body=body,
        received_at=datetime(2025, 3, 4, 9, 0, tzinfo=pytz.utc),
    )


def test_short_email_is_one_complete_piece():
    ((content, metadata),) = build_email_pieces(_message("Can we talk about my IRA?"))
    assert content == "Email from Bob Miller (bob@example.com): Subject: Retirement plan. Content: Can we talk about my IRA?"
    assert metadata["type"] == "email"
    assert metadata["from"] == "bob@example.com"
    assert metadata["is_complete"] is True


def test_long_email_is_split_into_overlapping_parts():
    body = "word " * 3000
    pieces = build_email_pieces(_message(body))
    assert len(pieces) > 1
    assert all(len(content) <= MAX_CONTENT_LENGTH for content, _ in pieces)
    assert "Content (Part 1/%d)" % len(pieces) in pieces[0][0]
    assert [meta["chunk_index"] for _, meta in pieces] == list(range(len(pieces)))
    assert all(meta["total_chunks"] == len(pieces) for _, meta in pieces)


def test_contact_and_event_pieces():
    content, metadata = build_contact_piece(Contact(id="7", first_name="Alice", last_name="Smith", email="alice@example.com"), "hubspot")
    assert content == "Contact: Alice Smith, Email: alice@example.com, Company: Not specified. Notes: No notes available"
    assert metadata["source"] == "hubspot"

    berlin = pytz.timezone("Europe/Berlin")
    event = CalendarEvent(
        id="e1",
        title="Portfolio review",
        start=berlin.localize(datetime(2025, 3, 4, 10, 0)),
        end=berlin.localize(datetime(2025, 3, 4, 11, 0)),
        attendees=["bob@example.com"],
    )
    content, metadata = build_event_piece(event)
    assert content == "Calendar Event: Portfolio review scheduled for Tuesday, Mar 4 at 10:00 AM. Attendees: bob@example.com"
    assert metadata["type"] == "calendar_event"


@pytest.mark.asyncio
async def test_full_indexing_stores_documents_by_type():
    helper_config = make_helper_config()
    store = DocumentStoreMemory(helper_config=helper_config)
    crm = FakeCRMClient(contacts=[
        Contact(id="1", first_name="Bob", last_name="Miller", email="bob@example.com"),
        Contact(id="2", first_name="Alice", last_name="Smith", email="alice@example.com"),
    ])
    service = IndexingService(
        helper_config=helper_config,
        document_store=store,
        embed_client=FakeEmbedClient(),
        mail_client=FakeMailbox([_message("Hello")]),
        crm_client=crm,
    )

    assert await service.do_full_indexing(OWNER) == {"email": 1, "contact": 2, "calendar_event": 0}
    stats = await service.get_indexing_stats(OWNER.id)
    assert stats == {"owner_id": OWNER.id, "total": 3, "by_type": {"email": 1, "contact": 2}}
    assert await service.purge_owner(OWNER.id) == 3


@pytest.mark.asyncio
async def test_failing_item_does_not_abort_the_run():
    class FlakyEmbed(FakeEmbedClient):
        async def do_embed_text(self, text):
            if "Bob" in text:
                raise ProviderError("rate limited", status_code=429)
            return [1.0, 0.0]

    helper_config = make_helper_config()
    crm = FakeCRMClient(contacts=[
        Contact(id="1", first_name="Bob", last_name="Miller", email="bob@example.com"),
        Contact(id="2", first_name="Alice", last_name="Smith", email="alice@example.com"),
    ])
    service = IndexingService(helper_config=helper_config, document_store=DocumentStoreMemory(helper_config=helper_config), embed_client=FlakyEmbed(), crm_client=crm)
    assert await service.index_contacts(OWNER) == 1


def test_chunk_size_leaves_room_for_the_header():
    assert CHUNK_SIZE < MAX_CONTENT_LENGTH


def _gmail_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/gmail/v1/users/me/messages":
        return httpx.Response(200, json={"messages": [{"id": "good"}, {"id": "html"}, {"id": "badbody"}, {"id": "slow"}]})
    if path.endswith("/good"):
        return httpx.Response(200, json={
            "id": "good",
            "payload": {
                "headers": [{"name": "From", "value": "Bob Miller <bob@example.com>"}, {"name": "Subject", "value": "IRA"}],
                "body": {"data": base64.urlsafe_b64encode(b"Can we talk?").decode("ascii")},
            },
        })
    if path.endswith("/html"):
        return httpx.Response(200, text="<html>not json</html>")
    if path.endswith("/badbody"):
        return httpx.Response(200, json={"id": "badbody", "payload": {"body": {"data": "a"}}})
    raise httpx.ReadTimeout("too slow", request=request)


@pytest.mark.asyncio
async def test_malformed_messages_are_skipped_and_the_run_continues():
    helper_config = make_helper_config(MAIL_GMAIL_ACCESS_TOKEN="ya29.test")
    mail = MailClientGmail(helper_config=helper_config)
    await mail.boot(transport=httpx.MockTransport(_gmail_handler))

    class BrokenCRM(FakeCRMClient):
        async def do_list_contacts(self, owner, limit=100):
            raise RuntimeError("unexpected payload")

    store = DocumentStoreMemory(helper_config=helper_config)
    service = IndexingService(
        helper_config=helper_config,
        document_store=store,
        embed_client=FakeEmbedClient(),
        mail_client=mail,
        crm_client=BrokenCRM(),
    )

    assert await service.do_full_indexing(OWNER) == {"email": 1, "contact": 0, "calendar_event": 0}
    (document,) = await store.list_by_owner(OWNER.id)
    assert document.content == "Email from Bob Miller (bob@example.com): Subject: IRA. Content: Can we talk?"
    await mail.close()


@pytest.mark.asyncio
async def test_failed_background_indexing_is_logged(caplog):
    helper_config = make_helper_config()
    services = AppServices(helper_config=helper_config, llm_client=FakeLLMClient([]), embed_client=FakeEmbedClient())

    async def explode(owner):
        raise RuntimeError("disk full")

    services.indexing_service.do_full_indexing = explode
    with caplog.at_level(logging.ERROR):
        task = services.start_indexing(OWNER)
        with pytest.raises(RuntimeError):
            await task
        await asyncio.sleep(0)

    assert "Background indexing failed: disk full" in caplog.text
    assert task not in services._indexing_tasks
