"""Indexing service.

Reads the owner's recent mail, CRM contacts and calendar events from the
configured collaborators, turns each record into one or more text pieces,
embeds them and appends them to the DocumentStore with a ``type`` metadata
tag. A failing record is logged and counted; it never aborts the run.
"""

from collections import Counter
from datetime import timedelta
from email.utils import parseaddr

from shared.clients.calendar.CalendarClientInterface import CalendarClientInterface
from shared.clients.crm.CRMClientInterface import CRMClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.mail.MailClientInterface import MailClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperFormat import format_event_day
from shared.models.document import MetadataValue
from shared.models.owner import Owner
from shared.models.workspace import CalendarEvent, Contact, MailMessage
from shared.stores.DocumentStoreInterface import DocumentStoreInterface

MAIL_FETCH_LIMIT = 100     # most recent messages per run
CRM_FETCH_LIMIT = 100
MAX_CONTENT_LENGTH = 6000  # characters of a single email document
CHUNK_SIZE = 4000          # characters per email body chunk
CHUNK_OVERLAP = 200        # character overlap between consecutive chunks
CALENDAR_WINDOW_DAYS = 10  # events within now ± this many days

Piece = tuple[str, dict[str, MetadataValue]]


def _split_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Split text into overlapping chunks, preferring to end a chunk at a space.

    A chunk ends at the last space before its hard end when that space lies in
    the second half of the chunk.
    """
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        if end < len(text):
            last_space = text.rfind(" ", start, end + 1)
            if last_space > start + chunk_size // 2:
                end = last_space
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


def build_email_pieces(message: MailMessage) -> list[Piece]:
    """Render a mail message as one document, or as several for long bodies."""
    from_name, from_email = parseaddr(message.sender)
    from_email = from_email or message.sender
    header = f"Email from {from_name or from_email} ({from_email}): Subject: {message.subject}"
    base_metadata: dict[str, MetadataValue] = {
        "type": "email",
        "from": from_email,
        "subject": message.subject,
        "date": message.received_at.isoformat() if message.received_at else None,
        "message_id": message.id,
    }

    body = message.body or ""
    full_content = f"{header}. Content: {body}"
    if len(full_content) <= MAX_CONTENT_LENGTH:
        return [(full_content, {**base_metadata, "chunk_index": 0, "total_chunks": 1, "is_complete": True})]

    if len(body) > CHUNK_SIZE:
        chunks = _split_text(body)
        return [
            (
                f"{header}. Content (Part {i + 1}/{len(chunks)}): {chunk}",
                {**base_metadata, "chunk_index": i, "total_chunks": len(chunks), "is_complete": False},
            )
            for i, chunk in enumerate(chunks)
        ]

    # body is short but the header pushes the document over the limit
    available = MAX_CONTENT_LENGTH - len(header) - len(". Content: ") - len("...")
    truncated_body = body[:available] + "..."
    return [(f"{header}. Content: {truncated_body}", {**base_metadata, "chunk_index": 0, "total_chunks": 1, "is_complete": False, "truncated": True})]


def build_contact_piece(contact: Contact, source: str) -> Piece:
    content = "Contact: %s, Email: %s, Company: %s. Notes: %s" % (
        contact.full_name,
        contact.email,
        contact.company or "Not specified",
        contact.notes or "No notes available",
    )
    metadata: dict[str, MetadataValue] = {
        "type": "contact",
        "contact_id": contact.id,
        "contact_name": contact.full_name,
        "email": contact.email,
        "company": contact.company or "",
        "source": source,
    }
    return content, metadata


def build_event_piece(event: CalendarEvent) -> Piece:
    content = f"Calendar Event: {event.title or 'Untitled'} scheduled for {format_event_day(event.start)}"
    if event.attendees:
        content += f". Attendees: {', '.join(event.attendees)}"
    if event.description:
        content += f". Description: {event.description}"
    metadata: dict[str, MetadataValue] = {
        "type": "calendar_event",
        "event_id": event.id,
        "summary": event.title,
        "start_time": event.start.isoformat(),
        "attendees": ",".join(event.attendees),
    }
    return content, metadata


class IndexingService:
    """Orchestrates indexing of the owner's workspace into the DocumentStore."""

    def __init__(
        self,
        helper_config: HelperConfig,
        document_store: DocumentStoreInterface,
        embed_client: EmbedClientInterface,
        mail_client: MailClientInterface | None = None,
        calendar_client: CalendarClientInterface | None = None,
        crm_client: CRMClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._document_store = document_store
        self._embed_client = embed_client
        self._mail_client = mail_client
        self._calendar_client = calendar_client
        self._crm_client = crm_client

    ##########################################
    ############### FULL RUN #################
    ##########################################

    async def do_full_indexing(self, owner: Owner) -> dict[str, int]:
        """Index mail, CRM contacts and calendar events of one owner.

        Returns:
            dict[str, int]: Number of stored documents per source.
        """
        self.logging.info("Starting full indexing for owner '%s'...", owner.id, color="cyan")
        result = {
            "email": await self.index_emails(owner),
            "contact": await self.index_contacts(owner),
            "calendar_event": await self.index_calendar(owner),
        }
        self.logging.info(
            "Indexing complete for owner '%s': %d emails, %d contacts, %d events.",
            owner.id, result["email"], result["contact"], result["calendar_event"],
            color="green",
        )
        return result

    ##########################################
    ################ SOURCES #################
    ##########################################

    async def index_emails(self, owner: Owner) -> int:
        if self._mail_client is None:
            self.logging.info("No mail client configured. Skipping email indexing.")
            return 0
        try:
            messages = await self._mail_client.do_fetch_recent_messages(owner, limit=MAIL_FETCH_LIMIT)
        except Exception as e:
            # a broken collaborator skips its source, never the whole run
            self.logging.error("Fetching emails failed for owner '%s': %s", owner.id, e)
            return 0

        pieces: list[Piece] = []
        for message in messages:
            try:
                pieces.extend(build_email_pieces(message))
            except ValueError as e:
                self.logging.warning("Skipping email %s of owner '%s': %s", message.id, owner.id, e)
        return await self._store_pieces(owner, pieces, source="email")

    async def index_contacts(self, owner: Owner) -> int:
        if self._crm_client is None:
            self.logging.info("No CRM client configured. Skipping contact indexing.")
            return 0
        try:
            contacts = await self._crm_client.do_list_contacts(owner, limit=CRM_FETCH_LIMIT)
        except Exception as e:
            self.logging.error("Fetching contacts failed for owner '%s': %s", owner.id, e)
            return 0

        source = self._crm_client.get_engine_name()
        pieces = [build_contact_piece(contact, source) for contact in contacts]
        return await self._store_pieces(owner, pieces, source="contact")

    async def index_calendar(self, owner: Owner) -> int:
        if self._calendar_client is None:
            self.logging.info("No calendar client configured. Skipping calendar indexing.")
            return 0
        now = self._calendar_client.now()
        try:
            events = await self._calendar_client.do_list_events(
                owner,
                now - timedelta(days=CALENDAR_WINDOW_DAYS),
                now + timedelta(days=CALENDAR_WINDOW_DAYS),
                max_results=100,
            )
        except Exception as e:
            self.logging.error("Fetching calendar events failed for owner '%s': %s", owner.id, e)
            return 0

        pieces = [build_event_piece(event) for event in events]
        return await self._store_pieces(owner, pieces, source="calendar_event")

    async def _store_pieces(self, owner: Owner, pieces: list[Piece], source: str) -> int:
        """Embed and store pieces one by one. Returns the number stored."""
        stored = 0
        errors = 0
        for content, metadata in pieces:
            try:
                embedding = await self._embed_client.do_embed_text(content)
                await self._document_store.add(content, metadata, embedding, owner.id)
                stored += 1
            except Exception as e:
                errors += 1
                self.logging.error("Indexing a %s document failed for owner '%s': %s", source, owner.id, e)

        self.logging.info("Indexed %s for owner '%s': %d stored, %d errors.", source, owner.id, stored, errors)
        return stored

    ##########################################
    ############## MAINTENANCE ###############
    ##########################################

    async def get_indexing_stats(self, owner_id: str) -> dict:
        """Count the owner's documents in total and by ``type`` metadata."""
        documents = await self._document_store.list_by_owner(owner_id)
        by_type = Counter(str(doc.metadata.get("type") or "unknown") for doc in documents)
        return {"owner_id": owner_id, "total": len(documents), "by_type": dict(by_type)}

    async def purge_owner(self, owner_id: str) -> int:
        return await self._document_store.purge_owner(owner_id)
