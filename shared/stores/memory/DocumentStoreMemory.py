import asyncio
from datetime import datetime

import pytz

from shared.errors import StorageError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, MetadataValue
from shared.stores.DocumentStoreInterface import DocumentStoreInterface


class DocumentStoreMemory(DocumentStoreInterface):
    """In-process document store. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._documents: list[Document] = []
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def add(self, content: str, metadata: dict[str, MetadataValue], embedding: list[float], owner_id: str) -> Document:
        if not content or not content.strip():
            raise StorageError("Cannot store a document without content.")
        if not embedding:
            raise StorageError("Cannot store a document without embedding.")
        if not owner_id:
            raise StorageError("Cannot store a document without owner_id.")

        async with self._lock:
            document = Document(
                id=self._next_id,
                content=content,
                metadata=dict(metadata or {}),
                embedding=list(embedding),
                owner_id=owner_id,
                created_at=datetime.now(pytz.utc),
            )
            self._documents.append(document)
            self._next_id += 1
        return document

    async def list_all(self) -> list[Document]:
        return list(self._documents)

    async def list_by_owner(self, owner_id: str) -> list[Document]:
        return [doc for doc in self._documents if doc.owner_id == owner_id]

    async def count_by_owner(self, owner_id: str) -> int:
        return sum(1 for doc in self._documents if doc.owner_id == owner_id)

    async def purge_owner(self, owner_id: str) -> int:
        async with self._lock:
            kept = [doc for doc in self._documents if doc.owner_id != owner_id]
            removed = len(self._documents) - len(kept)
            self._documents = kept
        self.logging.info("Purged %d documents of owner '%s'.", removed, owner_id)
        return removed
