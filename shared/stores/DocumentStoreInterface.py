from abc import ABC, abstractmethod

from shared.models.document import Document, MetadataValue


class DocumentStoreInterface(ABC):
    """Append-only collection of embedded documents.

    Inserts are atomic. Listings return a point-in-time snapshot; documents
    added while a caller iterates a snapshot are simply not part of it.
    """

    @abstractmethod
    async def add(self, content: str, metadata: dict[str, MetadataValue], embedding: list[float], owner_id: str) -> Document:
        """Persist a document and return it with its storage id and creation time.

        Raises:
            StorageError: If content, embedding or owner_id is empty, or the insert fails.
        """
        pass

    @abstractmethod
    async def list_all(self) -> list[Document]:
        """Snapshot of all documents of all owners, in insertion order."""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[Document]:
        """Snapshot of one owner's documents, in insertion order."""
        pass

    @abstractmethod
    async def count_by_owner(self, owner_id: str) -> int:
        pass

    @abstractmethod
    async def purge_owner(self, owner_id: str) -> int:
        """Delete all documents of an owner. Returns the number of deleted documents."""
        pass
