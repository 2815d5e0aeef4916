"""Brute-force cosine-similarity search over the DocumentStore.

Every search scans a point-in-time snapshot of the store in O(N·D). The
``search`` contract is the seam for an approximate-nearest-neighbour
structure, should the corpus outgrow a linear scan.
"""

import math

from shared.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ScoredDocument
from shared.stores.DocumentStoreInterface import DocumentStoreInterface


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Return dot(a, b) / (|a| * |b|), or 0.0 when either norm is zero.

    Raises:
        ValidationError: If the vectors differ in dimension.
    """
    if len(vec1) != len(vec2):
        raise ValidationError(f"Embedding dimension mismatch: {len(vec1)} != {len(vec2)}")
    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    norm1 = math.sqrt(sum(a * a for a in vec1))
    norm2 = math.sqrt(sum(b * b for b in vec2))
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return dot_product / (norm1 * norm2)


class VectorIndex:
    def __init__(self, helper_config: HelperConfig, document_store: DocumentStoreInterface) -> None:
        self.logging = helper_config.get_logger()
        self._document_store = document_store

    async def search_documents(self, query_vector: list[float], k: int, owner_id: str | None = None) -> list[ScoredDocument]:
        """Return the ``k`` most similar documents with their scores.

        Args:
            query_vector (list[float]): The query embedding.
            k (int): Maximum number of hits.
            owner_id (str | None): Restrict the scan to one owner. All owners are
                scanned when None.

        Returns:
            list[ScoredDocument]: Hits by descending similarity. Equal scores keep
                insertion order.
        """
        if k <= 0 or not query_vector:
            return []

        if owner_id is None:
            snapshot = await self._document_store.list_all()
        else:
            snapshot = await self._document_store.list_by_owner(owner_id)

        scored: list[ScoredDocument] = []
        skipped = 0
        for document in snapshot:
            try:
                score = cosine_similarity(query_vector, document.embedding)
            except ValidationError as e:
                skipped += 1
                self.logging.warning("Skipping document id=%s in vector search: %s", document.id, e)
                continue
            scored.append(ScoredDocument(document=document, score=score))

        # sorted() is stable, so reverse=True keeps insertion order among equal scores
        scored = sorted(scored, key=lambda hit: hit.score, reverse=True)
        self.logging.debug(
            "Vector search over %d documents (%d skipped) returned %d hits.",
            len(snapshot), skipped, min(k, len(scored)),
        )
        return scored[:k]

    async def search(self, query_vector: list[float], k: int, owner_id: str | None = None) -> list[str]:
        """Return the contents of the ``k`` most similar documents, best first."""
        return [hit.document.content for hit in await self.search_documents(query_vector, k, owner_id)]
