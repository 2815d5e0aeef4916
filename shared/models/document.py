"""Pydantic models for embedded documents and search hits."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


MetadataValue = str | int | float | bool | None


class Document(BaseModel):
    """A piece of embedded text belonging to exactly one owner.

    Documents are immutable once created; embeddings are never recomputed in
    place. They are removed only through an owner-scoped purge.

    Attributes:
        id:         Storage sequence number. Reflects insertion order.
        content:    The embedded text.
        metadata:   Flat mapping describing the source (e.g. {"type": "email", "from": "..."}).
        embedding:  Fixed-length vector produced by the embed client.
        owner_id:   MANDATORY: the owner the document belongs to.
        created_at: UTC creation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    content: str
    metadata: dict[str, MetadataValue] = {}
    embedding: list[float]
    owner_id: str
    created_at: datetime


class ScoredDocument(BaseModel):
    """A single VectorIndex hit."""

    model_config = ConfigDict(frozen=True)

    document: Document
    score: float
