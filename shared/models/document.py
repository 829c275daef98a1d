"""Pydantic models for stored documents and the embed operation.

Hierarchy:
  DocumentMetadata  - open key/value mapping with well-known optional fields.
  Document          - the persisted entity (content + metadata + embedding).
  EmbedRequest      - caller payload for an upsert.
  EmbedResponse     - result of an upsert, success or error.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class DocumentMetadata(BaseModel):
    """Metadata stored alongside each document.

    Only the well-known fields are validated. Any other caller-supplied key
    is kept as given and returned unchanged on read.

    Attributes:
        title:       Human-readable document title.
        source:      Logical source inside the application (e.g. "articles").
        application: Tenant / application identifier (e.g. "redmine").
        owner:       Optional owner namespace inside the tenant.
        author:      Author display name.
        url:         Link back to the original document.
        created_at:  ISO-8601 creation date as reported by the caller.
        updated_at:  ISO-8601 update date as reported by the caller.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    source: str | None = None
    application: str | None = None
    owner: str | None = None
    author: str | None = None
    url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Document(BaseModel):
    """A single embedded document as held by a backend.

    Instances are treated as immutable snapshots. Writers build a new
    instance and replace the stored one instead of mutating it in place.
    """

    id: str
    content: str
    metadata: DocumentMetadata = DocumentMetadata()
    embedding: list[float] | None = None
    created_at: str
    updated_at: str


class EmbedRequest(BaseModel):
    """Incoming document to embed. Re-using an id overwrites the stored document."""

    id: str
    content: str
    metadata: DocumentMetadata | None = None


class EmbedResponse(BaseModel):
    id: str
    status: Literal["success", "error"]
    message: str | None = None
    embedding: list[float] | None = None
