"""Pydantic models for search requests and responses."""

from pydantic import BaseModel, ConfigDict

from shared.models.document import DocumentMetadata


class DateRange(BaseModel):
    """Inclusive bounds on a document's created_at. Either side may be omitted."""

    start: str | None = None
    end: str | None = None


class SearchFilters(BaseModel):
    """Filter clauses combined with logical AND. An absent clause imposes no constraint.

    Unknown keys are accepted so that callers may pass engine-specific hints;
    the in-process backend ignores them.
    """

    model_config = ConfigDict(extra="allow")

    application: str | None = None
    source: str | None = None
    author: str | None = None
    owner: str | None = None
    date_range: DateRange | None = None


class SearchRequest(BaseModel):
    """Incoming search query. limit/offset are clamped by the backend, not rejected."""

    query: str
    filters: SearchFilters | None = None
    limit: int | None = None
    offset: int | None = None


class SearchResult(BaseModel):
    """A single ranked document returned by a search."""

    id: str
    content: str
    metadata: DocumentMetadata
    score: float
    highlights: list[str] | None = None
    snippet: str | None = None


class SearchResponse(BaseModel):
    """Response payload of a search.

    total always reports the number of filtered matches before pagination.
    """

    results: list[SearchResult]
    total: int
    offset: int
    limit: int
    query: str
    took_ms: float | None = None
