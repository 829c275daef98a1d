"""Similarity ranking over stored documents.

Filtering, cosine scoring, stable ordering, pagination and highlight
extraction for the in-process backend. Everything here is pure: the
caller hands in a snapshot of documents and gets back a ranked page.
"""

import math
import re
from datetime import datetime, timezone

from shared.models.document import Document
from shared.models.errors import DimensionMismatchError, InvalidFilterError
from shared.models.search import SearchFilters, SearchRequest, SearchResult

DEFAULT_LIMIT = 10
SNIPPET_LENGTH = 200


##########################################
################ SCORING #################
##########################################

def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors of equal length.

    Args:
        a (list[float]): First vector.
        b (list[float]): Second vector.

    Returns:
        float: Score in [-1, 1]; 0.0 if either vector is all zeros.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(expected=len(a), actual=len(b))
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    # rounding can push |score| a hair past 1
    return max(-1.0, min(1.0, score))


##########################################
################ FILTERS #################
##########################################

def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not ISO-8601.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


DateBounds = tuple[datetime | None, datetime | None]


def parse_date_bounds(filters: SearchFilters | None) -> DateBounds:
    """Parse the date_range bounds of a filter set.

    Returns:
        DateBounds: (start, end); a missing bound is None.

    Raises:
        InvalidFilterError: If a bound is not a valid ISO-8601 timestamp.
    """
    if filters is None or filters.date_range is None:
        return None, None
    bounds = []
    for name in ("start", "end"):
        value = getattr(filters.date_range, name)
        if not value:
            bounds.append(None)
            continue
        try:
            bounds.append(parse_timestamp(value))
        except ValueError as exc:
            raise InvalidFilterError(f"Invalid date_range.{name} {value!r}: {exc}") from exc
    return bounds[0], bounds[1]


def matches_filters(document: Document, filters: SearchFilters | None, date_bounds: DateBounds | None = None) -> bool:
    """Check a document against every supplied filter clause (logical AND).

    Args:
        document (Document): The candidate document.
        filters (SearchFilters | None): The clauses; None means no constraint.
        date_bounds (DateBounds | None): Pre-parsed date_range bounds; parsed from filters if omitted.

    Returns:
        bool: True if the document satisfies all clauses.

    Raises:
        InvalidFilterError: If a date_range bound is not a valid ISO-8601 timestamp.
    """
    if filters is None:
        return True
    if date_bounds is None:
        date_bounds = parse_date_bounds(filters)

    metadata = document.metadata
    for field in ("application", "source", "author", "owner"):
        wanted = getattr(filters, field)
        if wanted is not None and getattr(metadata, field) != wanted:
            return False

    start, end = date_bounds
    if start is not None or end is not None:
        created = parse_timestamp(document.created_at)
        if start is not None and created < start:
            return False
        if end is not None and created > end:
            return False

    return True


##########################################
############### HIGHLIGHTS ###############
##########################################

def extract_highlights(query: str, content: str) -> list[str] | None:
    """Collect the literal first occurrence in content of each query token.

    Matching is case-insensitive; the returned substrings keep the casing
    found in the content.

    Args:
        query (str): The search query.
        content (str): The document content.

    Returns:
        list[str] | None: One substring per matched token, or None if nothing matched.
    """
    highlights: list[str] = []
    for token in query.split():
        match = re.search(re.escape(token), content, re.IGNORECASE)
        if match:
            highlights.append(match.group(0))
    return highlights or None


def make_snippet(content: str, length: int = SNIPPET_LENGTH) -> str:
    """Return the first `length` characters of content, with an ellipsis if cut."""
    if len(content) <= length:
        return content
    return content[:length].rstrip() + "..."


##########################################
################ RANKING #################
##########################################

def clamp_pagination(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Normalise pagination values.

    Returns:
        tuple[int, int]: (limit, offset); non-positive limit becomes the default,
                         negative offset becomes 0.
    """
    limit = limit if limit is not None and limit > 0 else DEFAULT_LIMIT
    offset = offset if offset is not None and offset > 0 else 0
    return limit, offset


def rank_documents(
    query_vector: list[float],
    documents: list[Document],
    request: SearchRequest,
) -> tuple[list[SearchResult], int, int, int]:
    """Filter, score, sort and paginate documents for a query.

    Documents are expected in insertion order; Python's sort is stable so
    equal scores keep that order.

    Args:
        query_vector (list[float]): The vectorized query.
        documents (list[Document]): Candidate documents in insertion order.
        request (SearchRequest): The search request (query text, filters, paging).

    Returns:
        tuple[list[SearchResult], int, int, int]: (page, total, offset, limit),
            where total counts all filtered matches before pagination.

    Raises:
        DimensionMismatchError: If a stored embedding does not match the query dimension.
        InvalidFilterError: If a filter date cannot be parsed.
    """
    date_bounds = parse_date_bounds(request.filters)
    scored: list[tuple[float, Document]] = []
    for document in documents:
        if document.embedding is None:
            continue
        if not matches_filters(document, request.filters, date_bounds):
            continue
        scored.append((cosine_similarity(query_vector, document.embedding), document))

    scored.sort(key=lambda item: item[0], reverse=True)

    limit, offset = clamp_pagination(request.limit, request.offset)
    page = [
        SearchResult(
            id=document.id,
            content=document.content,
            metadata=document.metadata,
            score=score,
            highlights=extract_highlights(request.query, document.content),
            snippet=make_snippet(document.content),
        )
        for score, document in scored[offset:offset + limit]
    ]
    return page, len(scored), offset, limit
