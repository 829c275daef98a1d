import pytest

from shared.models.document import Document, DocumentMetadata
from shared.models.errors import DimensionMismatchError, InvalidFilterError
from shared.models.search import DateRange, SearchFilters, SearchRequest
from shared.search.ranking import (
    DEFAULT_LIMIT,
    clamp_pagination,
    cosine_similarity,
    extract_highlights,
    make_snippet,
    matches_filters,
    rank_documents,
)


def make_document(doc_id: str, embedding: list[float] | None, created_at: str = "2024-01-01T10:00:00Z", **metadata) -> Document:
    return Document(
        id=doc_id,
        content=f"content of {doc_id}",
        metadata=DocumentMetadata(**metadata),
        embedding=embedding,
        created_at=created_at,
        updated_at=created_at,
    )


# ---------------------------------------------------------------------------
# cosine similarity
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("vector", [[1.0, 0.0, 0.0], [3.0, -4.0, 12.0], [0.001, 0.002, -0.5]])
def test_cosine_self_similarity_is_one(vector):
    assert cosine_similarity(vector, vector) == pytest.approx(1.0, abs=1e-6)


def test_cosine_opposite_and_orthogonal():
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0, abs=1e-6)
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0.0


def test_cosine_zero_vector_scores_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0


def test_cosine_dimension_mismatch_is_fatal():
    with pytest.raises(DimensionMismatchError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


# ---------------------------------------------------------------------------
# filters
# ---------------------------------------------------------------------------


def test_absent_filters_impose_no_constraint():
    doc = make_document("a", [1.0], application="redmine")
    assert matches_filters(doc, None)
    assert matches_filters(doc, SearchFilters())


def test_filters_are_a_conjunction():
    doc = make_document("a", [1.0], application="redmine", source="wiki", author="jane", owner="team-1")
    assert matches_filters(doc, SearchFilters(application="redmine", source="wiki", author="jane", owner="team-1"))
    assert not matches_filters(doc, SearchFilters(application="redmine", source="chat"))
    assert not matches_filters(doc, SearchFilters(owner="team-2"))


def test_date_range_is_inclusive():
    doc = make_document("a", [1.0], created_at="2024-01-02T14:30:00Z")
    exact = "2024-01-02T14:30:00Z"
    assert matches_filters(doc, SearchFilters(date_range=DateRange(start=exact, end=exact)))
    assert matches_filters(doc, SearchFilters(date_range=DateRange(start="2024-01-01")))
    assert not matches_filters(doc, SearchFilters(date_range=DateRange(start="2024-01-03")))
    assert not matches_filters(doc, SearchFilters(date_range=DateRange(end="2024-01-02T14:29:59Z")))


def test_invalid_date_bound_raises_value_error():
    doc = make_document("a", [1.0])
    with pytest.raises(ValueError):
        matches_filters(doc, SearchFilters(date_range=DateRange(start="yesterday")))


# ---------------------------------------------------------------------------
# highlights and snippets
# ---------------------------------------------------------------------------


def test_highlights_keep_content_casing():
    highlights = extract_highlights("AI Health", "Machine learning in healthcare and AI")
    assert highlights == ["AI", "health"]


def test_highlights_after_case_folding_that_changes_length():
    # "İ".lower() is two code points long
    assert extract_highlights("ai", "İstanbul ai") == ["ai"]
    assert extract_highlights("STRASSE", "Die Straße und die Strasse") == ["Strasse"]
    assert extract_highlights("c++ (beta)", "Tools: C++ and (Beta) builds") == ["C++", "(Beta)"]


def test_highlights_none_when_nothing_matches():
    assert extract_highlights("quantum", "Team communication strategies") is None
    assert extract_highlights("", "anything") is None


def test_snippet_is_cut_with_ellipsis():
    assert make_snippet("short") == "short"
    assert make_snippet("x" * 50, length=10) == "x" * 10 + "..."


# ---------------------------------------------------------------------------
# ranking and pagination
# ---------------------------------------------------------------------------


@pytest.fixture()
def ranked_documents() -> list[Document]:
    return [
        make_document("orthogonal", [0.0, 1.0, 0.0], application="redmine"),
        make_document("exact-1", [1.0, 0.0, 0.0], application="redmine"),
        make_document("partial", [1.0, 1.0, 0.0], application="mediawiki"),
        make_document("exact-2", [2.0, 0.0, 0.0], application="redmine"),
        make_document("no-embedding", None, application="redmine"),
    ]


def test_rank_sorts_descending_with_stable_ties(ranked_documents):
    page, total, offset, limit = rank_documents([1.0, 0.0, 0.0], ranked_documents, SearchRequest(query="q"))
    assert [r.id for r in page] == ["exact-1", "exact-2", "partial", "orthogonal"]
    assert total == 4
    assert (offset, limit) == (0, DEFAULT_LIMIT)
    assert page[0].score == pytest.approx(1.0)


def test_rank_applies_filters_before_counting(ranked_documents):
    request = SearchRequest(query="q", filters=SearchFilters(application="redmine"))
    page, total, _, _ = rank_documents([1.0, 0.0, 0.0], ranked_documents, request)
    assert [r.id for r in page] == ["exact-1", "exact-2", "orthogonal"]
    assert total == 3


def test_pagination_slices_sorted_results(ranked_documents):
    query_vector = [1.0, 0.0, 0.0]
    full, _, _, _ = rank_documents(query_vector, ranked_documents, SearchRequest(query="q"))
    page, total, offset, limit = rank_documents(query_vector, ranked_documents, SearchRequest(query="q", limit=2, offset=1))
    assert [r.id for r in page] == [r.id for r in full[1:3]]
    assert total == 4
    assert (offset, limit) == (1, 2)


def test_pagination_past_the_end_keeps_total(ranked_documents):
    page, total, _, _ = rank_documents([1.0, 0.0, 0.0], ranked_documents, SearchRequest(query="q", offset=10))
    assert page == []
    assert total == 4


@pytest.mark.parametrize(
    "limit, offset, expected",
    [
        (None, None, (DEFAULT_LIMIT, 0)),
        (0, -5, (DEFAULT_LIMIT, 0)),
        (-1, 3, (DEFAULT_LIMIT, 3)),
        (25, 0, (25, 0)),
    ],
)
def test_clamp_pagination(limit, offset, expected):
    assert clamp_pagination(limit, offset) == expected


def test_invalid_date_bound_rejected_on_empty_input():
    request = SearchRequest(query="q", filters=SearchFilters(date_range=DateRange(end="not a date")))
    with pytest.raises(InvalidFilterError):
        rank_documents([1.0, 0.0, 0.0], [], request)


def test_invalid_date_bound_rejected_when_other_clauses_exclude_everything(ranked_documents):
    request = SearchRequest(
        query="q",
        filters=SearchFilters(application="jira", date_range=DateRange(start="not a date")),
    )
    with pytest.raises(InvalidFilterError):
        rank_documents([1.0, 0.0, 0.0], ranked_documents, request)
