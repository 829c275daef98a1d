from concurrent.futures import ThreadPoolExecutor

import pytest

import shared.search.DocumentStore as document_store_module
from shared.models.document import DocumentMetadata, EmbedRequest
from shared.models.errors import DimensionMismatchError, DocumentNotFoundError
from shared.models.refresh import RefreshRequest
from shared.search.DocumentStore import DocumentStore
from shared.search.vectorizer import vectorize

TEST_DIMENSION = 64

LATER = "2030-01-01T00:00:00.000Z"


def embed(store: DocumentStore, doc_id: str, content: str, **metadata):
    return store.embed(EmbedRequest(id=doc_id, content=content, metadata=DocumentMetadata(**metadata)))


# ---------------------------------------------------------------------------
# embed / get_item
# ---------------------------------------------------------------------------


def test_embed_stores_document_and_returns_embedding(store):
    response = embed(store, "doc-1", "ai healthcare machine learning", application="mediawiki", tags="x,y")

    assert response.status == "success"
    assert response.id == "doc-1"
    assert response.embedding == vectorize("ai healthcare machine learning", TEST_DIMENSION)

    document = store.get_item("doc-1")
    assert document.content == "ai healthcare machine learning"
    assert document.embedding == response.embedding
    assert document.metadata.application == "mediawiki"
    assert document.metadata.model_dump()["tags"] == "x,y"


def test_embed_is_an_upsert(store):
    first = embed(store, "doc-1", "same content")
    created_at = store.get_item("doc-1").created_at
    second = embed(store, "doc-1", "same content")

    assert len(store) == 1
    assert first.id == second.id == "doc-1"
    assert first.embedding == second.embedding
    assert store.get_item("doc-1").created_at == created_at


def test_embed_overwrites_content_and_keeps_position(store):
    embed(store, "a", "first")
    embed(store, "b", "second")
    embed(store, "a", "first, rewritten")

    assert [d.id for d in store.snapshot()] == ["a", "b"]
    assert store.get_item("a").content == "first, rewritten"


def test_get_item_unknown_id_raises(store):
    with pytest.raises(DocumentNotFoundError) as exc_info:
        store.get_item("doc-missing")
    assert exc_info.value.document_id == "doc-missing"
    assert "doc-missing" not in store


def test_embed_vectorization_failure_is_returned_not_raised(helper_config):
    def failing(text, dimension, salt):
        raise RuntimeError("model unavailable")

    store = DocumentStore(helper_config=helper_config, dimension=TEST_DIMENSION, vectorizer=failing)
    response = embed(store, "doc-1", "anything")

    assert response.status == "error"
    assert "model unavailable" in response.message
    assert response.embedding is None
    assert len(store) == 0


def test_wrong_vector_size_is_fatal(helper_config):
    store = DocumentStore(helper_config=helper_config, dimension=TEST_DIMENSION, vectorizer=lambda t, d, s: [1.0])
    with pytest.raises(DimensionMismatchError):
        embed(store, "doc-1", "anything")


def test_store_rejects_non_positive_dimension(helper_config):
    with pytest.raises(ValueError):
        DocumentStore(helper_config=helper_config, dimension=0)


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


def test_refresh_all_documents_updates_timestamps(store, monkeypatch):
    embed(store, "a", "alpha", application="redmine")
    embed(store, "b", "beta", application="mediawiki")
    before = {d.id: d.embedding for d in store.snapshot()}

    monkeypatch.setattr(document_store_module, "utc_now", lambda: LATER)
    response = store.refresh(RefreshRequest())

    assert response.status == "success"
    assert (response.processed, response.errors) == (2, 0)
    for document in store.snapshot():
        assert document.updated_at == LATER
        # same content, bit-identical vector
        assert document.embedding == before[document.id]


def test_refresh_with_filter_only_touches_matching_documents(store, monkeypatch):
    embed(store, "a", "alpha", application="redmine", source="wiki")
    embed(store, "b", "beta", application="redmine", source="chat")
    embed(store, "c", "gamma", application="mediawiki", source="wiki")

    monkeypatch.setattr(document_store_module, "utc_now", lambda: LATER)
    response = store.refresh(RefreshRequest(application="redmine", source="wiki"))

    assert response.processed == 1
    assert store.get_item("a").updated_at == LATER
    assert store.get_item("b").updated_at != LATER
    assert store.get_item("c").updated_at != LATER


def test_refresh_on_empty_store_succeeds(store):
    response = store.refresh(RefreshRequest())
    assert response.status == "success"
    assert (response.processed, response.errors) == (0, 0)


def test_refresh_partial_failure_is_counted(helper_config, monkeypatch):
    state = {"fail": False}

    def flaky(text, dimension, salt):
        if state["fail"] and "broken" in text:
            raise RuntimeError("cannot vectorize")
        return vectorize(text, dimension, salt)

    store = DocumentStore(helper_config=helper_config, dimension=TEST_DIMENSION, vectorizer=flaky)
    for doc_id, content in [("a", "alpha"), ("b", "broken beta"), ("c", "gamma"), ("d", "delta")]:
        embed(store, doc_id, content)
    old_updated = store.get_item("b").updated_at

    state["fail"] = True
    monkeypatch.setattr(document_store_module, "utc_now", lambda: LATER)
    response = store.refresh(RefreshRequest())

    assert response.status == "error"
    assert response.processed == 3
    assert response.errors == 1
    assert "1 errors" in response.message
    for doc_id in ("a", "c", "d"):
        assert store.get_item(doc_id).updated_at == LATER
    assert store.get_item("b").updated_at == old_updated


def test_refresh_keeps_document_overwritten_during_batch(helper_config):
    store_ref: dict = {}

    def racing(text, dimension, salt):
        # a writer replaces "a" while refresh is vectorizing its old content
        if text == "old content" and store_ref.get("racing"):
            store_ref["racing"] = False
            store_ref["store"].embed(EmbedRequest(id="a", content="new content"))
        return vectorize(text, dimension, salt)

    store = DocumentStore(helper_config=helper_config, dimension=TEST_DIMENSION, vectorizer=racing)
    store_ref["store"] = store
    embed(store, "a", "old content")

    store_ref["racing"] = True
    response = store.refresh(RefreshRequest())

    assert response.status == "success"
    document = store.get_item("a")
    assert document.content == "new content"
    assert document.embedding == vectorize("new content", TEST_DIMENSION)


# ---------------------------------------------------------------------------
# concurrency
# ---------------------------------------------------------------------------


def test_concurrent_embeds_and_reads(store):
    def work(index: int) -> None:
        embed(store, f"doc-{index % 20}", f"content number {index}")
        for document in store.snapshot():
            assert document.embedding is not None
            assert len(document.embedding) == TEST_DIMENSION

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(200)))

    assert len(store) == 20
