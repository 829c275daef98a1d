"""In-process reference backend.

Keeps every document in a DocumentStore and ranks with the pure functions in
shared.search.ranking. Needs no network connection, which makes it the
default engine for development, tests and client generation.
"""

import time

import httpx

from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document, DocumentMetadata, EmbedRequest, EmbedResponse
from shared.models.refresh import RefreshRequest, RefreshResponse
from shared.models.search import SearchRequest, SearchResponse
from shared.search.DocumentStore import DocumentStore
from shared.search.ranking import rank_documents

SAMPLE_DOCUMENTS: list[dict] = [
    {
        "id": "doc-1",
        "content": "This is a sample document about machine learning and artificial intelligence in healthcare.",
        "metadata": {
            "title": "AI in Healthcare",
            "source": "articles",
            "application": "mediawiki",
            "author": "Dr. Smith",
            "url": "https://example.com/ai-healthcare",
        },
        "created_at": "2024-01-01T10:00:00Z",
    },
    {
        "id": "doc-2",
        "content": "Software development best practices including code review and testing methodologies.",
        "metadata": {
            "title": "Development Best Practices",
            "source": "documentation",
            "application": "redmine",
            "author": "Jane Doe",
            "url": "https://example.com/dev-practices",
        },
        "created_at": "2024-01-02T14:30:00Z",
    },
    {
        "id": "doc-3",
        "content": "Team communication strategies and remote work collaboration tools for distributed teams.",
        "metadata": {
            "title": "Remote Team Communication",
            "source": "chat",
            "application": "rocketchat",
            "author": "Team Lead",
            "url": "https://example.com/team-comm",
        },
        "created_at": "2024-01-03T09:15:00Z",
    },
]


class BackendClientSimulated(BackendClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._seed_samples = self.get_config_val("SEED_SAMPLES", default=False, val_type="bool")
        self.store = DocumentStore(
            helper_config=helper_config,
            dimension=self.vector_dimension,
            salt=self.vector_salt,
        )
        if self._seed_samples:
            self._seed_sample_documents()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Simulated"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="SEED_SAMPLES", val_type="bool", default=False),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return ""

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Nothing to connect to."""
        return None

    async def close(self) -> None:
        return None

    async def do_healthcheck(self) -> httpx.Response:
        """Answer a synthetic 200 carrying the store size."""
        return httpx.Response(status_code=200, json={"status": "ok", "documents": len(self.store)})

    ##########################################
    ############### CONTRACT #################
    ##########################################

    async def do_embed(self, request: EmbedRequest) -> EmbedResponse:
        return self.store.embed(request)

    async def do_search(self, request: SearchRequest) -> SearchResponse:
        started = time.perf_counter()
        query_vector = self.store.embed_text(request.query)
        results, total, offset, limit = rank_documents(query_vector, self.store.snapshot(), request)
        took_ms = round((time.perf_counter() - started) * 1000, 3)

        self.logging.debug(
            "Search query=%r matched %d document(s), returning %d (offset=%d limit=%d) in %.3f ms.",
            request.query[:80], total, len(results), offset, limit, took_ms,
        )
        return SearchResponse(
            results=results,
            total=total,
            offset=offset,
            limit=limit,
            query=request.query,
            took_ms=took_ms,
        )

    async def do_get_item(self, document_id: str) -> Document:
        return self.store.get_item(document_id)

    async def do_refresh(self, request: RefreshRequest) -> RefreshResponse:
        return self.store.refresh(request)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _seed_sample_documents(self) -> None:
        """Pre-populate the store with a few demonstration documents."""
        for sample in SAMPLE_DOCUMENTS:
            self.store.put(
                Document(
                    id=sample["id"],
                    content=sample["content"],
                    metadata=DocumentMetadata(**sample["metadata"]),
                    embedding=self.store.embed_text(sample["content"]),
                    created_at=sample["created_at"],
                    updated_at=sample["created_at"],
                )
            )
        self.logging.info("Seeded simulated backend with %d sample documents.", len(SAMPLE_DOCUMENTS))
