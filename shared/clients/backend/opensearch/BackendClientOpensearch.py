"""OpenSearch implementation of BackendClientInterface.

Talks to the OpenSearch REST API via httpx. The index holds one OpenSearch
document per stored document, with the embedding in a knn_vector field;
ranking and filtering are done by OpenSearch itself; highlights and snippets
are cut from the returned content the same way the simulated backend does.
"""

import base64
from urllib.parse import quote

from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document, DocumentMetadata, EmbedRequest, EmbedResponse
from shared.models.errors import BackendError, DocumentNotFoundError
from shared.models.refresh import RefreshRequest, RefreshResponse
from shared.models.search import SearchFilters, SearchRequest, SearchResponse, SearchResult
from shared.search.DocumentStore import utc_now
from shared.search.ranking import clamp_pagination, extract_highlights, make_snippet, parse_date_bounds

REFRESH_BATCH_SIZE = 1000


class BackendClientOpensearch(BackendClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._username = self.get_config_val("USERNAME", default="", val_type="string")
        self._password = self.get_config_val("PASSWORD", default="", val_type="string")
        self._index = self.get_config_val("INDEX", default="rass-documents", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "OpenSearch"

    def get_index(self) -> str:
        return self._index

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="USERNAME", val_type="string", default=""),
            EnvConfig(env_key="PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="INDEX", val_type="string", default="rass-documents"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._username and self._password:
            token = base64.b64encode(f"{self._username}:{self._password}".encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {token}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/_cluster/health"

    def _get_endpoint_index(self) -> str:
        return f"/{self._index}"

    def _get_endpoint_document(self, document_id: str) -> str:
        return f"/{self._index}/_doc/{quote(document_id, safe='')}"

    def _get_endpoint_update(self, document_id: str) -> str:
        return f"/{self._index}/_update/{quote(document_id, safe='')}"

    def _get_endpoint_search(self) -> str:
        return f"/{self._index}/_search"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_index_payload(self) -> dict:
        """Index settings and mappings with a cosine knn_vector field of the configured dimension."""
        return {
            "settings": {
                "number_of_shards": 1,
                "number_of_replicas": 0,
                "index.knn": True,
            },
            "mappings": {
                "properties": {
                    "id": {"type": "keyword"},
                    "content": {"type": "text"},
                    "metadata": {
                        "properties": {
                            "title": {"type": "text"},
                            "source": {"type": "keyword"},
                            "application": {"type": "keyword"},
                            "owner": {"type": "keyword"},
                            "author": {"type": "keyword"},
                            "url": {"type": "keyword"},
                            "created_at": {"type": "date"},
                            "updated_at": {"type": "date"},
                        }
                    },
                    "embedding": {
                        "type": "knn_vector",
                        "dimension": self.vector_dimension,
                        "method": {
                            "name": "hnsw",
                            "space_type": "cosinesimil",
                            "engine": "nmslib",
                        },
                    },
                    "created_at": {"type": "date"},
                    "updated_at": {"type": "date"},
                }
            },
        }

    def get_filter_clauses(self, filters: SearchFilters | None) -> list[dict]:
        """Translate search filters into OpenSearch bool filter clauses.

        Args:
            filters (SearchFilters | None): The filters of a search request.

        Returns:
            list[dict]: term / range clauses, empty when nothing is filtered.
        """
        clauses: list[dict] = []
        if filters is None:
            return clauses
        for field in ("application", "source", "author", "owner"):
            value = getattr(filters, field)
            if value is not None:
                clauses.append({"term": {f"metadata.{field}": value}})
        if filters.date_range is not None:
            date_range: dict = {}
            if filters.date_range.start:
                date_range["gte"] = filters.date_range.start
            if filters.date_range.end:
                date_range["lte"] = filters.date_range.end
            if date_range:
                clauses.append({"range": {"created_at": date_range}})
        return clauses

    def get_search_payload(self, request: SearchRequest, query_vector: list[float], limit: int, offset: int) -> dict:
        payload: dict = {
            "size": limit,
            "from": offset,
            "track_total_hits": True,
            "query": {
                "bool": {
                    "must": [{"knn": {"embedding": {"vector": query_vector, "k": limit + offset}}}],
                }
            },
        }
        filters = self.get_filter_clauses(request.filters)
        if filters:
            payload["query"]["bool"]["filter"] = filters
        return payload

    def get_refresh_payload(self, request: RefreshRequest, search_after: list | None = None) -> dict:
        """Payload for one page of documents to refresh, sorted by id for search_after paging.

        Args:
            request (RefreshRequest): The refresh selection.
            search_after (list | None): Sort values of the last hit of the previous page.

        Returns:
            dict: The _search payload.
        """
        clauses = []
        for field in ("application", "source", "owner"):
            value = getattr(request, field)
            if value:
                clauses.append({"term": {f"metadata.{field}": value}})
        query = {"bool": {"filter": clauses}} if clauses else {"match_all": {}}
        payload = {
            "query": query,
            "size": REFRESH_BATCH_SIZE,
            "sort": [{"id": "asc"}],
            "_source": ["id", "content"],
        }
        if search_after is not None:
            payload["search_after"] = search_after
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_results(self, raw_response: dict, query: str) -> tuple[list[SearchResult], int]:
        hits = raw_response.get("hits", {})
        results: list[SearchResult] = []
        for hit in hits.get("hits", []):
            source = hit.get("_source", {})
            content = source.get("content", "")
            results.append(
                SearchResult(
                    id=source.get("id", hit.get("_id")),
                    content=content,
                    metadata=DocumentMetadata(**(source.get("metadata") or {})),
                    score=hit.get("_score") or 0.0,
                    highlights=extract_highlights(query, content),
                    snippet=make_snippet(content) if content else None,
                )
            )
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        return results, int(total)

    def extract_next_search_after(self, raw_response: dict) -> list | None:
        """Cursor for the next refresh page, or None once a short page was returned."""
        hits = raw_response.get("hits", {}).get("hits", [])
        if len(hits) < REFRESH_BATCH_SIZE:
            return None
        return hits[-1].get("sort")

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def do_prepare(self) -> None:
        """Create the index with its knn mapping if it does not exist yet."""
        response = await self.do_request(method="HEAD", endpoint=self._get_endpoint_index())
        if response.status_code == 200:
            self.logging.info("OpenSearch index %r already exists.", self._index)
            return
        await self.do_request(
            method="PUT",
            json=self.get_index_payload(),
            endpoint=self._get_endpoint_index(),
            raise_on_error=True,
        )
        self.logging.info("OpenSearch index %r created (dimension=%d).", self._index, self.vector_dimension)

    ##########################################
    ############### CONTRACT #################
    ##########################################

    async def do_embed(self, request: EmbedRequest) -> EmbedResponse:
        try:
            embedding = self.embed_text(request.content)
            now = utc_now()
            created_at = await self._fetch_created_at(request.id) or now
            document = Document(
                id=request.id,
                content=request.content,
                metadata=request.metadata or DocumentMetadata(),
                embedding=embedding,
                created_at=created_at,
                updated_at=now,
            )
            await self.do_request(
                method="PUT",
                json=document.model_dump(exclude_none=True),
                params={"refresh": "true"},
                endpoint=self._get_endpoint_document(request.id),
                raise_on_error=True,
            )
        except Exception as exc:
            self.logging.error("OpenSearch embed failed for document id=%s: %s", request.id, exc)
            return EmbedResponse(id=request.id, status="error", message=f"Failed to embed document: {exc}")
        return EmbedResponse(id=request.id, status="success", embedding=embedding)

    async def do_search(self, request: SearchRequest) -> SearchResponse:
        limit, offset = clamp_pagination(request.limit, request.offset)
        parse_date_bounds(request.filters)
        query_vector = self.embed_text(request.query)
        try:
            response = await self.do_request(
                method="POST",
                json=self.get_search_payload(request, query_vector, limit, offset),
                endpoint=self._get_endpoint_search(),
                raise_on_error=True,
            )
        except Exception as exc:
            self.logging.error("OpenSearch search failed: %s", exc)
            raise BackendError(f"Search failed: {exc}") from exc

        raw_response = response.json()
        results, total = self.extract_search_results(raw_response, request.query)
        return SearchResponse(
            results=results,
            total=total,
            offset=offset,
            limit=limit,
            query=request.query,
            took_ms=raw_response.get("took"),
        )

    async def do_get_item(self, document_id: str) -> Document:
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_document(document_id))
        if response.status_code == 404:
            raise DocumentNotFoundError(document_id)
        if response.status_code >= 300:
            self.logging.error("OpenSearch get failed for id=%s: status %d", document_id, response.status_code)
            raise BackendError(f"Failed to get document {document_id}: status {response.status_code}")
        body = response.json()
        source = body.get("_source")
        if not body.get("found") or not source:
            raise DocumentNotFoundError(document_id)
        return Document(**source)

    async def do_refresh(self, request: RefreshRequest) -> RefreshResponse:
        processed = 0
        errors = 0
        search_after: list | None = None
        while True:
            try:
                response = await self.do_request(
                    method="POST",
                    json=self.get_refresh_payload(request, search_after),
                    endpoint=self._get_endpoint_search(),
                    raise_on_error=True,
                )
            except Exception as exc:
                self.logging.error("OpenSearch refresh failed after %d documents: %s", processed, exc)
                return RefreshResponse(
                    status="error",
                    message=f"Refresh failed: {exc}",
                    processed=processed,
                    errors=errors + 1,
                )

            raw_response = response.json()
            for hit in raw_response.get("hits", {}).get("hits", []):
                source = hit.get("_source") or {}
                document_id = source.get("id")
                content = source.get("content")
                if not document_id or content is None:
                    self.logging.warning("Skipping document with incomplete data: %s", hit.get("_id"))
                    continue
                try:
                    await self.do_request(
                        method="POST",
                        json={"doc": {"embedding": self.embed_text(content), "updated_at": utc_now()}},
                        endpoint=self._get_endpoint_update(document_id),
                        raise_on_error=True,
                    )
                    processed += 1
                except Exception as exc:
                    self.logging.error("Failed to refresh document %s: %s", document_id, exc)
                    errors += 1

            search_after = self.extract_next_search_after(raw_response)
            if search_after is None:
                break

        return RefreshResponse(
            status="success" if errors == 0 else "error",
            message=f"Processed {processed} documents with {errors} errors",
            processed=processed,
            errors=errors,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _fetch_created_at(self, document_id: str) -> str | None:
        """Return the created_at of an already indexed document, or None if it is new."""
        response = await self.do_request(
            method="GET",
            params={"_source_includes": "created_at"},
            endpoint=self._get_endpoint_document(document_id),
        )
        if response.status_code != 200:
            return None
        return (response.json().get("_source") or {}).get("created_at")
