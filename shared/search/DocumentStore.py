"""In-process document store for the simulated backend.

Owns the id -> Document mapping and the upsert / refresh semantics.
The mapping is guarded by a lock whose critical sections only read or swap
references; vectorization always runs outside the lock. Stored documents are
never mutated in place, so a reader holding a reference always sees a
complete document.
"""

import threading
from datetime import datetime, timezone
from typing import Callable

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentMetadata, EmbedRequest, EmbedResponse
from shared.models.errors import DimensionMismatchError, DocumentNotFoundError, VectorizationError
from shared.models.refresh import RefreshRequest, RefreshResponse
from shared.search.vectorizer import DEFAULT_DIMENSION, vectorize

Vectorizer = Callable[[str, int, str], list[float]]


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DocumentStore:
    """Tenant-scoped mapping of documents and their embeddings."""

    def __init__(
        self,
        helper_config: HelperConfig,
        dimension: int = DEFAULT_DIMENSION,
        salt: str = "",
        vectorizer: Vectorizer = vectorize,
    ) -> None:
        if dimension < 1:
            raise ValueError(f"Vector dimension must be positive, got {dimension}.")
        self.logging = helper_config.get_logger()
        self._dimension = dimension
        self._salt = salt
        self._vectorizer = vectorizer
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def dimension(self) -> int:
        return self._dimension

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return document_id in self._documents

    def snapshot(self) -> list[Document]:
        """Return all stored documents in insertion order.

        Overwriting an id keeps its original position, so equal-score search
        results stay in a stable order across re-embeds.

        Returns:
            list[Document]: A point-in-time copy of the document list.
        """
        with self._lock:
            return list(self._documents.values())

    def get_item(self, document_id: str) -> Document:
        """Exact-key lookup.

        Args:
            document_id (str): The document id.

        Returns:
            Document: The stored document.

        Raises:
            DocumentNotFoundError: If no document with this id is stored.
        """
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    ##########################################
    ############### VECTORS ##################
    ##########################################

    def embed_text(self, text: str) -> list[float]:
        """Vectorize text with the store's dimension and salt.

        Raises:
            VectorizationError: If the vectorizer fails.
            DimensionMismatchError: If the vectorizer returns a vector of the wrong size.
        """
        try:
            vector = self._vectorizer(text, self._dimension, self._salt)
        except Exception as exc:
            raise VectorizationError(f"Vectorization failed: {exc}") from exc
        if len(vector) != self._dimension:
            raise DimensionMismatchError(expected=self._dimension, actual=len(vector))
        return vector

    ##########################################
    ################ WRITES ##################
    ##########################################

    def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Insert or overwrite a document and its freshly computed embedding.

        Metadata is stored as given. Only a vectorization failure produces an
        error response; it is never raised past this method.

        Args:
            request (EmbedRequest): The document to store.

        Returns:
            EmbedResponse: status "success" with the embedding, or "error" with a message.
        """
        try:
            embedding = self.embed_text(request.content)
        except VectorizationError as exc:
            self.logging.error("Embedding failed for document id=%s: %s", request.id, exc)
            return EmbedResponse(
                id=request.id,
                status="error",
                message=f"Failed to embed document: {exc}",
            )

        now = utc_now()
        metadata = request.metadata or DocumentMetadata()
        with self._lock:
            existing = self._documents.get(request.id)
            self._documents[request.id] = Document(
                id=request.id,
                content=request.content,
                metadata=metadata,
                embedding=embedding,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )

        self.logging.debug(
            "%s document id=%s (%d chars).",
            "Overwrote" if existing else "Inserted",
            request.id,
            len(request.content),
        )
        return EmbedResponse(id=request.id, status="success", embedding=embedding)

    def put(self, document: Document) -> None:
        """Store a prepared document as-is (used for seeding).

        Raises:
            DimensionMismatchError: If the document's embedding has the wrong size.
        """
        if document.embedding is not None and len(document.embedding) != self._dimension:
            raise DimensionMismatchError(expected=self._dimension, actual=len(document.embedding))
        with self._lock:
            self._documents[document.id] = document

    def refresh(self, request: RefreshRequest) -> RefreshResponse:
        """Re-vectorize every matching document from its current stored content.

        Works on a snapshot and commits one document at a time, so unrelated
        reads and writes are never blocked for the length of the batch.
        A failure on one document is counted and does not stop the others.

        Args:
            request (RefreshRequest): Selection of documents; unset fields match everything.

        Returns:
            RefreshResponse: processed/errors counters and the overall status.
        """
        candidates = [doc for doc in self.snapshot() if self._matches_refresh(doc, request)]
        self.logging.info("Refreshing %d document(s)...", len(candidates))

        processed = 0
        errors = 0
        for document in candidates:
            try:
                embedding = self.embed_text(document.content)
            except Exception as exc:
                self.logging.error("Refresh failed for document id=%s: %s", document.id, exc)
                errors += 1
                continue

            refreshed = document.model_copy(update={"embedding": embedding, "updated_at": utc_now()})
            with self._lock:
                current = self._documents.get(document.id)
                # a concurrent embed already replaced it with a fresh vector
                if current is document:
                    self._documents[document.id] = refreshed
            processed += 1

        if errors:
            message = f"Processed {processed} documents with {errors} errors"
            self.logging.warning(message)
            return RefreshResponse(status="error", message=message, processed=processed, errors=errors)

        message = f"Successfully refreshed {processed} documents"
        self.logging.info(message)
        return RefreshResponse(status="success", message=message, processed=processed, errors=0)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def _matches_refresh(document: Document, request: RefreshRequest) -> bool:
        metadata = document.metadata
        if request.application and metadata.application != request.application:
            return False
        if request.source and metadata.source != request.source:
            return False
        if request.owner and metadata.owner != request.owner:
            return False
        return True
