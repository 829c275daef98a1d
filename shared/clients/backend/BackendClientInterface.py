from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, EmbedRequest, EmbedResponse
from shared.models.errors import DimensionMismatchError
from shared.models.refresh import RefreshRequest, RefreshResponse
from shared.models.search import SearchRequest, SearchResponse
from shared.search.vectorizer import DEFAULT_DIMENSION, vectorize


class BackendClientInterface(ClientInterface):
    """Contract every search backend implements: embed, search, get_item, refresh.

    Failure semantics are part of the contract:
      - do_embed never raises; failures come back as status "error".
      - do_search raises on internal failure.
      - do_get_item raises DocumentNotFoundError for unknown ids.
      - do_refresh never raises; it always returns a status object.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # vector config is deployment-wide and shared by every engine
        self.vector_dimension = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_VECTOR_DIMENSION", default=DEFAULT_DIMENSION))
        self.vector_salt = helper_config.get_string_val(f"{self.get_client_type().upper()}_VECTOR_SALT", default="")
        if self.vector_dimension < 1:
            raise ValueError(f"Vector dimension must be positive, got {self.vector_dimension}.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "backend"
        """
        return "backend"

    ##########################################
    ############### VECTORS ##################
    ##########################################

    def embed_text(self, text: str) -> list[float]:
        """Vectorize text with the configured dimension and salt.

        Args:
            text (str): The text to vectorize.

        Returns:
            list[float]: The embedding vector.

        Raises:
            DimensionMismatchError: If the vectorizer returns a vector of the wrong size.
        """
        vector = vectorize(text, self.vector_dimension, self.vector_salt)
        if len(vector) != self.vector_dimension:
            raise DimensionMismatchError(expected=self.vector_dimension, actual=len(vector))
        return vector

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def do_prepare(self) -> None:
        """Create backend-side resources (indexes, collections) if missing.

        Called once after boot(). The default does nothing.
        """
        return None

    ##########################################
    ############### CONTRACT #################
    ##########################################

    @abstractmethod
    async def do_embed(self, request: EmbedRequest) -> EmbedResponse:
        """Insert or overwrite a document together with a freshly computed embedding.

        Args:
            request (EmbedRequest): The document id, content and optional metadata.

        Returns:
            EmbedResponse: status "success" with the embedding, or "error" with a message.
        """
        pass

    @abstractmethod
    async def do_search(self, request: SearchRequest) -> SearchResponse:
        """Rank stored documents against a query.

        Args:
            request (SearchRequest): Query text, filters and pagination.

        Returns:
            SearchResponse: The requested page plus the total number of filtered matches.

        Raises:
            BackendError: On internal failure.
            ValueError: If a filter value is malformed.
        """
        pass

    @abstractmethod
    async def do_get_item(self, document_id: str) -> Document:
        """Fetch a single document by id.

        Args:
            document_id (str): The document id.

        Returns:
            Document: The stored document including its embedding.

        Raises:
            DocumentNotFoundError: If no such document exists.
        """
        pass

    @abstractmethod
    async def do_refresh(self, request: RefreshRequest) -> RefreshResponse:
        """Re-derive the embeddings of all matching documents from their stored content.

        Args:
            request (RefreshRequest): Document selection; empty means all documents.

        Returns:
            RefreshResponse: processed/errors counters and the overall status.
        """
        pass
