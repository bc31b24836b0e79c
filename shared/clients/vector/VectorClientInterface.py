from abc import abstractmethod
from typing import Any, Callable

from pydantic import ValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.errors import NetworkError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import VectorSettings
from shared.models.content import Chunk
from shared.models.retrieval import QueryResponse


class VectorClientInterface(ClientInterface):
    """Typed wrapper over the host's vector backend (insert/query/list/purge).

    The backend embeds and stores items itself; every request carries a
    ``source`` discriminator plus the connection fields of that embedding
    source. One subclass exists per source.
    """

    def __init__(self, helper_config: HelperConfig, settings_provider: Callable[[], VectorSettings]):
        # shared backend connection, independent of the embedding source
        self._base_url = helper_config.get_string_val("VECTOR_BASE_URL", default="http://localhost:8000")
        self._api_key = helper_config.get_string_val("VECTOR_API_KEY", default="")
        self._settings_provider = settings_provider
        super().__init__(helper_config=helper_config)

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @abstractmethod
    def validate_source(self, settings: VectorSettings) -> None:
        """
        Checks that the embedding source has everything it needs to connect.

        Args:
            settings (VectorSettings): The active settings.

        Raises:
            ConfigurationError: If a required connection field is missing.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "vector"
        """
        return "vector"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_insert(self) -> str:
        return "/api/vector/insert"

    def _get_endpoint_query(self) -> str:
        return "/api/vector/query"

    def _get_endpoint_list(self) -> str:
        return "/api/vector/list"

    def _get_endpoint_purge(self) -> str:
        return "/api/vector/purge"

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_source_body(self, settings: VectorSettings) -> dict:
        """
        Returns the source-specific connection fields of a request body.

        Args:
            settings (VectorSettings): The active settings.

        Returns:
            dict: e.g. {"model": "...", "apiUrl": "...", "keep": False}

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    def get_request_body(self, **args: Any) -> dict:
        """Builds a full request body: operation fields, source fields and the source discriminator.

        Raises:
            ConfigurationError: If the source is not fully configured.
        """
        settings = self._settings_provider()
        self.validate_source(settings)
        body = dict(args)
        body.update(self.get_source_body(settings))
        body["source"] = self.get_engine_name()
        return body

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_insert(self, collection_id: str, items: list[Chunk]) -> None:
        """Insert one batch of chunks into a collection.

        Args:
            collection_id (str): Target collection.
            items (list[Chunk]): The chunks to embed and store.

        Raises:
            ConfigurationError: If the source is not fully configured (no request is sent).
            NetworkError: If the backend is unreachable or answers non-2xx. The whole batch failed.
        """
        body = self.get_request_body(collectionId=collection_id, items=[item.model_dump() for item in items])
        await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_insert(),
            raise_on_error=True,
        )

    async def do_query(self, collection_id: str, search_text: str, top_k: int, threshold: float) -> QueryResponse:
        """Query a collection for the chunks closest to a search text.

        Args:
            collection_id (str): Collection to search.
            search_text (str): Query text, embedded by the backend.
            top_k (int): Maximum number of hits.
            threshold (float): Minimum similarity score.

        Returns:
            QueryResponse: Inline items, or hashes plus metadata.

        Raises:
            ConfigurationError: If the source is not fully configured.
            NetworkError: If the request fails or the response cannot be parsed.
        """
        body = self.get_request_body(
            collectionId=collection_id,
            searchText=search_text,
            topK=top_k,
            threshold=threshold,
            includeText=True,
        )
        response = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_query(),
            raise_on_error=True,
        )
        try:
            raw = response.json()
            self.logging.debug("Raw query result for %s: %s", collection_id, raw)
            return QueryResponse.model_validate(raw or {})
        except (ValueError, ValidationError) as e:
            raise NetworkError(f"Unexpected query response for collection {collection_id}: {e}") from e

    async def do_list(self, collection_id: str) -> list[int]:
        """List the hashes stored in a collection.

        Raises:
            ConfigurationError: If the source is not fully configured.
            NetworkError: If the request fails.
        """
        body = self.get_request_body(collectionId=collection_id)
        response = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_list(),
            raise_on_error=True,
        )
        try:
            return [int(h) for h in (response.json() or [])]
        except (ValueError, TypeError) as e:
            raise NetworkError(f"Unexpected list response for collection {collection_id}: {e}") from e

    async def do_purge(self, collection_id: str) -> bool:
        """Delete a whole collection.

        Returns:
            bool: True on success, False if the backend refused or could not be reached.
        """
        try:
            body = self.get_request_body(collectionId=collection_id)
            await self.do_request(
                method="POST",
                json=body,
                endpoint=self._get_endpoint_purge(),
                raise_on_error=True,
            )
        except NetworkError as e:
            self.logging.error("Could not purge vector collection %s: %s", collection_id, e)
            return False
        self.logging.info("Purged vector collection %s", collection_id)
        return True
