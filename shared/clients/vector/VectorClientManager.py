from typing import Callable

from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.errors import ConfigurationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import VectorSettings

DEFAULT_SOURCES = ["transformers", "vllm", "ollama"]


class VectorClientManager:
    """
    Manager class to handle one vector client per embedding source and hand out
    the one matching the currently selected source.
    """

    def __init__(self, helper_config: HelperConfig, settings_provider: Callable[[], VectorSettings]):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._settings_provider = settings_provider
        self.clients = self._initialize_clients()

    def _get_sources_from_env(self) -> list[str]:
        """
        Reads the list of enabled embedding sources from ENV configuration.

        Returns:
            list[str]: Source names, capitalized for class lookup (e.g. "Ollama").

        Raises:
            ValueError: If the configured list is empty.
        """
        sources = self.helper_config.get_list_val("VECTOR_SOURCES", default=DEFAULT_SOURCES)
        if not sources:
            raise ValueError("No vector sources specified in configuration.")

        #lowercase all and uppcercase first letter for class name lookup
        sources = [source.strip().lower() for source in sources]
        return [source.capitalize() for source in sources]

    def _initialize_clients(self) -> dict[str, VectorClientInterface]:
        """
        Initializes one vector client per enabled source.

        Returns:
            dict[str, VectorClientInterface]: Clients keyed by lowercase source name.

        Raises:
            ValueError: If a source is unsupported or no client could be instantiated.
        """
        clients: dict[str, VectorClientInterface] = {}
        for source in self._get_sources_from_env():
            className = f"VectorClient{source}"
            try:
                module = __import__(
                    f"shared.clients.vector.{source.lower()}.{className}",
                    fromlist=[className],
                )
                client_class = getattr(module, className)
                client_instance = client_class(helper_config=self.helper_config, settings_provider=self._settings_provider)
                clients[client_instance.get_engine_name()] = client_instance
                self.logging.debug(f"Instantiated vector client for source: {source}")
            except (ImportError, AttributeError) as e:
                raise ValueError(f"Unsupported vector source specified: '{source}'. Error: {e}")
        if not clients:
            raise ValueError("No valid vector clients could be instantiated from the specified sources.")
        return clients

    def get_clients(self) -> list[VectorClientInterface]:
        """
        Returns all instantiated vector clients.
        """
        return list(self.clients.values())

    def get_client(self) -> VectorClientInterface:
        """
        Returns the client for the embedding source selected in the settings.

        Raises:
            ConfigurationError: If the selected source is not enabled in this process.
        """
        source = (self._settings_provider().source or "").strip().lower()
        client = self.clients.get(source)
        if client is None:
            raise ConfigurationError(
                f"Vector source '{source}' is not available. Enabled sources: {', '.join(self.clients)}"
            )
        return client

    async def boot(self) -> None:
        for client in self.clients.values():
            await client.boot()

    async def close(self) -> None:
        for client in self.clients.values():
            await client.close()
