from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.errors import ConfigurationError
from shared.models.config import EnvConfig, VectorSettings

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class VectorClientOllama(VectorClientInterface):
    """Embeddings served by an Ollama instance."""

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_source(self, settings: VectorSettings) -> None:
        if not self._get_api_url(settings):
            raise ConfigurationError("Ollama URL not configured")
        if not settings.ollama_model:
            raise ConfigurationError("Ollama model not specified")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_URL", val_type="string", default=DEFAULT_OLLAMA_URL),
        ]

    def _get_api_url(self, settings: VectorSettings) -> str:
        """Settings take precedence over VECTOR_OLLAMA_API_URL, which defaults to the local instance."""
        return settings.ollama_url or self.get_config_val("API_URL", default=DEFAULT_OLLAMA_URL, val_type="string")

    ################ PAYLOAD BUILDER ##################
    def get_source_body(self, settings: VectorSettings) -> dict:
        return {
            "model": settings.ollama_model,
            "apiUrl": self._get_api_url(settings),
            "keep": bool(settings.ollama_keep),
        }
