from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.errors import ConfigurationError
from shared.models.config import EnvConfig, VectorSettings


class VectorClientVllm(VectorClientInterface):
    """Embeddings served by a vLLM instance."""

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_source(self, settings: VectorSettings) -> None:
        if not self._get_api_url(settings):
            raise ConfigurationError("vLLM URL not configured")
        if not settings.vllm_model:
            raise ConfigurationError("vLLM model not specified")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Vllm"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_URL", val_type="string", default=""),
        ]

    def _get_api_url(self, settings: VectorSettings) -> str:
        """Settings take precedence over the VECTOR_VLLM_API_URL fallback."""
        return settings.vllm_url or self.get_config_val("API_URL", default="", val_type="string")

    ################ PAYLOAD BUILDER ##################
    def get_source_body(self, settings: VectorSettings) -> dict:
        return {
            "apiUrl": self._get_api_url(settings),
            "model": settings.vllm_model,
        }
