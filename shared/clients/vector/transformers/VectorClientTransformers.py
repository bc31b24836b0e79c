from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.models.config import EnvConfig, VectorSettings


class VectorClientTransformers(VectorClientInterface):
    """Local transformers embeddings, computed by the backend itself."""

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_source(self, settings: VectorSettings) -> None:
        # the backend falls back to its default model
        return None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Transformers"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return []

    ################ PAYLOAD BUILDER ##################
    def get_source_body(self, settings: VectorSettings) -> dict:
        if settings.local_model:
            return {"model": settings.local_model}
        return {}
