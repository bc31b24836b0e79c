from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class HostClient(ClientInterface):
    """Read-only access to the chat host's attachment store."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:8000", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "host"

    def _get_engine_name(self) -> str:
        return "Host"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:8000"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_config_key_name(self, raw_key: str) -> str:
        # single host, so keys are HOST_<KEY> without an engine segment
        return f"{self.get_client_type().upper()}_{raw_key.upper()}"

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

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_file(self, url: str) -> str:
        """Fetch the raw text of an attachment.

        Args:
            url (str): The attachment url as known to the host (e.g. "/user/files/notes.txt").

        Returns:
            str: The attachment text.

        Raises:
            NetworkError: If the host is unreachable or answers non-2xx.
        """
        response = await self.do_request(method="GET", endpoint=url, raise_on_error=True)
        return response.text
