from shared.clients.host.HostClient import HostClient
from shared.content.ContentSourceHost import ContentSourceHost
from shared.models.content import HostContext


class SessionState:
    """Holds the context snapshot of the host's active chat."""

    def __init__(self, host_client: HostClient | None = None):
        self._context = HostContext()
        self._host_client = host_client

    def set_context(self, context: HostContext) -> None:
        self._context = context

    def get_context(self) -> HostContext:
        return self._context

    def get_chat_id(self) -> str | None:
        return self._context.chat_id or None

    def get_content_source(self) -> ContentSourceHost:
        return ContentSourceHost(context=self._context, host_client=self._host_client)
