from shared.clients.host.HostClient import HostClient
from shared.content.ContentSourceInterface import ContentSourceInterface
from shared.errors import StateError
from shared.models.content import ATTACHMENT_SCOPES, ChatMessage, FileAttachment, HostContext, WorldInfoEntry


class ContentSourceHost(ContentSourceInterface):
    """Content source backed by the context snapshot the host pushed.

    Attachment text comes inline from the snapshot when present, otherwise it
    is fetched from the host by url.
    """

    def __init__(self, context: HostContext, host_client: HostClient | None = None):
        self._context = context
        self._host_client = host_client

    def get_context(self) -> HostContext:
        return self._context

    def get_chat_id(self) -> str | None:
        return self._context.chat_id or None

    def get_character_name(self) -> str | None:
        return self._context.character_name

    def get_macro_values(self) -> dict[str, str | None]:
        return {"user": self._context.user_name, "char": self._context.character_name}

    def get_chat_messages(self) -> list[ChatMessage]:
        return self._context.chat

    def get_file_attachments(self) -> list[FileAttachment]:
        files: list[FileAttachment] = []
        seen: set[str] = set()
        candidates = [f for scope in ATTACHMENT_SCOPES for f in self._context.attachments.get(scope, [])]
        candidates += [m.extra.file for m in self._context.chat if m.extra and m.extra.file]
        for attachment in candidates:
            if attachment.url in seen:
                continue
            seen.add(attachment.url)
            files.append(attachment)
        return files

    async def fetch_file_text(self, url: str) -> str:
        for attachment in self.get_file_attachments():
            if attachment.url == url and attachment.text is not None:
                return attachment.text
        if self._host_client is None:
            raise StateError(f"No inline text for attachment {url} and no host client configured.")
        return await self._host_client.do_fetch_file(url)

    async def get_world_info_entries(self) -> list[WorldInfoEntry]:
        return self._context.world_info
