from abc import ABC, abstractmethod

from shared.models.content import ChatMessage, FileAttachment, WorldInfoEntry


class ContentSourceInterface(ABC):
    """Read-only, pull-based view of the host's chat, attachment and world-info stores."""

    @abstractmethod
    def get_chat_id(self) -> str | None:
        """
        Returns the id of the active chat, or None when no chat is open.
        """
        pass

    @abstractmethod
    def get_character_name(self) -> str | None:
        pass

    @abstractmethod
    def get_macro_values(self) -> dict[str, str | None]:
        """
        Returns the values for {{macro}} substitution, keyed by lowercase macro name.
        """
        pass

    @abstractmethod
    def get_chat_messages(self) -> list[ChatMessage]:
        """
        Returns the ordered message list of the active chat.
        """
        pass

    @abstractmethod
    def get_file_attachments(self) -> list[FileAttachment]:
        """
        Returns every attachment the user can select: all scopes first, then files attached to messages.
        """
        pass

    @abstractmethod
    async def fetch_file_text(self, url: str) -> str:
        """
        Returns the raw text of an attachment.

        Raises:
            NetworkError: If the content cannot be fetched.
        """
        pass

    @abstractmethod
    async def get_world_info_entries(self) -> list[WorldInfoEntry]:
        """
        Returns every world-info entry the host can activate, in host order.
        """
        pass
