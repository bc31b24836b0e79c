"""Pydantic models for content read from the chat host.

Hierarchy:
  HostContext    : snapshot of the active chat pushed by the host.
  ChatMessage    : one chat message (hidden when is_system is set).
  FileAttachment : a databank or chat attachment, addressed by url.
  WorldInfoEntry : one world-info entry.
  ContentItem    : one addressable piece of content produced by the collector.
  Chunk          : a bounded slice of a ContentItem, the unit of storage.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

ContentType = Literal["chat", "file", "world_info"]

ATTACHMENT_SCOPES = ("databank", "global", "character", "chat")


class FileAttachment(BaseModel):
    url: str
    name: str = ""
    size: int = 0
    text: str | None = None  # inline content, fetched from the host when absent


class MessageExtra(BaseModel):
    model_config = ConfigDict(extra="allow")

    file: FileAttachment | None = None


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    mes: str = ""
    is_user: bool = False
    is_system: bool = False  # hidden message
    name: str = ""
    extra: MessageExtra | None = None


class WorldInfoEntry(BaseModel):
    world: str = ""
    uid: int
    key: list[str] = []
    comment: str = ""
    content: str = ""
    disable: bool = False


class HostContext(BaseModel):
    """Everything the host shares about the active chat.

    Attributes:
        chat_id:        Id of the active chat, None when no chat is open.
        character_name: Name of the active character, used for export and macros.
        user_name:      Name of the user persona, used for macros.
        chat:           Ordered message list.
        attachments:    Attachments per scope (databank, global, character, chat).
        world_info:     All world-info entries the host can activate.
    """

    chat_id: str | None = None
    character_name: str | None = None
    user_name: str | None = None
    chat: list[ChatMessage] = []
    attachments: dict[str, list[FileAttachment]] = {}
    world_info: list[WorldInfoEntry] = []


class ContentItem(BaseModel):
    type: ContentType
    text: str
    metadata: dict[str, Any] = {}
    selected: bool = True


class Chunk(BaseModel):
    """A chunk as sent to the vector backend.

    The hash is the backend item key. Metadata carries the item metadata plus
    type, chunk_index and chunk_total.
    """

    hash: int
    text: str
    index: int
    metadata: dict[str, Any] = {}
