"""Request bodies of the bridge API."""

from pydantic import BaseModel

from shared.models.content import ChatMessage


class RetrieveRequest(BaseModel):
    """A generation turn. chat defaults to the messages of the pushed context."""

    chat: list[ChatMessage] | None = None
    generation_type: str = "normal"


class TaskUpdateRequest(BaseModel):
    enabled: bool


class ChatEventRequest(BaseModel):
    """A host chat lifecycle event, e.g. "message_sent" or "chat_deleted"."""

    event: str
    chat_id: str | None = None


class GenerationRequest(BaseModel):
    """The host reports whether it is currently generating."""

    active: bool
