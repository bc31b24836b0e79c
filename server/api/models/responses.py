"""Response bodies of the bridge API."""

from pydantic import BaseModel

from shared.models.task import TaskView


class StatusResponse(BaseModel):
    status: str
    detail: str | None = None


class TaskListResponse(BaseModel):
    """Tasks of the active chat plus the message count for the range inputs."""

    chat_id: str | None
    tasks: list[TaskView] = []
    message_count: int = 0


class ChatEventResponse(BaseModel):
    event: str
    handled: bool


class ProgressResponse(BaseModel):
    active: bool
    current: int
    total: int
    message: str
    percent: int
