"""Read-only projections handed to the host UI."""

from pydantic import BaseModel

from shared.models.extraction import Diagnostic, ExtractionStats


class PreviewFile(BaseModel):
    name: str
    size_kb: float
    text: str


class PreviewWorldEntry(BaseModel):
    uid: int
    comment: str
    text: str


class PreviewWorld(BaseModel):
    world: str
    entries: list[PreviewWorldEntry] = []


class PreviewMessage(BaseModel):
    index: int
    author: str  # "user" or "assistant"
    name: str
    is_hidden: bool
    text: str


class PreviewView(BaseModel):
    """Collected items grouped by type, plus tag-filter statistics.

    stats is None when no tag expressions are configured for chat messages.
    """

    total_items: int = 0
    files: list[PreviewFile] = []
    world_info: list[PreviewWorld] = []
    chat: list[PreviewMessage] = []
    stats: ExtractionStats | None = None
    diagnostics: list[Diagnostic] = []


class HiddenMessage(BaseModel):
    index: int
    text: str
    is_user: bool
    name: str
