"""Pydantic models for vector queries and prompt injection."""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from shared.models.config import PromptPosition, PromptRole

EXTENSION_PROMPT_TAG = "3_vectors"


class QueryResultItem(BaseModel):
    """A single hit as returned inline by the vector backend."""

    text: str | None = None
    score: float = 0.0
    metadata: dict[str, Any] = {}


class QueryResponse(BaseModel):
    """Raw query response of the vector backend.

    The backend either returns items with inline text, or only hashes plus a
    parallel metadata list. In the latter case the text has to be recovered
    from the cached collection.
    """

    items: list[QueryResultItem] | None = None
    hashes: list[int] | None = None
    metadata: list[dict[str, Any]] | None = None


class RetrievedChunk(BaseModel):
    """A query hit with recovered text, tagged with its source task."""

    text: str
    score: float = 0.0
    metadata: dict[str, Any] = {}

    def get_type(self) -> str:
        return self.metadata.get("type") or "unknown"


class PromptInjection(BaseModel):
    """Arguments for the host's prompt-injection point. Empty text clears the tag."""

    tag: str = EXTENSION_PROMPT_TAG
    text: str = ""
    position: PromptPosition = PromptPosition.IN_PROMPT
    depth: int = 2
    include_wi: bool = False
    role: PromptRole = PromptRole.SYSTEM


class RetrievalState(str, Enum):
    SKIPPED = "skipped"
    INJECTED = "injected"


class RetrievalOutcome(BaseModel):
    """Terminal state of one generation turn."""

    state: RetrievalState
    reason: str | None = None
    injection: PromptInjection | None = None
    results: list[RetrievedChunk] = []
    failed_tasks: list[str] = []
