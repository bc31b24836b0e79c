"""Task and cache models."""

from typing import Any

from pydantic import BaseModel

from shared.models.content import Chunk


class VectorTask(BaseModel):
    """One vectorization run and the content selection it was made from.

    Attributes:
        task_id:    Unique id, derived from creation time plus a random suffix.
        name:       Human-readable description of the selection. Purely descriptive.
        timestamp:  Creation time in epoch milliseconds.
        settings:   Deep snapshot of selected_content at creation time.
        enabled:    Whether retrieval queries this task's collection.
        item_count: Number of content items that were vectorized.
    """

    task_id: str
    name: str
    timestamp: int
    settings: dict[str, Any] = {}
    enabled: bool = True
    item_count: int = 0


class CachedCollection(BaseModel):
    """In-memory shadow of the last insert batch for one collection.

    Only used to recover chunk text when a query response carries hashes
    without inline text. Never persisted.
    """

    timestamp: int
    items: list[Chunk]
    settings: dict[str, Any] = {}

    def find_by_hash(self, hash_value: int) -> Chunk | None:
        for item in self.items:
            if item.hash == hash_value:
                return item
        return None

    def get_hashes(self) -> set[int]:
        return {item.hash for item in self.items}


class TaskView(BaseModel):
    """Read-only projection of a task for listing."""

    task_id: str
    name: str
    timestamp: int
    enabled: bool
    item_count: int


class VectorizationProgress(BaseModel):
    """Progress of the running vectorization, if any."""

    active: bool = False
    current: int = 0
    total: int = 0
    message: str = ""

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.current / self.total * 100)
