"""Vectorization service.

Collects the selected content of the active chat, splits every item into
chunks, and inserts them into a fresh per-task collection of the vector
backend. A task is registered only after every batch was accepted.
"""

from typing import Callable

from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.content.ContentCollector import ContentCollector
from shared.content.ContentSourceInterface import ContentSourceInterface
from shared.content.TextChunker import TextChunker
from shared.errors import StateError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperHash import get_hash_value
from shared.models.config import VectorSettings
from shared.models.content import Chunk, ContentItem
from shared.models.task import CachedCollection, VectorizationProgress, VectorTask
from shared.settings.SettingsManager import SettingsManager
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry, generate_task_id, get_collection_id

INSERT_BATCH_SIZE = 50  # chunks per insert request


class VectorizationService:
    """Turns the current content selection into a new vector task."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings_manager: SettingsManager,
        collector: ContentCollector,
        vector_manager: VectorClientManager,
        task_registry: TaskRegistry,
        cache: CollectionCache,
        progress_callback: Callable[[VectorizationProgress], None] | None = None,
    ) -> None:
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._settings_manager = settings_manager
        self._collector = collector
        self._vector_manager = vector_manager
        self._task_registry = task_registry
        self._cache = cache
        self._progress_callback = progress_callback
        self._progress = VectorizationProgress()

    ##########################################
    ############### PROGRESS #################
    ##########################################

    def get_progress(self) -> VectorizationProgress:
        return self._progress.model_copy()

    def _report_progress(self, current: int, total: int, message: str) -> None:
        self._progress = VectorizationProgress(active=True, current=current, total=total, message=message)
        if self._progress_callback:
            self._progress_callback(self.get_progress())

    def _reset_progress(self) -> None:
        self._progress = VectorizationProgress()
        if self._progress_callback:
            self._progress_callback(self.get_progress())

    ##########################################
    ################ HELPERS #################
    ##########################################

    def generate_task_name(self, settings: VectorSettings, item_count: int) -> str:
        """Describe the active selection, e.g. "Messages #0 to end, 2 files (14:05)"."""
        selection = settings.selected_content
        parts = []

        if selection.chat.enabled:
            start = max(selection.chat.range.start, 0)
            end = selection.chat.range.end
            if end == -1:
                parts.append(f"Messages #{start} to end")
            else:
                parts.append(f"Messages #{start}-{end}")

        if selection.files.enabled and selection.files.selected:
            parts.append(f"{len(selection.files.selected)} files")

        if selection.world_info.enabled:
            wi_count = sum(len(uids) for uids in selection.world_info.selected.values())
            if wi_count:
                parts.append(f"{wi_count} world info entries")

        if not parts:
            parts.append(f"{item_count} items")

        return f"{', '.join(parts)} ({self.helper_config.get_now().strftime('%H:%M')})"

    def build_chunks(self, items: list[ContentItem], settings: VectorSettings) -> list[Chunk]:
        """Split every item into chunks with a running index across the whole pass.

        Chunks whose text hashes to an already produced hash are sent once.

        Args:
            items (list[ContentItem]): Collected items.
            settings (VectorSettings): Chunk size, overlap and forced delimiter.

        Returns:
            list[Chunk]: Chunks in item order.
        """
        chunker = TextChunker(
            chunk_size=settings.chunk_size,
            overlap_percent=settings.overlap_percent,
            force_delimiter=settings.force_chunk_delimiter,
        )
        chunks: list[Chunk] = []
        seen: dict[int, str] = {}

        for item_index, item in enumerate(items):
            pieces = chunker.split(item.text)
            for chunk_index, piece in enumerate(pieces):
                hash_value = get_hash_value(piece)
                if hash_value in seen:
                    if seen[hash_value] != piece:
                        self.logging.warning("Hash collision for %d, dropping chunk %d of %s item", hash_value, chunk_index, item.type)
                    continue
                seen[hash_value] = piece
                chunks.append(Chunk(
                    hash=hash_value,
                    text=piece,
                    index=len(chunks),
                    metadata={
                        **item.metadata,
                        "type": item.type,
                        "chunk_index": chunk_index,
                        "chunk_total": len(pieces),
                    },
                ))
            self._report_progress(item_index + 1, len(items), f"Chunking items {item_index + 1}/{len(items)}")

        return chunks

    ##########################################
    ############### CORE FLOW ################
    ##########################################

    async def vectorize(self, source: ContentSourceInterface) -> VectorTask:
        """Vectorize the current selection into a new task.

        Args:
            source (ContentSourceInterface): The host content of the active chat.

        Returns:
            VectorTask: The registered task.

        Raises:
            StateError: If nothing was collected or no chat is active.
            ConfigurationError: If the embedding source is not configured. Nothing is sent.
            NetworkError: If a batch insert failed. No task is registered.
        """
        settings = self._settings_manager.get_settings()
        client = self._vector_manager.get_client()
        client.validate_source(settings)

        try:
            items = await self._collector.collect(settings, source)
            if not items:
                raise StateError("No content selected for vectorization.")
            chat_id = source.get_chat_id()
            if not chat_id:
                raise StateError("No active chat.")

            task = VectorTask(
                task_id=generate_task_id(),
                name=self.generate_task_name(settings, len(items)),
                timestamp=int(self.helper_config.get_now().timestamp() * 1000),
                settings=settings.selected_content.model_dump(mode="json"),
                item_count=len(items),
            )
            collection_id = get_collection_id(chat_id, task.task_id)
            self.logging.info("Vectorizing %d items into %s", len(items), collection_id, color="blue")

            chunks = self.build_chunks(items, settings)
            if not chunks:
                self.logging.warning("Selected content produced no chunks, task %s has an empty collection", task.task_id)

            for start in range(0, len(chunks), INSERT_BATCH_SIZE):
                batch = chunks[start:start + INSERT_BATCH_SIZE]
                await client.do_insert(collection_id, batch)
                done = start + len(batch)
                self._report_progress(done, len(chunks), f"Inserted {done}/{len(chunks)} chunks")

            self._task_registry.add_task(chat_id, task)
            self._cache.put(collection_id, CachedCollection(
                timestamp=task.timestamp,
                items=chunks,
                settings=settings.model_dump(mode="json", exclude={"vector_tasks"}),
            ))
            self.logging.info("Vectorization finished: %d chunks in task %s", len(chunks), task.task_id, color="green")
            return task
        except Exception as e:
            self.logging.error("Vectorization failed: %s", e)
            raise
        finally:
            self._reset_progress()
