"""Retrieval service: runs once per generation turn.

Builds a query from the most recent messages, queries every enabled task's
collection, merges and ranks the hits, groups them by content type and
injects the rendered block into the host prompt.
"""

from pydantic import ValidationError

from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.errors import CacheMissError, ConfigurationError, NetworkError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperMacros import substitute_params
from shared.injection.PromptInjectorInterface import PromptInjectorInterface
from shared.models.config import ContentTags, VectorSettings
from shared.models.content import ChatMessage
from shared.models.retrieval import (
    EXTENSION_PROMPT_TAG,
    PromptInjection,
    QueryResponse,
    RetrievalOutcome,
    RetrievalState,
    RetrievedChunk,
)
from shared.models.task import VectorTask
from shared.settings.SettingsManager import SettingsManager
from shared.sync.SyncGate import SyncGate
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry, get_collection_id

QUIET_GENERATION = "quiet"
GROUP_ORDER = ("chat", "world_info", "file")


def build_query_text(chat: list[ChatMessage], query_messages: int) -> str:
    """Join the text of the last query_messages messages with newlines."""
    if query_messages <= 0:
        return ""
    return "\n".join(message.mes for message in chat[-query_messages:])


def merge_rank(results: list[RetrievedChunk], max_results: int) -> list[RetrievedChunk]:
    """Sort by score descending (ties keep their order) and apply the global cap."""
    return sorted(results, key=lambda r: r.score, reverse=True)[:max_results]


def _unique_texts(results: list[RetrievedChunk]) -> list[str]:
    texts: list[str] = []
    for result in results:
        if result.text not in texts:
            texts.append(result.text)
    return texts


def format_results(results: list[RetrievedChunk], content_tags: ContentTags) -> str:
    """Group results by content type and wrap every group in its tag.

    Chat hits are put back into message order. Results of an unknown type
    are not rendered.

    Returns:
        str: "<tag>\\n...\\n</tag>" blocks in the order chat, world info, file, separated by a blank line.
    """
    grouped: dict[str, list[RetrievedChunk]] = {}
    for result in results:
        grouped.setdefault(result.get_type(), []).append(result)

    blocks = []
    for content_type in GROUP_ORDER:
        group = grouped.get(content_type)
        if not group:
            continue
        if content_type == "chat":
            group = sorted(group, key=lambda r: r.metadata.get("index") or 0)
        tag = getattr(content_tags, content_type)
        blocks.append(f"<{tag}>\n" + "\n\n".join(_unique_texts(group)) + f"\n</{tag}>")
    return "\n\n".join(blocks)


class RetrievalService:
    """Orchestrates query, ranking and prompt injection for one generation turn."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings_manager: SettingsManager,
        vector_manager: VectorClientManager,
        task_registry: TaskRegistry,
        cache: CollectionCache,
        injector: PromptInjectorInterface,
        sync_gate: SyncGate | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings_manager = settings_manager
        self._vector_manager = vector_manager
        self._task_registry = task_registry
        self._cache = cache
        self._injector = injector
        self._sync_gate = sync_gate

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _clear_injection(self, settings: VectorSettings) -> None:
        self._injector.set_extension_prompt(self._build_injection(settings, ""))

    def _build_injection(self, settings: VectorSettings, text: str) -> PromptInjection:
        return PromptInjection(
            tag=EXTENSION_PROMPT_TAG,
            text=text,
            position=settings.position,
            depth=settings.depth,
            include_wi=settings.include_wi,
            role=settings.depth_role,
        )

    def _skip(self, settings: VectorSettings, reason: str) -> RetrievalOutcome:
        self._clear_injection(settings)
        self.logging.debug("Retrieval skipped: %s", reason)
        return RetrievalOutcome(state=RetrievalState.SKIPPED, reason=reason)

    def recover_results(self, collection_id: str, task: VectorTask, response: QueryResponse) -> list[RetrievedChunk]:
        """Turn a raw query response into chunks with text, tagged with the task.

        Inline text is used as is. A response with only hashes is resolved
        against the cached collection.

        Raises:
            CacheMissError: If the response has no inline text and nothing is cached for the collection.
            NetworkError: If the response carries scores or metadata that do not form valid results.
        """
        task_meta = {"task_id": task.task_id, "task_name": task.name}
        try:
            return self._recover_results(collection_id, task_meta, response)
        except (ValidationError, TypeError, AttributeError) as e:
            raise NetworkError(f"Malformed query response for {collection_id}: {e}") from e

    def _recover_results(self, collection_id: str, task_meta: dict, response: QueryResponse) -> list[RetrievedChunk]:
        if response.items is not None:
            return [
                RetrievedChunk(text=item.text, score=item.score, metadata={**item.metadata, **task_meta})
                for item in response.items
                if item.text
            ]

        if response.hashes is None:
            return []

        cached = self._cache.get(collection_id)
        if cached is None:
            raise CacheMissError(f"No cached collection {collection_id} to recover {len(response.hashes)} results.")

        metadata = response.metadata or []
        results = []
        for position, hash_value in enumerate(response.hashes):
            chunk = cached.find_by_hash(hash_value)
            if chunk is None or not chunk.text:
                continue
            meta = metadata[position] if position < len(metadata) else {}
            results.append(RetrievedChunk(
                text=chunk.text,
                score=meta.get("score") or 0.0,
                metadata={**chunk.metadata, **meta, **task_meta},
            ))
        return results

    async def _query_task(
        self,
        client: VectorClientInterface,
        chat_id: str,
        task: VectorTask,
        query_text: str,
        settings: VectorSettings,
    ) -> list[RetrievedChunk]:
        collection_id = get_collection_id(chat_id, task.task_id)
        response = await client.do_query(
            collection_id,
            search_text=query_text,
            top_k=settings.max_results,
            threshold=settings.score_threshold,
        )
        return self.recover_results(collection_id, task, response)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def rearrange_chat(
        self,
        chat_id: str | None,
        chat: list[ChatMessage],
        generation_type: str = "normal",
        macros: dict[str, str | None] | None = None,
    ) -> RetrievalOutcome:
        """Run retrieval for one generation turn and inject the result.

        Every early exit clears the previous injection. Failing tasks are
        logged and left out; the turn itself never raises because of a task.

        Args:
            chat_id (str | None): Active chat id.
            chat (list[ChatMessage]): The chat as it is about to be sent.
            generation_type (str): Host generation type; "quiet" passes are skipped.
            macros (dict | None): Values for {{user}}/{{char}} in the template.

        Returns:
            RetrievalOutcome: Skipped with a reason, or injected with the ranked results.
        """
        if self._sync_gate is None:
            return await self._rearrange_chat(chat_id, chat, generation_type, macros or {})
        async with self._sync_gate.generation():
            return await self._rearrange_chat(chat_id, chat, generation_type, macros or {})

    async def _rearrange_chat(
        self,
        chat_id: str | None,
        chat: list[ChatMessage],
        generation_type: str,
        macros: dict[str, str | None],
    ) -> RetrievalOutcome:
        settings = self._settings_manager.get_settings()

        # gates
        if generation_type == QUIET_GENERATION:
            return self._skip(settings, "quiet generation")
        if not settings.master_enabled:
            return self._skip(settings, "master switch off")
        if not settings.enabled:
            return self._skip(settings, "retrieval disabled")
        if not chat_id:
            return self._skip(settings, "no active chat")
        tasks = self._task_registry.get_enabled_tasks(chat_id)
        if not tasks:
            return self._skip(settings, "no enabled tasks")

        query_text = build_query_text(chat, settings.query_messages)
        if not query_text.strip():
            return self._skip(settings, "empty query")

        try:
            client = self._vector_manager.get_client()
            client.validate_source(settings)
        except ConfigurationError as e:
            self.logging.error("Retrieval not possible: %s", e)
            return self._skip(settings, str(e))

        self.logging.info("Querying %d tasks of chat %s", len(tasks), chat_id)
        results: list[RetrievedChunk] = []
        failed_tasks: list[str] = []
        for task in tasks:
            try:
                task_results = await self._query_task(client, chat_id, task, query_text, settings)
            except (NetworkError, CacheMissError) as e:
                self.logging.warning("Query of task %s (%s) failed, skipping it: %s", task.task_id, task.name, e)
                failed_tasks.append(task.task_id)
                continue
            except Exception as e:
                self.logging.error("Unexpected error querying task %s (%s), skipping it: %s", task.task_id, task.name, e, exc_info=True)
                failed_tasks.append(task.task_id)
                continue
            self.logging.debug("Task %s returned %d results", task.task_id, len(task_results))
            results.extend(task_results)

        ranked = merge_rank(results, settings.max_results)
        block = format_results(ranked, settings.content_tags)
        if not block:
            outcome = self._skip(settings, "no results")
            outcome.failed_tasks = failed_tasks
            return outcome

        injection = self._build_injection(settings, substitute_params(settings.template, {**macros, "text": block}))
        self._injector.set_extension_prompt(injection)
        self.logging.info("Injected %d results from %d tasks", len(ranked), len(tasks) - len(failed_tasks))
        return RetrievalOutcome(
            state=RetrievalState.INJECTED,
            injection=injection,
            results=ranked,
            failed_tasks=failed_tasks,
        )
