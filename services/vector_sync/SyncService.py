"""Automatic synchronization pass.

Runs under the SyncGate, triggered by chat events (debounced) or
periodically. For every task of the active chat it lists the hashes the
backend holds and drops the cached collection if it no longer matches, so
query text is never recovered from a stale snapshot.
"""

import asyncio

from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.errors import NetworkError, VectorsError
from shared.helper.HelperConfig import HelperConfig
from shared.session.SessionState import SessionState
from shared.settings.SettingsManager import SettingsManager
from shared.sync.SyncGate import SYNC_SKIPPED, SyncGate
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry, get_collection_id

MESSAGE_EVENTS = ("message_sent", "message_received", "message_edited", "message_deleted", "message_swiped")
DELETE_EVENTS = ("chat_deleted", "group_chat_deleted")


class SyncService:
    """Keeps the collection cache of the active chat consistent with the backend."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings_manager: SettingsManager,
        vector_manager: VectorClientManager,
        task_registry: TaskRegistry,
        cache: CollectionCache,
        sync_gate: SyncGate,
        session: SessionState,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings_manager = settings_manager
        self._vector_manager = vector_manager
        self._task_registry = task_registry
        self._cache = cache
        self._sync_gate = sync_gate
        self._session = session
        self._event_debounce = helper_config.get_number_val("CHAT_EVENT_DEBOUNCE", default=2)
        self._pending: asyncio.Task | None = None

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    async def synchronize_chat(self) -> int:
        """Run one automatic pass for the active chat.

        Returns:
            int: SYNC_SKIPPED when the pass did not run, else the number of items still pending (always 0).

        Raises:
            ConfigurationError: If the embedding source is not configured.
        """
        settings = self._settings_manager.get_settings()
        if not settings.master_enabled or not settings.auto_vectorize:
            return SYNC_SKIPPED
        return await self._sync_gate.run_exclusive(self._reconcile_active_chat)

    async def _reconcile_active_chat(self) -> int:
        chat_id = self._session.get_chat_id()
        if not chat_id:
            return 0

        client = self._vector_manager.get_client()
        evicted = 0
        for task in self._task_registry.list_tasks(chat_id):
            collection_id = get_collection_id(chat_id, task.task_id)
            cached = self._cache.peek(collection_id)
            if cached is None:
                continue
            try:
                remote_hashes = set(await client.do_list(collection_id))
            except NetworkError as e:
                self.logging.warning("Could not list collection %s: %s", collection_id, e)
                continue
            if remote_hashes != cached.get_hashes():
                self._cache.evict(collection_id)
                evicted += 1
                self.logging.info("Cached collection %s is stale, evicted", collection_id)

        self.logging.debug("Synchronization pass for chat %s done, %d cache entries evicted", chat_id, evicted)
        return 0

    ##########################################
    ################ EVENTS ##################
    ##########################################

    def handle_chat_event(self, event: str, chat_id: str | None = None) -> bool:
        """React to a host chat lifecycle event.

        Message events schedule a debounced pass. Delete events forget the
        chat's tasks and cache entries without touching the backend.

        Returns:
            bool: Whether the event was handled.
        """
        if event in DELETE_EVENTS:
            if chat_id:
                self._task_registry.forget_chat(chat_id)
            return True
        if event in MESSAGE_EVENTS:
            if self._settings_manager.get_settings().auto_vectorize:
                self.schedule_synchronization()
            return True
        self.logging.debug("Ignoring unknown chat event %r", event)
        return False

    def schedule_synchronization(self) -> None:
        """Schedule a pass after the event debounce window; a newer call replaces a pending one."""
        if self._pending and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._delayed_synchronization())

    async def _delayed_synchronization(self) -> None:
        await asyncio.sleep(self._event_debounce)
        try:
            await self.synchronize_chat()
        except VectorsError as e:
            self.logging.error("Automatic synchronization failed: %s", e)
        except Exception as e:
            self.logging.error("Unexpected error in automatic synchronization: %s", e, exc_info=True)

    async def run_periodic(self, interval: float) -> None:
        """Run the automatic pass every interval seconds until cancelled."""
        self.logging.info("Periodic synchronization every %ss", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.synchronize_chat()
            except VectorsError as e:
                self.logging.error("Periodic synchronization failed: %s", e)
            except Exception as e:
                self.logging.error("Unexpected error in periodic synchronization: %s", e, exc_info=True)

    async def close(self) -> None:
        if self._pending and not self._pending.done():
            self._pending.cancel()
            try:
                await self._pending
            except asyncio.CancelledError:
                pass
        self._pending = None
