"""Per-chat task lists and the collections they own.

Tasks live inside VectorSettings.vector_tasks so they persist with the rest
of the settings. A task's collection id is "{chat_id}_{task_id}".
"""

import secrets
import string
import time

from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.errors import NetworkError, StateError
from shared.helper.HelperConfig import HelperConfig
from shared.models.task import TaskView, VectorTask
from shared.settings.SettingsManager import SettingsManager
from shared.tasks.CollectionCache import CollectionCache

_ID_ALPHABET = string.ascii_lowercase + string.digits


def get_collection_id(chat_id: str, task_id: str) -> str:
    return f"{chat_id}_{task_id}"


def generate_task_id() -> str:
    """Returns an id like "task_1718000000000_k3j9x0a2b"."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"task_{int(time.time() * 1000)}_{suffix}"


class TaskRegistry:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings_manager: SettingsManager,
        vector_manager: VectorClientManager,
        cache: CollectionCache,
    ):
        self.logging = helper_config.get_logger()
        self._settings_manager = settings_manager
        self._vector_manager = vector_manager
        self._cache = cache

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_task_store(self) -> dict[str, list[VectorTask]]:
        return self._settings_manager.get_settings().vector_tasks

    def list_tasks(self, chat_id: str) -> list[VectorTask]:
        """Returns the tasks of a chat in creation order. Unknown chats have none."""
        return list(self._get_task_store().get(chat_id, []))

    def get_enabled_tasks(self, chat_id: str) -> list[VectorTask]:
        return [task for task in self.list_tasks(chat_id) if task.enabled]

    def get_task(self, chat_id: str, task_id: str) -> VectorTask | None:
        for task in self._get_task_store().get(chat_id, []):
            if task.task_id == task_id:
                return task
        return None

    def get_task_views(self, chat_id: str) -> list[TaskView]:
        views = []
        for task in self.list_tasks(chat_id):
            views.append(TaskView(
                task_id=task.task_id,
                name=task.name,
                timestamp=task.timestamp,
                enabled=task.enabled,
                item_count=task.item_count,
            ))
        return views

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    def add_task(self, chat_id: str, task: VectorTask) -> None:
        self._get_task_store().setdefault(chat_id, []).append(task)
        self._settings_manager.mark_dirty()
        self.logging.info("Registered vector task %s (%s) for chat %s", task.task_id, task.name, chat_id)

    def set_enabled(self, chat_id: str, task_id: str, enabled: bool) -> VectorTask:
        """Toggle whether retrieval queries a task.

        Raises:
            StateError: If the task does not exist.
        """
        task = self.get_task(chat_id, task_id)
        if task is None:
            raise StateError(f"Task {task_id} not found in chat {chat_id}.")
        task.enabled = enabled
        self._settings_manager.mark_dirty()
        return task

    async def remove_task(self, chat_id: str, task_id: str) -> None:
        """Purge a task's collection, then forget the task and its cached collection.

        Raises:
            StateError: If the task does not exist.
            ConfigurationError: If the embedding source is not configured.
            NetworkError: If the purge failed. The task is kept.
        """
        task = self.get_task(chat_id, task_id)
        if task is None:
            raise StateError(f"Task {task_id} not found in chat {chat_id}.")

        collection_id = get_collection_id(chat_id, task_id)
        if not await self._vector_manager.get_client().do_purge(collection_id):
            raise NetworkError(f"Could not purge collection {collection_id}, task {task_id} was kept.")

        self._cache.evict(collection_id)
        tasks = self._get_task_store().get(chat_id, [])
        tasks.remove(task)
        if not tasks:
            self._get_task_store().pop(chat_id, None)
        self._settings_manager.mark_dirty()
        self.logging.info("Removed vector task %s from chat %s", task_id, chat_id)

    def forget_chat(self, chat_id: str) -> int:
        """Drop all tasks and cached collections of a deleted chat. Remote collections are left alone.

        Returns:
            int: Number of tasks dropped.
        """
        tasks = self._get_task_store().pop(chat_id, [])
        self._cache.evict_chat(chat_id)
        if tasks:
            self._settings_manager.mark_dirty()
            self.logging.info("Forgot %d vector tasks of deleted chat %s", len(tasks), chat_id)
        return len(tasks)

    async def purge_chat_vectors(self, chat_id: str) -> None:
        """Purge the chat-level collection (named after the chat id itself).

        Raises:
            NetworkError: If the purge failed.
        """
        if not await self._vector_manager.get_client().do_purge(chat_id):
            raise NetworkError(f"Could not purge vectors of chat {chat_id}.")
        self._cache.evict(chat_id)
