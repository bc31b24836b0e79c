"""Shared fixtures: a quiet helper config, in-memory settings and a fake vector backend."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.errors import ConfigurationError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.content import ChatMessage, FileAttachment, HostContext, WorldInfoEntry
from shared.models.retrieval import QueryResponse
from shared.settings.SettingsManager import SettingsManager
from shared.settings.SettingsStoreInterface import SettingsStoreInterface
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry


class MemorySettingsStore(SettingsStoreInterface):
    def __init__(self, data: dict | None = None):
        self.data = data or {}
        self.saves: list[dict] = []

    def load(self) -> dict:
        return dict(self.data)

    def save(self, data: dict) -> None:
        self.saves.append(data)
        self.data = data


class FakeVectorManager:
    """Stands in for VectorClientManager, always handing out the same client."""

    def __init__(self, client):
        self.client = client
        self.clients = {"transformers": client}

    def get_client(self):
        if self.client is None:
            raise ConfigurationError("Vector source 'none' is not available.")
        return self.client


def make_vector_client() -> MagicMock:
    client = MagicMock()
    client.validate_source = MagicMock(return_value=None)
    client.do_insert = AsyncMock(return_value=None)
    client.do_query = AsyncMock(return_value=QueryResponse(items=[]))
    client.do_list = AsyncMock(return_value=[])
    client.do_purge = AsyncMock(return_value=True)
    return client


@pytest.fixture
def helper_config(monkeypatch) -> HelperConfig:
    monkeypatch.setenv("SETTINGS_SAVE_DEBOUNCE", "0.01")
    monkeypatch.setenv("SYNC_GATE_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("SYNC_GATE_TIMEOUT", "0.05")
    monkeypatch.setenv("CHAT_EVENT_DEBOUNCE", "0.01")
    monkeypatch.setenv("TIMEZONE", "UTC")
    return HelperConfig(logger=ColorLogger(logging.getLogger("chat_vectors.tests")))


@pytest.fixture
def store_factory():
    return MemorySettingsStore


@pytest.fixture
def settings_store() -> MemorySettingsStore:
    return MemorySettingsStore()


@pytest.fixture
def settings_manager(helper_config, settings_store) -> SettingsManager:
    manager = SettingsManager(helper_config=helper_config, store=settings_store)
    manager.load()
    return manager


@pytest.fixture
def vector_client() -> MagicMock:
    return make_vector_client()


@pytest.fixture
def vector_manager(vector_client) -> FakeVectorManager:
    return FakeVectorManager(vector_client)


@pytest.fixture
def cache(helper_config) -> CollectionCache:
    return CollectionCache(helper_config=helper_config, max_collections=8)


@pytest.fixture
def task_registry(helper_config, settings_manager, vector_manager, cache) -> TaskRegistry:
    return TaskRegistry(
        helper_config=helper_config,
        settings_manager=settings_manager,
        vector_manager=vector_manager,
        cache=cache,
    )


@pytest.fixture
def host_context() -> HostContext:
    return HostContext(
        chat_id="chat-1",
        character_name="Alice",
        user_name="Bob",
        chat=[
            ChatMessage(mes="hello <content>A</content>", is_user=True, name="Bob"),
            ChatMessage(mes="<content>B</content> - exclude,C", name="Alice"),
            ChatMessage(mes="plain text", is_user=True, name="Bob"),
            ChatMessage(mes="a hidden note from {{char}}", is_system=True, name="Alice"),
        ],
        attachments={
            "databank": [FileAttachment(url="/files/lore.txt", name="lore.txt", size=2048, text="The lore file.")],
        },
        world_info=[
            WorldInfoEntry(world="Realm", uid=1, key=["castle", "keep"], comment="Castle", content="The castle is old."),
            WorldInfoEntry(world="Realm", uid=2, key=["river"], comment="", content="The river is wide."),
            WorldInfoEntry(world="Realm", uid=3, key=["gate"], content="Disabled entry.", disable=True),
        ],
    )
