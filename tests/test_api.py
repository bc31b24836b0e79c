"""Tests for the FastAPI routers, with real services over a fake vector backend."""

import pytest
from fastapi.testclient import TestClient

from server.api.api_app import app
from server.api.services.RetrievalService import RetrievalService
from services.vector_sync.SyncService import SyncService
from services.vector_sync.VectorizationService import VectorizationService
from shared.content.ContentCollector import ContentCollector
from shared.errors import NetworkError
from shared.injection.PromptInjectionRecorder import PromptInjectionRecorder
from shared.models.retrieval import QueryResponse, QueryResultItem
from shared.models.task import VectorTask
from shared.session.SessionState import SessionState
from shared.sync.SyncGate import SyncGate

HEADERS = {"X-API-Key": "test-key"}


@pytest.fixture
def client(monkeypatch, helper_config, settings_manager, vector_manager, task_registry, cache, host_context):
    monkeypatch.setenv("APP_API_KEY", "test-key")
    state = app.state
    state.logging = helper_config.get_logger()
    state.config = helper_config
    state.settings_manager = settings_manager
    state.session = SessionState()
    state.session.set_context(host_context)
    state.cache = cache
    state.sync_gate = SyncGate(helper_config=helper_config)
    state.injector = PromptInjectionRecorder()
    state.collector = ContentCollector(helper_config=helper_config)
    state.task_registry = task_registry
    state.vectorization_service = VectorizationService(
        helper_config=helper_config,
        settings_manager=settings_manager,
        collector=state.collector,
        vector_manager=vector_manager,
        task_registry=task_registry,
        cache=cache,
    )
    state.retrieval_service = RetrievalService(
        helper_config=helper_config,
        settings_manager=settings_manager,
        vector_manager=vector_manager,
        task_registry=task_registry,
        cache=cache,
        injector=state.injector,
        sync_gate=state.sync_gate,
    )
    state.sync_service = SyncService(
        helper_config=helper_config,
        settings_manager=settings_manager,
        vector_manager=vector_manager,
        task_registry=task_registry,
        cache=cache,
        sync_gate=state.sync_gate,
        session=state.session,
    )
    return TestClient(app)


def _select_chat(client):
    response = client.patch("/settings", json={"selected_content": {"chat": {"enabled": True, "tags": "content"}}}, headers=HEADERS)
    assert response.status_code == 200


def test_requires_api_key(client):
    assert client.get("/tasks").status_code == 401
    assert client.get("/tasks", headers={"X-API-Key": "wrong"}).status_code == 401


def test_unconfigured_api_key_rejects_everything(client, monkeypatch):
    monkeypatch.delenv("APP_API_KEY")
    assert client.get("/tasks", headers=HEADERS).status_code == 500


def test_settings_round_trip(client):
    response = client.patch("/settings", json={"max_results": 4}, headers=HEADERS)
    assert response.json()["max_results"] == 4
    assert client.get("/settings", headers=HEADERS).json()["max_results"] == 4


def test_invalid_settings_patch(client):
    assert client.patch("/settings", json={"chunk_size": 0}, headers=HEADERS).status_code == 422


def test_vectorize_then_list_toggle_and_delete(client, vector_client):
    _select_chat(client)
    created = client.post("/vectorize", headers=HEADERS)
    assert created.status_code == 200
    task_id = created.json()["task_id"]

    listing = client.get("/tasks", headers=HEADERS).json()
    assert listing["chat_id"] == "chat-1"
    assert listing["message_count"] == 4
    assert [t["task_id"] for t in listing["tasks"]] == [task_id]

    toggled = client.patch(f"/tasks/{task_id}", json={"enabled": False}, headers=HEADERS)
    assert toggled.json()["enabled"] is False

    assert client.delete(f"/tasks/{task_id}", headers=HEADERS).status_code == 200
    vector_client.do_purge.assert_awaited_once_with(f"chat-1_{task_id}")
    assert client.get("/tasks", headers=HEADERS).json()["tasks"] == []


def test_vectorize_without_selection_is_400(client):
    response = client.post("/vectorize", headers=HEADERS)
    assert response.status_code == 400
    assert "No content selected" in response.json()["detail"]


def test_vectorize_backend_failure_is_502(client, vector_client):
    _select_chat(client)
    vector_client.do_insert.side_effect = NetworkError("backend down", status_code=503)
    assert client.post("/vectorize", headers=HEADERS).status_code == 502
    assert client.get("/tasks", headers=HEADERS).json()["tasks"] == []


def test_failed_delete_keeps_task(client, vector_client):
    _select_chat(client)
    task_id = client.post("/vectorize", headers=HEADERS).json()["task_id"]
    vector_client.do_purge.return_value = False
    assert client.delete(f"/tasks/{task_id}", headers=HEADERS).status_code == 502
    assert len(client.get("/tasks", headers=HEADERS).json()["tasks"]) == 1


def test_unknown_task_is_400(client):
    assert client.patch("/tasks/missing", json={"enabled": True}, headers=HEADERS).status_code == 400


def test_retrieve_and_read_injection(client, vector_client):
    _select_chat(client)
    client.post("/vectorize", headers=HEADERS)
    vector_client.do_query.return_value = QueryResponse(
        items=[QueryResultItem(text="A", score=0.9, metadata={"type": "chat", "index": 0})]
    )

    outcome = client.post("/retrieve", json={}, headers=HEADERS).json()
    assert outcome["state"] == "injected"

    injection = client.get("/injection", headers=HEADERS).json()
    assert "<past_chat>\nA\n</past_chat>" in injection["text"]

    skipped = client.post("/retrieve", json={"generation_type": "quiet"}, headers=HEADERS).json()
    assert skipped["state"] == "skipped"
    assert client.get("/injection", headers=HEADERS).json() is None


def test_preview_export_and_hidden(client):
    _select_chat(client)
    preview = client.get("/preview", headers=HEADERS).json()
    assert [m["text"] for m in preview["chat"]] == ["A", "B", "plain text"]
    assert preview["stats"]["final_blocks"] == 2

    export = client.get("/export", headers=HEADERS)
    assert export.status_code == 200
    assert "vectors_export_Alice_" in export.headers["content-disposition"]
    assert "=== chat ===\n#0: A" in export.text

    hidden = client.get("/hidden", headers=HEADERS).json()
    assert [h["index"] for h in hidden] == [3]


def test_preview_without_selection_is_400(client):
    assert client.get("/preview", headers=HEADERS).status_code == 400


def test_context_replacement(client):
    response = client.put("/context", json={"chat_id": None, "chat": []}, headers=HEADERS)
    assert response.status_code == 200
    assert client.post("/purge", headers=HEADERS).status_code == 400
    assert client.get("/export", headers=HEADERS).status_code == 400


def test_purge_chat_vectors(client, vector_client):
    assert client.post("/purge", headers=HEADERS).status_code == 200
    vector_client.do_purge.assert_awaited_once_with("chat-1")


def test_events(client, task_registry):
    task_registry.add_task("chat-1", VectorTask(task_id="a", name="a", timestamp=1))
    response = client.post("/events/chat", json={"event": "chat_deleted", "chat_id": "chat-1"}, headers=HEADERS)
    assert response.json() == {"event": "chat_deleted", "handled": True}
    assert task_registry.list_tasks("chat-1") == []

    assert client.post("/generation", json={"active": True}, headers=HEADERS).status_code == 200
    assert client.app.state.sync_gate.is_generation_active()


def test_progress_when_idle(client):
    progress = client.get("/progress", headers=HEADERS).json()
    assert progress == {"active": False, "current": 0, "total": 0, "message": "", "percent": 0}
