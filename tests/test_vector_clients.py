"""Tests for the vector backend clients and their manager."""

from unittest.mock import AsyncMock

import httpx
import pytest

from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.clients.vector.ollama.VectorClientOllama import VectorClientOllama
from shared.clients.vector.transformers.VectorClientTransformers import VectorClientTransformers
from shared.clients.vector.vllm.VectorClientVllm import VectorClientVllm
from shared.errors import ConfigurationError, NetworkError
from shared.models.config import VectorSettings
from shared.models.content import Chunk


def _response(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "http://vectors.test"), **kwargs)


def _booted(client, *responses):
    client._client = AsyncMock()
    client._client.request = AsyncMock(side_effect=list(responses))
    return client


@pytest.fixture(autouse=True)
def vector_env(monkeypatch):
    monkeypatch.setenv("VECTOR_BASE_URL", "http://vectors.test")
    monkeypatch.setenv("VECTOR_API_KEY", "secret")
    monkeypatch.delenv("VECTOR_VLLM_API_URL", raising=False)
    monkeypatch.delenv("VECTOR_SOURCES", raising=False)


@pytest.mark.asyncio
async def test_insert_body_and_auth(helper_config):
    settings = VectorSettings(source="ollama", ollama_url="http://ollama:11434", ollama_keep=True)
    client = _booted(VectorClientOllama(helper_config, lambda: settings), _response(200))

    await client.do_insert("chat_task", [Chunk(hash=1, text="t", index=0, metadata={"type": "chat"})])

    method, kwargs = client._client.request.call_args.args[0], client._client.request.call_args.kwargs
    assert method == "POST"
    assert kwargs["url"] == "http://vectors.test/api/vector/insert"
    assert kwargs["headers"] == {"Authorization": "Bearer secret"}
    assert kwargs["json"] == {
        "collectionId": "chat_task",
        "items": [{"hash": 1, "text": "t", "index": 0, "metadata": {"type": "chat"}}],
        "model": settings.ollama_model,
        "apiUrl": "http://ollama:11434",
        "keep": True,
        "source": "ollama",
    }


@pytest.mark.asyncio
async def test_insert_non_2xx_is_network_error(helper_config):
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(500, text="boom"))
    with pytest.raises(NetworkError) as exc:
        await client.do_insert("c", [])
    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_healthcheck_hits_base_url(helper_config):
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(200), _response(503))

    await client.do_healthcheck()
    assert client._client.request.call_args.kwargs["url"] == "http://vectors.test"

    with pytest.raises(NetworkError) as exc:
        await client.do_healthcheck()
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_unreachable_backend_is_network_error(helper_config):
    client = VectorClientTransformers(helper_config, VectorSettings)
    client._client = AsyncMock()
    client._client.request = AsyncMock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(NetworkError):
        await client.do_list("c")


@pytest.mark.asyncio
async def test_request_before_boot_fails(helper_config):
    with pytest.raises(NetworkError):
        await VectorClientTransformers(helper_config, VectorSettings).do_list("c")


@pytest.mark.asyncio
async def test_vllm_without_url_fails_before_sending(helper_config):
    settings = VectorSettings(source="vllm", vllm_model="m")
    client = _booted(VectorClientVllm(helper_config, lambda: settings))
    with pytest.raises(ConfigurationError, match="URL"):
        await client.do_insert("c", [])
    client._client.request.assert_not_awaited()


def test_vllm_without_model(helper_config):
    settings = VectorSettings(source="vllm", vllm_url="http://vllm")
    with pytest.raises(ConfigurationError, match="model"):
        VectorClientVllm(helper_config, lambda: settings).validate_source(settings)


@pytest.mark.asyncio
async def test_query_parses_inline_items(helper_config):
    payload = {"items": [{"text": "hit", "score": 0.9, "metadata": {"type": "chat"}}]}
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(200, json=payload))

    response = await client.do_query("c", search_text="q", top_k=5, threshold=0.25)

    assert response.items[0].text == "hit"
    body = client._client.request.call_args.kwargs["json"]
    assert body["searchText"] == "q"
    assert body["topK"] == 5
    assert body["includeText"] is True
    assert body["source"] == "transformers"


@pytest.mark.asyncio
async def test_query_with_unexpected_body(helper_config):
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(200, text="not json"))
    with pytest.raises(NetworkError):
        await client.do_query("c", search_text="q", top_k=5, threshold=0.25)


@pytest.mark.asyncio
async def test_list_returns_hashes(helper_config):
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(200, json=[3, 1, 2]))
    assert await client.do_list("c") == [3, 1, 2]


@pytest.mark.asyncio
async def test_purge_reports_failure_as_false(helper_config):
    client = _booted(VectorClientTransformers(helper_config, VectorSettings), _response(200), _response(404))
    assert await client.do_purge("c") is True
    assert await client.do_purge("c") is False


def test_manager_hands_out_selected_source(helper_config):
    settings = VectorSettings(source="Ollama")
    manager = VectorClientManager(helper_config, lambda: settings)
    assert sorted(manager.clients) == ["ollama", "transformers", "vllm"]
    assert isinstance(manager.get_client(), VectorClientOllama)


def test_manager_rejects_disabled_source(helper_config, monkeypatch):
    monkeypatch.setenv("VECTOR_SOURCES", "[transformers]")
    settings = VectorSettings(source="ollama")
    manager = VectorClientManager(helper_config, lambda: settings)
    with pytest.raises(ConfigurationError):
        manager.get_client()


def test_manager_rejects_unknown_source_name(helper_config, monkeypatch):
    monkeypatch.setenv("VECTOR_SOURCES", "[nope]")
    with pytest.raises(ValueError):
        VectorClientManager(helper_config, VectorSettings)
