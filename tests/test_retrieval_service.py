"""Tests for RetrievalService."""

import pytest

from server.api.services.RetrievalService import (
    RetrievalService,
    build_query_text,
    format_results,
    merge_rank,
)
from shared.errors import CacheMissError, ConfigurationError, NetworkError
from shared.injection.PromptInjectionRecorder import PromptInjectionRecorder
from shared.models.config import ContentTags
from shared.models.content import ChatMessage, Chunk
from shared.models.retrieval import (
    EXTENSION_PROMPT_TAG,
    PromptInjection,
    QueryResponse,
    QueryResultItem,
    RetrievalState,
    RetrievedChunk,
)
from shared.models.task import CachedCollection, VectorTask

CHAT = [ChatMessage(mes="first"), ChatMessage(mes="second"), ChatMessage(mes="third"), ChatMessage(mes="fourth")]


@pytest.fixture
def injector() -> PromptInjectionRecorder:
    recorder = PromptInjectionRecorder()
    recorder.set_extension_prompt(PromptInjection(text="stale context"))
    return recorder


@pytest.fixture
def service(helper_config, settings_manager, vector_manager, task_registry, cache, injector) -> RetrievalService:
    return RetrievalService(
        helper_config=helper_config,
        settings_manager=settings_manager,
        vector_manager=vector_manager,
        task_registry=task_registry,
        cache=cache,
        injector=injector,
    )


def _add_tasks(task_registry, *task_ids):
    for task_id in task_ids:
        task_registry.add_task("chat-1", VectorTask(task_id=task_id, name=f"Task {task_id}", timestamp=1))


def _chunk(text: str, score: float, content_type: str, **metadata) -> RetrievedChunk:
    return RetrievedChunk(text=text, score=score, metadata={"type": content_type, **metadata})


def test_build_query_text():
    assert build_query_text(CHAT, 3) == "second\nthird\nfourth"
    assert build_query_text(CHAT[:1], 3) == "first"
    assert build_query_text([], 3) == ""


def test_merge_rank_is_stable_and_capped():
    results = [_chunk("a", 0.5, "chat"), _chunk("b", 0.9, "chat"), _chunk("c", 0.5, "chat"), _chunk("d", 0.1, "chat")]
    assert [r.text for r in merge_rank(results, 3)] == ["b", "a", "c"]


def test_format_results_groups_in_fixed_order():
    results = [
        _chunk("file text", 0.9, "file"),
        _chunk("later message", 0.8, "chat", index=5),
        _chunk("lore", 0.7, "world_info"),
        _chunk("earlier message", 0.6, "chat", index=1),
        _chunk("later message", 0.5, "chat", index=5),
        _chunk("lore", 0.4, "world_info"),
        _chunk("mystery", 0.3, "other"),
    ]
    assert format_results(results, ContentTags()) == (
        "<past_chat>\nearlier message\n\nlater message\n</past_chat>\n\n"
        "<world_part>\nlore\n</world_part>\n\n"
        "<databank>\nfile text\n</databank>"
    )


def test_format_results_uses_configured_tags():
    tags = ContentTags(chat="history", file="docs", world_info="lore")
    assert format_results([_chunk("x", 1.0, "file")], tags) == "<docs>\nx\n</docs>"
    assert format_results([], tags) == ""


@pytest.mark.asyncio
async def test_two_tasks_inline_and_cached_are_merged(service, task_registry, cache, vector_client, injector):
    _add_tasks(task_registry, "a", "b")
    cache.put("chat-1_b", CachedCollection(timestamp=1, items=[
        Chunk(hash=11, text="cached high", index=0, metadata={"type": "chat", "index": 7}),
        Chunk(hash=12, text="cached low", index=1, metadata={"type": "chat", "index": 2}),
    ]))
    responses = {
        "chat-1_a": QueryResponse(items=[QueryResultItem(text="inline", score=0.8, metadata={"type": "chat", "index": 4})]),
        "chat-1_b": QueryResponse(hashes=[11, 12], metadata=[{"score": 0.9}, {"score": 0.3}]),
    }
    vector_client.do_query.side_effect = lambda collection_id, **kwargs: responses[collection_id]

    outcome = await service.rearrange_chat("chat-1", CHAT, macros={"char": "Alice"})

    assert outcome.state == RetrievalState.INJECTED
    assert [r.text for r in outcome.results] == ["cached high", "inline", "cached low"]
    assert [r.metadata["task_id"] for r in outcome.results] == ["b", "a", "b"]
    assert outcome.results[0].metadata["task_name"] == "Task b"
    injected = injector.get_extension_prompt(EXTENSION_PROMPT_TAG)
    assert "<past_chat>\ncached low\n\ninline\n\ncached high\n</past_chat>" in injected.text
    assert injected.text.startswith("<must_know>")
    assert vector_client.do_query.await_args.kwargs == {"search_text": "second\nthird\nfourth", "top_k": 10, "threshold": 0.25}


@pytest.mark.asyncio
async def test_master_off_clears_and_skips(service, settings_manager, task_registry, vector_client, injector):
    _add_tasks(task_registry, "a")
    settings_manager.update_settings({"master_enabled": False})

    outcome = await service.rearrange_chat("chat-1", CHAT)

    assert outcome.state == RetrievalState.SKIPPED
    assert injector.get_extension_prompt(EXTENSION_PROMPT_TAG) is None
    vector_client.do_query.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("chat_id, generation_type, patch, reason", [
    ("chat-1", "quiet", {}, "quiet generation"),
    ("chat-1", "normal", {"enabled": False}, "retrieval disabled"),
    (None, "normal", {}, "no active chat"),
    ("chat-2", "normal", {}, "no enabled tasks"),
])
async def test_gates_clear_injection(service, settings_manager, task_registry, vector_client, injector, chat_id, generation_type, patch, reason):
    _add_tasks(task_registry, "a")
    if patch:
        settings_manager.update_settings(patch)

    outcome = await service.rearrange_chat(chat_id, CHAT, generation_type=generation_type)

    assert outcome.reason == reason
    assert injector.get_extension_prompt(EXTENSION_PROMPT_TAG) is None
    vector_client.do_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_blank_query_skips(service, task_registry, vector_client):
    _add_tasks(task_registry, "a")
    outcome = await service.rearrange_chat("chat-1", [ChatMessage(mes="  "), ChatMessage(mes="")])
    assert outcome.reason == "empty query"
    vector_client.do_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_failing_task_is_isolated(service, task_registry, vector_client):
    _add_tasks(task_registry, "a", "b")

    def query(collection_id, **kwargs):
        if collection_id == "chat-1_a":
            raise NetworkError("down")
        return QueryResponse(items=[QueryResultItem(text="ok", score=0.5, metadata={"type": "file"})])

    vector_client.do_query.side_effect = query
    outcome = await service.rearrange_chat("chat-1", CHAT)

    assert outcome.state == RetrievalState.INJECTED
    assert outcome.failed_tasks == ["a"]
    assert [r.text for r in outcome.results] == ["ok"]


@pytest.mark.asyncio
async def test_malformed_scores_drop_only_that_task(service, task_registry, cache, vector_client, injector):
    _add_tasks(task_registry, "a", "b")
    cache.put("chat-1_a", CachedCollection(timestamp=1, items=[Chunk(hash=1, text="cached", index=0, metadata={"type": "chat"})]))
    responses = {
        "chat-1_a": QueryResponse(hashes=[1], metadata=[{"score": "n/a"}]),
        "chat-1_b": QueryResponse(items=[QueryResultItem(text="ok", score=0.5, metadata={"type": "file"})]),
    }
    vector_client.do_query.side_effect = lambda collection_id, **kwargs: responses[collection_id]

    with pytest.raises(NetworkError):
        service.recover_results("chat-1_a", VectorTask(task_id="a", name="Task a", timestamp=1), responses["chat-1_a"])

    outcome = await service.rearrange_chat("chat-1", CHAT)

    assert outcome.state == RetrievalState.INJECTED
    assert outcome.failed_tasks == ["a"]
    assert [r.text for r in outcome.results] == ["ok"]
    assert "stale context" not in injector.get_extension_prompt(EXTENSION_PROMPT_TAG).text


@pytest.mark.asyncio
async def test_unexpected_task_error_is_isolated(service, task_registry, vector_client):
    _add_tasks(task_registry, "a", "b")

    def query(collection_id, **kwargs):
        if collection_id == "chat-1_a":
            raise RuntimeError("boom")
        return QueryResponse(items=[QueryResultItem(text="ok", score=0.5, metadata={"type": "file"})])

    vector_client.do_query.side_effect = query
    outcome = await service.rearrange_chat("chat-1", CHAT)

    assert outcome.state == RetrievalState.INJECTED
    assert outcome.failed_tasks == ["a"]
    assert [r.text for r in outcome.results] == ["ok"]


@pytest.mark.asyncio
async def test_cache_miss_drops_task(service, task_registry, vector_client, injector):
    _add_tasks(task_registry, "a")
    vector_client.do_query.return_value = QueryResponse(hashes=[1], metadata=[{"score": 0.9}])

    outcome = await service.rearrange_chat("chat-1", CHAT)

    assert outcome.state == RetrievalState.SKIPPED
    assert outcome.failed_tasks == ["a"]
    assert injector.get_extension_prompt(EXTENSION_PROMPT_TAG) is None


@pytest.mark.asyncio
async def test_removed_task_does_not_serve_cached_text(service, task_registry, cache, vector_client):
    _add_tasks(task_registry, "a")
    cache.put("chat-1_a", CachedCollection(timestamp=1, items=[Chunk(hash=1, text="old", index=0, metadata={"type": "chat"})]))
    await task_registry.remove_task("chat-1", "a")
    vector_client.do_query.return_value = QueryResponse(hashes=[1], metadata=[{"score": 0.9}])

    task = VectorTask(task_id="a", name="again", timestamp=2)
    with pytest.raises(CacheMissError):
        service.recover_results("chat-1_a", task, vector_client.do_query.return_value)


@pytest.mark.asyncio
async def test_configuration_error_skips_turn(service, task_registry, vector_client):
    _add_tasks(task_registry, "a")
    vector_client.validate_source.side_effect = ConfigurationError("Ollama model not specified")
    outcome = await service.rearrange_chat("chat-1", CHAT)
    assert outcome.state == RetrievalState.SKIPPED
    vector_client.do_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_template_macros(service, settings_manager, task_registry, vector_client, injector):
    _add_tasks(task_registry, "a")
    settings_manager.update_settings({"template": "For {{char}}: {{text}}", "position": 1, "depth": 4})
    vector_client.do_query.return_value = QueryResponse(items=[QueryResultItem(text="hit", score=1.0, metadata={"type": "file"})])

    outcome = await service.rearrange_chat("chat-1", CHAT, macros={"char": "Alice"})

    assert outcome.injection.text == "For Alice: <databank>\nhit\n</databank>"
    assert outcome.injection.position == 1
    assert outcome.injection.depth == 4
