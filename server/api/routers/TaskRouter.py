"""Task router: list, toggle and remove the vector tasks of the active chat."""

from fastapi import APIRouter, Depends, Request

from server.api.models.requests import TaskUpdateRequest
from server.api.models.responses import StatusResponse, TaskListResponse
from shared.dependencies.auth import verify_api_key
from shared.errors import StateError
from shared.models.task import VectorTask

task_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Tasks"])


def _require_chat_id(request: Request) -> str:
    chat_id = request.app.state.session.get_chat_id()
    if not chat_id:
        raise StateError("No active chat.")
    return chat_id


@task_router.get("/tasks")
async def handle_list_tasks(request: Request) -> TaskListResponse:
    session = request.app.state.session
    chat_id = session.get_chat_id()
    tasks = request.app.state.task_registry.get_task_views(chat_id) if chat_id else []
    return TaskListResponse(chat_id=chat_id, tasks=tasks, message_count=len(session.get_context().chat))


@task_router.patch("/tasks/{task_id}")
async def handle_update_task(request: Request, task_id: str, body: TaskUpdateRequest) -> VectorTask:
    """Enable or disable a task for retrieval.

    Raises:
        StateError: No active chat or unknown task (400).
    """
    return request.app.state.task_registry.set_enabled(_require_chat_id(request), task_id, body.enabled)


@task_router.delete("/tasks/{task_id}")
async def handle_delete_task(request: Request, task_id: str) -> StatusResponse:
    """Purge a task's collection and remove the task.

    Raises:
        StateError: No active chat or unknown task (400).
        NetworkError: The purge failed; the task is kept (502).
    """
    await request.app.state.task_registry.remove_task(_require_chat_id(request), task_id)
    return StatusResponse(status="ok")


@task_router.post("/purge")
async def handle_purge_chat(request: Request) -> StatusResponse:
    """Purge the chat-level collection of the active chat."""
    chat_id = _require_chat_id(request)
    await request.app.state.task_registry.purge_chat_vectors(chat_id)
    return StatusResponse(status="ok", detail=f"Purged vectors of chat {chat_id}.")
