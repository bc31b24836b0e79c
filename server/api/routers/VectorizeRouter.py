"""Vectorize router: create a task from the current selection."""

from fastapi import APIRouter, Depends, Request

from server.api.models.responses import ProgressResponse
from shared.dependencies.auth import verify_api_key
from shared.models.task import VectorTask

vectorize_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Vectorize"])


@vectorize_router.post("/vectorize")
async def handle_vectorize(request: Request) -> VectorTask:
    """Vectorize the current selection of the active chat into a new task.

    Raises:
        StateError: Nothing selected or no active chat (400).
        ConfigurationError: Embedding source not configured (422).
        NetworkError: The backend rejected a batch; no task was created (502).
    """
    state = request.app.state
    return await state.vectorization_service.vectorize(state.session.get_content_source())


@vectorize_router.get("/progress")
async def handle_progress(request: Request) -> ProgressResponse:
    progress = request.app.state.vectorization_service.get_progress()
    return ProgressResponse(**progress.model_dump(), percent=progress.percent)
