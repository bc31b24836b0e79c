"""Retrieval router: one call per generation turn."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.api.models.requests import RetrieveRequest
from shared.dependencies.auth import verify_api_key
from shared.models.retrieval import EXTENSION_PROMPT_TAG, RetrievalOutcome

retrieval_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Retrieval"])


@retrieval_router.post("/retrieve")
async def handle_retrieve(request: Request, body: RetrieveRequest) -> RetrievalOutcome:
    """Query the enabled tasks of the active chat and update the injected prompt.

    Backend failures never fail the call; the outcome lists the tasks that failed.
    """
    state = request.app.state
    source = state.session.get_content_source()
    chat = body.chat if body.chat is not None else source.get_chat_messages()
    return await state.retrieval_service.rearrange_chat(
        chat_id=source.get_chat_id(),
        chat=chat,
        generation_type=body.generation_type,
        macros=source.get_macro_values(),
    )


@retrieval_router.get("/injection")
async def handle_injection(request: Request, tag: str = EXTENSION_PROMPT_TAG) -> JSONResponse:
    """Return the prompt currently injected under a tag, or null when cleared."""
    injection = request.app.state.injector.get_extension_prompt(tag)
    return JSONResponse(content=injection.model_dump(mode="json") if injection else None)
