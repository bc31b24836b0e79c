"""Event router: chat lifecycle and generation state reported by the host."""

from fastapi import APIRouter, Depends, Request

from server.api.models.requests import ChatEventRequest, GenerationRequest
from server.api.models.responses import ChatEventResponse, StatusResponse
from shared.dependencies.auth import verify_api_key

event_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Events"])


@event_router.post("/events/chat")
async def handle_chat_event(request: Request, body: ChatEventRequest) -> ChatEventResponse:
    """Message events schedule the automatic pass; delete events forget the chat's tasks."""
    state = request.app.state
    state.logging.debug("Chat event %s (chat=%s)", body.event, body.chat_id)
    handled = state.sync_service.handle_chat_event(body.event, chat_id=body.chat_id)
    return ChatEventResponse(event=body.event, handled=handled)


@event_router.post("/generation")
async def handle_generation(request: Request, body: GenerationRequest) -> StatusResponse:
    """Record whether the host is generating, so the automatic pass waits for it."""
    request.app.state.sync_gate.set_host_generating(body.active)
    return StatusResponse(status="ok")
