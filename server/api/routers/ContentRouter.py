"""Content router: the pushed chat context and the read-only views over it."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from server.api.models.responses import StatusResponse
from shared.content.ContentViews import build_export_filename, build_export_text, build_preview, list_hidden_messages
from shared.dependencies.auth import verify_api_key
from shared.errors import StateError
from shared.models.content import HostContext

content_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Content"])


@content_router.put("/context")
async def handle_set_context(request: Request, body: HostContext) -> StatusResponse:
    """Replace the active chat context with the snapshot pushed by the host."""
    request.app.state.session.set_context(body)
    request.app.state.logging.debug(
        "Context updated: chat=%s messages=%d world_info=%d", body.chat_id, len(body.chat), len(body.world_info)
    )
    return StatusResponse(status="ok")


@content_router.get("/preview")
async def handle_preview(request: Request) -> JSONResponse:
    """Show what a vectorization would collect right now, with tag-filter statistics.

    Raises:
        StateError: If nothing is selected (400).
    """
    state = request.app.state
    settings = state.settings_manager.get_settings()
    report = await state.collector.collect_with_report(settings, state.session.get_content_source())
    if not report.items:
        raise StateError("No content selected for preview.")
    return JSONResponse(content=build_preview(report, settings).model_dump(mode="json"))


@content_router.get("/export")
async def handle_export(request: Request) -> PlainTextResponse:
    """Download the collected content as a plain-text document.

    Raises:
        StateError: If no chat is active or nothing is selected (400).
    """
    state = request.app.state
    source = state.session.get_content_source()
    chat_id = source.get_chat_id()
    if not chat_id:
        raise StateError("No active chat.")
    items = await state.collector.collect(state.settings_manager.get_settings(), source)
    if not items:
        raise StateError("No content selected for export.")

    now = state.config.get_now()
    filename = build_export_filename(source.get_character_name(), chat_id, now)
    return PlainTextResponse(
        content=build_export_text(items, source.get_character_name(), now),
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@content_router.get("/hidden")
async def handle_hidden(request: Request) -> JSONResponse:
    """List the hidden messages of the active chat."""
    hidden = list_hidden_messages(request.app.state.session.get_context().chat)
    return JSONResponse(content=[h.model_dump() for h in hidden])
