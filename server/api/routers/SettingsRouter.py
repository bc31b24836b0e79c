"""Settings router."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from shared.dependencies.auth import verify_api_key

settings_router = APIRouter(dependencies=[Depends(verify_api_key)], tags=["Settings"])


@settings_router.get("/settings")
async def handle_get_settings(request: Request) -> JSONResponse:
    settings = request.app.state.settings_manager.get_settings()
    return JSONResponse(content=settings.model_dump(mode="json"))


@settings_router.patch("/settings")
async def handle_update_settings(request: Request, patch: dict[str, Any] = Body(...)) -> JSONResponse:
    """Apply a nested partial update.

    Raises:
        HTTPException: 422 if the patched settings are invalid. Nothing is changed.
    """
    try:
        settings = request.app.state.settings_manager.update_settings(patch)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return JSONResponse(content=settings.model_dump(mode="json"))
