"""FastAPI authentication dependency for the host-facing API."""

import secrets

from fastapi import HTTPException, Request

API_KEY_HEADER = "X-API-Key"


async def verify_api_key(request: Request) -> None:
    """Check the shared secret the chat host sends with every call.

    The key comes from the X-API-Key header and is compared against
    APP_API_KEY in constant time.

    Args:
        request (Request): The incoming FastAPI request.

    Raises:
        HTTPException: 500 if APP_API_KEY is not configured, 401 if the key is missing or wrong.
    """
    config = request.app.state.config
    expected_key = config.get_string_val("APP_API_KEY", default="")
    if not expected_key:
        request.app.state.logging.error("APP_API_KEY is not set, rejecting request to %s", request.url.path)
        raise HTTPException(status_code=500, detail="API key not configured on the server.")

    provided_key = request.headers.get(API_KEY_HEADER, "")
    if not provided_key or not secrets.compare_digest(provided_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
