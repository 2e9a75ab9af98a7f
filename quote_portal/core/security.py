from fastapi import Header, HTTPException

from quote_portal.core.config import get_settings

API_KEY_HEADER_NAME = "X-API-Key"


def api_key_auth(x_api_key: str | None = Header(default=None)) -> None:
    """Staff/admin routes only. Customer routes authenticate by magic token."""
    if x_api_key != get_settings().API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
