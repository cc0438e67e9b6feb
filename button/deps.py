"""Dependency helpers for router modules."""

import hmac

from fastapi import Header, HTTPException
from starlette.requests import Request


def get_server(request: Request):
    return request.app.state.server


def get_game(request: Request):
    return get_server(request).game


def get_leaderboard(request: Request):
    return get_server(request).leaderboard


async def require_admin(request: Request, x_admin_key: str = Header(default="")):
    """Gate operator endpoints when the server was started with an admin key."""
    expected = get_server(request).config.admin_key
    if not expected:
        return None
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Admin key required")
    return None


async def read_json_object(request: Request) -> dict:
    """Request body as a dict; a missing or malformed body reads as empty."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
