"""Admin router: /, /health, /api/reset."""

from fastapi import APIRouter, Depends
from starlette.requests import Request

from button.deps import get_game, get_server, require_admin

router = APIRouter()


@router.get("/")
async def root(request: Request):
    srv = get_server(request)
    return {
        "service": "The Button",
        "api_port": srv.port,
        "budget_sec": srv.config.budget_sec,
        "agent_api": "/api/agent",
    }


@router.get("/health")
async def health(request: Request):
    srv = get_server(request)
    view = await srv.game.peek()
    return {
        "status": "button ready",
        "round": view["round"],
        "db_connected": srv.storage is not None and srv.storage.connected,
        "game_over": view["game_over"],
    }


@router.post("/api/reset", dependencies=[Depends(require_admin)])
async def reset(request: Request):
    return await get_game(request).reset()
