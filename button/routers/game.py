"""Game router: /api/state, /api/press, /api/leaderboard, /api/history, /api/settlements."""

from typing import Optional

from fastapi import APIRouter
from starlette.requests import Request

from button.deps import get_game, get_leaderboard, get_server, read_json_object
from button.errors import PressRejected
from button.models import PressRequest

router = APIRouter()


@router.get("/api/state")
async def game_state(request: Request):
    # May settle an expired round before answering.
    return await get_game(request).get_state()


@router.post("/api/press")
async def press(request: Request):
    game = get_game(request)
    # A bad or missing body means "Anonymous".
    req = PressRequest.model_validate(await read_json_object(request))
    try:
        return await game.press_free(req.player)
    except PressRejected as e:
        return {"success": False, "error": str(e), "code": e.code, "round": e.round_number}


@router.get("/api/leaderboard")
async def leaderboard(request: Request, limit: Optional[int] = None):
    return {"leaderboard": await get_leaderboard(request).leaderboard(limit)}


@router.get("/api/history")
async def history(request: Request, limit: Optional[int] = None):
    return {"history": await get_leaderboard(request).history(limit)}


@router.get("/api/settlements")
async def settlements(request: Request, limit: int = 50, offset: int = 0):
    srv = get_server(request)
    limit = max(1, min(limit, srv.config.max_history_limit))
    offset = max(0, offset)
    items = await srv.settlement.list_settlements(limit=limit, offset=offset)
    total = await srv.storage.settlements.count()
    return {"items": items, "total": total, "limit": limit, "offset": offset}
