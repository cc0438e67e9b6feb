"""Agent router: /api/agent, one-call summary for automated players."""

from fastapi import APIRouter
from starlette.requests import Request

from button.deps import get_game, get_leaderboard
from button.tiers import describe_tiers

router = APIRouter()

AGENT_LEADERBOARD_SLICE = 10
AGENT_RECENT_PRESSES = 5

STRATEGY_HINTS = [
    "Press early to reset and be safe",
    "Press late for better flair colors and bragging rights",
    "Watch the timer - if no one presses, you win the pot",
    "Check the leaderboard to see top players",
    "Consider the risk vs reward based on current pot size",
]


@router.get("/api/agent")
async def agent_summary(request: Request):
    game = get_game(request)
    projections = get_leaderboard(request)
    config = game.config

    state = await game.get_state()
    leaderboard = await projections.leaderboard(AGENT_LEADERBOARD_SLICE)
    recent = await projections.history(AGENT_RECENT_PRESSES)

    return {
        "description": "The Button - Press to reset the timer. When it hits 0, last presser wins the pot.",
        "timer": state["timer"],
        "pot": state["pot"],
        "last_presser": state["last_presser"],
        "press_count": state["press_count"],
        "round": state["round"],
        "game_over": state["game_over"],
        "winner": state["winner"],
        "leaderboard": leaderboard,
        "recent_presses": recent,
        "actions": {
            "press_free": {
                "method": "POST",
                "endpoint": "/api/press",
                "body": {"player": "your-identifier"},
                "cost": f"{config.free_press_cost:g} {config.asset} equivalent (simulated)",
            },
            "press_paid": {
                "method": "POST",
                "endpoint": "/api/press-sbtc",
                "headers": {"X-PAYMENT": "signed-transaction-hex"},
                "body": {"player": "your-identifier", "walletAddress": "optional"},
                "cost": f"{config.paid_press_sats} sats real {config.asset}",
            },
            "state": {"method": "GET", "endpoint": "/api/state"},
            "reset": {"method": "POST", "endpoint": "/api/reset",
                      "note": "settles the current round and starts the next"},
        },
        "strategy_hints": STRATEGY_HINTS,
        "flair_system": describe_tiers(config.budget_sec),
    }
