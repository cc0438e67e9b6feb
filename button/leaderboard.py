"""
leaderboard.py - Read-side projections: leaderboard and press history.

Profit and ROI are derived on every read and never stored.
"""

from typing import TYPE_CHECKING, List, Optional

from button.config import GameConfig

if TYPE_CHECKING:
    from button.storage import StorageManager


def _leaderboard_row(player: dict) -> dict:
    spent = player["total_spent"]
    won = player["total_won"]
    return {
        "name": player["name"],
        "total_presses": player["total_presses"],
        "total_spent": round(spent, 8),
        "total_won": round(won, 8),
        "net_profit": round(won - spent, 8),
        "roi": round(won / spent, 4) if spent > 0 else 0,
    }


class LeaderboardService:
    def __init__(self, storage: "StorageManager", config: Optional[GameConfig] = None):
        self._storage = storage
        self._config = config or GameConfig()

    def _clamp(self, limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        return max(1, min(int(limit), self._config.max_history_limit))

    async def leaderboard(self, limit: Optional[int] = None) -> List[dict]:
        limit = self._clamp(limit, self._config.leaderboard_limit)
        async with self._storage.snapshot():
            players = await self._storage.players.list_leaderboard(limit)
        return [_leaderboard_row(p) for p in players]

    async def history(self, limit: Optional[int] = None) -> List[dict]:
        """Most recent presses across rounds, newest first."""
        limit = self._clamp(limit, self._config.history_limit)
        async with self._storage.snapshot():
            presses = await self._storage.presses.list_recent(limit)
        return [
            {
                "round": p["round_number"],
                "seq": p["seq"],
                "player": p["player"],
                "pressed_at": p["pressed_at"],
                "timer_at": p["remaining_at_press"],
                "color": p["color"],
                "flair": p["flair"],
                "mode": p["mode"],
                "amount": p["amount"],
                "payment_txid": p["payment_txid"],
            }
            for p in presses
        ]
