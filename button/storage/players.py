import logging
from typing import List, Optional

import aiosqlite

logger = logging.getLogger("storage")

_COLUMNS = (
    "name, wallet_address, total_presses, total_spent, total_won, first_seen, last_seen"
)


def _row_to_dict(row) -> dict:
    return {
        "name": row[0],
        "wallet_address": row[1],
        "total_presses": row[2],
        "total_spent": row[3],
        "total_won": row[4],
        "first_seen": row[5],
        "last_seen": row[6],
    }


class PlayerRepo:
    """Per-player aggregates. Rows are created lazily and never deleted."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def upsert(self, name: str, now: float, wallet_address: Optional[str] = None):
        # A later NULL never replaces a known wallet, and the first wallet sticks.
        await self._db.execute(
            "INSERT INTO players (name, wallet_address, total_presses, total_spent, total_won, "
            "first_seen, last_seen) VALUES (?, ?, 0, 0.0, 0.0, ?, ?) "
            "ON CONFLICT(name) DO UPDATE SET last_seen = excluded.last_seen, "
            "wallet_address = COALESCE(players.wallet_address, excluded.wallet_address)",
            (name, wallet_address, now, now),
        )

    async def record_press(self, name: str, amount: float, now: float):
        await self._db.execute(
            "UPDATE players SET total_presses = total_presses + 1, "
            "total_spent = total_spent + ?, last_seen = ? WHERE name = ?",
            (amount, now, name),
        )

    async def credit_win(self, name: str, amount: float) -> bool:
        cursor = await self._db.execute(
            "UPDATE players SET total_won = total_won + ? WHERE name = ?",
            (amount, name),
        )
        if cursor.rowcount == 0:
            logger.warning("Winner %s has no player row, win of %.8f not credited", name, amount)
            return False
        return True

    async def get(self, name: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM players WHERE name = ?", (name,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def list_leaderboard(self, limit: int = 50) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM players "
            "ORDER BY total_presses DESC, total_won DESC, name ASC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM players") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
