import time
from typing import Optional

import aiosqlite

_COLUMNS = (
    "round_number, status, budget_sec, pot, press_count, started_at, "
    "last_press_at, last_presser, winner, created_at, settled_at"
)


def _row_to_dict(row) -> dict:
    return {
        "round_number": row[0],
        "status": row[1],
        "budget_sec": row[2],
        "pot": row[3],
        "press_count": row[4],
        "started_at": row[5],
        "last_press_at": row[6],
        "last_presser": row[7],
        "winner": row[8],
        "created_at": row[9],
        "settled_at": row[10],
    }


class RoundRepo:
    """Queries for the rounds table.

    Write methods never commit: they are meant to run inside
    ``StorageManager.transaction()`` so the round row, the press ledger and
    the player aggregates change together or not at all.
    """

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get(self, round_number: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM rounds WHERE round_number = ?",
            (round_number,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def get_current(self) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM rounds ORDER BY round_number DESC LIMIT 1"
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def create(self, round_number: int, budget_sec: float, now: Optional[float] = None) -> dict:
        now = time.time() if now is None else now
        await self._db.execute(
            "INSERT INTO rounds (round_number, status, budget_sec, pot, press_count, created_at) "
            "VALUES (?, 'PENDING', ?, 0.0, 0, ?)",
            (round_number, budget_sec, now),
        )
        return await self.get(round_number)

    async def apply_press(
        self,
        round_number: int,
        expected_press_count: int,
        presser: str,
        amount: float,
        now: float,
    ) -> bool:
        """Compare-and-swap the round forward by one accepted press.

        Returns False when the round was settled or another press landed
        since ``expected_press_count`` was read.
        """
        cursor = await self._db.execute(
            "UPDATE rounds SET status = 'OPEN', "
            "started_at = COALESCE(started_at, ?), "
            "last_press_at = ?, last_presser = ?, "
            "pot = pot + ?, press_count = press_count + 1 "
            "WHERE round_number = ? AND status != 'SETTLED' AND press_count = ?",
            (now, now, presser, amount, round_number, expected_press_count),
        )
        return cursor.rowcount == 1

    async def mark_settled(self, round_number: int, winner: Optional[str], now: float) -> bool:
        """Move a round to SETTLED. Returns False if it already was."""
        cursor = await self._db.execute(
            "UPDATE rounds SET status = 'SETTLED', winner = ?, settled_at = ? "
            "WHERE round_number = ? AND status != 'SETTLED'",
            (winner, now, round_number),
        )
        return cursor.rowcount == 1

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM rounds") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
