from typing import List, Optional

import aiosqlite

_COLUMNS = "round_number, winner, pot, press_count, forced, settled_at"


def _row_to_dict(row) -> dict:
    return {
        "round_number": row[0],
        "winner": row[1],
        "pot": round(row[2], 8),
        "press_count": row[3],
        "forced": bool(row[4]),
        "settled_at": row[5],
    }


class SettlementRepo:
    """Queries for the settlements table (one row per settled round)."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(
        self,
        round_number: int,
        winner: Optional[str],
        pot: float,
        press_count: int,
        settled_at: float,
        forced: bool = False,
    ) -> dict:
        await self._db.execute(
            "INSERT INTO settlements (round_number, winner, pot, press_count, forced, settled_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (round_number, winner, pot, press_count, int(forced), settled_at),
        )
        return {
            "round_number": round_number,
            "winner": winner,
            "pot": round(pot, 8),
            "press_count": press_count,
            "forced": forced,
            "settled_at": settled_at,
        }

    async def get(self, round_number: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM settlements WHERE round_number = ?",
            (round_number,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[dict]:
        results = []
        query = f"SELECT {_COLUMNS} FROM settlements ORDER BY round_number DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = (limit, offset)
        async with self._db.execute(query, params) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM settlements") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
