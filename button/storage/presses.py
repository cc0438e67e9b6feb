from typing import List, Optional

import aiosqlite

_COLUMNS = (
    "id, round_number, seq, player, pressed_at, remaining_at_press, "
    "amount, mode, payment_txid, color, flair"
)


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "round_number": row[1],
        "seq": row[2],
        "player": row[3],
        "pressed_at": row[4],
        "remaining_at_press": round(row[5], 3),
        "amount": row[6],
        "mode": row[7],
        "payment_txid": row[8],
        "color": row[9],
        "flair": row[10],
    }


class PressRepo:
    """Append-only press ledger. Rows are never updated or deleted."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def append(
        self,
        round_number: int,
        seq: int,
        player: str,
        pressed_at: float,
        remaining_at_press: float,
        amount: float,
        mode: str,
        color: str,
        flair: str,
        payment_txid: Optional[str] = None,
    ) -> dict:
        cursor = await self._db.execute(
            "INSERT INTO presses (round_number, seq, player, pressed_at, remaining_at_press, "
            "amount, mode, payment_txid, color, flair) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (round_number, seq, player, pressed_at, remaining_at_press,
             amount, mode, payment_txid, color, flair),
        )
        return {
            "id": cursor.lastrowid,
            "round_number": round_number,
            "seq": seq,
            "player": player,
            "pressed_at": pressed_at,
            "remaining_at_press": round(remaining_at_press, 3),
            "amount": amount,
            "mode": mode,
            "payment_txid": payment_txid,
            "color": color,
            "flair": flair,
        }

    async def list_recent(self, limit: int = 50) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM presses ORDER BY pressed_at DESC, id DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def list_for_round(self, round_number: int) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM presses WHERE round_number = ? ORDER BY seq",
            (round_number,),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def has_txid(self, payment_txid: str) -> bool:
        async with self._db.execute(
            "SELECT 1 FROM presses WHERE payment_txid = ? LIMIT 1", (payment_txid,),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def count_players_in_round(self, round_number: int) -> int:
        async with self._db.execute(
            "SELECT COUNT(DISTINCT player) FROM presses WHERE round_number = ?",
            (round_number,),
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def count(self, round_number: Optional[int] = None) -> int:
        if round_number is None:
            query, params = "SELECT COUNT(*) FROM presses", ()
        else:
            query, params = "SELECT COUNT(*) FROM presses WHERE round_number = ?", (round_number,)
        async with self._db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
