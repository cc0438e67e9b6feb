"""
settlement.py - Settlement engine.

Closes a round whose countdown reached zero (or that an operator reset) and
credits the whole pot to the last presser. Settling is one atomic unit:
round status, winner credit and the settlement record commit together.

Settlement is idempotent. Every state read may race to settle the same
expired round, so a second attempt is a normal no-op that returns the
existing record.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, List, Optional

from button.rounds import is_expired

if TYPE_CHECKING:
    from button.storage import StorageManager

logger = logging.getLogger("settlement")


class SettlementEngine:
    """Settles expired rounds."""

    def __init__(self, storage: "StorageManager", clock: Callable[[], float] = time.time):
        self._storage = storage
        self._clock = clock

    async def settle(self, rnd: dict, now: float, forced: bool = False) -> Optional[dict]:
        """Settle ``rnd`` inside the caller's open transaction.

        ``rnd`` must have been read under that same transaction. Returns the
        settlement record, or the existing one if the round was already
        settled.
        """
        storage = self._storage
        round_number = rnd["round_number"]
        winner = rnd["last_presser"]

        if not await storage.rounds.mark_settled(round_number, winner, now):
            logger.debug("Round %d already settled", round_number)
            return await storage.settlements.get(round_number)

        pot = rnd["pot"]
        if winner and pot > 0:
            await storage.players.credit_win(winner, pot)

        record = await storage.settlements.create(
            round_number=round_number,
            winner=winner,
            pot=pot,
            press_count=rnd["press_count"],
            settled_at=now,
            forced=forced,
        )
        if winner:
            logger.info(
                "Settled round %d: winner=%s pot=%.8f presses=%d%s",
                round_number, winner, pot, rnd["press_count"], " (forced)" if forced else "",
            )
        else:
            logger.info("Settled round %d with no presses%s", round_number, " (forced)" if forced else "")
        return record

    async def force_settle(self, rnd: dict, now: float) -> Optional[dict]:
        """Operator settlement of ``rnd`` regardless of its countdown.

        Runs inside the caller's transaction. Only a round whose countdown
        had not yet run out is recorded as forced.
        """
        return await self.settle(rnd, now, forced=not is_expired(rnd, now))

    async def settle_if_expired(self) -> Optional[dict]:
        """Settle the current round if its countdown has run out.

        Returns the new settlement record, or None when there was nothing
        to settle (round pending, still running, or already settled).
        """
        async with self._storage.snapshot():
            rnd = await self._storage.rounds.get_current()
        if rnd is None or not is_expired(rnd, self._clock()):
            return None

        async with self._storage.transaction():
            # Re-read under the lock: another observer may have settled it already.
            rnd = await self._storage.rounds.get_current()
            now = self._clock()
            if rnd is None or not is_expired(rnd, now):
                return None
            return await self.settle(rnd, now)

    async def get_settlement(self, round_number: int) -> Optional[dict]:
        async with self._storage.snapshot():
            return await self._storage.settlements.get(round_number)

    async def list_settlements(self, limit: Optional[int] = None, offset: int = 0) -> List[dict]:
        async with self._storage.snapshot():
            return await self._storage.settlements.list_all(limit=limit, offset=offset)
