"""
rounds.py - Round lifecycle: status, countdown arithmetic, round factory.

    PENDING --press--> OPEN --press--> OPEN
                        \\--expiry/reset--> SETTLED (terminal)

The countdown is derived from persisted fields only, so two reads of the
same row at the same instant always agree.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from button.storage import RoundRepo

logger = logging.getLogger("rounds")


class RoundStatus(str, Enum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    SETTLED = "SETTLED"


def remaining_time(rnd: dict, now: float) -> float:
    """Seconds left on the countdown of ``rnd`` at ``now``."""
    status = rnd["status"]
    if status == RoundStatus.PENDING:
        return float(rnd["budget_sec"])
    if status == RoundStatus.SETTLED:
        return 0.0
    elapsed = now - rnd["last_press_at"]
    return max(0.0, rnd["budget_sec"] - elapsed)


def is_expired(rnd: dict, now: float) -> bool:
    """True for an OPEN round whose countdown has reached zero."""
    return rnd["status"] == RoundStatus.OPEN and remaining_time(rnd, now) <= 0


class RoundFactory:
    """Creates round records. Only ever called once the previous round is SETTLED."""

    def __init__(self, round_repo: "RoundRepo", budget_sec: float):
        self._rounds = round_repo
        self._budget = budget_sec

    async def ensure_first_round(self, now: float) -> dict:
        """Create round 1 on an empty store. Run inside a transaction."""
        current = await self._rounds.get_current()
        if current is not None:
            return current
        rnd = await self._rounds.create(1, self._budget, now)
        logger.info("Created first round (budget=%.1fs)", self._budget)
        return rnd

    async def next_round(self, previous: Optional[dict], now: float) -> dict:
        """Create the round after ``previous``. Run inside a transaction."""
        if previous is not None and previous["status"] != RoundStatus.SETTLED:
            raise RuntimeError(
                f"Round {previous['round_number']} is {previous['status']}, settle it first"
            )
        number = previous["round_number"] + 1 if previous else 1
        rnd = await self._rounds.create(number, self._budget, now)
        logger.info("Created round %d", number)
        return rnd
