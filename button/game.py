"""
game.py - Press arbitration engine.

Decides, for every incoming press, whether it lands on the current round:

 - free presses pay a fixed simulated cost into the pot;
 - paid presses must first be confirmed by the payment verifier, and only
   then touch local state.

An accepted press updates the round row, appends to the press ledger and
bumps the presser's aggregates in one store transaction. Any accessor that
sees an expired round settles it on the spot (there is no background
timer), so reads of the game state may write. That side effect is part of
the contract of ``get_state``.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from button.config import MAX_FREE_PLAYER_LEN, MAX_PAID_PLAYER_LEN, GameConfig
from button.errors import (
    ButtonError,
    LatePayment,
    PaymentFailed,
    PressConflict,
    RoundOver,
    TooLate,
)
from button.models import clean_player, clean_wallet
from button.payment import PaymentVerifier, payment_required
from button.rounds import RoundFactory, RoundStatus, is_expired, remaining_time
from button.tiers import tier_for

if TYPE_CHECKING:
    from button.settlement import SettlementEngine
    from button.storage import StorageManager

logger = logging.getLogger("game")

MODE_FREE = "free"
MODE_PAID = "paid"


class GameEngine:
    """Round state machine front door: state reads, presses, resets."""

    def __init__(
        self,
        storage: "StorageManager",
        settlement: "SettlementEngine",
        verifier: PaymentVerifier,
        config: Optional[GameConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self._settlement = settlement
        self._verifier = verifier
        self.config = config or GameConfig()
        self._clock = clock
        self._factory = RoundFactory(storage.rounds, self.config.budget_sec)

    async def setup(self):
        """Create round 1 on an empty store."""
        async with self._storage.transaction():
            await self._factory.ensure_first_round(self._clock())

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    async def get_state(self) -> dict:
        """Current round snapshot. Settles the round first if it expired."""
        await self._settlement.settle_if_expired()
        storage = self._storage
        async with storage.snapshot():
            rnd = await storage.rounds.get_current()
            player_count = await storage.presses.count_players_in_round(rnd["round_number"])
            total_players = await storage.players.count()
            total_games = await storage.rounds.count()
        now = self._clock()
        state = self._round_view(rnd, now)
        state.update({
            "player_count": player_count,
            "total_players": total_players,
            "total_games": total_games,
        })
        return state

    async def peek(self) -> dict:
        """Round snapshot without the settlement side effect."""
        async with self._storage.snapshot():
            rnd = await self._storage.rounds.get_current()
        return self._round_view(rnd, self._clock())

    def _round_view(self, rnd: dict, now: float) -> dict:
        status = rnd["status"]
        settled = status == RoundStatus.SETTLED
        return {
            "round": rnd["round_number"],
            "status": status,
            "timer": remaining_time(rnd, now),
            "budget": rnd["budget_sec"],
            "started": status != RoundStatus.PENDING,
            "waiting": status == RoundStatus.PENDING,
            "last_presser": rnd["last_presser"],
            "pot": rnd["pot"],
            "press_count": rnd["press_count"],
            "started_at": rnd["started_at"],
            "last_press_at": rnd["last_press_at"],
            "game_over": settled,
            "winner": rnd["winner"] if settled else None,
        }

    async def payment_required(self) -> dict:
        """402 body for a paid press that arrived without a payment."""
        view = await self.peek()
        game_state = {
            "timer": view["timer"],
            "pot": view["pot"],
            "round": view["round"],
            "last_presser": view["last_presser"],
            "game_over": view["game_over"] or (view["started"] and view["timer"] <= 0),
        }
        return payment_required(self.config, game_state, self._clock())

    # -------------------------------------------------------------------
    # Presses
    # -------------------------------------------------------------------

    async def press_free(self, player: Optional[str]) -> dict:
        """Press for free; the simulated cost always goes into the pot."""
        player = clean_player(player, MAX_FREE_PLAYER_LEN)
        observed = await self._observe()
        error, result = await self._commit_press(
            player, amount=self.config.free_press_cost, mode=MODE_FREE, observed=observed,
        )
        if error is not None:
            raise error
        return result

    async def press_paid(
        self, player: Optional[str], artifact: str, wallet_address: Optional[str] = None,
    ) -> dict:
        """Press with a signed payment.

        The verifier is called once, and only after the round looked
        pressable. No local state changes until it confirms.
        """
        player = clean_player(player, MAX_PAID_PLAYER_LEN)
        wallet_address = clean_wallet(wallet_address)
        observed = await self._observe()

        receipt = await self._verifier.verify(artifact)
        if not receipt.ok:
            logger.warning("Paid press by %s rejected by verifier: %s", player, receipt.reason)
            raise PaymentFailed(receipt.reason or "rejected")

        error, result = await self._commit_press(
            player,
            amount=self.config.paid_press_amount,
            mode=MODE_PAID,
            round_number=observed["round_number"],
            wallet_address=wallet_address,
            tx_id=receipt.tx_id,
        )
        if isinstance(error, (RoundOver, TooLate)):
            logger.warning(
                "Payment %s from %s captured after round %s ended; no press recorded",
                receipt.tx_id, player, error.round_number,
            )
            raise LatePayment(receipt.tx_id, error.round_number)
        if error is not None:
            raise error
        return result

    async def _observe(self) -> dict:
        """Snapshot the current round and reject early if it cannot take a press."""
        async with self._storage.snapshot():
            rnd = await self._storage.rounds.get_current()
        if rnd["status"] == RoundStatus.SETTLED:
            raise RoundOver(rnd["round_number"])
        if is_expired(rnd, self._clock()):
            await self._settlement.settle_if_expired()
            raise TooLate(rnd["round_number"])
        return rnd

    async def _commit_press(
        self,
        player: str,
        amount: float,
        mode: str,
        observed: Optional[dict] = None,
        round_number: Optional[int] = None,
        wallet_address: Optional[str] = None,
        tx_id: Optional[str] = None,
    ) -> Tuple[Optional[ButtonError], Optional[dict]]:
        """Evaluate and record one press atomically.

        With ``observed`` set, the press only lands if no other press was
        accepted since that snapshot. With ``round_number`` set, the press
        only lands on that round. Rejections are returned rather than
        raised so a settlement performed in the same transaction commits.
        """
        storage = self._storage
        async with storage.transaction():
            now = self._clock()
            rnd = await storage.rounds.get_current()
            if observed is not None:
                round_number = observed["round_number"]
            if round_number is not None and rnd["round_number"] != round_number:
                return RoundOver(round_number), None
            round_number = rnd["round_number"]

            if rnd["status"] == RoundStatus.SETTLED:
                return RoundOver(round_number), None
            if is_expired(rnd, now):
                await self._settlement.settle(rnd, now)
                return TooLate(round_number), None
            if observed is not None and observed["press_count"] != rnd["press_count"]:
                return PressConflict(round_number), None

            if tx_id is not None and await storage.presses.has_txid(tx_id):
                return PaymentFailed("transaction already used for a press"), None

            remaining = remaining_time(rnd, now)
            if not await storage.rounds.apply_press(round_number, rnd["press_count"], player, amount, now):
                return PressConflict(round_number), None

            tier = tier_for(remaining, rnd["budget_sec"])
            seq = rnd["press_count"] + 1
            await storage.players.upsert(player, now, wallet_address)
            await storage.players.record_press(player, amount, now)
            await storage.presses.append(
                round_number=round_number,
                seq=seq,
                player=player,
                pressed_at=now,
                remaining_at_press=remaining,
                amount=amount,
                mode=mode,
                color=tier.color,
                flair=tier.flair,
                payment_txid=tx_id,
            )

        logger.info(
            "Round %d press #%d by %s (%s, %.2fs left, %s)",
            round_number, seq, player, mode, remaining, tier.flair,
        )
        result = {
            "success": True,
            "mode": mode,
            "round": round_number,
            "timer": rnd["budget_sec"],
            "remaining_at_press": remaining,
            "color": tier.color,
            "flair": tier.flair,
            "pot": rnd["pot"] + amount,
            "press_count": seq,
        }
        if tx_id is not None:
            result["tx_id"] = tx_id
        return None, result

    # -------------------------------------------------------------------
    # Operator reset
    # -------------------------------------------------------------------

    async def reset(self) -> dict:
        """Force-settle the current round (unless settled) and open the next one."""
        storage = self._storage
        async with storage.transaction():
            now = self._clock()
            rnd = await storage.rounds.get_current()
            settlement = None
            if rnd["status"] != RoundStatus.SETTLED:
                settlement = await self._settlement.force_settle(rnd, now)
                rnd = await storage.rounds.get(rnd["round_number"])
            new_round = await self._factory.next_round(rnd, now)
        logger.info("Reset: round %d -> %d", rnd["round_number"], new_round["round_number"])
        return {
            "success": True,
            "round": new_round["round_number"],
            "settled": settlement,
        }
