"""
test_game.py - Unit tests for GameEngine press arbitration.

Drives free and paid presses against in-memory SQLite with a fake clock:
acceptance, lazy settlement on read, the concurrent-press race, verifier
failures and payments that land after the round is over.
"""

import asyncio

import pytest

from button.errors import (
    LatePayment,
    PaymentFailed,
    PressConflict,
    PressRejected,
    RoundOver,
    TooLate,
)
from button.game import GameEngine
from button.rounds import RoundStatus

from fakes import FakeVerifier, current_round

pytestmark = pytest.mark.asyncio

FREE = 0.001
PAID = 0.00001


# ── Free presses ────────────────────────────────────────────────────────────

async def test_fresh_round_is_waiting(engine):
    state = await engine.get_state()
    assert state["round"] == 1
    assert state["status"] == RoundStatus.PENDING
    assert state["waiting"] is True
    assert state["started"] is False
    assert state["timer"] == 60.0
    assert state["pot"] == 0
    assert state["last_presser"] is None
    assert state["total_games"] == 1


async def test_press_then_press_resets_timer(engine, clock):
    first = await engine.press_free("alice")
    assert first["success"] is True
    assert first["press_count"] == 1
    assert first["flair"] == "Early Bird"

    state = await engine.get_state()
    assert state["started"] is True
    assert state["last_presser"] == "alice"
    assert state["timer"] == pytest.approx(60.0)

    clock.advance(30)
    second = await engine.press_free("bob")
    assert second["remaining_at_press"] == pytest.approx(30.0)
    # 30s left is on the lower edge of Moderate, so it lands in the tier below
    assert second["flair"] == "Risk Taker"

    state = await engine.get_state()
    assert state["timer"] == pytest.approx(60.0)
    assert state["last_presser"] == "bob"
    assert state["press_count"] == 2
    assert state["pot"] == pytest.approx(2 * FREE)
    assert state["player_count"] == 2


async def test_pending_round_never_expires(engine, clock):
    clock.advance(10_000)
    state = await engine.get_state()
    assert state["status"] == RoundStatus.PENDING
    assert state["timer"] == 60.0

    result = await engine.press_free("alice")
    assert result["success"] is True


async def test_missing_player_is_anonymous(engine, storage):
    await engine.press_free(None)
    await engine.press_free("   ")
    player = await storage.players.get("Anonymous")
    assert player["total_presses"] == 2


async def test_long_player_is_truncated(engine, storage):
    result = await engine.press_free("x" * 50)
    assert result["success"] is True
    rnd = await current_round(storage)
    assert rnd["last_presser"] == "x" * 20


# ── Settlement on read ──────────────────────────────────────────────────────

async def test_state_read_settles_expired_round_once(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(61)

    state = await engine.get_state()
    assert state["status"] == RoundStatus.SETTLED
    assert state["game_over"] is True
    assert state["winner"] == "alice"
    assert state["timer"] == 0.0

    for _ in range(3):
        await engine.get_state()

    alice = await storage.players.get("alice")
    assert alice["total_won"] == pytest.approx(FREE)
    assert await storage.settlements.count() == 1


async def test_press_after_expiry_is_too_late(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(60)

    with pytest.raises(TooLate) as exc:
        await engine.press_free("bob")
    assert exc.value.round_number == 1

    rnd = await current_round(storage)
    assert rnd["status"] == RoundStatus.SETTLED
    assert rnd["winner"] == "alice"
    assert rnd["press_count"] == 1
    assert await storage.players.get("bob") is None


async def test_press_on_settled_round_is_round_over(engine, clock):
    await engine.press_free("alice")
    clock.advance(61)
    await engine.get_state()

    with pytest.raises(RoundOver):
        await engine.press_free("bob")


async def test_peek_does_not_settle(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(61)
    view = await engine.peek()
    assert view["timer"] == 0.0
    assert view["game_over"] is False
    rnd = await current_round(storage)
    assert rnd["status"] == RoundStatus.OPEN


# ── Concurrency ─────────────────────────────────────────────────────────────

async def test_concurrent_presses_near_expiry_accept_exactly_one(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(59.9)

    results = await asyncio.gather(
        engine.press_free("bob"),
        engine.press_free("carol"),
        return_exceptions=True,
    )
    accepted = [r for r in results if isinstance(r, dict)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(accepted) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], PressConflict)

    rnd = await current_round(storage)
    assert rnd["press_count"] == 2
    assert rnd["last_presser"] in ("bob", "carol")
    assert rnd["pot"] == pytest.approx(2 * FREE)
    presses = await storage.presses.list_for_round(1)
    assert all(p["remaining_at_press"] > 0 for p in presses)
    assert await storage.settlements.count() == 0


async def test_concurrent_reads_settle_once(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(120)

    states = await asyncio.gather(*(engine.get_state() for _ in range(5)))
    assert all(s["winner"] == "alice" for s in states)
    assert await storage.settlements.count() == 1
    alice = await storage.players.get("alice")
    assert alice["total_won"] == pytest.approx(FREE)


async def test_ledger_matches_round_totals(engine, storage, clock):
    gaps = [0, 5, 12.5, 59, 0.25, 33, 47, 1, 58.9, 10]
    for i, gap in enumerate(gaps):
        clock.advance(gap)
        await engine.press_free(f"p{i % 3}")

    rnd = await current_round(storage)
    presses = await storage.presses.list_for_round(rnd["round_number"])
    assert rnd["press_count"] == len(presses) == len(gaps)
    assert rnd["pot"] == pytest.approx(sum(p["amount"] for p in presses))
    assert [p["seq"] for p in presses] == list(range(1, len(gaps) + 1))


# ── Paid presses ────────────────────────────────────────────────────────────

async def test_paid_press_records_txid(engine, storage, verifier):
    result = await engine.press_paid("carol", "deadbeef", wallet_address="SP123")
    assert result["success"] is True
    assert result["mode"] == "paid"
    assert result["tx_id"].startswith("0x")
    assert result["pot"] == pytest.approx(PAID)
    assert verifier.calls == ["deadbeef"]

    presses = await storage.presses.list_for_round(1)
    assert presses[0]["payment_txid"] == result["tx_id"]
    assert presses[0]["amount"] == pytest.approx(PAID)
    carol = await storage.players.get("carol")
    assert carol["wallet_address"] == "SP123"


async def test_paid_player_limit_is_longer(engine, storage):
    await engine.press_paid("y" * 60, "aa")
    rnd = await current_round(storage)
    assert rnd["last_presser"] == "y" * 42


async def test_rejected_payment_changes_nothing(engine, storage, clock, verifier):
    await engine.press_free("alice")
    before_round = await current_round(storage)
    before_alice = await storage.players.get("alice")

    verifier.ok = False
    verifier.reason = "BadNonce"
    clock.advance(5)
    with pytest.raises(PaymentFailed) as exc:
        await engine.press_paid("bob", "cafe")
    assert exc.value.reason == "BadNonce"

    assert await current_round(storage) == before_round
    assert await storage.players.get("alice") == before_alice
    assert await storage.players.get("bob") is None
    assert await storage.presses.count() == 1


async def test_unreachable_verifier_changes_nothing(engine, storage, verifier):
    verifier.unreachable = True
    with pytest.raises(PaymentFailed):
        await engine.press_paid("bob", "cafe")
    rnd = await current_round(storage)
    assert rnd["status"] == RoundStatus.PENDING
    assert rnd["press_count"] == 0


async def test_paid_press_on_over_round_skips_verifier(engine, clock, verifier):
    await engine.press_free("alice")
    clock.advance(61)
    with pytest.raises(PressRejected):
        await engine.press_paid("bob", "cafe")
    assert verifier.calls == []


async def test_payment_confirmed_after_expiry_is_late(engine, storage, clock, verifier):
    await engine.press_free("alice")
    clock.advance(50)
    verifier.on_verify = lambda: clock.advance(20)

    with pytest.raises(LatePayment) as exc:
        await engine.press_paid("bob", "cafe")
    assert exc.value.tx_id.startswith("0x")
    assert exc.value.round_number == 1

    rnd = await current_round(storage)
    assert rnd["status"] == RoundStatus.SETTLED
    assert rnd["winner"] == "alice"
    assert await storage.presses.count() == 1


async def test_reused_txid_is_refused(storage, settlement, config, clock):
    eng = GameEngine(storage, settlement, FakeVerifier(tx_id="0xabc"), config=config, clock=clock)
    await eng.setup()
    await eng.press_paid("carol", "aa")
    with pytest.raises(PaymentFailed):
        await eng.press_paid("dave", "aa")
    assert await storage.presses.count() == 1


async def test_payment_required_snapshot(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(15)
    body = await engine.payment_required()
    assert body["maxAmountRequired"] == "1000"
    assert body["nonce"]
    assert body["gameState"]["round"] == 1
    assert body["gameState"]["timer"] == pytest.approx(45.0)
    assert body["gameState"]["last_presser"] == "alice"
    assert body["gameState"]["game_over"] is False
    assert await storage.presses.count() == 1


# ── Reset ───────────────────────────────────────────────────────────────────

async def test_reset_forces_settlement(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(10)

    result = await engine.reset()
    assert result["success"] is True
    assert result["round"] == 2
    assert result["settled"]["winner"] == "alice"
    assert result["settled"]["forced"] is True

    alice = await storage.players.get("alice")
    assert alice["total_won"] == pytest.approx(FREE)
    state = await engine.get_state()
    assert state["round"] == 2
    assert state["status"] == RoundStatus.PENDING
    assert state["pot"] == 0


async def test_reset_after_settlement_does_not_credit_twice(engine, storage, clock):
    await engine.press_free("alice")
    clock.advance(61)
    await engine.get_state()

    result = await engine.reset()
    assert result["settled"] is None
    assert result["round"] == 2
    alice = await storage.players.get("alice")
    assert alice["total_won"] == pytest.approx(FREE)


async def test_reset_unpressed_round_has_no_winner(engine, storage):
    result = await engine.reset()
    assert result["settled"]["winner"] is None
    assert result["settled"]["pot"] == 0
    assert await storage.players.count() == 0


async def test_reset_during_verification_is_late_payment(engine, storage, verifier):
    await engine.press_free("alice")
    verifier.tx_id = "0xabc"
    real_verify = verifier.verify

    async def verify_across_reset(artifact):
        # operator reset lands while the payment is in flight
        await engine.reset()
        return await real_verify(artifact)

    verifier.verify = verify_across_reset

    with pytest.raises(LatePayment) as exc:
        await engine.press_paid("bob", "cafe")
    assert exc.value.tx_id == "0xabc"
    assert exc.value.round_number == 1

    rnd = await current_round(storage)
    assert rnd["round_number"] == 2
    assert rnd["status"] == RoundStatus.PENDING
    assert rnd["press_count"] == 0
    assert rnd["last_presser"] is None
    assert await storage.presses.count() == 1
    assert await storage.players.get("bob") is None


async def test_store_recovers_after_failed_commit(engine, storage, monkeypatch):
    real_commit = storage._db.commit
    failures = []

    async def commit_fails_once():
        if not failures:
            failures.append(1)
            raise RuntimeError("disk I/O error")
        await real_commit()

    monkeypatch.setattr(storage._db, "commit", commit_fails_once)

    with pytest.raises(RuntimeError):
        await engine.press_free("alice")
    assert (await current_round(storage))["press_count"] == 0

    result = await engine.press_free("bob")
    assert result["success"] is True
    assert result["press_count"] == 1
