"""
Game exceptions.

Routers catch these and turn them into user-visible failures; anything else
(storage errors in particular) propagates as a server error.
"""

from typing import Optional


class ButtonError(Exception):
    """Base class for all game failures."""

    code = "error"


# ============ Press rejected by the round state machine ============

class PressRejected(ButtonError):
    """The round would not accept the press. Local state is untouched."""

    code = "rejected"

    def __init__(self, message: str, round_number: Optional[int] = None):
        self.round_number = round_number
        super().__init__(message)


class RoundOver(PressRejected):
    """The round is already settled."""

    code = "round_over"

    def __init__(self, round_number: Optional[int] = None):
        super().__init__("Game over! Start a new round.", round_number)


class TooLate(PressRejected):
    """The countdown had reached zero when the press was evaluated."""

    code = "too_late"

    def __init__(self, round_number: Optional[int] = None):
        super().__init__("Too late! Game over.", round_number)


class PressConflict(PressRejected):
    """Another press was accepted after this one observed the round."""

    code = "conflict"

    def __init__(self, round_number: Optional[int] = None):
        super().__init__("Someone pressed first! Check the timer and try again.", round_number)


# ============ Paid press failures ============

class PaymentFailed(ButtonError):
    """The verifier rejected the payment or could not be reached."""

    code = "payment_failed"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Payment failed: {reason}")


class LatePayment(ButtonError):
    """Payment verified, but the round was over before the press could land.

    The payment is captured with no game credit. Nothing reconciles it
    automatically; the transaction id is returned so the payer can follow up.
    """

    code = "late_payment"

    def __init__(self, tx_id: str, round_number: Optional[int] = None):
        self.tx_id = tx_id
        self.round_number = round_number
        super().__init__(
            f"Payment {tx_id} was captured but round {round_number} ended before the press was recorded"
        )
