"""
payment.py - Paid-press payment handling.

The game never holds keys or signs anything. A paid press carries an
already-signed sBTC transfer (hex) in the ``X-PAYMENT`` header; the verifier
broadcasts it and trusts the node's yes/no answer plus the returned txid.

Also builds the x402-style documents a payer needs before paying: the
discovery description, the 402 "payment required" body, and the
``/.well-known/x402.json`` listing.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import requests

from button.errors import PaymentFailed

if TYPE_CHECKING:
    from button.config import GameConfig

logger = logging.getLogger("payment")

PAID_PRESS_RESOURCE = "/api/press-sbtc"
MAX_REASON_LEN = 200
USER_AGENT = "the-button/1.0"


@dataclass
class PaymentReceipt:
    ok: bool
    tx_id: Optional[str] = None
    reason: str = ""


class PaymentVerifier:
    """Interface: verify (broadcast) a signed payment artifact."""

    async def verify(self, artifact: str) -> PaymentReceipt:
        raise NotImplementedError


class BroadcastPaymentVerifier(PaymentVerifier):
    """Broadcasts the signed transaction to a Stacks node API.

    A 2xx response with a ``txid`` is a confirmed payment. A non-2xx
    response is a rejection whose body is relayed as the reason. Transport
    errors raise ``PaymentFailed`` without a receipt.
    """

    def __init__(self, url: str, timeout: float = 15.0):
        self._url = url
        self._timeout = timeout

    def _broadcast(self, artifact: str) -> requests.Response:
        return requests.post(
            self._url,
            data=artifact,
            headers={"Content-Type": "application/hex", "User-Agent": USER_AGENT},
            timeout=self._timeout,
        )

    async def verify(self, artifact: str) -> PaymentReceipt:
        try:
            response = await asyncio.to_thread(self._broadcast, artifact)
        except requests.exceptions.RequestException as e:
            logger.warning("Payment broadcast to %s failed: %s", self._url, e)
            raise PaymentFailed("payment verifier unreachable") from e

        if not response.ok:
            reason = (response.text or f"HTTP {response.status_code}").strip()[:MAX_REASON_LEN]
            logger.warning("Payment rejected (HTTP %d): %s", response.status_code, reason)
            return PaymentReceipt(ok=False, reason=reason)

        try:
            body = response.json()
        except ValueError:
            body = None
        # Stacks nodes answer with either {"txid": ...} or a bare JSON string.
        if isinstance(body, dict):
            tx_id = body.get("txid")
        elif isinstance(body, str):
            tx_id = body
        else:
            tx_id = None
        if not tx_id:
            logger.warning("Payment broadcast returned no txid: %.200s", response.text)
            return PaymentReceipt(ok=False, reason="verifier returned no transaction id")
        return PaymentReceipt(ok=True, tx_id=tx_id)


def _rfc3339(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_nonce() -> str:
    return str(uuid.uuid4())


def payment_requirements(config: "GameConfig") -> dict:
    """Static x402 discovery document for the paid press."""
    return {
        "x402Version": 1,
        "name": "The Button - sBTC Edition",
        "description": (
            f"Press to reset the {config.budget_sec:g}-second timer using sBTC. "
            "Last presser wins the entire pot when the timer hits zero!"
        ),
        "accepts": [{
            "scheme": "exact",
            "network": "stacks",
            "maxAmountRequired": str(config.paid_press_sats),
            "resource": PAID_PRESS_RESOURCE,
            "description": (
                f"Press The Button with real sBTC - reset timer, compete for the pot "
                f"({config.paid_press_sats} sats)"
            ),
            "mimeType": "application/json",
            "payTo": config.treasury_address,
            "maxTimeoutSeconds": config.payment_ttl_sec,
            "asset": config.asset,
            "assetContract": config.asset_contract,
            "outputSchema": {
                "input": {"type": "http", "method": "POST", "bodyType": "json",
                          "headers": {"X-PAYMENT": "signed-transaction-hex"}},
                "output": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "timer": {"type": "number"},
                        "color": {"type": "string"},
                        "flair": {"type": "string"},
                        "tx_id": {"type": "string"},
                        "pot": {"type": "number"},
                        "press_count": {"type": "number"},
                        "round": {"type": "number"},
                    },
                },
            },
        }],
    }


def payment_required(config: "GameConfig", game_state: dict, now: float) -> dict:
    """Body of the HTTP 402 answer to a paid press without a payment.

    ``game_state`` is the current round snapshot so the payer can judge
    whether pressing is still worth it before building a payment.
    """
    return {
        "error": "Payment required",
        "maxAmountRequired": str(config.paid_press_sats),
        "amount": config.paid_press_amount,
        "resource": PAID_PRESS_RESOURCE,
        "payTo": config.treasury_address,
        "network": config.network,
        "nonce": new_nonce(),
        "expiresAt": _rfc3339(now + config.payment_ttl_sec),
        "tokenType": config.asset,
        "tokenContract": config.asset_contract,
        "pricing": {"type": "fixed", "tier": "standard"},
        "description": "Press The Button - reset timer, compete for the pot!",
        "instructions": (
            f"Send {config.paid_press_sats} sats of {config.asset}, "
            "include the signed tx hex in the X-PAYMENT header"
        ),
        "gameState": game_state,
    }


def well_known(config: "GameConfig") -> dict:
    return {
        "x402Version": 1,
        "name": "The Button",
        "description": "Press to reset the timer. When it hits 0, last presser wins the pot.",
        "endpoints": [{
            "path": PAID_PRESS_RESOURCE,
            "method": "POST",
            "asset": config.asset,
            "amount": config.paid_press_sats,
            "description": f"Press The Button with real {config.asset}",
        }],
    }
