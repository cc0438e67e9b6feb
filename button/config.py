"""
config.py - Game configuration.

Every tunable of the game lives on ``GameConfig``; the server's command
line builds one and hands it to the services.
"""

from dataclasses import dataclass
from typing import Optional

SATS_PER_BTC = 100_000_000

DEFAULT_BUDGET_SEC = 60.0
FREE_PRESS_COST = 0.001          # simulated, always added to the pot
PAID_PRESS_SATS = 1000           # 1000 sats = 0.00001 sBTC per press
PAYMENT_TTL_SEC = 300            # advertised lifetime of a payment nonce

SBTC_CONTRACT = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9.token-sbtc"
DEFAULT_TREASURY = "SPKH9AWG0ENZ87J1X0PBD4HETP22G8W22AFNVF8K"
DEFAULT_VERIFIER_URL = "https://api.hiro.so/v2/transactions"

ANONYMOUS_PLAYER = "Anonymous"
MAX_FREE_PLAYER_LEN = 20
MAX_PAID_PLAYER_LEN = 42
MAX_WALLET_LEN = 128


@dataclass
class GameConfig:
    budget_sec: float = DEFAULT_BUDGET_SEC
    free_press_cost: float = FREE_PRESS_COST
    paid_press_sats: int = PAID_PRESS_SATS
    payment_ttl_sec: int = PAYMENT_TTL_SEC
    treasury_address: str = DEFAULT_TREASURY
    asset: str = "sBTC"
    asset_contract: str = SBTC_CONTRACT
    network: str = "mainnet"
    verifier_url: str = DEFAULT_VERIFIER_URL
    verifier_timeout_sec: float = 15.0
    admin_key: Optional[str] = None
    history_limit: int = 50
    max_history_limit: int = 100
    leaderboard_limit: int = 50

    def __post_init__(self):
        if self.budget_sec <= 0:
            raise ValueError("budget_sec must be positive")
        if self.free_press_cost < 0:
            raise ValueError("free_press_cost must not be negative")
        if self.paid_press_sats <= 0:
            raise ValueError("paid_press_sats must be positive")

    @property
    def paid_press_amount(self) -> float:
        """Per-press paid amount in whole sBTC (what the pot is credited)."""
        return self.paid_press_sats / SATS_PER_BTC
