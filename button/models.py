"""Pydantic request models for the REST API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from button.config import (
    ANONYMOUS_PLAYER,
    MAX_FREE_PLAYER_LEN,
    MAX_PAID_PLAYER_LEN,
    MAX_WALLET_LEN,
)


def clean_player(raw: Optional[str], max_len: int) -> str:
    """Trim and truncate a presser identifier. Never rejects."""
    name = (raw or "").strip()[:max_len].strip()
    return name or ANONYMOUS_PLAYER


def clean_wallet(raw: Optional[str]) -> Optional[str]:
    wallet = (raw or "").strip()[:MAX_WALLET_LEN]
    return wallet or None


class PressRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    player: str = ANONYMOUS_PLAYER

    @field_validator("player", mode="before")
    @classmethod
    def _player(cls, v) -> str:
        return clean_player(v if isinstance(v, str) else None, MAX_FREE_PLAYER_LEN)


class PaidPressRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    player: str = ANONYMOUS_PLAYER
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")

    @field_validator("player", mode="before")
    @classmethod
    def _player(cls, v) -> str:
        return clean_player(v if isinstance(v, str) else None, MAX_PAID_PLAYER_LEN)

    @field_validator("wallet_address", mode="before")
    @classmethod
    def _wallet(cls, v) -> Optional[str]:
        return clean_wallet(v if isinstance(v, str) else None)
