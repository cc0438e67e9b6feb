"""Shared fixtures for The Button unit tests."""

import pytest
import pytest_asyncio

from button.config import GameConfig
from button.game import GameEngine
from button.settlement import SettlementEngine
from button.storage import StorageManager

from fakes import FakeClock, FakeVerifier


# ── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def config():
    return GameConfig()


@pytest_asyncio.fixture
async def storage():
    sm = StorageManager(":memory:")
    await sm.initialize()
    yield sm
    await sm.close()


@pytest_asyncio.fixture
async def settlement(storage, clock):
    return SettlementEngine(storage, clock=clock)


@pytest_asyncio.fixture
async def engine(storage, settlement, verifier, config, clock):
    eng = GameEngine(storage, settlement, verifier, config=config, clock=clock)
    await eng.setup()
    return eng
