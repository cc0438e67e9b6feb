"""
Shared fixtures for The Button integration tests.

Provides a fully wired ButtonServer (in-memory SQLite, fake clock, fake
payment verifier) and a TestClient that runs the app lifespan, so every
request goes through the real routers and services.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unit.fakes import FakeClock, FakeVerifier  # noqa: E402

from button.config import GameConfig  # noqa: E402
from button.server import ButtonServer  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def config():
    return GameConfig()


@pytest.fixture
def server(config, verifier, clock):
    return ButtonServer(db_path=":memory:", config=config, verifier=verifier, clock=clock)


@pytest.fixture
def client(server):
    with TestClient(server.app) as c:
        yield c
