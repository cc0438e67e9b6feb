"""
server.py - The Button server entry point.

Single-process server combining:
 - SQLite persistent storage via StorageManager
 - Game services (settlement, press arbitration, leaderboard)
 - Payment verifier for paid presses
 - REST API (FastAPI on uvicorn, port 8787)

Usage:
    python -m button.server [--port 8787] [--db-path data/button.db]
    the-button [--port 8787] [--db-path data/button.db]
"""

import argparse
import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from button.config import DEFAULT_BUDGET_SEC, DEFAULT_TREASURY, DEFAULT_VERIFIER_URL, GameConfig
from button.game import GameEngine
from button.leaderboard import LeaderboardService
from button.payment import BroadcastPaymentVerifier, PaymentVerifier
from button.routers import register_all_routers
from button.settlement import SettlementEngine
from button.storage import StorageManager

LOG_FORMAT = "%(asctime)s [%(name)-10s] %(levelname)-5s %(message)s"

logger = logging.getLogger("server")


class ButtonServer:
    """Owns storage and services and exposes them to the routers via ``app.state.server``."""

    def __init__(
        self,
        db_path: str = "data/button.db",
        config: Optional[GameConfig] = None,
        verifier: Optional[PaymentVerifier] = None,
        clock: Callable[[], float] = time.time,
        host: str = "0.0.0.0",
        port: int = 8787,
    ):
        self.db_path = db_path
        self.config = config or GameConfig()
        self.verifier = verifier or BroadcastPaymentVerifier(
            self.config.verifier_url, timeout=self.config.verifier_timeout_sec,
        )
        self.clock = clock
        self.host = host
        self.port = port

        # Storage + services are initialized async in the app lifespan
        self.storage: Optional[StorageManager] = None
        self.settlement: Optional[SettlementEngine] = None
        self.game: Optional[GameEngine] = None
        self.leaderboard: Optional[LeaderboardService] = None

        self.app = FastAPI(title="The Button", version="1.0.0", lifespan=self._lifespan)
        self.app.state.server = self
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        register_all_routers(self.app)

    async def _init_services(self):
        """Initialize storage and wire up services (must be called in async context)."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self.storage = StorageManager(self.db_path)
        await self.storage.initialize()

        self.settlement = SettlementEngine(self.storage, clock=self.clock)
        self.game = GameEngine(
            self.storage, self.settlement, self.verifier,
            config=self.config, clock=self.clock,
        )
        await self.game.setup()
        self.leaderboard = LeaderboardService(self.storage, self.config)

        logger.info(
            "Services initialized (db=%s, budget=%.0fs, treasury=%s)",
            self.db_path, self.config.budget_sec, self.config.treasury_address,
        )

    async def _shutdown(self):
        if self.storage:
            await self.storage.close()
            self.storage = None

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self._init_services()
        try:
            yield
        finally:
            await self._shutdown()

    async def start(self):
        """Run the API server until interrupted."""
        config = uvicorn.Config(self.app, host=self.host, port=self.port, log_level="info")
        self._uvicorn_server = uvicorn.Server(config)
        logger.info("REST API starting on port %d", self.port)
        await self._uvicorn_server.serve()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="The Button - last press wins the pot")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8787, help="REST API port (default: 8787)")
    parser.add_argument("--db-path", default="data/button.db", help="SQLite database path (default: data/button.db)")
    parser.add_argument("--budget", type=float, default=DEFAULT_BUDGET_SEC,
                        help="Countdown length in seconds (default: 60)")
    parser.add_argument("--treasury", default=os.environ.get("TREASURY_ADDRESS", DEFAULT_TREASURY),
                        help="Address paid presses must pay to (env: TREASURY_ADDRESS)")
    parser.add_argument("--verifier-url", default=DEFAULT_VERIFIER_URL,
                        help="Transaction broadcast endpoint used to verify payments")
    parser.add_argument("--admin-key", default=os.environ.get("BUTTON_ADMIN_KEY"),
                        help="Require this X-Admin-Key for /api/reset (env: BUTTON_ADMIN_KEY)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser


def main(argv=None):
    """CLI entry point for the game server."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )

    config = GameConfig(
        budget_sec=args.budget,
        treasury_address=args.treasury,
        verifier_url=args.verifier_url,
        admin_key=args.admin_key,
    )
    server = ButtonServer(db_path=args.db_path, config=config, host=args.host, port=args.port)

    logger.info("=" * 60)
    logger.info("  The Button")
    logger.info("  REST API:    http://localhost:%d", args.port)
    logger.info("  Database:    %s", args.db_path)
    logger.info("  Countdown:   %.0fs", config.budget_sec)
    logger.info("  Admin reset: %s", "key required" if config.admin_key else "open")
    logger.info("=" * 60)

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
