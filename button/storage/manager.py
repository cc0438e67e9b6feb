import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

try:
    import aiosqlite
except ImportError:
    raise ImportError(
        "aiosqlite is required for the storage layer. "
        "Install with: pip install aiosqlite"
    )

from ._schema import SCHEMA_VERSION
from ._migrate import run_migrations
from .rounds import RoundRepo
from .presses import PressRepo
from .players import PlayerRepo
from .settlement_repo import SettlementRepo

logger = logging.getLogger("storage")


class StorageManager:
    """Top-level manager: opens the database, runs migrations, exposes repos.

    All repos share one connection. ``transaction()`` is the single point of
    mutual exclusion for read-modify-write sequences; ``snapshot()`` gives
    readers a view that never includes another coroutine's uncommitted
    writes.
    """

    def __init__(self, db_path: str = "button.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self.rounds: Optional[RoundRepo] = None
        self.presses: Optional[PressRepo] = None
        self.players: Optional[PlayerRepo] = None
        self.settlements: Optional[SettlementRepo] = None

    async def initialize(self):
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await self._db.execute("PRAGMA busy_timeout=5000")
        await run_migrations(self._db, logger)

        self.rounds = RoundRepo(self._db)
        self.presses = PressRepo(self._db)
        self.players = PlayerRepo(self._db)
        self.settlements = SettlementRepo(self._db)

        logger.info("Storage initialized: %s (schema v%d)", self.db_path, SCHEMA_VERSION)

    @property
    def connected(self) -> bool:
        return self._db is not None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run a block as one IMMEDIATE transaction.

        Commits on normal exit. Any exception, a failed commit included,
        rolls back every write made inside the block and is re-raised to the
        caller, so the connection is never left inside an open transaction.
        """
        async with self._lock:
            await self._db.execute("BEGIN IMMEDIATE")
            try:
                yield self._db
                await self._db.commit()
            except BaseException:
                try:
                    await self._db.rollback()
                except Exception:
                    logger.exception("Rollback failed")
                raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[aiosqlite.Connection]:
        """Hold the store lock for a group of reads (no transaction)."""
        async with self._lock:
            yield self._db

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Storage closed")
