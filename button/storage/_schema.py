SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied_at REAL NOT NULL
);

-- Rounds: one row per round, the highest round_number is the current round
CREATE TABLE IF NOT EXISTS rounds (
    round_number  INTEGER PRIMARY KEY,
    status        TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN ('PENDING', 'OPEN', 'SETTLED')),
    budget_sec    REAL NOT NULL DEFAULT 60.0,
    pot           REAL NOT NULL DEFAULT 0.0,
    press_count   INTEGER NOT NULL DEFAULT 0,
    started_at    REAL,
    last_press_at REAL,
    last_presser  TEXT,
    winner        TEXT,
    created_at    REAL NOT NULL,
    settled_at    REAL
);

-- Presses: append-only ledger of accepted presses
CREATE TABLE IF NOT EXISTS presses (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    round_number       INTEGER NOT NULL,
    seq                INTEGER NOT NULL,
    player             TEXT NOT NULL,
    pressed_at         REAL NOT NULL,
    remaining_at_press REAL NOT NULL,
    amount             REAL NOT NULL DEFAULT 0.0,
    mode               TEXT NOT NULL DEFAULT 'free' CHECK (mode IN ('free', 'paid')),
    payment_txid       TEXT,
    color              TEXT NOT NULL,
    flair              TEXT NOT NULL,
    UNIQUE (round_number, seq),
    FOREIGN KEY (round_number) REFERENCES rounds(round_number)
);

-- Players: per-presser running totals
CREATE TABLE IF NOT EXISTS players (
    name           TEXT PRIMARY KEY,
    wallet_address TEXT,
    total_presses  INTEGER NOT NULL DEFAULT 0,
    total_spent    REAL NOT NULL DEFAULT 0.0,
    total_won      REAL NOT NULL DEFAULT 0.0,
    first_seen     REAL NOT NULL,
    last_seen      REAL NOT NULL
);

-- Settlements: exactly one row per settled round
CREATE TABLE IF NOT EXISTS settlements (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    round_number INTEGER NOT NULL UNIQUE,
    winner       TEXT,
    pot          REAL NOT NULL DEFAULT 0.0,
    press_count  INTEGER NOT NULL DEFAULT 0,
    forced       INTEGER NOT NULL DEFAULT 0,
    settled_at   REAL NOT NULL,
    FOREIGN KEY (round_number) REFERENCES rounds(round_number)
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_presses_round ON presses(round_number);
CREATE INDEX IF NOT EXISTS idx_presses_pressed_at ON presses(pressed_at);
CREATE INDEX IF NOT EXISTS idx_presses_player ON presses(player);
CREATE UNIQUE INDEX IF NOT EXISTS idx_presses_txid ON presses(payment_txid) WHERE payment_txid IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_players_leaderboard ON players(total_presses DESC, total_won DESC);
"""
