from __future__ import annotations

import logging

from . import db

logger = logging.getLogger(__name__)


# {pk} is filled per backend: SQLite AUTOINCREMENT vs Postgres SERIAL.
SCHEMA = """
CREATE TABLE IF NOT EXISTS predictions (
    id {pk},
    game_id TEXT NOT NULL,
    game_date TEXT NOT NULL,
    sport TEXT NOT NULL DEFAULT 'nfl',
    home_team TEXT NOT NULL,
    away_team TEXT NOT NULL,
    home_win_prob REAL NOT NULL,
    away_win_prob REAL NOT NULL,
    predicted_home_score INTEGER NOT NULL,
    predicted_away_score INTEGER NOT NULL,
    confidence TEXT NOT NULL,
    weather_condition TEXT,
    weather_temp INTEGER,
    prediction_time TEXT NOT NULL,
    UNIQUE(game_id, game_date)
);

CREATE TABLE IF NOT EXISTS actual_results (
    id {pk},
    game_id TEXT NOT NULL UNIQUE,
    game_date TEXT NOT NULL,
    sport TEXT NOT NULL DEFAULT 'nfl',
    home_team TEXT NOT NULL,
    away_team TEXT NOT NULL,
    home_score INTEGER NOT NULL,
    away_score INTEGER NOT NULL,
    winner TEXT NOT NULL,
    updated_time TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS accuracy_summary (
    id {pk},
    total_predictions INTEGER DEFAULT 0,
    total_completed INTEGER DEFAULT 0,
    winner_correct INTEGER DEFAULT 0,
    winner_accuracy REAL DEFAULT 0,
    avg_home_score_diff REAL DEFAULT 0,
    avg_away_score_diff REAL DEFAULT 0,
    high_confidence_correct INTEGER DEFAULT 0,
    high_confidence_total INTEGER DEFAULT 0,
    medium_confidence_correct INTEGER DEFAULT 0,
    medium_confidence_total INTEGER DEFAULT 0,
    low_confidence_correct INTEGER DEFAULT 0,
    low_confidence_total INTEGER DEFAULT 0,
    last_updated TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS prop_predictions (
    id {pk},
    game_id TEXT NOT NULL,
    game_date TEXT NOT NULL,
    sport TEXT NOT NULL DEFAULT 'nfl',
    player_name TEXT NOT NULL,
    team TEXT NOT NULL,
    position TEXT NOT NULL,
    prop_type TEXT NOT NULL,
    line REAL NOT NULL,
    projection REAL,
    prediction TEXT NOT NULL,
    confidence TEXT NOT NULL,
    prediction_time TEXT NOT NULL,
    UNIQUE(game_id, player_name, prop_type)
);

CREATE TABLE IF NOT EXISTS prop_results (
    id {pk},
    game_id TEXT NOT NULL,
    player_name TEXT NOT NULL,
    prop_type TEXT NOT NULL,
    actual_value REAL NOT NULL,
    updated_time TEXT NOT NULL,
    UNIQUE(game_id, player_name, prop_type)
);

CREATE INDEX IF NOT EXISTS idx_predictions_date ON predictions(game_date);
CREATE INDEX IF NOT EXISTS idx_prop_predictions_game ON prop_predictions(game_id)
"""

_PK = {
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "postgres": "SERIAL PRIMARY KEY",
}


def schema_for(backend: str) -> str:
    return SCHEMA.format(pk=_PK[backend])


def init_db() -> None:
    db.execute_script(schema_for(db.backend_name()))
    logger.info("Database schema ready (%s)", db.backend_name())


def clear_all() -> None:
    """Dangerous: wipe all tables; useful for full refreshes."""
    db.execute_script(
        """
        DELETE FROM prop_results;
        DELETE FROM prop_predictions;
        DELETE FROM actual_results;
        DELETE FROM predictions;
        DELETE FROM accuracy_summary
        """
    )
