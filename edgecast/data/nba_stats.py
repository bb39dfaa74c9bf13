from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from edgecast.analytics.cache import GAME_LOG_TTL, NBA_STATS_TTL, ttl_cache

logger = logging.getLogger(__name__)


# ====================================================================
#  Centralized rate limiter for NBA API requests
# ====================================================================

class _RateLimiter:
    """Thread-safe token-bucket rate limiter.

    Ensures at most ``calls_per_second`` requests are made to the NBA
    API.  All ``nba_api`` calls should go through ``limiter.wait()``
    before executing.
    """

    def __init__(self, calls_per_second: float = 1.0) -> None:
        self._min_interval = 1.0 / calls_per_second
        self._last_call = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        """Block until it is safe to make the next API call."""
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_call
            if elapsed < self._min_interval:
                time.sleep(self._min_interval - elapsed)
            self._last_call = time.monotonic()


# 1 request per 0.6s keeps stats.nba.com from answering 429.
_api_limiter = _RateLimiter(calls_per_second=1.67)

TEAM_DEFAULTS = {
    "gamesPlayed": 20,
    "ppg": 110.0,
    "rpg": 45.0,
    "apg": 25.0,
    "spg": 8.0,
    "bpg": 5.0,
    "tpg": 14.0,
    "fgPct": 46.0,
    "fg3Pct": 36.0,
    "ftPct": 78.0,
    "offRating": 112.0,
    "defRating": 112.0,
    "pace": 98.0,
}

_PLAYER_COLUMNS = {
    "PLAYER_ID": "playerId",
    "PLAYER_NAME": "name",
    "TEAM_ABBREVIATION": "team",
    "GP": "gamesPlayed",
    "PTS": "points",
    "REB": "rebounds",
    "AST": "assists",
    "STL": "steals",
    "BLK": "blocks",
    "TOV": "turnovers",
    "FG_PCT": "fgPct",
    "FG3_PCT": "fg3Pct",
    "FT_PCT": "ftPct",
    "FGM": "fgMade",
    "FGA": "fgAttempts",
    "FG3M": "fg3Made",
    "FG3A": "fg3Attempts",
    "FTM": "ftMade",
    "FTA": "ftAttempts",
    "PLUS_MINUS": "plusMinus",
    "MIN": "minutes",
}

_LOG_COLUMNS = {
    "Game_ID": "game_id",
    "GAME_DATE": "game_date",
    "MATCHUP": "matchup",
    "PTS": "points",
    "REB": "rebounds",
    "AST": "assists",
    "FG3M": "fg3Made",
    "MIN": "minutes",
}

# Prop type -> game-log / season column
PROJECTION_STATS = {
    "Points": "points",
    "Rebounds": "rebounds",
    "Assists": "assists",
    "3-Pointers": "fg3Made",
}


def get_current_season() -> str:
    """
    Determine the current NBA season string (e.g., '2025-26').
    NBA season runs Oct-June, so Jan-June is previous year's season.
    """
    today = date.today()
    year = today.year
    if today.month <= 6:
        return f"{year - 1}-{str(year)[2:]}"
    return f"{year}-{str(year + 1)[2:]}"


# ====================================================================
#  League-wide per-game player stats
# ====================================================================

@ttl_cache(seconds=NBA_STATS_TTL, maxsize=4)
def _league_player_frame(season: str) -> pd.DataFrame:
    from nba_api.stats.endpoints import leaguedashplayerstats

    _api_limiter.wait()
    resp = leaguedashplayerstats.LeagueDashPlayerStats(
        season=season, per_mode_detailed="PerGame", timeout=30,
    )
    df = resp.get_data_frames()[0]
    available = [c for c in _PLAYER_COLUMNS if c in df.columns]
    return df[available].rename(columns=_PLAYER_COLUMNS)


def player_records(df: pd.DataFrame) -> Dict[str, dict]:
    """Frame -> ``{"Name|TEAM": {...}}``."""
    df = df.replace({np.nan: None})
    return {"%s|%s" % (row["name"], row["team"]): row for row in df.to_dict(orient="records")}


def fetch_player_stats(season: Optional[str] = None) -> Dict[str, dict]:
    season = season or get_current_season()
    try:
        return player_records(_league_player_frame(season))
    except Exception as exc:
        logger.warning("LeagueDashPlayerStats(%s) failed: %s", season, exc)
        return {}


def team_players(team_code: str, season: Optional[str] = None) -> List[dict]:
    """Players on *team_code*, highest scorers first."""
    players = [p for p in fetch_player_stats(season).values() if p.get("team") == team_code]
    players.sort(key=lambda p: p.get("points") or 0, reverse=True)
    return players


# ====================================================================
#  Team aggregates
# ====================================================================

def aggregate_team(players: List[dict]) -> dict:
    """Games-played weighted team per-game line; defaults when no players."""
    if not players:
        return dict(TEAM_DEFAULTS)
    df = pd.DataFrame(players)

    def column(col: str) -> pd.Series:
        if col not in df.columns:
            return pd.Series(0.0, index=df.index)
        return pd.to_numeric(df[col], errors="coerce").fillna(0.0)

    gp = column("gamesPlayed")
    max_gp = max(float(gp.max()), 1.0)

    def weighted(col: str) -> float:
        return float((column(col) * gp).sum() / max_gp)

    def pct(col: str, default: float) -> float:
        values = column(col)
        values = values[values > 0]
        return round(float(values.mean()) * 100, 1) if len(values) else default

    ppg = weighted("points")
    apg = weighted("assists")
    return {
        "gamesPlayed": int(max_gp),
        "ppg": round(ppg, 1),
        "rpg": round(weighted("rebounds"), 1),
        "apg": round(apg, 1),
        "spg": round(weighted("steals"), 1),
        "bpg": round(weighted("blocks"), 1),
        "tpg": round(weighted("turnovers"), 1),
        "fgPct": pct("fgPct", TEAM_DEFAULTS["fgPct"]),
        "fg3Pct": pct("fg3Pct", TEAM_DEFAULTS["fg3Pct"]),
        "ftPct": pct("ftPct", TEAM_DEFAULTS["ftPct"]),
        "offRating": round(ppg * 1.1, 1),
        "defRating": round(110 - ppg / 10, 1),
        "pace": round(95 + apg / 2, 1),
    }


def get_team_stats(team_code: str, season: Optional[str] = None) -> dict:
    return aggregate_team(team_players(team_code, season))


# ====================================================================
#  Player game logs
# ====================================================================

@ttl_cache(seconds=GAME_LOG_TTL, maxsize=256)
def _player_game_log(player_id: int, season: str) -> pd.DataFrame:
    from nba_api.stats.endpoints import playergamelog

    last_exc: Optional[Exception] = None
    for attempt in range(3):
        try:
            timeout = 12 + attempt * 6  # backoff on timeout
            _api_limiter.wait()
            logs = playergamelog.PlayerGameLog(
                player_id=player_id, season=season, timeout=timeout,
            ).get_data_frames()[0]
            available = [c for c in _LOG_COLUMNS if c in logs.columns]
            df = logs[available].rename(columns=_LOG_COLUMNS)
            if "game_date" in df.columns:
                df["game_date"] = pd.to_datetime(df["game_date"]).dt.date
                df = df.sort_values("game_date", ascending=False)
            return df.reset_index(drop=True)
        except Exception as exc:
            last_exc = exc
            logger.debug("PlayerGameLog %s attempt %d/3 failed: %s", player_id, attempt + 1, exc)
            time.sleep(1.5 + attempt)
    raise RuntimeError("PlayerGameLog %s failed after 3 attempts" % player_id) from last_exc


def fetch_player_game_log(player_id: int, season: Optional[str] = None) -> pd.DataFrame:
    season = season or get_current_season()
    try:
        return _player_game_log(int(player_id), season)
    except Exception as exc:
        logger.warning("%s", exc)
        return pd.DataFrame()


def blended_projection(season_avg: float, recent: pd.Series) -> float:
    """60% last-5 average + 40% season average (season only when no log)."""
    recent = recent.dropna().head(5)
    if recent.empty:
        return round(float(season_avg or 0), 1)
    return round(0.6 * float(recent.mean()) + 0.4 * float(season_avg or 0), 1)


def project_player(player: dict, season: Optional[str] = None) -> Dict[str, float]:
    """Projected Points/Rebounds/Assists/3-Pointers for one player."""
    log = fetch_player_game_log(player["playerId"], season) if player.get("playerId") else pd.DataFrame()
    projections = {}
    for prop_type, col in PROJECTION_STATS.items():
        recent = log[col] if col in log.columns else pd.Series(dtype=float)
        projections[prop_type] = blended_projection(player.get(col) or 0, recent)
    return projections


def project_players(players: List[dict], season: Optional[str] = None, max_workers: int = 4) -> Dict[str, Dict[str, float]]:
    """Game-log projections for a small batch of players, keyed by player name."""
    if not players:
        return {}
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(lambda p: project_player(p, season), players))
    return {p["name"]: proj for p, proj in zip(players, results)}
