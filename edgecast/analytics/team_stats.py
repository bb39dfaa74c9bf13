"""Per-team statistics fed into the prediction scorer.

NFL numbers are derived from Sleeper season totals plus the ESPN record;
NBA numbers come from the nba_api player aggregate plus the ESPN record.
Anything unavailable keeps the dataclass default.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from edgecast.data import espn, nba_stats, sleeper

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _pct(record: Dict[str, int]) -> float:
    games = record.get("wins", 0) + record.get("losses", 0)
    return record.get("wins", 0) / games if games else 0.5


@dataclass
class NFLTeamStats:
    wins: int = 6
    losses: int = 5
    ties: int = 0
    home_record: Dict[str, int] = field(default_factory=lambda: {"wins": 3, "losses": 3})
    away_record: Dict[str, int] = field(default_factory=lambda: {"wins": 3, "losses": 2})
    points_per_game: float = 22.0
    points_allowed: float = 21.0
    yards_per_game: float = 350.0
    yards_allowed: float = 340.0
    passing_yards: float = 230.0
    rushing_yards: float = 120.0
    third_down_pct: float = 40.0
    red_zone_pct: float = 55.0
    sacks: float = 2.5
    tackles_for_loss: float = 6.0
    pass_defense_rank: int = 16
    rush_defense_rank: int = 16
    turnover_diff: int = 0
    interceptions_per_game: float = 0.8
    penalties_per_game: float = 6.0
    penalty_yards: float = 50.0
    offensive_rating: float = 80.0
    defensive_rating: float = 80.0
    special_teams_rating: float = 75.0
    time_of_possession: float = 30.0
    last_five_games: List[str] = field(default_factory=list)
    recent_wins: int = 3
    streak_type: str = "W"
    streak_length: int = 1
    key_injuries: int = 2
    injury_severity: int = 5
    starters_healthy: int = 21
    qb_health: int = 90
    days_since_last_game: int = 7
    coming_off_bye: bool = False
    travel_distance: int = 500
    coaching_experience: float = 55.0
    playoff_experience: int = 3
    adjustment_rating: float = 75.0
    avg_margin: float = 2.0
    comeback_wins: int = 1
    blowout_losses: int = 1
    source: str = "default"

    @property
    def win_pct(self) -> float:
        return _pct({"wins": self.wins, "losses": self.losses})

    def to_dict(self) -> dict:
        return {_camel(k): v for k, v in asdict(self).items()}


@dataclass
class NBATeamStats:
    wins: int = 10
    losses: int = 10
    home_record: Dict[str, int] = field(default_factory=lambda: {"wins": 5, "losses": 5})
    away_record: Dict[str, int] = field(default_factory=lambda: {"wins": 5, "losses": 5})
    games_played: int = 20
    points_per_game: float = 110.0
    rebounds_per_game: float = 45.0
    assists_per_game: float = 25.0
    steals_per_game: float = 8.0
    blocks_per_game: float = 5.0
    turnovers_per_game: float = 14.0
    fg_pct: float = 46.0
    fg3_pct: float = 36.0
    ft_pct: float = 78.0
    offensive_rating: float = 112.0
    defensive_rating: float = 112.0
    pace: float = 98.0
    last_five_games: List[str] = field(default_factory=list)
    recent_wins: int = 3
    source: str = "default"

    @property
    def win_pct(self) -> float:
        return _pct({"wins": self.wins, "losses": self.losses})

    def to_dict(self) -> dict:
        return {_camel(k): v for k, v in asdict(self).items()}


def _apply_form(stats, results: List[dict]) -> None:
    if not results:
        return
    stats.last_five_games = [r["result"] for r in results[:5]]
    stats.recent_wins = stats.last_five_games.count("W")


def _apply_record(stats, record: Optional[dict]) -> None:
    if not record:
        return
    stats.wins = record["wins"]
    stats.losses = record["losses"]
    stats.home_record = dict(record["homeRecord"])
    stats.away_record = dict(record["awayRecord"])
    if hasattr(stats, "ties"):
        stats.ties = record.get("ties", 0)


# ====================================================================
#  NFL
# ====================================================================

def derive_nfl_stats(totals: Dict[str, float], record: Optional[dict],
                     recent: List[dict]) -> NFLTeamStats:
    """Turn Sleeper team totals + ESPN record into the scorer's stat line."""
    stats = NFLTeamStats()
    _apply_record(stats, record)
    _apply_form(stats, recent)

    if totals and (totals.get("pass_yd") or totals.get("rush_yd")):
        games = totals.get("maxGamesPlayed") or (stats.wins + stats.losses) or 11
        pass_yd = totals["pass_yd"]
        rush_yd = totals["rush_yd"]
        total_yards = pass_yd + rush_yd
        total_tds = totals["pass_td"] + totals["rush_td"]
        ypg = total_yards / games
        tdpg = total_tds / games
        defense = _clamp(100 - ypg / 4, 30, 95)
        sacks = totals.get("idp_sack", 0)

        stats.points_per_game = round(total_tds * 6.5 / games + 3, 1)
        stats.points_allowed = round(28 - (defense - 60) / 5, 1)
        stats.yards_per_game = round(ypg, 1)
        stats.yards_allowed = round(350 - (defense - 60) * 2, 1)
        stats.passing_yards = round(pass_yd / games, 1)
        stats.rushing_yards = round(rush_yd / games, 1)
        stats.third_down_pct = round(35 + (ypg - 320) / 10, 1)
        stats.red_zone_pct = round(50 + (tdpg - 2) * 8, 1)
        stats.sacks = round(sacks / games, 1)
        stats.tackles_for_loss = round(sacks * 1.5 / games, 1)
        rank = int(_clamp(round(33 - defense / 3), 1, 32))
        stats.pass_defense_rank = rank
        stats.rush_defense_rank = rank
        stats.turnover_diff = int(totals.get("idp_int", 0) - (totals["pass_int"] + totals.get("fum_lost", 0)))
        stats.interceptions_per_game = round(totals["pass_int"] / games, 1)
        stats.penalties_per_game = 5.5
        stats.penalty_yards = 50.0
        stats.offensive_rating = round(50 + ypg / 7, 1)
        stats.defensive_rating = round(defense, 1)
        stats.special_teams_rating = 75.0
        stats.time_of_possession = round(28 + (rush_yd / total_yards if total_yards else 0.5) * 4, 1)
        stats.source = "Sleeper API"

        stats.streak_type = "W" if stats.wins > stats.losses else "L"
        stats.streak_length = min(3, abs(stats.wins - stats.losses))
        stats.key_injuries = 1
        stats.injury_severity = 3
        stats.starters_healthy = 21
        stats.qb_health = 95
        played = stats.wins + stats.losses or games
        stats.coaching_experience = round(stats.wins / played * 100, 1)
        stats.playoff_experience = 7 if stats.wins >= 8 else 3
        stats.adjustment_rating = 60 + 2 * stats.wins
        stats.avg_margin = round(stats.points_per_game - stats.points_allowed, 1)
        stats.comeback_wins = stats.wins // 4
        stats.blowout_losses = stats.losses // 5
    return stats


def get_nfl_team_stats(code: str) -> NFLTeamStats:
    return derive_nfl_stats(
        sleeper.team_season_totals(code),
        espn.get_team_record("nfl", code),
        espn.get_recent_results("nfl", code),
    )


# ====================================================================
#  NBA
# ====================================================================

def derive_nba_stats(aggregate: dict, record: Optional[dict], recent: List[dict]) -> NBATeamStats:
    stats = NBATeamStats()
    _apply_record(stats, record)
    _apply_form(stats, recent)
    if aggregate:
        stats.games_played = aggregate["gamesPlayed"]
        stats.points_per_game = aggregate["ppg"]
        stats.rebounds_per_game = aggregate["rpg"]
        stats.assists_per_game = aggregate["apg"]
        stats.steals_per_game = aggregate["spg"]
        stats.blocks_per_game = aggregate["bpg"]
        stats.turnovers_per_game = aggregate["tpg"]
        stats.fg_pct = aggregate["fgPct"]
        stats.fg3_pct = aggregate["fg3Pct"]
        stats.ft_pct = aggregate["ftPct"]
        stats.offensive_rating = aggregate["offRating"]
        stats.defensive_rating = aggregate["defRating"]
        stats.pace = aggregate["pace"]
        stats.source = "NBA Stats API" if aggregate != nba_stats.TEAM_DEFAULTS else "default"
    return stats


def get_nba_team_stats(code: str) -> NBATeamStats:
    return derive_nba_stats(
        nba_stats.get_team_stats(code),
        espn.get_team_record("nba", code),
        espn.get_recent_results("nba", code),
    )
