"""Sleeper public API: NFL player database, season stats and team rosters."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

import requests

from edgecast.analytics.cache import SLEEPER_TTL, ttl_cache
from edgecast.data._http_headers import JSON_HEADERS
from edgecast.data.injury_scraper import get_nfl_injuries, is_player_out

logger = logging.getLogger(__name__)

SLEEPER_API = "https://api.sleeper.app/v1"

_FETCH_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError)

ROSTER_SLOTS = (("QB", 1, "pass_yd"), ("RB", 2, "rush_yd"), ("WR", 3, "rec_yd"), ("TE", 1, "rec_yd"))
DEFENSIVE_POSITIONS = {"LB", "DE", "DT", "CB", "S"}
DEFENDERS_PER_TEAM = 3


def get_current_nfl_season(today: Optional[date] = None) -> int:
    """NFL season year; January/February still belong to last year's season."""
    today = today or date.today()
    return today.year - 1 if today.month <= 2 else today.year


@ttl_cache(seconds=SLEEPER_TTL, maxsize=2)
def _players() -> Dict[str, dict]:
    resp = requests.get("%s/players/nfl" % SLEEPER_API, headers=JSON_HEADERS, timeout=10)
    resp.raise_for_status()
    return resp.json()


@ttl_cache(seconds=SLEEPER_TTL, maxsize=4)
def _season_stats(season: int) -> Dict[str, dict]:
    resp = requests.get("%s/stats/nfl/regular/%d" % (SLEEPER_API, season),
                        headers=JSON_HEADERS, timeout=15)
    resp.raise_for_status()
    return resp.json()


def fetch_players() -> Dict[str, dict]:
    try:
        return _players()
    except _FETCH_ERRORS as exc:
        logger.warning("Sleeper player database unavailable: %s", exc)
        return {}


def fetch_season_stats(season: Optional[int] = None) -> Dict[str, dict]:
    season = season or get_current_nfl_season()
    try:
        return _season_stats(season)
    except _FETCH_ERRORS as exc:
        logger.warning("Sleeper %d season stats unavailable: %s", season, exc)
        return {}


def _num(stats: dict, key: str) -> float:
    value = stats.get(key)
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def season_stats_for(raw: dict) -> dict:
    """Translate Sleeper stat keys into our camelCase season line."""
    gp = _num(raw, "gp") or _num(raw, "gms_active")
    rush_att = _num(raw, "rush_att")
    rush_yd = _num(raw, "rush_yd")
    rec = _num(raw, "rec")
    rec_yd = _num(raw, "rec_yd")
    return {
        "gamesPlayed": int(gp),
        "completions": int(_num(raw, "pass_cmp")),
        "attempts": int(_num(raw, "pass_att")),
        "passingYards": int(_num(raw, "pass_yd")),
        "passingTDs": int(_num(raw, "pass_td")),
        "interceptions": int(_num(raw, "pass_int")),
        "rushingAttempts": int(rush_att),
        "rushingYards": int(rush_yd),
        "rushingTDs": int(_num(raw, "rush_td")),
        "yardsPerCarry": round(rush_yd / rush_att, 1) if rush_att else 0.0,
        "receptions": int(rec),
        "targets": int(_num(raw, "rec_tgt")),
        "receivingYards": int(rec_yd),
        "receivingTDs": int(_num(raw, "rec_td")),
        "yardsPerReception": round(rec_yd / rec, 1) if rec else 0.0,
        "tackles": int(_num(raw, "idp_tkl_solo") + _num(raw, "idp_tkl_ast")),
        "sacks": _num(raw, "idp_sack"),
        "interceptionsDefense": int(_num(raw, "idp_int")),
        "passDeflections": int(_num(raw, "idp_pass_def")),
        "forcedFumbles": int(_num(raw, "idp_ff")),
    }


def project_per_game(position: str, season: dict) -> dict:
    """Per-game projection by position; assumes 11 games when unknown."""
    games = season.get("gamesPlayed") or 11

    def per_game(key: str) -> float:
        return season.get(key, 0) / games

    if position == "QB":
        return {
            "passingYards": round(per_game("passingYards")),
            "passingTDs": round(per_game("passingTDs"), 1),
            "completions": round(per_game("completions")),
            "interceptions": round(per_game("interceptions"), 1),
            "rushingYards": round(per_game("rushingYards")),
        }
    if position == "RB":
        return {
            "rushingYards": round(per_game("rushingYards")),
            "rushingTDs": round(per_game("rushingTDs"), 1),
            "receptions": round(per_game("receptions")),
            "receivingYards": round(per_game("receivingYards")),
        }
    if position in ("WR", "TE"):
        return {
            "receptions": round(per_game("receptions")),
            "receivingYards": round(per_game("receivingYards")),
            "receivingTDs": round(per_game("receivingTDs"), 1),
            "targets": round(per_game("targets")),
        }
    return {
        "tackles": round(per_game("tackles")),
        "sacks": round(per_game("sacks"), 1),
        "interceptions": round(per_game("interceptionsDefense"), 1),
    }


def _player_record(player_id: str, info: dict, stats: dict) -> dict:
    position = info.get("position", "")
    season = season_stats_for(stats)
    return {
        "id": player_id,
        "name": info.get("full_name") or "%s %s" % (info.get("first_name", ""), info.get("last_name", "")),
        "position": position,
        "number": info.get("number"),
        "team": info.get("team"),
        "status": info.get("injury_status") or "Active",
        "seasonStats": season,
        "projections": project_per_game(position, season),
    }


def team_player_stats(team_code: str) -> List[dict]:
    """Every Sleeper player on *team_code* with their raw season stats attached."""
    players = fetch_players()
    stats = fetch_season_stats()
    out = []
    for player_id, info in players.items():
        if info.get("team") != team_code or not info.get("active", True):
            continue
        out.append(_player_record(player_id, info, stats.get(player_id, {})))
    return out


_TEAM_TOTAL_KEYS = ("pass_yd", "rush_yd", "rec_yd", "pass_td", "rush_td", "rec_td",
                    "pass_int", "fum_lost", "idp_int", "idp_sack")


def team_season_totals(team_code: str) -> Dict[str, float]:
    """Sum raw Sleeper stat keys over a team; ``maxGamesPlayed`` is the QB-style games count."""
    players = fetch_players()
    stats = fetch_season_stats()
    totals = {key: 0.0 for key in _TEAM_TOTAL_KEYS}
    totals["maxGamesPlayed"] = 0.0
    for player_id, info in players.items():
        if info.get("team") != team_code:
            continue
        raw = stats.get(player_id)
        if not raw:
            continue
        for key in _TEAM_TOTAL_KEYS:
            totals[key] += _num(raw, key)
        if info.get("position") == "QB":
            totals["maxGamesPlayed"] = max(totals["maxGamesPlayed"], _num(raw, "gp"))
    return totals


def build_roster(players: List[dict], injuries: Dict[str, dict]) -> Dict[str, List[dict]]:
    """Pick starters by season volume, skipping anyone listed OUT."""
    healthy = [p for p in players if not is_player_out(p["name"], injuries)]
    roster: Dict[str, List[dict]] = {}
    season_key = {"pass_yd": "passingYards", "rush_yd": "rushingYards", "rec_yd": "receivingYards"}
    for position, count, stat in ROSTER_SLOTS:
        key = season_key[stat]
        group = [p for p in healthy if p["position"] == position]
        group.sort(key=lambda p: p["seasonStats"][key], reverse=True)
        roster[position] = group[:count]

    defenders = [p for p in healthy if p["position"] in DEFENSIVE_POSITIONS]
    defenders.sort(key=lambda p: p["seasonStats"]["tackles"], reverse=True)
    roster["DEF"] = defenders[:DEFENDERS_PER_TEAM]
    return roster


def get_team_roster(team_code: str, injuries: Optional[Dict[str, dict]] = None) -> Dict[str, List[dict]]:
    if injuries is None:
        injuries = get_nfl_injuries()
    return build_roster(team_player_stats(team_code), injuries)
