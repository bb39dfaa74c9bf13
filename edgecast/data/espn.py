"""ESPN site API: scoreboards, team records, recent results and box scores.

All public helpers swallow upstream failures (logged) and return an empty
value; the cached inner fetchers raise so failures are never cached.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import requests

from edgecast.analytics.cache import SCOREBOARD_TTL, TEAM_STATS_TTL, ttl_cache
from edgecast.data._http_headers import JSON_HEADERS
from edgecast.data.injury_scraper import normalize_name
from edgecast.data.teams import get_team, normalize_code, teams_for

logger = logging.getLogger(__name__)

ESPN_SITE = "https://site.api.espn.com/apis/site/v2/sports"
SPORT_PATHS = {"nfl": "football/nfl", "nba": "basketball/nba"}

EASTERN = ZoneInfo("America/New_York")

_FETCH_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError)


def _get_json(url: str, params: Optional[dict] = None, timeout: float = 10) -> Dict[str, Any]:
    resp = requests.get(url, params=params, headers=JSON_HEADERS, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def eastern_date(iso_ts: str) -> Optional[str]:
    """ESPN event timestamps are UTC; games are dated by US Eastern calendar day."""
    if not iso_ts:
        return None
    try:
        dt = datetime.fromisoformat(iso_ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt.astimezone(EASTERN).date().isoformat()


def today_eastern() -> str:
    return datetime.now(EASTERN).date().isoformat()


# ====================================================================
#  Scoreboard
# ====================================================================

@ttl_cache(seconds=SCOREBOARD_TTL, maxsize=64)
def _scoreboard_events(league: str, yyyymmdd: str) -> List[dict]:
    data = _get_json("%s/%s/scoreboard" % (ESPN_SITE, SPORT_PATHS[league]), params={"dates": yyyymmdd})
    return data.get("events", [])


def _side(competitor: dict, league: str) -> dict:
    team = competitor.get("team", {})
    code = normalize_code(team.get("abbreviation", ""), league)
    records = competitor.get("records") or []
    return {
        "code": code,
        "name": teams_for(league)[code].name,
        "abbreviation": team.get("abbreviation", ""),
        "score": competitor.get("score"),
        "record": records[0].get("summary", "N/A") if records else "N/A",
    }


def parse_event(event: dict, league: str) -> Optional[dict]:
    """Flatten one scoreboard event; ``None`` for events with unknown teams."""
    comp = (event.get("competitions") or [{}])[0]
    competitors = comp.get("competitors", [])
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if not home or not away:
        return None
    known = teams_for(league)
    if normalize_code(home.get("team", {}).get("abbreviation", ""), league) not in known:
        return None
    if normalize_code(away.get("team", {}).get("abbreviation", ""), league) not in known:
        return None

    status = comp.get("status") or event.get("status") or {}
    status_type = status.get("type", {})
    broadcasts = comp.get("broadcasts") or []
    return {
        "id": str(event.get("id", "")),
        "name": event.get("name", ""),
        "shortName": event.get("shortName", ""),
        "date": event.get("date", ""),
        "gameDate": eastern_date(event.get("date", "")),
        "status": {
            "state": status_type.get("state", "pre"),
            "detail": status_type.get("detail", ""),
            "completed": bool(status_type.get("completed", False)),
        },
        "homeTeam": _side(home, league),
        "awayTeam": _side(away, league),
        "venue": (comp.get("venue") or {}).get("fullName", "TBD"),
        "broadcast": ", ".join(broadcasts[0].get("names", [])) if broadcasts else "TBD",
    }


def fetch_games(league: str, date_str: Optional[str] = None) -> List[dict]:
    """Games played on *date_str* (YYYY-MM-DD, Eastern); today when omitted."""
    date_str = date_str or today_eastern()
    try:
        events = _scoreboard_events(league, date_str.replace("-", ""))
    except _FETCH_ERRORS as exc:
        logger.warning("ESPN %s scoreboard for %s failed: %s", league.upper(), date_str, exc)
        return []

    games = []
    for event in events:
        game = parse_event(event, league)
        if game is None or game["gameDate"] != date_str:
            continue
        games.append(game)
    return games


def fetch_upcoming_games(league: str, days: int = 14) -> List[dict]:
    """Pre-game and in-progress games over the next *days* days."""
    start = date.fromisoformat(today_eastern())
    upcoming: List[dict] = []
    seen = set()
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        for game in fetch_games(league, day):
            if game["status"]["state"] in ("pre", "in") and game["id"] not in seen:
                seen.add(game["id"])
                upcoming.append(game)
    return upcoming


# ====================================================================
#  Team records & recent form
# ====================================================================

def _parse_summary(summary: str) -> List[int]:
    parts = []
    for piece in (summary or "").split("-"):
        try:
            parts.append(int(piece))
        except ValueError:
            parts.append(0)
    return (parts + [0, 0, 0])[:3]


@ttl_cache(seconds=TEAM_STATS_TTL, maxsize=128)
def _team_record(league: str, code: str) -> dict:
    team = get_team(code, league)
    data = _get_json("%s/%s/teams/%s" % (ESPN_SITE, SPORT_PATHS[league], team.espn_id), timeout=5)
    items = data["team"].get("record", {}).get("items", [])
    by_type = {item.get("type", "total"): item for item in items}
    total = by_type.get("total") or (items[0] if items else {})
    wins, losses, ties = _parse_summary(total.get("summary", ""))

    record = {"wins": wins, "losses": losses, "ties": ties}
    for key, espn_type in (("homeRecord", "home"), ("awayRecord", "road")):
        item = by_type.get(espn_type)
        if item:
            w, l, _ = _parse_summary(item.get("summary", ""))
        elif key == "homeRecord":
            w, l = wins // 2, losses // 2
        else:
            w, l = wins - wins // 2, losses - losses // 2
        record[key] = {"wins": w, "losses": l}

    stats = {s.get("name"): s.get("value") for s in total.get("stats", []) if s.get("name")}
    record["stats"] = stats
    return record


def get_team_record(league: str, code: str) -> Optional[dict]:
    """Overall/home/road record from ESPN, or ``None`` when unavailable."""
    try:
        return _team_record(league, code)
    except _FETCH_ERRORS as exc:
        logger.warning("ESPN team record for %s %s failed: %s", league.upper(), code, exc)
        return None


@ttl_cache(seconds=TEAM_STATS_TTL, maxsize=128)
def _team_schedule(league: str, code: str) -> List[dict]:
    team = get_team(code, league)
    data = _get_json("%s/%s/teams/%s/schedule" % (ESPN_SITE, SPORT_PATHS[league], team.espn_id), timeout=8)
    return data.get("events", [])


def _score_value(score: Any) -> int:
    if isinstance(score, dict):
        score = score.get("value", score.get("displayValue", 0))
    try:
        return int(float(score or 0))
    except (TypeError, ValueError):
        return 0


def get_recent_results(league: str, code: str, n: int = 5) -> List[dict]:
    """Last *n* completed games, most recent first: ``{"result": "W"|"L"|"T", ...}``."""
    try:
        events = _team_schedule(league, code)
    except _FETCH_ERRORS as exc:
        logger.warning("ESPN schedule for %s %s failed: %s", league.upper(), code, exc)
        return []

    results = []
    for event in events:
        comp = (event.get("competitions") or [{}])[0]
        if not comp.get("status", {}).get("type", {}).get("completed"):
            continue
        competitors = comp.get("competitors", [])
        ours = next((c for c in competitors
                     if normalize_code(c.get("team", {}).get("abbreviation", ""), league) == code), None)
        theirs = next((c for c in competitors if c is not ours), None)
        if ours is None or theirs is None:
            continue
        us, them = _score_value(ours.get("score")), _score_value(theirs.get("score"))
        results.append({
            "date": eastern_date(event.get("date", "")),
            "opponent": normalize_code(theirs.get("team", {}).get("abbreviation", ""), league),
            "score": "%d-%d" % (us, them),
            "result": "W" if us > them else "L" if us < them else "T",
        })
    results.sort(key=lambda r: r["date"] or "", reverse=True)
    return results[:n]


# ====================================================================
#  Box scores
# ====================================================================

def _split_stat(key: str, value: str) -> Dict[str, float]:
    """Expand compound cells like ``"3-7"`` under ``"made-attempted"`` keys."""
    for sep in ("-", "/"):
        if sep in key and isinstance(value, str) and sep in value.lstrip("-"):
            names = key.split(sep)
            values = value.split(sep)
            if len(names) == len(values):
                out = {}
                for name, val in zip(names, values):
                    try:
                        out[name] = float(val)
                    except ValueError:
                        continue
                return out
    try:
        return {key: float(value)}
    except (TypeError, ValueError):
        return {}


def parse_box_score(summary: dict) -> Dict[str, Dict[str, float]]:
    """Map normalised player name to a flat ``{stat_key: value}`` dict."""
    players: Dict[str, Dict[str, float]] = {}
    for team_block in summary.get("boxscore", {}).get("players", []):
        for group in team_block.get("statistics", []):
            keys = group.get("keys") or group.get("names") or []
            for entry in group.get("athletes", []):
                name = normalize_name(entry.get("athlete", {}).get("displayName", ""))
                if not name:
                    continue
                line = players.setdefault(name, {})
                for key, value in zip(keys, entry.get("stats", [])):
                    for stat, num in _split_stat(key, value).items():
                        # Same key can appear in several NFL groups (e.g. fumbles)
                        line.setdefault(stat, num)
    return players


def fetch_box_score(league: str, game_id: str) -> Dict[str, Dict[str, float]]:
    try:
        summary = _get_json("%s/%s/summary" % (ESPN_SITE, SPORT_PATHS[league]),
                            params={"event": game_id}, timeout=10)
    except _FETCH_ERRORS as exc:
        logger.warning("ESPN box score for %s game %s failed: %s", league.upper(), game_id, exc)
        return {}
    return parse_box_score(summary)
