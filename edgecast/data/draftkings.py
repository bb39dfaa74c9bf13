"""DraftKings sportsbook odds: event-group JSON API with an HTML-text fallback.

Every game comes back as::

    {"eventId", "gameDate", "gameTime", "homeTeam", "awayTeam",
     "homeName", "awayName",
     "lines": {"spread": {...}, "moneyline": {...}, "total": {...}},
     "playerProps": [{"playerName": ..., "props": [{"type", "line", "odds"}]}]}

``homeTeam``/``awayTeam`` are our team codes (``None`` when unmapped).
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from edgecast.analytics.cache import ODDS_TTL, ttl_cache
from edgecast.data._http_headers import JSON_HEADERS, WEB_HEADERS
from edgecast.data.espn import eastern_date
from edgecast.data.injury_scraper import normalize_name
from edgecast.data.teams import find_by_name, is_valid_team, normalize_code

logger = logging.getLogger(__name__)

DK_API = "https://sportsbook-nash-usva.draftkings.com/sites/US-VA-SB/api/v5/eventgroups/%d"
EVENT_GROUPS = {"nba": 42648, "nfl": 88808}
DK_PAGES = {
    "nba": "https://sportsbook.draftkings.com/leagues/basketball/nba",
    "nfl": "https://sportsbook.draftkings.com/leagues/football/nfl",
}

PROP_MARKET_KEYWORDS = ("Points", "Rebounds", "Assists", "Pts+Reb+Ast")

_DK_ABBREVIATIONS = {
    "nba": {"NO": "NOP", "GS": "GSW", "SA": "SAS", "PHO": "PHX", "NY": "NYK"},
    "nfl": {},
}

_MATCHUP_RE = re.compile(
    r"([A-Z]{2,3}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s+AT\s+([A-Z]{2,3}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"
)
_SPREAD_RE = re.compile(r"([+-]?\d+\.5)")
_TOTAL_RE = re.compile(r"[OU]\s*(\d+\.5)", re.IGNORECASE)
_ODDS_RE = re.compile(r"([+-]\d{3,})")


def _empty_lines() -> dict:
    return {
        "spread": {"home": None, "away": None, "homeOdds": None, "awayOdds": None},
        "moneyline": {"home": None, "away": None},
        "total": {"line": None, "over": None, "under": None},
    }


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value) -> Optional[int]:
    try:
        return int(str(value).replace("−", "-"))
    except (TypeError, ValueError):
        return None


def map_team(team_name: str, league: str) -> Optional[str]:
    """``"BOS Celtics"`` or ``"Boston Celtics"`` -> ``"BOS"``."""
    team_name = (team_name or "").strip()
    match = re.match(r"^([A-Z]{2,3})\s+", team_name)
    if match:
        code = _DK_ABBREVIATIONS[league].get(match.group(1), match.group(1))
        code = normalize_code(code, league)
        if is_valid_team(code, league):
            return code
    team = find_by_name(team_name, league)
    return team.code if team else None


def extract_prop_type(market_name: str) -> str:
    name = (market_name or "").lower()
    if "pts+reb+ast" in name or "points + rebounds + assists" in name:
        return "Pts+Reb+Ast"
    if "points" in name:
        return "Points"
    if "rebounds" in name:
        return "Rebounds"
    if "assists" in name:
        return "Assists"
    if "steals" in name:
        return "Steals"
    if "blocks" in name:
        return "Blocks"
    if "3-pointers" in name or "threes" in name:
        return "3-Pointers"
    if "turnovers" in name:
        return "Turnovers"
    return "Other"


def deduplicate_players(players: List[dict]) -> List[dict]:
    """Merge repeated player entries, keeping the first line of each prop type."""
    merged: Dict[str, dict] = {}
    for player in players:
        existing = merged.get(player["playerName"])
        if existing is None:
            merged[player["playerName"]] = {"playerName": player["playerName"],
                                            "props": list(player["props"])}
            continue
        seen_types = {p["type"] for p in existing["props"]}
        for prop in player["props"]:
            if prop["type"] not in seen_types:
                existing["props"].append(prop)
                seen_types.add(prop["type"])
    return list(merged.values())


# ====================================================================
#  JSON API
# ====================================================================

def parse_event_lines(event: dict) -> dict:
    lines = _empty_lines()
    for group in event.get("displayGroups") or []:
        for market in group.get("markets") or []:
            name = (market.get("name") or "").lower()
            outcomes = market.get("outcomes") or []
            if len(outcomes) < 2:
                continue
            first, second = outcomes[0], outcomes[1]
            if "spread" in name:
                lines["spread"].update(
                    home=_to_float(first.get("line")), homeOdds=_to_int(first.get("oddsAmerican")),
                    away=_to_float(second.get("line")), awayOdds=_to_int(second.get("oddsAmerican")),
                )
            elif "moneyline" in name:
                lines["moneyline"].update(home=_to_int(first.get("oddsAmerican")),
                                          away=_to_int(second.get("oddsAmerican")))
            elif "total" in name:
                lines["total"].update(line=_to_float(first.get("line")),
                                      over=_to_int(first.get("oddsAmerican")),
                                      under=_to_int(second.get("oddsAmerican")))
    return lines


def parse_event_props(event: dict) -> List[dict]:
    players: List[dict] = []
    for group in event.get("displayGroups") or []:
        for market in group.get("markets") or []:
            market_name = market.get("name") or ""
            if not any(key in market_name for key in PROP_MARKET_KEYWORDS):
                continue
            prop_type = extract_prop_type(market_name)
            for outcome in market.get("outcomes") or []:
                player_name = outcome.get("participant") or outcome.get("label") or ""
                if not player_name:
                    continue
                players.append({
                    "playerName": normalize_name(player_name),
                    "props": [{
                        "type": prop_type,
                        "line": _to_float(outcome.get("line")),
                        "odds": _to_int(outcome.get("oddsAmerican")),
                    }],
                })
    return deduplicate_players(players)


def parse_event_group(payload: dict, league: str) -> List[dict]:
    games = []
    for event in (payload.get("eventGroup") or {}).get("events") or []:
        names = (event.get("name") or "").split(" @ ")
        if len(names) != 2:
            continue
        away_name, home_name = names
        games.append({
            "eventId": str(event.get("eventId", "")),
            "gameDate": eastern_date(event.get("startDate", "")),
            "gameTime": event.get("startDate"),
            "homeName": home_name,
            "awayName": away_name,
            "homeTeam": map_team(home_name, league),
            "awayTeam": map_team(away_name, league),
            "lines": parse_event_lines(event),
            "playerProps": parse_event_props(event),
        })
    return games


@ttl_cache(seconds=ODDS_TTL, maxsize=4)
def _event_group(league: str) -> List[dict]:
    resp = requests.get(DK_API % EVENT_GROUPS[league], params={"format": "json"},
                        headers=JSON_HEADERS, timeout=10)
    resp.raise_for_status()
    return parse_event_group(resp.json(), league)


# ====================================================================
#  HTML fallback
# ====================================================================

def parse_page_text(text: str, league: str) -> List[dict]:
    """Regex pass over the league page text; one block per "XXX Name AT YYY Name"."""
    matches = list(_MATCHUP_RE.finditer(text))
    games = []
    seen = set()
    for idx, match in enumerate(matches):
        away_name, home_name = match.group(1).strip(), match.group(2).strip()
        key = (away_name, home_name)
        if key in seen:
            continue
        seen.add(key)

        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(text)
        block = text[match.end():end]
        lines = _empty_lines()

        spread = _SPREAD_RE.search(block)
        if spread:
            home_spread = float(spread.group(1))
            lines["spread"].update(home=home_spread, away=-home_spread)
        total = _TOTAL_RE.search(block)
        if total:
            lines["total"]["line"] = float(total.group(1))

        odds = [int(o) for o in _ODDS_RE.findall(block)]
        if len(odds) >= 6:
            # Page order: away spread, home spread, over, under, away ML, home ML
            lines["spread"].update(awayOdds=odds[0], homeOdds=odds[1])
            lines["total"].update(over=odds[2], under=odds[3])
            lines["moneyline"].update(away=odds[4], home=odds[5])
        elif len(odds) >= 2:
            lines["spread"].update(awayOdds=odds[0], homeOdds=odds[1])
            if len(odds) >= 4:
                lines["total"].update(over=odds[2], under=odds[3])

        games.append({
            "eventId": "%s-%d" % (league, len(games)),
            "gameDate": None,
            "gameTime": None,
            "homeName": home_name,
            "awayName": away_name,
            "homeTeam": map_team(home_name, league),
            "awayTeam": map_team(away_name, league),
            "lines": lines,
            "playerProps": [],
        })
    return games


@ttl_cache(seconds=ODDS_TTL, maxsize=4)
def _league_page(league: str) -> List[dict]:
    resp = requests.get(DK_PAGES[league], headers=WEB_HEADERS, timeout=15)
    resp.raise_for_status()
    text = BeautifulSoup(resp.text, "html.parser").get_text(" ", strip=True)
    return parse_page_text(text, league)


# ====================================================================
#  Public API
# ====================================================================

def fetch_odds(league: str, date_str: Optional[str] = None) -> List[dict]:
    """All DraftKings games for *league*, optionally limited to one Eastern date."""
    games: List[dict] = []
    try:
        games = _event_group(league)
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.warning("DraftKings %s API failed, falling back to page scrape: %s", league.upper(), exc)

    if not games:
        try:
            games = _league_page(league)
        except requests.RequestException as exc:
            logger.warning("DraftKings %s page scrape failed: %s", league.upper(), exc)
            return []

    if date_str:
        games = [g for g in games if g["gameDate"] in (None, date_str)]
    return games


def find_game_odds(league: str, home: str, away: str, date_str: Optional[str] = None) -> Optional[dict]:
    for game in fetch_odds(league, date_str):
        if game["homeTeam"] == home and game["awayTeam"] == away:
            return game
    return None


def prop_lines(game: Optional[dict]) -> Dict[tuple, float]:
    """``{(player_name, prop_type): line}`` for one DK game."""
    lines: Dict[tuple, float] = {}
    if not game:
        return lines
    for player in game.get("playerProps", []):
        for prop in player["props"]:
            if prop.get("line") is not None:
                lines.setdefault((player["playerName"], prop["type"]), prop["line"])
    return lines
