"""Injury reports: NFL.com scrape + manual overrides, ESPN for the NBA.

Injury maps are keyed by player name (diacritics and Jr./Sr./II/III/IV
suffixes stripped) and look like::

    {"Bucky Irving": {"team": "TB", "position": "RB", "injury": "Shoulder",
                      "gameStatus": "Out", "isOut": True, "source": "manual"}}

Manual entries always win over scraped ones.
"""
from __future__ import annotations

import json
import logging
import re
import time
import unicodedata
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from edgecast import config
from edgecast.analytics.cache import INJURY_TTL, register_cache
from edgecast.data._http_headers import JSON_HEADERS, WEB_HEADERS

logger = logging.getLogger(__name__)

NFL_INJURIES_URL = "https://www.nfl.com/injuries/"
ESPN_NBA_INJURIES_API = "https://site.api.espn.com/apis/site/v2/sports/basketball/nba/injuries"
ESPN_NBA_INJURIES_PAGE = "https://www.espn.com/nba/injuries"

_SUFFIX_RE = re.compile(r"\s+(Jr\.?|Sr\.?|III|II|IV)\.?$", re.IGNORECASE)
_OUT_RE = re.compile(r"\b(out|ir|pup|injured reserve)\b", re.IGNORECASE)

# ── TTL cache for HTTP scrapes (avoid hammering sources) ──
_scrape_cache: Dict[str, Dict[str, dict]] = {}
_scrape_cache_ts: Dict[str, float] = {}


def _get_cached_scrape(source: str) -> Optional[Dict[str, dict]]:
    if source in _scrape_cache:
        age = time.time() - _scrape_cache_ts.get(source, 0)
        if age < INJURY_TTL:
            logger.debug("Using cached %s injuries (%.0fs old)", source, age)
            return _scrape_cache[source]
    return None


def _set_cached_scrape(source: str, data: Dict[str, dict]) -> None:
    _scrape_cache[source] = data
    _scrape_cache_ts[source] = time.time()


def invalidate_injury_scrape_cache() -> None:
    _scrape_cache.clear()
    _scrape_cache_ts.clear()


register_cache("injury_scraper", invalidate_injury_scrape_cache, lambda: len(_scrape_cache))


# ---------------------------------------------------------------------------
# Name / status normalization
# ---------------------------------------------------------------------------

def normalize_name(name: str) -> str:
    """Strip diacritical marks and collapse whitespace (Dončić → Doncic)."""
    nfkd = unicodedata.normalize("NFKD", name or "")
    ascii_name = "".join(c for c in nfkd if unicodedata.category(c) != "Mn")
    return " ".join(ascii_name.split())


def strip_suffix(name: str) -> str:
    return _SUFFIX_RE.sub("", normalize_name(name)).strip()


def _normalize_status(raw: str) -> str:
    low = (raw or "").strip().lower()
    if low in ("out", "o"):
        return "Out"
    if low in ("doubtful", "d"):
        return "Doubtful"
    if low in ("questionable", "q"):
        return "Questionable"
    if low in ("probable", "p"):
        return "Probable"
    if "day" in low:
        return "Day-To-Day"
    if low in ("ir", "injured reserve"):
        return "IR"
    if low == "pup":
        return "PUP"
    return raw.strip().title() if raw else "Out"


def is_out_status(status: str) -> bool:
    return bool(_OUT_RE.search(status or ""))


def _entry(team: str, position: str, injury: str, status: str, source: str) -> dict:
    return {
        "team": team,
        "position": position,
        "injury": injury,
        "gameStatus": status,
        "isOut": is_out_status(status),
        "source": source,
    }


def is_player_out(player_name: str, injuries: Dict[str, dict]) -> bool:
    """Exact (suffix-stripped) name match first, then a last-name match."""
    if not player_name or not injuries:
        return False
    name = strip_suffix(player_name)
    if name in injuries:
        return bool(injuries[name].get("isOut"))
    last = name.split(" ")[-1]
    return any(
        injured.endswith(last) and data.get("isOut")
        for injured, data in injuries.items()
    )


# ---------------------------------------------------------------------------
# NFL
# ---------------------------------------------------------------------------

def parse_nfl_injury_page(html: str) -> Dict[str, dict]:
    """Parse the NFL.com injury tables (Player | Pos | Injury | Practice | Game status)."""
    soup = BeautifulSoup(html, "html.parser")
    injuries: Dict[str, dict] = {}
    for section in soup.select(".nfl-o-injury-report__team, .d3-o-table"):
        for row in section.find_all("tr"):
            cells = row.find_all("td")
            if len(cells) < 4:
                continue
            name = strip_suffix(cells[0].get_text(strip=True))
            position = cells[1].get_text(strip=True)
            injury = cells[2].get_text(strip=True)
            status = cells[3].get_text(strip=True)
            if not status and len(cells) > 4:
                status = cells[4].get_text(strip=True)
            if name and status:
                injuries[name] = _entry("", position, injury, status, "NFL.com")
    return injuries


def scrape_nfl_injuries() -> Dict[str, dict]:
    cached = _get_cached_scrape("NFL.com")
    if cached is not None:
        return cached
    try:
        resp = requests.get(NFL_INJURIES_URL, headers=WEB_HEADERS, timeout=10)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("NFL.com injury scrape failed: %s", exc)
        return {}
    injuries = parse_nfl_injury_page(resp.text)
    _set_cached_scrape("NFL.com", injuries)
    return injuries


def load_manual_injuries() -> Dict[str, dict]:
    """Hand-maintained overrides from ``data/manual_injuries.json``."""
    path = config.get_manual_injuries_path()
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return {}
    manual = {}
    for name, info in raw.items():
        status = info.get("gameStatus", "Out")
        entry = _entry(info.get("team", ""), info.get("position", ""),
                       info.get("injury", ""), status, "manual")
        if "isOut" in info:
            entry["isOut"] = bool(info["isOut"])
        manual[strip_suffix(name)] = entry
    return manual


def get_nfl_injuries() -> Dict[str, dict]:
    injuries = dict(scrape_nfl_injuries())
    injuries.update(load_manual_injuries())
    out_count = sum(1 for v in injuries.values() if v["isOut"])
    logger.info("Loaded %d injured NFL players (%d OUT/IR/PUP)", len(injuries), out_count)
    return injuries


# ---------------------------------------------------------------------------
# NBA
# ---------------------------------------------------------------------------

def _iter_espn_injuries(payload: dict):
    for item in payload.get("injuries", []):
        # Team-grouped payload: {"displayName": ..., "injuries": [...]}
        if "injuries" in item:
            for inj in item["injuries"]:
                yield item, inj
        else:
            yield item.get("team", {}), item


def parse_espn_injury_api(payload: dict) -> Dict[str, dict]:
    injuries: Dict[str, dict] = {}
    for team, inj in _iter_espn_injuries(payload):
        athlete = inj.get("athlete", {})
        name = strip_suffix(athlete.get("displayName", ""))
        if not name:
            continue
        team_code = (athlete.get("team") or {}).get("abbreviation") or team.get("abbreviation", "")
        detail = (inj.get("details") or {}).get("type") or inj.get("shortComment", "")
        injuries[name] = _entry(
            team_code or team.get("displayName", ""),
            (athlete.get("position") or {}).get("abbreviation", ""),
            detail,
            _normalize_status(inj.get("status", "")),
            "ESPN",
        )
    return injuries


def parse_espn_injury_page(html: str) -> Dict[str, dict]:
    """ESPN HTML tables: Name | Pos | Est. Return | Status | Comment."""
    soup = BeautifulSoup(html, "html.parser")
    injuries: Dict[str, dict] = {}
    for table in soup.find_all("div", class_="ResponsiveTable"):
        header = table.find_previous("div", class_="injuries__teamHeader")
        team_name = ""
        if header and header.find("a"):
            team_name = header.find("a").get_text(strip=True)
        for row in table.find_all("tr")[1:]:
            cols = row.find_all("td")
            if len(cols) < 5:
                continue
            name = strip_suffix(cols[0].get_text(strip=True))
            detail = re.sub(r"^[A-Z][a-z]{2}\s+\d{1,2}:\s*", "", cols[4].get_text(strip=True))
            injuries[name] = _entry(team_name, cols[1].get_text(strip=True), detail,
                                    _normalize_status(cols[3].get_text(strip=True)), "ESPN")
    return injuries


def get_nba_injuries() -> Dict[str, dict]:
    cached = _get_cached_scrape("ESPN-NBA")
    if cached is not None:
        return cached
    injuries: Dict[str, dict] = {}
    try:
        resp = requests.get(ESPN_NBA_INJURIES_API, headers=JSON_HEADERS, timeout=10)
        resp.raise_for_status()
        injuries = parse_espn_injury_api(resp.json())
    except (requests.RequestException, ValueError) as exc:
        logger.warning("ESPN NBA injury API failed, trying HTML page: %s", exc)

    if not injuries:
        try:
            resp = requests.get(ESPN_NBA_INJURIES_PAGE, headers=WEB_HEADERS, timeout=10)
            resp.raise_for_status()
            injuries = parse_espn_injury_page(resp.text)
        except requests.RequestException as exc:
            logger.warning("ESPN NBA injury page scrape failed: %s", exc)
            return {}

    _set_cached_scrape("ESPN-NBA", injuries)
    return injuries


def out_players_for(team_code: str, injuries: Dict[str, dict]) -> List[str]:
    return [name for name, info in injuries.items()
            if info.get("isOut") and info.get("team") == team_code]


def get_injuries(league: str) -> Dict[str, Any]:
    return get_nfl_injuries() if league == "nfl" else get_nba_injuries()
