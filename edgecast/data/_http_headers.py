"""Shared HTTP headers for all outbound requests.

stats.nba.com, ESPN and DraftKings all reject bare library User-Agents.
Every module that hits an external API imports these constants so the
browser fingerprint lives in one place.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

# ---------- stats.nba.com (nba_api stats endpoints) ----------
NBA_STATS_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Encoding": "gzip, deflate, br",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Host": "stats.nba.com",
    "Origin": "https://www.nba.com",
    "Referer": "https://www.nba.com/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-site",
    "User-Agent": _BROWSER_UA,
}

# ---------- ESPN / Sleeper / Open-Meteo JSON APIs ----------
JSON_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": _BROWSER_UA,
}

# ---------- HTML pages (NFL.com, ESPN, DraftKings) ----------
WEB_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "User-Agent": _BROWSER_UA,
}


_patched = False


def patch_nba_api_headers() -> None:
    """Monkey-patch nba_api's global headers so every stats request uses
    our browser-like headers.  Passing ``headers=`` per-endpoint isn't enough
    because the shared ``requests.Session`` keeps whatever was used first.

    Safe to call multiple times; only patches once.
    """
    global _patched
    if _patched:
        return
    _patched = True

    from nba_api.library import http as base_http
    from nba_api.stats.library import http as stats_http

    stats_http.STATS_HEADERS = NBA_STATS_HEADERS
    stats_http.NBAStatsHTTP.headers = NBA_STATS_HEADERS
    # Drop any session opened with the library defaults
    stats_http.NBAStatsHTTP._session = None
    base_http.NBAHTTP._session = None
    logger.debug("nba_api stats headers patched")
