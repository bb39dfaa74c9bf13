"""Same-game parlay assembly for one matchup.

Pulls rosters, projections and book lines, runs the prop builders and
optionally stores every prop so it can be graded once the game is final.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from edgecast.analytics import parlay_builder, sgp_builder
from edgecast.analytics.prediction import NBA_ROSTER_SIZE, predict_nba, team_injuries
from edgecast.analytics.props import (
    PropPick,
    nfl_parlay_odds,
    nfl_team_props,
    prop_strategies,
    suggested_nfl_parlay,
)
from edgecast.analytics.team_stats import get_nfl_team_stats
from edgecast.data import draftkings, nba_stats, sleeper
from edgecast.data.injury_scraper import get_nba_injuries, get_nfl_injuries, is_player_out
from edgecast.data.teams import get_team
from edgecast.database import store

logger = logging.getLogger(__name__)


def save_props(props: List[PropPick], game_id: str, game_date: str, sport: str) -> int:
    saved = 0
    for prop in props:
        if store.save_prop_prediction(
            game_id, game_date, prop.player, prop.team, prop.position, prop.prop,
            prop.line, prop.recommendation, prop.confidence,
            projection=prop.projection, sport=sport,
        ):
            saved += 1
    logger.info("Saved %d/%d %s props for game %s", saved, len(props), sport.upper(), game_id)
    return saved


# ====================================================================
#  NFL
# ====================================================================

def nfl_same_game_parlay(home: str, away: str, game_id: Optional[str] = None,
                         game_date: Optional[str] = None) -> dict:
    home = get_team(home, "nfl").code
    away = get_team(away, "nfl").code
    injuries = get_nfl_injuries()
    home_stats = get_nfl_team_stats(home)
    away_stats = get_nfl_team_stats(away)

    def healthy(code):
        return [p for p in sleeper.team_player_stats(code) if not is_player_out(p["name"], injuries)]

    props = (nfl_team_props(home, healthy(home), home_stats.points_per_game, away_stats.points_per_game)
             + nfl_team_props(away, healthy(away), away_stats.points_per_game, home_stats.points_per_game))
    parlay = suggested_nfl_parlay(props)

    if game_id and game_date:
        save_props(props, game_id, game_date, "nfl")

    return {
        "game": "%s @ %s" % (away, home),
        "allProps": [p.to_dict() for p in props],
        "suggestedParlay": [p.to_dict() for p in parlay],
        "parlayOdds": nfl_parlay_odds(len(parlay)),
    }


# ====================================================================
#  NBA
# ====================================================================

def _nba_players(code: str, injuries: dict) -> List[dict]:
    """Top healthy scorers as plain dicts ready for a projection."""
    listed = team_injuries(code, injuries)
    players = []
    for player in nba_stats.team_players(code)[:NBA_ROSTER_SIZE]:
        if is_player_out(player["name"], listed):
            logger.debug("Skipping %s (%s): listed OUT", player["name"], code)
            continue
        players.append(dict(player, team=code))
    return players


def game_context(home: str, away: str, home_stats: dict, away_stats: dict,
                 home_score: float, away_score: float, lines: Optional[dict]) -> dict:
    """Positive ``spread`` means the home side is favoured."""
    lines = lines or {}
    book_spread = (lines.get("spread") or {}).get("home")
    book_total = (lines.get("total") or {}).get("line")
    return {
        "homeTeam": home,
        "awayTeam": away,
        "spread": -book_spread if book_spread is not None else home_score - away_score,
        "projectedTotal": book_total if book_total is not None else home_score + away_score,
        "pace": round((home_stats["pace"] + away_stats["pace"]) / 2, 1),
    }


def nba_same_game_parlay(home: str, away: str, game_id: Optional[str] = None,
                         game_date: Optional[str] = None) -> dict:
    home = get_team(home, "nba").code
    away = get_team(away, "nba").code
    injuries = get_nba_injuries()

    home_players = _nba_players(home, injuries)
    away_players = _nba_players(away, injuries)
    projections = nba_stats.project_players(home_players + away_players)
    for player in home_players + away_players:
        player["projection"] = projections.get(player["name"], {})

    odds = draftkings.find_game_odds("nba", home, away, game_date)
    prediction = predict_nba(home, away, True, game_date)
    context = game_context(
        home, away, prediction.team1_stats, prediction.team2_stats,
        prediction.home_score, prediction.away_score, odds["lines"] if odds else None,
    )

    sgp = sgp_builder.generate_sgp_picks(home_players, away_players, context, draftkings.prop_lines(odds))
    smart = parlay_builder.generate_smart_parlays(sgp["safeProps"], context)

    if game_id and game_date:
        save_props(sgp["allProps"], game_id, game_date, "nba")

    return {
        "game": "%s @ %s" % (away, home),
        "context": context,
        "hasBookLines": odds is not None,
        "allProps": [p.to_dict() for p in sgp["allProps"]],
        "correlations": sgp["correlations"],
        "recommendations": sgp["recommendations"],
        "smartParlays": {
            "safe": parlay_builder.format_parlay_for_display(smart["safe"]),
            "balanced": parlay_builder.format_parlay_for_display(smart["balanced"]),
            "moonshot": parlay_builder.format_parlay_for_display(smart["moonshot"]),
            "correlations": smart["allCorrelations"],
        },
        "strategies": prop_strategies(sgp["allProps"]),
    }


def same_game_parlay(league: str, home: str, away: str, game_id: Optional[str] = None,
                     game_date: Optional[str] = None) -> dict:
    if league == "nba":
        return nba_same_game_parlay(home, away, game_id, game_date)
    return nfl_same_game_parlay(home, away, game_id, game_date)
