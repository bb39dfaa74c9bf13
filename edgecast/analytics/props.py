"""Player-prop picks: the shared ``PropPick`` record, NFL same-game props and
the NBA recommendation/grouping rules.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from edgecast.analytics.odds_converter import parlay_odds_string, round_half_up

NFL_SGP_PRICE_PER_LEG = 1.83
NFL_EDGE_THRESHOLD = 5

# Minimum |projection - line| before an NBA prop is worth a side
NBA_EDGE_THRESHOLDS = {
    "Points": 1.5,
    "Rebounds": 1.0,
    "Assists": 1.0,
    "3-Pointers": 0.5,
}


@dataclass
class PropPick:
    player: str
    team: str
    prop: str
    line: float
    projection: float
    recommendation: str
    confidence: str = "Low"
    confidence_score: Optional[float] = None
    position: str = ""
    player_id: Optional[int] = None
    season_avg: Optional[float] = None
    usage_tier: Optional[str] = None
    is_stretch: bool = False
    warning: Optional[str] = None
    alternative: Optional[str] = None
    edge: float = 0.0

    def to_dict(self) -> dict:
        return {
            "player": self.player,
            "playerId": self.player_id,
            "team": self.team,
            "position": self.position,
            "prop": self.prop,
            "line": self.line,
            "over": self.line,
            "under": self.line,
            "recommendation": self.recommendation,
            "confidence": self.confidence,
            "confidenceScore": None if self.confidence_score is None else round(self.confidence_score, 1),
            "projection": self.projection,
            "seasonAvg": self.season_avg,
            "usageTier": self.usage_tier,
            "isStretch": self.is_stretch,
            "warning": self.warning,
            "alternative": self.alternative,
            "edge": self.edge,
        }


def confidence_bucket(score: float) -> str:
    """NBA prop bucket: High ≥ 70, Medium ≥ 60."""
    if score >= 70:
        return "High"
    if score >= 60:
        return "Medium"
    return "Low"


# ====================================================================
#  NFL same-game props
# ====================================================================

# position group -> (prop label, season stat key, opponent-ppg shading (high, low, adj))
_NFL_PROP_RULES = {
    "QB": ("Passing Yards", "passingYards", (28, 18, 10)),
    "RB": ("Rushing Yards", "rushingYards", (26, 18, 8)),
    "WR": ("Receiving Yards", "receivingYards", (28, 18, 6)),
}


def _nfl_confidence(group: str, avg: float, team_ppg: float) -> str:
    if group == "QB":
        return "High" if team_ppg > 24 else "Medium" if team_ppg > 20 else "Low"
    if group == "RB":
        return "High" if avg > 100 else "Medium" if avg > 60 else "Low"
    return "High" if avg > 90 else "Medium" if avg > 60 else "Low"


def nfl_recommendation(avg: float, line: float) -> str:
    if avg > line + NFL_EDGE_THRESHOLD:
        return "OVER"
    if avg < line - NFL_EDGE_THRESHOLD:
        return "UNDER"
    return "PASS"


def _top_player(players: List[dict], group: str, stat: str) -> Optional[dict]:
    positions = ("WR", "TE") if group == "WR" else (group,)
    candidates = [p for p in players
                  if p["position"] in positions and p["seasonStats"].get(stat, 0) > 0]
    return max(candidates, key=lambda p: p["seasonStats"][stat]) if candidates else None


def nfl_team_props(team: str, players: List[dict], team_ppg: float, opponent_ppg: float) -> List[PropPick]:
    """QB, RB and WR/TE yardage props for one side.

    The book line is the per-game average shaded by the opponent's scoring
    and rounded toward the under; the average itself is the projection.
    """
    picks = []
    for group, (label, stat, (high, low, adj)) in _NFL_PROP_RULES.items():
        player = _top_player(players, group, stat)
        if player is None:
            continue
        games = player["seasonStats"].get("gamesPlayed") or 1
        avg = round_half_up(player["seasonStats"][stat] / games)
        shade = -adj if opponent_ppg > high else adj if opponent_ppg < low else 0
        line = round_half_up(avg + shade - 0.5)
        picks.append(PropPick(
            player=player["name"],
            team=team,
            position=player["position"],
            prop=label,
            line=line,
            projection=avg,
            recommendation=nfl_recommendation(avg, line),
            confidence=_nfl_confidence(group, avg, team_ppg),
            season_avg=avg,
            edge=abs(avg - line),
        ))
    return picks


def suggested_nfl_parlay(props: List[PropPick]) -> List[PropPick]:
    live = [p for p in props if p.recommendation != "PASS"]
    high = [p for p in live if p.confidence == "High"]
    return high[:4] if high else live[:3]


def nfl_parlay_odds(legs: int) -> str:
    return parlay_odds_string(legs, NFL_SGP_PRICE_PER_LEG, subtract_stake=False)


# ====================================================================
#  NBA props
# ====================================================================

def nba_recommendation(prop_type: str, projection: float, line: float) -> str:
    threshold = NBA_EDGE_THRESHOLDS.get(prop_type, 1.0)
    delta = projection - line
    if delta >= threshold:
        return "OVER"
    if delta <= -threshold:
        return "UNDER"
    return "PASS"


def prop_strategies(props: List[PropPick]) -> Dict[str, dict]:
    """Four preset groupings over already-scored NBA props."""
    live = [p for p in props if p.recommendation != "PASS" and p.confidence_score is not None]
    ranked = sorted(live, key=lambda p: p.confidence_score, reverse=True)

    conservative = [p for p in ranked if p.confidence_score >= 65
                    and p.usage_tier in ("PRIMARY", "SECONDARY")][:3]
    balanced = [p for p in ranked if p.confidence_score >= 60
                and not (p.usage_tier == "ROLE_PLAYER" and p.prop == "Points"
                         and p.recommendation == "OVER")][:4]
    aggressive = [p for p in ranked if p.confidence_score >= 55][:6]
    risky = sorted(live, key=lambda p: p.edge, reverse=True)[:5]

    def group(name: str, legs: List[PropPick], description: str) -> dict:
        return {
            "name": name,
            "description": description,
            "legs": [p.to_dict() for p in legs],
            "odds": parlay_odds_string(len(legs), 1.909),
        }

    return {
        "conservative": group("Conservative", conservative, "PRIMARY/SECONDARY players at 65%+ confidence"),
        "balanced": group("Balanced", balanced, "60%+ confidence, no role-player points overs"),
        "aggressive": group("Aggressive", aggressive, "Anything at 55%+ confidence"),
        "risky": group("Risky", risky, "Biggest projection-vs-line gaps regardless of confidence"),
    }
