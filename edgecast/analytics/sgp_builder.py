"""NBA same-game parlay builder.

Players are bucketed into usage tiers by their team's scoring order.
Points props on low-usage players are the classic trap (a 9 PPG role
player asked for 15+), so confidence is tier-aware and inflated lines
are flagged as stretch lines.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from edgecast.analytics.odds_converter import parlay_odds_string, round_half_up
from edgecast.analytics.props import PropPick, confidence_bucket, nba_recommendation
from edgecast.data.injury_scraper import normalize_name

logger = logging.getLogger(__name__)

SGP_PRICE_PER_LEG = 1.7

PROP_STATS = (
    # prop type, season-average key, minimum season average to offer it
    ("Points", "points", 0.0),
    ("Assists", "assists", 4.0),
    ("Rebounds", "rebounds", 6.0),
    ("3-Pointers", "fg3Made", 1.5),
)


@dataclass(frozen=True)
class UsageTier:
    tier: str
    rank: int
    description: str
    safety_rating: int

    def to_dict(self) -> dict:
        return {"tier": self.tier, "rank": self.rank, "description": self.description,
                "safetyRating": self.safety_rating}


USAGE_TIERS = {
    "PRIMARY": UsageTier("PRIMARY", 1, "Primary scorer/handler (20+ PPG)", 90),
    "SECONDARY": UsageTier("SECONDARY", 2, "Secondary option (15-20 PPG)", 75),
    "TERTIARY": UsageTier("TERTIARY", 3, "Third option (10-15 PPG)", 55),
    "ROLE_PLAYER": UsageTier("ROLE_PLAYER", 4, "Role player (<10 PPG or limited usage)", 30),
}


def usage_tier(player: dict, team_players: List[dict]) -> UsageTier:
    order = sorted(team_players, key=lambda p: p.get("points") or 0, reverse=True)
    names = [p["name"] for p in order]
    rank = names.index(player["name"]) + 1 if player["name"] in names else len(names) + 1
    ppg = player.get("points") or 0

    if rank <= 2 and ppg >= 20:
        return USAGE_TIERS["PRIMARY"]
    if (rank <= 4 and ppg >= 15) or ppg >= 18:
        return USAGE_TIERS["SECONDARY"]
    if 10 <= ppg < 15:
        return USAGE_TIERS["TERTIARY"]
    return USAGE_TIERS["ROLE_PLAYER"]


def prop_confidence(player: dict, prop_type: str, line: float, projection: float, tier: UsageTier) -> float:
    """Tier-aware confidence percentage, capped to [30, 85]."""
    diff = projection - line
    diff_pct = diff / line * 100 if line else 0.0
    confidence = 50.0

    if prop_type == "Points":
        if diff < 0:
            confidence = 55 + abs(diff_pct) * 2
            if tier.tier == "ROLE_PLAYER" and line > projection * 1.2:
                confidence += 15
        else:
            confidence = 50 + diff_pct * 1.5
            if tier.tier == "ROLE_PLAYER":
                confidence -= 25
            elif tier.tier == "TERTIARY":
                confidence -= 10
            elif tier.tier == "PRIMARY":
                confidence += 10
    elif prop_type == "Assists":
        confidence = 55 + diff_pct * 1.8
        if (player.get("assists") or 0) >= 7:
            confidence += 10
        if tier.tier in ("PRIMARY", "SECONDARY"):
            confidence += 5
    elif prop_type == "Rebounds":
        confidence = 55 + diff_pct * 2
        if (player.get("rebounds") or 0) >= 8:
            confidence += 15
            if tier.tier == "ROLE_PLAYER":
                confidence += 5
    elif prop_type == "3-Pointers":
        confidence = 50 + diff_pct * 2
        if (player.get("fg3Made") or 0) >= 2.5:
            confidence += 10

    return max(30.0, min(85.0, confidence))


def stretch_check(player: dict, prop_type: str, line: float, tier: UsageTier) -> Tuple[bool, Optional[str], Optional[str]]:
    """``(is_stretch, warning, alternative)`` for inflated points lines."""
    season_avg = player.get("points") or 0
    if prop_type != "Points" or not season_avg:
        return False, None, None
    stretch_pct = (line - season_avg) / season_avg * 100
    name = player["name"]
    if tier.tier == "ROLE_PLAYER" and stretch_pct > 25:
        return (
            True,
            "⚠️ ROLE PLAYER TRAP: %s averages %.1f PPG but line is %s+ (%.0f%% increase)"
            % (name, season_avg, line, stretch_pct),
            "Consider %s REBOUNDS or a PRIMARY scorer instead" % name,
        )
    if tier.tier == "TERTIARY" and stretch_pct > 35:
        return (
            True,
            "⚠️ TERTIARY PLAYER RISK: %s averaging %.1f PPG, asking for %.0f%% increase"
            % (name, season_avg, stretch_pct),
            "Look for a SECONDARY or PRIMARY scorer instead",
        )
    return False, None, None


def player_props(player: dict, team_players: List[dict],
                 book_lines: Optional[Dict[tuple, float]] = None) -> List[PropPick]:
    """Points for everyone, other stats only for players who produce them."""
    book_lines = book_lines or {}
    tier = usage_tier(player, team_players)
    projections = player.get("projection") or {}
    picks = []
    for prop_type, stat_key, minimum in PROP_STATS:
        season_avg = player.get(stat_key) or 0
        if prop_type != "Points" and season_avg < minimum:
            continue
        projection = float(projections.get(prop_type, season_avg))
        line = book_lines.get((normalize_name(player["name"]), prop_type))
        if line is None:
            line = round_half_up(projection - 0.5)
            recommendation = "OVER" if projection > line else "UNDER"
        else:
            recommendation = nba_recommendation(prop_type, projection, line)
        score = prop_confidence(player, prop_type, line, projection, tier)
        is_stretch, warning, alternative = stretch_check(player, prop_type, line, tier)
        picks.append(PropPick(
            player=player["name"],
            player_id=player.get("playerId"),
            team=player["team"],
            prop=prop_type,
            line=line,
            projection=projection,
            recommendation=recommendation,
            confidence=confidence_bucket(score),
            confidence_score=score,
            season_avg=season_avg,
            usage_tier=tier.tier,
            is_stretch=is_stretch,
            warning=warning,
            alternative=alternative,
            edge=round(abs(projection - line), 1),
        ))
    return picks


def analyze_correlations(props: List[PropPick], context: dict) -> List[dict]:
    correlations = []
    total = context.get("projectedTotal") or 0
    pace = context.get("pace") or 0

    if total >= 225:
        scorers = [p for p in props if p.prop == "Points" and p.recommendation == "OVER"
                   and p.usage_tier in ("PRIMARY", "SECONDARY")]
        if len(scorers) >= 2:
            correlations.append({
                "type": "HIGH_SCORING_GAME",
                "props": scorers,
                "confidence": 70,
                "reasoning": "High total (%s) → Multiple PRIMARY/SECONDARY scorers likely hit OVER" % total,
                "warning": "⚠️ Avoid adding role players - they may not benefit from pace",
            })

    stars = [p for p in props if p.prop == "Points" and p.projection >= 30 and p.usage_tier == "PRIMARY"]
    if stars:
        star = stars[0]
        teammates = [p for p in props if p.team == star.team and p.player != star.player and p.prop == "Points"]
        if teammates:
            correlations.append({
                "type": "STAR_DOMINANCE",
                "props": [star],
                "confidence": 65,
                "reasoning": "%s projected for %s+ pts → May limit teammate scoring" % (star.player, star.projection),
                "warning": "⚠️ Be cautious pairing with %s OVER points" % ", ".join(t.player for t in teammates),
            })

    assist_overs = [p for p in props if p.prop == "Assists" and p.recommendation == "OVER"
                    and (p.season_avg or 0) >= 6]
    if pace >= 100 and len(assist_overs) >= 2:
        correlations.append({
            "type": "FAST_PACE_ASSISTS",
            "props": assist_overs,
            "confidence": 68,
            "reasoning": "Fast pace (%s) → More possessions = more assist opportunities" % pace,
            "warning": None,
        })
    return correlations


def hit_rate(legs: List[PropPick]) -> str:
    if not legs:
        return "0%"
    avg = sum(leg.confidence_score for leg in legs) / len(legs)
    return "%d%%" % round_half_up((avg / 100) ** len(legs) * 100)


def identify_warnings(legs: List[PropPick]) -> List[dict]:
    warnings = []
    role_overs = [leg for leg in legs if leg.usage_tier == "ROLE_PLAYER"
                  and leg.prop == "Points" and leg.recommendation == "OVER"]
    if role_overs:
        warnings.append({
            "type": "ROLE_PLAYER_TRAP",
            "severity": "HIGH",
            "message": "⚠️ Contains %d role player OVER points: %s"
                       % (len(role_overs), ", ".join(leg.player for leg in role_overs)),
            "suggestion": "Consider replacing with PRIMARY scorers or rebounds props",
        })
    for team, count in Counter(leg.team for leg in legs).items():
        if count >= 6:
            warnings.append({
                "type": "TEAM_CONCENTRATION",
                "severity": "MEDIUM",
                "message": "⚠️ %d props from %s - High correlation risk" % (count, team),
                "suggestion": "Diversify across both teams for safer parlay",
            })
    return warnings


def _tier(kind: str, emoji: str, legs: List[PropPick], reasoning: str) -> dict:
    return {
        "type": kind,
        "emoji": emoji,
        "legs": [leg.to_dict() for leg in legs],
        "estimatedOdds": parlay_odds_string(len(legs), SGP_PRICE_PER_LEG, empty="+0"),
        "hitRate": hit_rate(legs),
        "reasoning": reasoning,
        "warnings": identify_warnings(legs),
    }


def build_recommendations(safe_props: List[PropPick]) -> dict:
    ranked = sorted(safe_props, key=lambda p: p.confidence_score, reverse=True)
    conservative = [p for p in ranked if p.confidence_score >= 65
                    and p.usage_tier in ("PRIMARY", "SECONDARY")][:6]
    balanced = [p for p in ranked if p.confidence_score >= 60
                and not (p.usage_tier == "ROLE_PLAYER" and p.prop == "Points" and p.recommendation == "OVER")][:8]
    aggressive = [p for p in ranked if p.confidence_score >= 55][:12]
    return {
        "conservative": _tier("CONSERVATIVE", "🛡️", conservative,
                              "PRIMARY/SECONDARY scorers only - Safest SGP for consistent hits"),
        "balanced": _tier("BALANCED", "⚖️", balanced,
                          "Mix of stars and solid role players (avoiding point traps)"),
        "aggressive": _tier("AGGRESSIVE", "🎰", aggressive,
                            "High risk, high reward - Lottery ticket parlay"),
    }


def generate_sgp_picks(team1_players: List[dict], team2_players: List[dict], context: dict,
                       book_lines: Optional[Dict[tuple, float]] = None) -> dict:
    """Props for both rosters plus correlation notes and three SGP tiers.

    ``allProps`` are :class:`PropPick` objects; everything else is JSON-ready.
    """
    all_props: List[PropPick] = []
    for roster in (team1_players, team2_players):
        for player in roster:
            all_props.extend(player_props(player, roster, book_lines))

    correlations = analyze_correlations(all_props, context)
    safe_props = [p for p in all_props if not p.is_stretch and p.recommendation != "PASS"
                  and p.confidence_score >= 55]
    logger.debug("SGP: %d props, %d safe, %d correlations", len(all_props), len(safe_props), len(correlations))

    return {
        "allProps": all_props,
        "safeProps": safe_props,
        "correlations": [dict(c, props=[p.to_dict() for p in c["props"]]) for c in correlations],
        "recommendations": build_recommendations(safe_props),
    }
