"""Smart parlays: safe, balanced (correlation-driven when possible) and moonshot.

Each leg's confidence here is purely edge-based: how far the projection sits
from the line, independent of the usage-tier scoring in ``sgp_builder``.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

from edgecast.analytics.odds_converter import expected_value, parlay_odds, parlay_odds_string, round_half_up
from edgecast.analytics.props import PropPick

logger = logging.getLogger(__name__)

PRICE_PER_LEG = 1.909  # -110 per leg
MOONSHOT_LEG_HIT_RATE = 0.60


def confidence_score(projection: float, line: float) -> float:
    """3+ edge = 75%+, 2-3 = 65-75%, 1-2 = 55-65%, under 1 = 50-55%."""
    diff = abs(projection - line)
    if diff >= 3:
        return 75 + min(diff * 2, 25)
    if diff >= 2:
        return 65 + (diff - 2) * 10
    if diff >= 1:
        return 55 + (diff - 1) * 10
    return 50 + diff * 5


def score_props(props: List[PropPick]) -> List[PropPick]:
    scored = []
    for prop in props:
        projection = prop.projection if prop.projection is not None else prop.line
        scored.append(dataclasses.replace(
            prop,
            confidence_score=confidence_score(projection, prop.line),
            edge=abs(projection - prop.line),
        ))
    return scored


def correlated_props(props: List[PropPick], context: dict) -> List[dict]:
    correlations = []
    total = context.get("projectedTotal") or 0
    spread = context.get("spread") or 0
    pace = context.get("pace") or 0

    if total >= 225:
        overs = [p for p in props if p.prop == "Points" and p.recommendation == "OVER"
                 and p.confidence_score >= 65]
        if len(overs) >= 3:
            correlations.append({
                "type": "high_scoring_game",
                "props": overs[:4],
                "reasoning": "High total (%s pts) → Multiple players go OVER" % total,
                "expectedHitRate": 0.35,
            })

    if abs(spread) >= 7:
        favorite = context.get("homeTeam") if spread > 0 else context.get("awayTeam")
        fav_props = [p for p in props if p.team == favorite and p.recommendation == "OVER"
                     and p.confidence_score >= 65]
        if len(fav_props) >= 2:
            correlations.append({
                "type": "blowout",
                "props": fav_props[:3],
                "reasoning": "%s favored by %s → Stars hit OVER" % (favorite, abs(spread)),
                "expectedHitRate": 0.38,
            })

    if pace >= 100:
        assists = [p for p in props if p.prop == "Assists" and p.recommendation == "OVER"
                   and p.confidence_score >= 60]
        if len(assists) >= 2:
            correlations.append({
                "type": "fast_pace",
                "props": assists[:3],
                "reasoning": "Fast pace (%s) → More possessions = more assists" % pace,
                "expectedHitRate": 0.33,
            })

    stars = [p for p in props if p.prop == "Points" and p.recommendation == "OVER"
             and p.confidence_score >= 70 and p.projection >= 25]
    if stars and total >= 220:
        correlations.append({
            "type": "star_player_team_total",
            "props": stars[:2],
            "reasoning": "Star goes off → Team scores more",
            "expectedHitRate": 0.32,
        })

    points = next((p for p in props if p.prop == "Points" and p.confidence_score >= 70), None)
    rebounds = next((p for p in props if p.prop == "Rebounds" and p.confidence_score >= 65), None)
    assists_pick = next((p for p in props if p.prop == "Assists" and p.confidence_score >= 65), None)
    mixed = [p for p in (points,) if p]
    if rebounds and (points is None or rebounds.player != points.player):
        mixed.append(rebounds)
    if assists_pick and all(assists_pick.player != p.player for p in (points, rebounds) if p):
        mixed.append(assists_pick)
    if len(mixed) >= 3:
        correlations.append({
            "type": "mixed_stats",
            "props": mixed,
            "reasoning": "Different stat types reduce correlation risk",
            "expectedHitRate": 0.40,
        })
    return correlations


def _avg_confidence(legs: List[PropPick]) -> float:
    return sum(p.confidence_score for p in legs) / len(legs) if legs else 0.0


def _compound_hit_rate(legs: List[PropPick]) -> float:
    return (_avg_confidence(legs) / 100) ** len(legs) if legs else 0.0


def _parlay(kind: str, legs: List[PropPick], hit: float, units: float, reasoning: str,
            correlation: Optional[str] = None) -> dict:
    return {
        "type": kind,
        "legs": legs,
        "odds": parlay_odds_string(len(legs), PRICE_PER_LEG),
        "estimatedHitRate": "%.1f%%" % (hit * 100),
        "recommendedUnits": units,
        "reasoning": reasoning,
        "avgConfidence": "%.1f" % _avg_confidence(legs),
        "correlation": correlation,
    }


def generate_smart_parlays(props: List[PropPick], context: dict) -> dict:
    """Safe / balanced / moonshot parlays; legs are still :class:`PropPick` objects."""
    scored = score_props(props)
    correlations = correlated_props(scored, context)
    live = sorted((p for p in scored if p.recommendation != "PASS"),
                  key=lambda p: p.confidence_score, reverse=True)

    safe_legs = live[:4]

    best = correlations[0] if correlations else None
    if best and len(best["props"]) >= 4:
        balanced_legs = best["props"][:5]
    else:
        balanced_legs = live[4:9]
    balanced_hit = best["expectedHitRate"] if best else _compound_hit_rate(balanced_legs)

    moonshot_legs = sorted((p for p in live if p.confidence_score >= 50),
                           key=lambda p: p.edge, reverse=True)[:7]

    return {
        "safe": _parlay("SAFE", safe_legs, _compound_hit_rate(safe_legs), 2,
                        "Highest confidence picks - smaller payout but best chance to hit"),
        "balanced": _parlay(
            "BALANCED", balanced_legs, balanced_hit, 1.5,
            "CORRELATED: %s" % best["reasoning"] if best
            else "Mix of high/medium confidence - sweet spot for value",
            correlation=best["type"] if best else None,
        ),
        "moonshot": _parlay("MOONSHOT", moonshot_legs, MOONSHOT_LEG_HIT_RATE ** len(moonshot_legs), 0.5,
                            "High risk, high reward - lottery ticket play"),
        "allCorrelations": [dict(c, props=[p.to_dict() for p in c["props"]]) for c in correlations],
    }


_EMOJI = {"SAFE": "🔥", "BALANCED": "💎"}


def format_parlay_for_display(parlay: dict, bankroll: float = 1000) -> Optional[dict]:
    legs: List[PropPick] = parlay["legs"]
    if not legs:
        return None
    unit_size = bankroll * parlay["recommendedUnits"] / 100
    odds = parlay_odds(len(legs), PRICE_PER_LEG)
    hit = float(parlay["estimatedHitRate"].rstrip("%")) / 100
    ev = expected_value(hit, odds, unit_size)

    return {
        "type": parlay["type"],
        "emoji": _EMOJI.get(parlay["type"], "🎰"),
        "odds": parlay["odds"],
        "hitRate": parlay["estimatedHitRate"],
        "avgConfidence": parlay["avgConfidence"] + "%",
        "reasoning": parlay["reasoning"],
        "correlation": parlay.get("correlation"),
        "recommendedBet": "%s units ($%.2f)" % (parlay["recommendedUnits"], unit_size),
        "potentialWin": "$%.2f" % (odds / 100 * unit_size),
        "expectedValue": ev["ev"],
        "evPercent": ev["evPercent"],
        "isPositiveEV": ev["isPositiveEV"],
        "legs": [
            {
                "legNumber": i,
                "player": leg.player,
                "team": leg.team,
                "playerId": leg.player_id,
                "prop": leg.prop,
                "line": leg.line,
                "pick": leg.recommendation,
                "recommendation": leg.recommendation,
                "projection": round(leg.projection, 1),
                "edge": round(leg.edge, 1),
                "confidenceScore": round_half_up(leg.confidence_score),
                "confidence": "%d%%" % round_half_up(leg.confidence_score),
                "seasonAvg": "%.1f" % leg.season_avg if leg.season_avg else "N/A",
            }
            for i, leg in enumerate(legs, start=1)
        ],
    }
