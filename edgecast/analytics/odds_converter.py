"""Parlay pricing and expected-value helpers."""
import math
from typing import Optional


def round_half_up(value: float) -> int:
    """Nearest integer with .5 going up (builtin ``round`` goes to even)."""
    return int(math.floor(value + 0.5))


def parlay_odds(legs: int, decimal_per_leg: float, subtract_stake: bool = True) -> Optional[int]:
    """Positive American odds for *legs* legs at a fixed per-leg decimal price.

    ``subtract_stake=False`` gives the looser ``price^n × 100`` quote used for
    NFL same-game parlays.
    """
    if legs <= 0:
        return None
    multiplier = decimal_per_leg ** legs
    if subtract_stake:
        multiplier -= 1
    return round_half_up(multiplier * 100)


def parlay_odds_string(legs: int, decimal_per_leg: float, subtract_stake: bool = True,
                       empty: str = "N/A") -> str:
    """``+NNN`` odds string; *empty* is shown when there are no legs."""
    odds = parlay_odds(legs, decimal_per_leg, subtract_stake)
    return empty if odds is None else "+%d" % odds


def expected_value(hit_rate: float, american_odds: float, stake: float = 100.0) -> dict:
    """EV of a *stake* bet at positive American odds with probability *hit_rate*."""
    payout = american_odds / 100.0 * stake
    ev = hit_rate * payout - (1.0 - hit_rate) * stake
    return {
        "ev": "%.2f" % ev,
        "evPercent": "%.1f%%" % (ev / stake * 100),
        "isPositiveEV": ev > 0,
    }
