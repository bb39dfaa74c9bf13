"""Win-probability scorer for NFL and NBA matchups.

Everything is from team1's perspective: a weighted sum of stat
differences added to a 50% baseline, clamped to [15, 85], with team2
getting the remainder.  The scoring helpers are pure functions over the
``team_stats`` dataclasses; ``predict_nfl``/``predict_nba`` do the
fetching.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from edgecast.analytics.team_stats import (
    NBATeamStats,
    NFLTeamStats,
    get_nba_team_stats,
    get_nfl_team_stats,
)
from edgecast.data import nba_stats, sleeper
from edgecast.data.injury_scraper import get_nba_injuries, get_nfl_injuries, is_player_out
from edgecast.data.teams import get_team, normalize_code
from edgecast.data.weather import get_weather
from edgecast.database import store

logger = logging.getLogger(__name__)

PROB_MIN = 15.0
PROB_MAX = 85.0

NFL_LEAGUE_AVG_POINTS = 22.0
NBA_LEAGUE_AVG_POINTS = 114.0
NBA_ROSTER_SIZE = 8

EVEN_MATCHUP_FACTORS = ["Both teams evenly matched", "Game could come down to final possession"]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _record_pct(record: Dict[str, int]) -> float:
    games = record.get("wins", 0) + record.get("losses", 0)
    return record.get("wins", 0) / games if games else 0.5


def confidence_for(prob1: float, prob2: float) -> str:
    diff = abs(prob1 - prob2)
    if diff > 30:
        return "High"
    if diff > 15:
        return "Medium"
    return "Low"


def clamp_probability(raw: float) -> float:
    return _clamp(raw, PROB_MIN, PROB_MAX)


@dataclass
class MatchupPrediction:
    league: str
    team1: str
    team2: str
    team1_home: bool
    team1_probability: float
    team2_probability: float
    team1_score: int
    team2_score: int
    confidence: str
    key_factors: List[str]
    team1_stats: dict = field(default_factory=dict)
    team2_stats: dict = field(default_factory=dict)
    team1_roster: object = None
    team2_roster: object = None
    weather: Optional[dict] = None

    @property
    def home_team(self) -> str:
        return self.team1 if self.team1_home else self.team2

    @property
    def away_team(self) -> str:
        return self.team2 if self.team1_home else self.team1

    @property
    def home_probability(self) -> float:
        return self.team1_probability if self.team1_home else self.team2_probability

    @property
    def away_probability(self) -> float:
        return self.team2_probability if self.team1_home else self.team1_probability

    @property
    def home_score(self) -> int:
        return self.team1_score if self.team1_home else self.team2_score

    @property
    def away_score(self) -> int:
        return self.team2_score if self.team1_home else self.team1_score

    def to_dict(self) -> dict:
        def side(code, prob, score, stats, roster):
            return {
                "code": code,
                "name": get_team(code, self.league).name,
                "probability": "%.1f" % prob,
                "stats": stats,
                "predictedScore": score,
                "roster": roster,
            }

        out = {
            "team1": side(self.team1, self.team1_probability, self.team1_score,
                          self.team1_stats, self.team1_roster),
            "team2": side(self.team2, self.team2_probability, self.team2_score,
                          self.team2_stats, self.team2_roster),
            "confidence": self.confidence,
            "keyFactors": self.key_factors,
        }
        if self.weather is not None:
            out["weather"] = self.weather
        return out


# ====================================================================
#  NFL scoring
# ====================================================================

def nfl_win_probability(s1: NFLTeamStats, s2: NFLTeamStats, team1_home: bool, weather: dict) -> float:
    """Clamped team1 win probability (0-100)."""
    score = 50.0
    score += (s1.win_pct - s2.win_pct) * 15

    if team1_home:
        score += (_record_pct(s1.home_record) - _record_pct(s2.away_record)) * 12 + 3
    else:
        score += (_record_pct(s1.away_record) - _record_pct(s2.home_record)) * 12 - 3

    diff1 = s1.points_per_game - s1.points_allowed
    diff2 = s2.points_per_game - s2.points_allowed
    score += (diff1 - diff2) * 0.4
    score += ((s1.offensive_rating + s1.defensive_rating) / 2
              - (s2.offensive_rating + s2.defensive_rating) / 2) * 0.1

    # Momentum
    score += (s1.recent_wins - s2.recent_wins) * 1.6
    if s1.streak_type == "W":
        score += s1.streak_length * 0.5
    if s2.streak_type == "W":
        score -= s2.streak_length * 0.5

    # Health
    score += (s2.key_injuries * s2.injury_severity / 10 - s1.key_injuries * s1.injury_severity / 10) * 0.9
    score += (s1.qb_health - s2.qb_health) * 0.08

    # Rest and travel
    if s1.coming_off_bye:
        score += 2.5
    if s2.coming_off_bye:
        score -= 2.5
    rest_diff = s1.days_since_last_game - s2.days_since_last_game
    if abs(rest_diff) >= 3:
        score += 1.5 if rest_diff > 0 else -1.5
    score += (s2.travel_distance - s1.travel_distance) / 1000

    if not weather.get("isDome"):
        if weather.get("temperature", 70) < 35:
            score += (s1.rushing_yards - s2.rushing_yards) / 30
        if weather.get("windSpeed", 0) > 15:
            score -= abs(s1.passing_yards - s2.passing_yards) / 50
        if weather.get("precipitation", 0) > 30:
            score -= 1.5

    score += (s1.turnover_diff - s2.turnover_diff) * 0.35
    score += (s1.red_zone_pct - s2.red_zone_pct) * 0.08
    score += (s1.third_down_pct - s2.third_down_pct) * 0.08
    score += (s1.special_teams_rating - s2.special_teams_rating) * 0.04
    score += (s1.coaching_experience - s2.coaching_experience) * 0.05
    score += (s1.adjustment_rating - s2.adjustment_rating) * 0.03
    score += ((32 - s1.pass_defense_rank) - (32 - s2.pass_defense_rank)) * 0.15
    score += ((32 - s1.rush_defense_rank) - (32 - s2.rush_defense_rank)) * 0.15
    score += (s2.penalties_per_game - s1.penalties_per_game) * 0.6
    score += (s1.comeback_wins - s2.comeback_wins) * 0.75

    return clamp_probability(score)


def nfl_predicted_scores(s1: NFLTeamStats, s2: NFLTeamStats, prob1: float, weather: dict) -> tuple:
    prob2 = 100 - prob1
    scores = []
    for stats, prob in ((s1, prob1), (s2, prob2)):
        baseline = stats.points_per_game * 0.3 + NFL_LEAGUE_AVG_POINTS * 0.7
        scores.append(_clamp(baseline * (1 + (prob - 50) / 300), 10, 35))
    if not weather.get("isDome") and (weather.get("precipitation", 0) > 30 or weather.get("windSpeed", 0) > 20):
        scores = [s * 0.85 for s in scores]
    return round(scores[0]), round(scores[1])


def nfl_key_factors(s1: NFLTeamStats, s2: NFLTeamStats, team1: str, team2: str,
                    weather: dict, team1_home: bool) -> List[str]:
    name1 = get_team(team1, "nfl").name
    name2 = get_team(team2, "nfl").name
    factors: List[str] = []

    if abs(s1.win_pct - s2.win_pct) > 0.2:
        better, stats = (name1, s1) if s1.win_pct > s2.win_pct else (name2, s2)
        factors.append("%s has a significantly better overall record (%d-%d)" % (better, stats.wins, stats.losses))

    if team1_home:
        if _record_pct(s1.home_record) > 0.7:
            factors.append("%s is dominant at home (%d-%d)"
                           % (name1, s1.home_record["wins"], s1.home_record["losses"]))
        if _record_pct(s2.away_record) < 0.3:
            factors.append("%s struggles on the road (%d-%d)"
                           % (name2, s2.away_record["wins"], s2.away_record["losses"]))

    diff1 = s1.points_per_game - s1.points_allowed
    diff2 = s2.points_per_game - s2.points_allowed
    if abs(diff1 - diff2) > 5:
        better, diff = (name1, diff1) if diff1 > diff2 else (name2, diff2)
        factors.append("%s has superior point differential (+%.1f pts/game)" % (better, diff))

    if abs(s1.recent_wins - s2.recent_wins) >= 2:
        better, wins = (name1, s1.recent_wins) if s1.recent_wins > s2.recent_wins else (name2, s2.recent_wins)
        factors.append("%s is in better recent form (%d-%d in last 5)" % (better, wins, 5 - wins))

    for name, stats in ((name1, s1), (name2, s2)):
        if stats.streak_type == "W" and stats.streak_length >= 3:
            factors.append("%s riding a %d-game winning streak" % (name, stats.streak_length))
    for name, stats in ((name1, s1), (name2, s2)):
        if stats.key_injuries >= 3 or stats.qb_health < 80:
            factors.append("%s dealing with %d key injuries (QB health: %d%%)"
                           % (name, stats.key_injuries, stats.qb_health))
    for name, stats in ((name1, s1), (name2, s2)):
        if stats.coming_off_bye:
            factors.append("%s coming off bye week with extra rest and preparation" % name)

    rest_diff = abs(s1.days_since_last_game - s2.days_since_last_game)
    if rest_diff >= 3:
        rested = name1 if s1.days_since_last_game > s2.days_since_last_game else name2
        factors.append("%s has %d more days of rest" % (rested, rest_diff))

    if not weather.get("isDome"):
        if weather.get("temperature", 70) < 35:
            factors.append("Cold weather (%s°F) favors strong rushing attacks" % weather["temperature"])
        if weather.get("windSpeed", 0) > 15:
            factors.append("High winds (%s mph) will impact passing game" % weather["windSpeed"])
        if weather.get("precipitation", 0) > 30:
            factors.append("%s conditions (%s%% chance) likely to reduce scoring"
                           % (weather.get("condition"), weather["precipitation"]))
    else:
        factors.append("Indoor dome game - weather is not a factor")

    for name, stats in ((name1, s1), (name2, s2)):
        if stats.offensive_rating > 85:
            factors.append("%s has elite offensive rating (%s)" % (name, stats.offensive_rating))
    for name, stats in ((name1, s1), (name2, s2)):
        if stats.defensive_rating > 85:
            factors.append("%s has dominant defense (%s rating)" % (name, stats.defensive_rating))

    if abs(s1.turnover_diff - s2.turnover_diff) > 5:
        better = name1 if s1.turnover_diff > s2.turnover_diff else name2
        factors.append("%s has major edge in turnover differential" % better)

    for name, stats in ((name1, s1), (name2, s2)):
        if stats.red_zone_pct > 65:
            factors.append("%s excellent in red zone (%s%% efficiency)" % (name, stats.red_zone_pct))

    if abs(s1.special_teams_rating - s2.special_teams_rating) > 15:
        better = name1 if s1.special_teams_rating > s2.special_teams_rating else name2
        factors.append("%s has significant special teams advantage" % better)
    if abs(s1.coaching_experience - s2.coaching_experience) > 15:
        better = name1 if s1.coaching_experience > s2.coaching_experience else name2
        factors.append("%s has more experienced coaching staff" % better)

    for name, stats in ((name1, s1), (name2, s2)):
        if stats.comeback_wins >= 3:
            factors.append("%s proven in clutch situations (%d comeback wins)" % (name, stats.comeback_wins))

    return factors or list(EVEN_MATCHUP_FACTORS)


def predict_nfl(team1: str, team2: str, team1_home: bool, game_date: Optional[str] = None) -> MatchupPrediction:
    """Full NFL prediction; raises ``UnknownTeamError`` for bad codes, nothing else."""
    team1 = get_team(team1, "nfl").code
    team2 = get_team(team2, "nfl").code
    s1 = get_nfl_team_stats(team1)
    s2 = get_nfl_team_stats(team2)

    injuries = get_nfl_injuries()
    roster1 = sleeper.get_team_roster(team1, injuries)
    roster2 = sleeper.get_team_roster(team2, injuries)

    home = get_team(team1 if team1_home else team2, "nfl")
    weather = get_weather(home.lat, home.lon, game_date, home.is_dome)

    prob1 = nfl_win_probability(s1, s2, team1_home, weather)
    prob2 = 100 - prob1
    score1, score2 = nfl_predicted_scores(s1, s2, prob1, weather)
    logger.debug("NFL %s vs %s: %.1f / %.1f", team1, team2, prob1, prob2)

    return MatchupPrediction(
        league="nfl",
        team1=team1,
        team2=team2,
        team1_home=team1_home,
        team1_probability=prob1,
        team2_probability=prob2,
        team1_score=score1,
        team2_score=score2,
        confidence=confidence_for(prob1, prob2),
        key_factors=nfl_key_factors(s1, s2, team1, team2, weather, team1_home),
        team1_stats=s1.to_dict(),
        team2_stats=s2.to_dict(),
        team1_roster=roster1,
        team2_roster=roster2,
        weather=weather,
    )


# ====================================================================
#  NBA scoring
# ====================================================================

def nba_win_probability(s1: NBATeamStats, s2: NBATeamStats, team1_home: bool,
                        ppg_lost1: float = 0.0, ppg_lost2: float = 0.0) -> float:
    score = 50.0
    score += (s1.win_pct - s2.win_pct) * 20
    score += 3 if team1_home else -3
    score += (s1.points_per_game - s2.points_per_game) * 0.6
    score += (s1.offensive_rating - s2.offensive_rating) * 0.2
    # Lower defensive rating is better
    score += (s2.defensive_rating - s1.defensive_rating) * 0.2
    score += (s1.fg_pct - s2.fg_pct) * 0.8
    score += (s1.fg3_pct - s2.fg3_pct) * 0.5
    score += (s1.rebounds_per_game - s2.rebounds_per_game) * 0.3
    score += (s1.assists_per_game - s2.assists_per_game) * 0.2
    score += (s2.turnovers_per_game - s1.turnovers_per_game) * 0.5
    score += ((s1.steals_per_game + s1.blocks_per_game) - (s2.steals_per_game + s2.blocks_per_game)) * 0.3
    score += (s1.pace - s2.pace) * 0.1
    score += (ppg_lost2 - ppg_lost1) * 0.4
    return clamp_probability(score)


def nba_predicted_scores(s1: NBATeamStats, s2: NBATeamStats, prob1: float) -> tuple:
    prob2 = 100 - prob1
    scores = []
    for stats, prob in ((s1, prob1), (s2, prob2)):
        baseline = stats.points_per_game * 0.5 + NBA_LEAGUE_AVG_POINTS * 0.5
        scores.append(round(_clamp(baseline * (1 + (prob - 50) / 300), 85, 145)))
    return scores[0], scores[1]


def nba_key_factors(s1: NBATeamStats, s2: NBATeamStats, team1: str, team2: str,
                    ppg_lost1: float, ppg_lost2: float) -> List[str]:
    name1 = get_team(team1, "nba").name
    name2 = get_team(team2, "nba").name
    factors: List[str] = []

    if abs(s1.win_pct - s2.win_pct) > 0.2:
        better, stats = (name1, s1) if s1.win_pct > s2.win_pct else (name2, s2)
        factors.append("%s has a significantly better record (%d-%d)" % (better, stats.wins, stats.losses))

    ppg_diff = s1.points_per_game - s2.points_per_game
    if abs(ppg_diff) > 5:
        factors.append("%s scores %.1f more points per game" % (name1 if ppg_diff > 0 else name2, abs(ppg_diff)))

    fg_diff = s1.fg_pct - s2.fg_pct
    if abs(fg_diff) > 3:
        better, stats = (name1, s1) if fg_diff > 0 else (name2, s2)
        factors.append("%s has a shooting edge (%.1f%% FG)" % (better, stats.fg_pct))

    reb_diff = s1.rebounds_per_game - s2.rebounds_per_game
    if abs(reb_diff) > 4:
        factors.append("%s controls the glass (+%.1f rebounds/game)" % (name1 if reb_diff > 0 else name2, abs(reb_diff)))

    tov_diff = s1.turnovers_per_game - s2.turnovers_per_game
    if abs(tov_diff) > 2:
        better, stats = (name2, s2) if tov_diff > 0 else (name1, s1)
        factors.append("%s protects the ball better (%.1f turnovers/game)" % (better, stats.turnovers_per_game))

    for name, lost in ((name1, ppg_lost1), (name2, ppg_lost2)):
        if lost >= 10:
            factors.append("%s missing %.1f PPG to injuries" % (name, lost))

    avg_pace = (s1.pace + s2.pace) / 2
    if avg_pace >= 100:
        factors.append("Fast-paced matchup (avg pace %.1f)" % avg_pace)

    return factors or list(EVEN_MATCHUP_FACTORS)


def team_injuries(team_code: str, injuries: Dict[str, dict]) -> Dict[str, dict]:
    """Entries of a league-wide injury report that belong to *team_code*."""
    return {name: info for name, info in injuries.items()
            if normalize_code(info.get("team", ""), "nba") == team_code}


def nba_roster(team_code: str, injuries: Dict[str, dict]) -> List[dict]:
    """Top scorers with an ``injured`` flag from the ESPN report."""
    listed = team_injuries(team_code, injuries)
    roster = []
    for player in nba_stats.team_players(team_code)[:NBA_ROSTER_SIZE]:
        roster.append({
            "name": player["name"],
            "playerId": player.get("playerId"),
            "gamesPlayed": player.get("gamesPlayed"),
            "points": player.get("points"),
            "rebounds": player.get("rebounds"),
            "assists": player.get("assists"),
            "fg3Made": player.get("fg3Made"),
            "injured": is_player_out(player["name"], listed),
        })
    return roster


def injured_scoring_lost(roster: List[dict]) -> float:
    return round(sum(p.get("points") or 0 for p in roster if p["injured"]), 1)


def predict_nba(team1: str, team2: str, team1_home: bool, game_date: Optional[str] = None) -> MatchupPrediction:
    team1 = get_team(team1, "nba").code
    team2 = get_team(team2, "nba").code
    s1 = get_nba_team_stats(team1)
    s2 = get_nba_team_stats(team2)

    injuries = get_nba_injuries()
    roster1 = nba_roster(team1, injuries)
    roster2 = nba_roster(team2, injuries)
    lost1 = injured_scoring_lost(roster1)
    lost2 = injured_scoring_lost(roster2)

    prob1 = nba_win_probability(s1, s2, team1_home, lost1, lost2)
    prob2 = 100 - prob1
    score1, score2 = nba_predicted_scores(s1, s2, prob1)

    return MatchupPrediction(
        league="nba",
        team1=team1,
        team2=team2,
        team1_home=team1_home,
        team1_probability=prob1,
        team2_probability=prob2,
        team1_score=score1,
        team2_score=score2,
        confidence=confidence_for(prob1, prob2),
        key_factors=nba_key_factors(s1, s2, team1, team2, lost1, lost2),
        team1_stats=s1.to_dict(),
        team2_stats=s2.to_dict(),
        team1_roster=roster1,
        team2_roster=roster2,
    )


def predict_matchup(league: str, team1: str, team2: str, team1_home: bool,
                    game_date: Optional[str] = None) -> MatchupPrediction:
    if league == "nba":
        return predict_nba(team1, team2, team1_home, game_date)
    return predict_nfl(team1, team2, team1_home, game_date)


def save_prediction(prediction: MatchupPrediction, game_id: str, game_date: str) -> bool:
    weather = prediction.weather or {}
    return store.save_prediction(
        game_id,
        game_date,
        prediction.home_team,
        prediction.away_team,
        prediction.home_probability,
        prediction.away_probability,
        prediction.home_score,
        prediction.away_score,
        prediction.confidence,
        weather_condition=weather.get("condition"),
        weather_temp=weather.get("temperature"),
        sport=prediction.league,
    )
