import json

import pandas as pd
import pytest
import requests

from edgecast.analytics import sgp_builder
from edgecast.analytics.cache import cache_stats, ttl_cache
from edgecast.data import draftkings, espn, injury_scraper, nba_stats, sleeper, weather
from edgecast.data.teams import UnknownTeamError, find_by_name, get_team, is_valid_team, normalize_code


# ── Teams ──

def test_team_tables():
    assert get_team("kc", "nfl").name == "Kansas City Chiefs"
    assert normalize_code("WSH", "nba") == "WAS"
    assert is_valid_team("LAL", "nba")
    assert not is_valid_team("LAL", "nfl")
    assert find_by_name("Celtics", "nba").code == "BOS"
    with pytest.raises(UnknownTeamError):
        get_team("ZZZ", "nba")


# ── TTL cache ──

def test_ttl_cache_hits_and_clears():
    calls = []

    @ttl_cache(seconds=60, maxsize=2)
    def square(x):
        calls.append(x)
        return x * x

    assert square(3) == 9
    assert square(3) == 9
    assert calls == [3]
    square(4)
    square(5)
    assert cache_stats()["%s.square" % __name__] == 2
    square.cache_clear()
    square(3)
    assert calls == [3, 4, 5, 3]


def test_ttl_cache_does_not_store_failures():
    calls = []

    @ttl_cache(seconds=60)
    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise ValueError("boom")
        return "ok"

    with pytest.raises(ValueError):
        flaky()
    assert flaky() == "ok"
    assert len(calls) == 2


# ── Weather ──

@pytest.mark.parametrize("code,precip,wind,expected", [
    (0, 0, 5, "Clear"),
    (2, 0, 25, "Windy"),
    (61, 70, 5, "Rain"),
    (61, 20, 5, "Light Rain"),
    (73, 40, 5, "Snow"),
    (81, 80, 5, "Heavy Rain"),
    (95, 90, 30, "Thunderstorm"),
])
def test_condition_for(code, precip, wind, expected):
    assert weather.condition_for(code, precip, wind) == expected


def test_parse_daily_picks_game_date():
    daily = {
        "time": ["2026-11-01", "2026-11-02"],
        "temperature_2m_max": [50, 30],
        "temperature_2m_min": [40, 20],
        "precipitation_probability_max": [10, 80],
        "windspeed_10m_max": [8, 18.4],
        "weathercode": [1, 71],
    }
    result = weather.parse_daily(daily, "2026-11-02")
    assert result["condition"] == "Snow"
    assert result["temperature"] == 25
    assert result["windSpeed"] == 18
    assert result["source"] == "Open-Meteo API"


def test_weather_dome_and_failure(no_network):
    assert weather.get_weather(0, 0, None, True)["condition"] == "Dome"
    assert weather.get_weather(39.0, -94.5, "2026-11-02", False)["condition"] == "Unknown"


# ── Injuries ──

INJURIES = {
    "Patrick Mahomes": {"isOut": False},
    "Travis Kelce": {"isOut": True},
    "Odell Beckham": {"isOut": True},
}


@pytest.mark.parametrize("name,expected", [
    ("Patrick Mahomes II", False),
    ("Travis Kelce", True),
    ("Odell Beckham Jr.", True),
    ("Jason Kelce", True),
    ("Rashee Rice", False),
    ("", False),
])
def test_is_player_out(name, expected):
    assert injury_scraper.is_player_out(name, INJURIES) is expected


def test_normalize_name_strips_diacritics():
    assert injury_scraper.normalize_name("Luka  Dončić") == "Luka Doncic"
    assert injury_scraper.strip_suffix("Gary Payton II") == "Gary Payton"


def test_parse_nfl_injury_page():
    html = """
    <div class="nfl-o-injury-report__team"><table>
      <tr><th>Player</th></tr>
      <tr><td>Travis Kelce</td><td>TE</td><td>Ankle</td><td>Out</td><td></td></tr>
      <tr><td>Rashee Rice</td><td>WR</td><td>Knee</td><td></td><td>Questionable</td></tr>
    </table></div>
    """
    injuries = injury_scraper.parse_nfl_injury_page(html)
    assert injuries["Travis Kelce"]["isOut"] is True
    assert injuries["Rashee Rice"]["gameStatus"] == "Questionable"
    assert injuries["Rashee Rice"]["isOut"] is False


def test_manual_injuries_override_scrape(tmp_path, monkeypatch):
    path = tmp_path / "manual_injuries.json"
    path.write_text(json.dumps({
        "Travis Kelce": {"team": "KC", "gameStatus": "Questionable", "isOut": False},
        "Bucky Irving": {"team": "TB", "position": "RB", "gameStatus": "IR"},
    }))
    monkeypatch.setattr(injury_scraper.config, "get_manual_injuries_path", lambda: path)
    monkeypatch.setattr(injury_scraper, "scrape_nfl_injuries",
                        lambda: {"Travis Kelce": injury_scraper._entry("", "TE", "Ankle", "Out", "NFL.com")})
    injuries = injury_scraper.get_nfl_injuries()
    assert injuries["Travis Kelce"]["isOut"] is False
    assert injuries["Travis Kelce"]["source"] == "manual"
    assert injuries["Bucky Irving"]["isOut"] is True


def test_parse_espn_injury_api_grouped():
    payload = {"injuries": [{
        "displayName": "Boston Celtics",
        "injuries": [{
            "status": "Out",
            "athlete": {"displayName": "Jayson Tatum", "position": {"abbreviation": "F"},
                        "team": {"abbreviation": "BOS"}},
            "details": {"type": "Achilles"},
        }],
    }]}
    injuries = injury_scraper.parse_espn_injury_api(payload)
    assert injuries["Jayson Tatum"]["team"] == "BOS"
    assert injuries["Jayson Tatum"]["isOut"] is True
    assert injury_scraper.out_players_for("BOS", injuries) == ["Jayson Tatum"]


def test_nba_injuries_fall_back_to_html(monkeypatch):
    html = """
    <div class="injuries__teamHeader"><a>Boston Celtics</a></div>
    <div class="ResponsiveTable"><table>
      <tr><th>Name</th></tr>
      <tr><td>Jayson Tatum</td><td>F</td><td>Mar 1</td><td>Out</td><td>Oct 10: Achilles rehab</td></tr>
    </table></div>
    """

    class Resp:
        def __init__(self, text=None, fail=False):
            self.text = text
            self.fail = fail

        def raise_for_status(self):
            if self.fail:
                raise requests.HTTPError("503")

    def fake_get(url, **kwargs):
        if url == injury_scraper.ESPN_NBA_INJURIES_API:
            return Resp(fail=True)
        return Resp(text=html)

    monkeypatch.setattr(injury_scraper.requests, "get", fake_get)
    injuries = injury_scraper.get_nba_injuries()
    assert injuries["Jayson Tatum"]["injury"] == "Achilles rehab"
    assert injuries["Jayson Tatum"]["team"] == "Boston Celtics"


# ── ESPN ──

def _event(event_id, home, away, home_score, away_score, completed=True, date="2026-10-19T00:20Z"):
    return {
        "id": event_id,
        "name": "%s at %s" % (away, home),
        "shortName": "%s @ %s" % (away, home),
        "date": date,
        "competitions": [{
            "status": {"type": {"state": "post" if completed else "pre", "detail": "Final",
                                "completed": completed}},
            "venue": {"fullName": "Arrowhead Stadium"},
            "broadcasts": [{"names": ["NBC"]}],
            "competitors": [
                {"homeAway": "home", "team": {"abbreviation": home}, "score": str(home_score),
                 "records": [{"summary": "5-1"}]},
                {"homeAway": "away", "team": {"abbreviation": away}, "score": str(away_score)},
            ],
        }],
    }


def test_parse_event_uses_eastern_date():
    game = espn.parse_event(_event("401", "KC", "WSH", 27, 20), "nfl")
    # 00:20 UTC is the previous evening in New York
    assert game["gameDate"] == "2026-10-18"
    assert game["awayTeam"]["code"] == "WAS"
    assert game["homeTeam"]["record"] == "5-1"
    assert game["awayTeam"]["record"] == "N/A"
    assert game["broadcast"] == "NBC"
    assert espn.parse_event(_event("402", "KC", "XYZ", 1, 0), "nfl") is None


def test_fetch_games_filters_by_eastern_date(monkeypatch):
    events = [_event("1", "KC", "BUF", 27, 20), _event("2", "DEN", "LV", 0, 0, date="2026-10-19T17:00Z")]
    monkeypatch.setattr(espn, "_scoreboard_events", lambda league, day: events)
    games = espn.fetch_games("nfl", "2026-10-18")
    assert [g["id"] for g in games] == ["1"]


def test_parse_box_score_splits_compound_cells():
    summary = {"boxscore": {"players": [{"statistics": [{
        "keys": ["minutes", "points", "rebounds", "assists",
                 "threePointFieldGoalsMade-threePointFieldGoalsAttempted"],
        "athletes": [{"athlete": {"displayName": "Luka Dončić"}, "stats": ["38", "41", "9", "11", "6-13"]}],
    }]}]}}
    box = espn.parse_box_score(summary)
    line = box["Luka Doncic"]
    assert line["points"] == 41
    assert line["threePointFieldGoalsMade"] == 6
    assert line["threePointFieldGoalsAttempted"] == 13


# ── Sleeper ──

def test_nfl_season_rollover():
    from datetime import date

    assert sleeper.get_current_nfl_season(date(2027, 1, 20)) == 2026
    assert sleeper.get_current_nfl_season(date(2026, 9, 10)) == 2026


def test_build_roster_excludes_out_players():
    def player(name, pos, **season):
        stats = {"passingYards": 0, "rushingYards": 0, "receivingYards": 0, "tackles": 0}
        stats.update(season)
        return {"name": name, "position": pos, "seasonStats": stats}

    players = [
        player("QB One", "QB", passingYards=3000),
        player("QB Two", "QB", passingYards=500),
        player("Injured Rusher", "RB", rushingYards=900),
        player("Healthy Back", "RB", rushingYards=400),
        player("Linebacker", "LB", tackles=80),
    ]
    roster = sleeper.build_roster(players, {"Injured Rusher": {"isOut": True}})
    assert [p["name"] for p in roster["QB"]] == ["QB One"]
    assert [p["name"] for p in roster["RB"]] == ["Healthy Back"]
    assert [p["name"] for p in roster["DEF"]] == ["Linebacker"]


def test_season_stats_and_projection():
    season = sleeper.season_stats_for({"gp": 10, "rush_att": 150, "rush_yd": 750, "rec": 20, "rec_yd": 160})
    assert season["yardsPerCarry"] == 5.0
    assert sleeper.project_per_game("RB", season)["rushingYards"] == 75


# ── NBA stats ──

def test_aggregate_team_weights_by_games_played():
    players = [
        {"gamesPlayed": 20, "points": 30.0, "assists": 8.0, "rebounds": 6.0, "fgPct": 0.5},
        {"gamesPlayed": 10, "points": 10.0, "assists": 2.0, "rebounds": 4.0, "fgPct": 0.4},
    ]
    agg = nba_stats.aggregate_team(players)
    assert agg["ppg"] == 35.0
    assert agg["apg"] == 9.0
    assert agg["fgPct"] == 45.0
    assert agg["fg3Pct"] == nba_stats.TEAM_DEFAULTS["fg3Pct"]
    assert agg["offRating"] == round(35.0 * 1.1, 1)
    assert agg["pace"] == 99.5


def test_aggregate_team_defaults_when_empty():
    assert nba_stats.aggregate_team([]) == nba_stats.TEAM_DEFAULTS


def test_blended_projection():
    assert nba_stats.blended_projection(20.0, pd.Series([30, 30, 30, 30, 30, 5, 5])) == 26.0
    assert nba_stats.blended_projection(20.0, pd.Series(dtype=float)) == 20.0


def test_project_player_without_log(monkeypatch):
    monkeypatch.setattr(nba_stats, "fetch_player_game_log", lambda pid, season=None: pd.DataFrame())
    proj = nba_stats.project_player({"playerId": 7, "points": 22.4, "rebounds": 5.0, "assists": 3.1, "fg3Made": 1.2})
    assert proj == {"Points": 22.4, "Rebounds": 5.0, "Assists": 3.1, "3-Pointers": 1.2}


# ── DraftKings ──

def _market(name, outcomes):
    return {"name": name, "outcomes": outcomes}


def test_parse_event_group():
    payload = {"eventGroup": {"events": [{
        "eventId": 3301,
        "name": "LA Lakers @ BOS Celtics",
        "startDate": "2026-10-20T23:30:00Z",
        "displayGroups": [{"markets": [
            _market("Spread", [{"line": -6.5, "oddsAmerican": "-110"}, {"line": 6.5, "oddsAmerican": "−110"}]),
            _market("Moneyline", [{"oddsAmerican": "-250"}, {"oddsAmerican": "+205"}]),
            _market("Total", [{"line": 228.5, "oddsAmerican": "-108"}, {"line": 228.5, "oddsAmerican": "-112"}]),
            _market("Player Points", [{"participant": "Jayson Tatum", "line": 27.5, "oddsAmerican": "-115"}]),
            _market("Player Points", [{"participant": "Jayson Tatum", "line": 28.5, "oddsAmerican": "+100"}]),
            _market("Player Rebounds", [{"participant": "Jayson Tatum", "line": 8.5, "oddsAmerican": "-120"}]),
        ]}],
    }]}}
    games = draftkings.parse_event_group(payload, "nba")
    game = games[0]
    assert game["homeTeam"] == "BOS"
    assert game["awayTeam"] == "LAL"
    assert game["gameDate"] == "2026-10-20"
    assert game["lines"]["spread"] == {"home": -6.5, "away": 6.5, "homeOdds": -110, "awayOdds": -110}
    assert game["lines"]["moneyline"] == {"home": -250, "away": 205}
    assert game["lines"]["total"]["line"] == 228.5
    assert draftkings.prop_lines(game) == {("Jayson Tatum", "Points"): 27.5, ("Jayson Tatum", "Rebounds"): 8.5}


def test_book_lines_reach_player_props_with_accented_names():
    payload = {"eventGroup": {"events": [{
        "eventId": 3302,
        "name": "DAL Mavericks @ LA Lakers",
        "startDate": "2026-10-21T02:30:00Z",
        "displayGroups": [{"markets": [
            _market("Player Points", [{"participant": "Luka Dončić", "line": 33.5, "oddsAmerican": "-115"}]),
        ]}],
    }]}}
    lines = draftkings.prop_lines(draftkings.parse_event_group(payload, "nba")[0])
    assert lines == {("Luka Doncic", "Points"): 33.5}

    luka = {"name": "Luka Dončić", "team": "DAL", "points": 33.0, "rebounds": 8.0, "assists": 8.5,
            "fg3Made": 3.5, "projection": {"Points": 36.0}}
    points = next(p for p in sgp_builder.player_props(luka, [luka], lines) if p.prop == "Points")
    assert points.line == 33.5
    assert points.recommendation == "OVER"


def test_parse_page_text_fallback():
    text = "NFL Odds KC Chiefs AT BUF Bills -3.5 -110 +3.5 -110 O 47.5 -110 U 47.5 -110 +150 -180"
    games = draftkings.parse_page_text(text, "nfl")
    assert len(games) == 1
    lines = games[0]["lines"]
    assert games[0]["awayTeam"] == "KC"
    assert games[0]["homeTeam"] == "BUF"
    assert lines["spread"]["home"] == -3.5
    assert lines["total"]["line"] == 47.5
    assert lines["moneyline"] == {"away": 150, "home": -180}


@pytest.mark.parametrize("market,expected", [
    ("Player Pts+Reb+Ast", "Pts+Reb+Ast"),
    ("Player Points", "Points"),
    ("Player Threes", "3-Pointers"),
    ("Anytime Scorer", "Other"),
])
def test_extract_prop_type(market, expected):
    assert draftkings.extract_prop_type(market) == expected


def test_fetch_odds_falls_back_to_page(monkeypatch):
    def api_down(league):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(draftkings, "_event_group", api_down)
    monkeypatch.setattr(draftkings, "_league_page", lambda league: [{
        "homeTeam": "BUF", "awayTeam": "KC", "gameDate": None, "lines": {}, "playerProps": []}])
    assert draftkings.find_game_odds("nfl", "BUF", "KC", "2026-10-19")["homeTeam"] == "BUF"
    assert draftkings.find_game_odds("nfl", "KC", "BUF") is None
