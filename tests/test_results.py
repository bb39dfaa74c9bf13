import threading

import pytest

from edgecast.analytics import results
from edgecast.analytics.prediction import MatchupPrediction
from edgecast.database import store
from edgecast.database.models import ActualResult


def _game(game_id, home="KC", away="BUF", home_score="27", away_score="20", completed=True,
          game_date="2026-10-18"):
    return {
        "id": game_id,
        "shortName": "%s @ %s" % (away, home),
        "gameDate": game_date,
        "status": {"state": "post" if completed else "pre", "detail": "", "completed": completed},
        "homeTeam": {"code": home, "score": home_score},
        "awayTeam": {"code": away, "score": away_score},
    }


def _prediction(team1, team2, team1_home=True):
    return MatchupPrediction("nfl", team1, team2, team1_home, 60.0, 40.0, 27, 20, "Medium", [])


def test_completed_results_skips_unfinished_and_scoreless():
    games = [_game("1"), _game("2", completed=False), _game("3", home_score=None)]
    parsed = results.completed_results(games, "nfl")
    assert [r.game_id for r in parsed] == ["1"]
    assert parsed[0].winner == "KC"
    assert parsed[0].sport == "nfl"


def test_update_results_stores_finals(temp_db, monkeypatch):
    monkeypatch.setattr(results.espn, "fetch_games",
                        lambda league, date_str: [_game("1"), _game("2", home="DEN", away="LV", completed=False)])
    assert results.update_results("nfl", "2026-10-18") == 1
    assert store.get_result_game_ids() == {"1"}


def test_save_prop_results_skips_malformed(temp_db):
    props = [
        {"playerName": "Patrick Mahomes", "propType": "Passing Yards", "actualValue": "288"},
        {"playerName": "Travis Kelce", "propType": "Receiving Yards"},
        {"playerName": "Isiah Pacheco", "propType": "Rushing Yards", "actualValue": "lots"},
    ]
    assert results.save_prop_results("401", props) == 1


def test_box_score_value_matches_suffix_and_diacritics():
    box = {"Luka Doncic": {"points": 41.0}, "Gary Payton": {"rebounds": 6.0}}
    assert results.box_score_value(box, "Luka Dončić", "Points") == 41.0
    assert results.box_score_value(box, "Gary Payton II", "Rebounds") == 6.0
    assert results.box_score_value(box, "Luka Doncic", "Steals") is None
    assert results.box_score_value(box, "Nobody", "Points") is None


def test_grade_pending_props_only_for_finished_games(temp_db, monkeypatch):
    store.save_prop_prediction("401", "2026-10-18", "Patrick Mahomes", "KC", "QB", "Passing Yards",
                               265.5, "OVER", "High")
    store.save_prop_prediction("401", "2026-10-18", "Isiah Pacheco", "KC", "RB", "Rushing Yards",
                               70.5, "UNDER", "Medium")
    store.save_prop_prediction("402", "2026-10-19", "Bo Nix", "DEN", "QB", "Passing Yards",
                               220.5, "OVER", "Low")
    store.save_actual_result(ActualResult("401", "2026-10-18", "KC", "BUF", 27, 20))

    fetched = []

    def fake_box(league, game_id):
        fetched.append((league, game_id))
        return {"Patrick Mahomes": {"passingYards": 301.0}}

    monkeypatch.setattr(results.espn, "fetch_box_score", fake_box)
    assert results.grade_pending_props() == 1
    assert fetched == [("nfl", "401")]
    remaining = {(p["game_id"], p["player_name"]) for p in store.get_pending_prop_predictions()}
    assert remaining == {("401", "Isiah Pacheco"), ("402", "Bo Nix")}
    assert store.calculate_prop_accuracy().correct == 1


def test_predict_games_orients_teams(monkeypatch):
    calls = []

    def fake_predict(league, team1, team2, team1_home, game_date=None):
        calls.append((team1, team2, team1_home))
        return _prediction(team1, team2, team1_home)

    monkeypatch.setattr(results, "predict_matchup", fake_predict)
    out = results.predict_games("nfl", [_game("1")], team1_home=False)
    assert calls == [("BUF", "KC", False)]
    assert out[0]["prediction"].home_team == "KC"


def test_predict_games_tolerates_failures_and_timeouts(monkeypatch):
    release = threading.Event()

    def fake_predict(league, team1, team2, team1_home, game_date=None):
        if team1 == "DEN":
            raise RuntimeError("upstream down")
        if team1 == "SEA":
            release.wait(5)
        return _prediction(team1, team2, team1_home)

    monkeypatch.setattr(results, "predict_matchup", fake_predict)
    games = [_game("1"), _game("2", home="DEN", away="LV"), _game("3", home="SEA", away="SF")]
    try:
        out = results.predict_games("nfl", games, timeout=0.2)
    finally:
        release.set()
    assert out[0]["prediction"] is not None
    assert out[1]["prediction"] is None
    assert out[2]["prediction"] is None


def test_auto_predict_upcoming_skips_stored_games(temp_db, monkeypatch):
    store.save_prediction("1", "2026-10-25", "KC", "BUF", 60.0, 40.0, 27, 20, "Medium")
    upcoming = [_game("1", completed=False, game_date="2026-10-25"),
                _game("2", home="DEN", away="LV", completed=False, game_date="2026-10-25")]
    monkeypatch.setattr(results.espn, "fetch_upcoming_games", lambda league: upcoming)
    monkeypatch.setattr(results, "predict_matchup",
                        lambda league, t1, t2, home, game_date=None: _prediction(t1, t2, home))

    assert results.auto_predict_upcoming("nfl") == 1
    assert store.is_game_predicted("2", "2026-10-25", "DEN", "LV")


def test_run_daily_jobs_order(temp_db, monkeypatch):
    seen = []
    monkeypatch.setattr(results, "update_results", lambda league, day: seen.append(("results", league, day)) or 1)
    monkeypatch.setattr(results, "grade_pending_props", lambda: seen.append(("props",)) or 2)
    monkeypatch.setattr(results, "auto_predict_upcoming", lambda league: seen.append(("predict", league)) or 3)

    messages = []
    summary = results.run_daily_jobs("2026-11-01", messages.append)
    assert summary == {"results": 4, "props": 2, "predictions": 6}
    assert seen[:4] == [("results", "nfl", "2026-10-31"), ("results", "nfl", "2026-11-01"),
                        ("results", "nba", "2026-10-31"), ("results", "nba", "2026-11-01")]
    assert seen[4] == ("props",)
    assert seen[5:] == [("predict", "nfl"), ("predict", "nba")]
    assert messages[0] == "Updating NFL results..."
    assert store.get_accuracy_summary() is not None


@pytest.mark.parametrize("prop_type", sorted(results.BOX_SCORE_KEYS))
def test_every_graded_prop_has_a_box_key(prop_type):
    box = {"Someone": {results.BOX_SCORE_KEYS[prop_type]: 1.0}}
    assert results.box_score_value(box, "Someone", prop_type) == 1.0
