import pytest

from edgecast.database import migrations, store
from edgecast.database.models import ActualResult, PropResult


def _predict(game_id, home="KC", away="BUF", home_prob=62.0, confidence="Medium", date="2026-10-18",
             home_score=27, away_score=20, sport="nfl"):
    return store.save_prediction(game_id, date, home, away, home_prob, 100 - home_prob,
                                 home_score, away_score, confidence, sport=sport)


def test_save_prediction_upserts(temp_db):
    assert _predict("401", home_prob=60.0)
    assert _predict("401", home_prob=70.0, confidence="High")
    rows = store.get_recent_predictions()
    assert len(rows) == 1
    assert rows[0]["home_win_prob"] == 70.0
    assert rows[0]["confidence"] == "High"
    assert rows[0]["weather_condition"] == "Unknown"


def test_actual_result_winner_and_upsert(temp_db):
    result = ActualResult("401", "2026-10-18", "KC", "BUF", 24, 24)
    assert result.winner == "TIE"
    assert store.save_actual_result(result)
    assert store.save_actual_result(ActualResult("401", "2026-10-18", "KC", "BUF", 27, 24))
    rows = temp_db.fetch_all("SELECT * FROM actual_results")
    assert len(rows) == 1
    assert rows[0]["winner"] == "KC"


def test_history_joins_results(temp_db):
    _predict("401")
    _predict("402", home="DEN", away="LV", date="2026-10-19")
    store.save_actual_result(ActualResult("401", "2026-10-18", "KC", "BUF", 30, 17))

    by_date = store.get_predictions_by_date("2026-10-18")
    assert len(by_date) == 1
    assert by_date[0]["actual_home_score"] == 30
    assert by_date[0]["actual_winner"] == "KC"

    pending = store.get_pending_predictions()
    assert [row["game_id"] for row in pending] == ["402"]
    assert store.get_result_game_ids() == {"401"}


def test_is_game_predicted_matches_id_or_matchup(temp_db):
    _predict("401")
    assert store.is_game_predicted("401", "2099-01-01", "X", "Y")
    assert store.is_game_predicted("999", "2026-10-18", "KC", "BUF")
    assert not store.is_game_predicted("999", "2026-10-18", "DEN", "LV")


def test_calculate_accuracy_with_confidence_breakdown(temp_db):
    _predict("1", home_prob=75.0, confidence="High", home_score=28, away_score=14)
    _predict("2", home_prob=60.0, confidence="Medium", home_score=24, away_score=20)
    _predict("3", home_prob=40.0, confidence="Medium", home_score=20, away_score=23)
    _predict("4", home_prob=55.0, confidence="Low")
    store.save_actual_result(ActualResult("1", "2026-10-18", "KC", "BUF", 31, 10))
    store.save_actual_result(ActualResult("2", "2026-10-18", "KC", "BUF", 17, 20))
    store.save_actual_result(ActualResult("3", "2026-10-18", "KC", "BUF", 20, 27))

    summary = store.calculate_accuracy()
    assert summary.total_predictions == 4
    assert summary.total_completed == 3
    assert summary.winner_correct == 2
    assert summary.winner_accuracy == pytest.approx(66.7)
    assert summary.by_confidence["High"].to_dict() == {"correct": 1, "total": 1, "accuracy": 100.0}
    assert summary.by_confidence["Medium"].correct == 1
    assert summary.by_confidence["Medium"].total == 2
    assert summary.by_confidence["Low"].total == 0
    assert summary.avg_home_score_diff == pytest.approx(round((3 + 7 + 0) / 3, 1))

    body = summary.to_dict()
    assert body["winnerAccuracy"] == summary.winner_accuracy
    assert set(body["byConfidence"]) == {"High", "Medium", "Low"}


def test_accuracy_summary_keeps_single_row(temp_db):
    _predict("1")
    store.calculate_accuracy()
    store.calculate_accuracy()
    store.calculate_accuracy()
    assert temp_db.fetch_one("SELECT COUNT(*) AS count FROM accuracy_summary")["count"] == 1
    assert store.get_accuracy_summary()["total_predictions"] == 1


def test_empty_accuracy(temp_db):
    summary = store.calculate_accuracy()
    assert summary.winner_accuracy == 0.0
    assert summary.total_completed == 0


def test_historical_accuracy_filters_dates(temp_db):
    _predict("1", date="2026-10-01")
    _predict("2", date="2026-10-15")
    store.save_actual_result(ActualResult("1", "2026-10-01", "KC", "BUF", 30, 10))
    store.save_actual_result(ActualResult("2", "2026-10-15", "KC", "BUF", 10, 30))
    summary = store.get_historical_accuracy("2026-10-10", "2026-10-20")
    assert summary.total_predictions == 1
    assert summary.winner_correct == 0


@pytest.mark.parametrize("pick,line,actual,expected", [
    ("OVER", 24.5, 25, True),
    ("OVER", 24.5, 24, False),
    ("UNDER", 24.5, 24, True),
    ("UNDER", 24.5, 25, False),
    ("OVER", 25, 25, False),
    ("PASS", 24.5, 40, False),
])
def test_is_prop_correct(pick, line, actual, expected):
    assert store.is_prop_correct(pick, line, actual) is expected


def test_prop_accuracy_and_pending(temp_db):
    store.save_prop_prediction("401", "2026-10-18", "Patrick Mahomes", "KC", "QB", "Passing Yards",
                               265, "OVER", "High", projection=275)
    store.save_prop_prediction("401", "2026-10-18", "Isiah Pacheco", "KC", "RB", "Rushing Yards",
                               70, "UNDER", "Medium", projection=62)
    store.save_prop_prediction("401", "2026-10-18", "Isiah Pacheco", "KC", "RB", "Rushing Yards",
                               68, "UNDER", "Medium", projection=60)
    assert not store.save_prop_prediction("401", "2026-10-18", "  ", "KC", "RB", "Points", 1, "OVER", "Low")

    assert len(store.get_pending_prop_predictions()) == 2
    store.save_prop_result(PropResult("401", "Patrick Mahomes", "Passing Yards", 301))
    store.save_prop_result(PropResult("401", "Isiah Pacheco", "Rushing Yards", 81))
    assert store.get_pending_prop_predictions() == []

    accuracy = store.calculate_prop_accuracy()
    assert accuracy.total_props == 2
    assert accuracy.total_completed == 2
    assert accuracy.correct == 1
    assert accuracy.to_dict()["accuracy"] == 50.0
    assert accuracy.by_confidence["High"].correct == 1


def test_clear_all(temp_db):
    _predict("1")
    migrations.clear_all()
    assert store.get_recent_predictions() == []
