import main
from edgecast.analytics import results
from edgecast.database import store


def _predict(game_id="1"):
    store.save_prediction(game_id, "2026-10-18", "KC", "BUF", 60.0, 40.0, 27, 20, "Medium")


def test_reset_db_requires_confirmation(temp_db, capsys):
    _predict()
    assert main.main(["reset-db"]) == 1
    assert "--yes" in capsys.readouterr().out
    assert len(store.get_recent_predictions()) == 1

    assert main.main(["reset-db", "--yes"]) == 0
    assert store.get_recent_predictions() == []


def test_update_results_reports_pending_games(temp_db, monkeypatch, capsys):
    seen = []
    monkeypatch.setattr(results, "update_results", lambda league, date=None: seen.append(league) or 0)
    monkeypatch.setattr(results, "grade_pending_props", lambda: 0)
    _predict()

    main.main(["update-results", "--league", "nfl"])
    out = capsys.readouterr().out
    assert seen == ["nfl"]
    assert "NFL: 0 results updated" in out
    assert "1 predictions still awaiting a final score" in out
