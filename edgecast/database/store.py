"""Predictions, results and accuracy queries.

Writes are upserts keyed on the tables' UNIQUE constraints, so re-running a
prediction or a result sync for the same game replaces the row in place.
Write helpers log and return ``False`` on failure; read helpers propagate.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from . import db
from .models import AccuracySummary, ActualResult, PropAccuracy, PropResult

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Game predictions
# ---------------------------------------------------------------------------

def save_prediction(
    game_id: str,
    game_date: str,
    home_team: str,
    away_team: str,
    home_win_prob: float,
    away_win_prob: float,
    predicted_home_score: int,
    predicted_away_score: int,
    confidence: str,
    weather_condition: Optional[str] = None,
    weather_temp: Optional[int] = None,
    sport: str = "nfl",
) -> bool:
    try:
        db.execute(
            """
            INSERT INTO predictions (
                game_id, game_date, sport, home_team, away_team,
                home_win_prob, away_win_prob,
                predicted_home_score, predicted_away_score,
                confidence, weather_condition, weather_temp, prediction_time
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(game_id, game_date) DO UPDATE SET
                sport = excluded.sport,
                home_team = excluded.home_team,
                away_team = excluded.away_team,
                home_win_prob = excluded.home_win_prob,
                away_win_prob = excluded.away_win_prob,
                predicted_home_score = excluded.predicted_home_score,
                predicted_away_score = excluded.predicted_away_score,
                confidence = excluded.confidence,
                weather_condition = excluded.weather_condition,
                weather_temp = excluded.weather_temp,
                prediction_time = excluded.prediction_time
            """,
            (
                str(game_id), game_date, sport, home_team, away_team,
                float(home_win_prob), float(away_win_prob),
                int(predicted_home_score), int(predicted_away_score),
                confidence, weather_condition or "Unknown", weather_temp, _now(),
            ),
        )
        return True
    except Exception as exc:
        logger.error("Error saving prediction for game %s: %s", game_id, exc)
        return False


def save_actual_result(result: ActualResult) -> bool:
    try:
        db.execute(
            """
            INSERT INTO actual_results (
                game_id, game_date, sport, home_team, away_team,
                home_score, away_score, winner, updated_time
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(game_id) DO UPDATE SET
                game_date = excluded.game_date,
                sport = excluded.sport,
                home_team = excluded.home_team,
                away_team = excluded.away_team,
                home_score = excluded.home_score,
                away_score = excluded.away_score,
                winner = excluded.winner,
                updated_time = excluded.updated_time
            """,
            (
                str(result.game_id), result.game_date, result.sport,
                result.home_team, result.away_team,
                int(result.home_score), int(result.away_score),
                result.winner, _now(),
            ),
        )
        return True
    except Exception as exc:
        logger.error("Error saving result for game %s: %s", result.game_id, exc)
        return False


_WITH_RESULTS = """
    SELECT
        p.*,
        r.home_score AS actual_home_score,
        r.away_score AS actual_away_score,
        r.winner AS actual_winner
    FROM predictions p
    LEFT JOIN actual_results r ON p.game_id = r.game_id
"""


def get_recent_predictions(limit: int = 20) -> List[dict]:
    return db.fetch_all(
        _WITH_RESULTS + " ORDER BY p.game_date DESC, p.prediction_time DESC LIMIT ?",
        (int(limit),),
    )


def get_predictions_by_date(game_date: str) -> List[dict]:
    return db.fetch_all(
        _WITH_RESULTS + " WHERE p.game_date = ? ORDER BY p.prediction_time DESC",
        (game_date,),
    )


def get_result_game_ids() -> set:
    return {row["game_id"] for row in db.fetch_all("SELECT game_id FROM actual_results")}


def get_pending_predictions() -> List[dict]:
    """Predictions whose game has no stored final score yet."""
    return db.fetch_all(
        """
        SELECT p.*
        FROM predictions p
        LEFT JOIN actual_results r ON p.game_id = r.game_id
        WHERE r.game_id IS NULL
        ORDER BY p.game_date
        """
    )


def get_high_confidence_predictions(limit: int = 50) -> List[dict]:
    return db.fetch_all(
        _WITH_RESULTS + " WHERE p.confidence = 'High' ORDER BY p.game_date DESC LIMIT ?",
        (int(limit),),
    )


def is_game_predicted(game_id: str, game_date: str, home_team: str, away_team: str) -> bool:
    row = db.fetch_one(
        """
        SELECT 1 AS found FROM predictions
        WHERE game_id = ? OR (game_date = ? AND home_team = ? AND away_team = ?)
        """,
        (str(game_id), game_date, home_team, away_team),
    )
    return row is not None


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------

def _completed_rows(start: Optional[str] = None, end: Optional[str] = None) -> List[dict]:
    sql = """
        SELECT
            p.*,
            r.home_score AS actual_home_score,
            r.away_score AS actual_away_score,
            r.winner AS actual_winner
        FROM predictions p
        INNER JOIN actual_results r ON p.game_id = r.game_id
    """
    params: tuple = ()
    if start and end:
        sql += " WHERE p.game_date BETWEEN ? AND ?"
        params = (start, end)
    return db.fetch_all(sql, params)


def summarize_accuracy(rows: List[dict], total_predictions: int) -> AccuracySummary:
    """Pure aggregation over joined prediction/result rows."""
    summary = AccuracySummary(total_predictions=total_predictions, total_completed=len(rows))
    if not rows:
        return summary

    home_diff = away_diff = 0.0
    for row in rows:
        predicted = row["home_team"] if row["home_win_prob"] > row["away_win_prob"] else row["away_team"]
        bucket = summary.by_confidence.get(row["confidence"])
        if predicted == row["actual_winner"]:
            summary.winner_correct += 1
            if bucket is not None:
                bucket.correct += 1
        if bucket is not None:
            bucket.total += 1
        home_diff += abs(row["predicted_home_score"] - row["actual_home_score"])
        away_diff += abs(row["predicted_away_score"] - row["actual_away_score"])

    summary.avg_home_score_diff = round(home_diff / len(rows), 1)
    summary.avg_away_score_diff = round(away_diff / len(rows), 1)
    return summary


def calculate_accuracy() -> AccuracySummary:
    """Recompute winner accuracy and persist the summary row."""
    rows = _completed_rows()
    total = db.fetch_one("SELECT COUNT(*) AS count FROM predictions")["count"]
    summary = summarize_accuracy(rows, total)
    summary.last_updated = _now()
    update_accuracy_summary(summary)
    return summary


def get_historical_accuracy(start_date: str, end_date: str) -> AccuracySummary:
    rows = _completed_rows(start_date, end_date)
    total = db.fetch_one(
        "SELECT COUNT(*) AS count FROM predictions WHERE game_date BETWEEN ? AND ?",
        (start_date, end_date),
    )["count"]
    return summarize_accuracy(rows, total)


def update_accuracy_summary(summary: AccuracySummary) -> bool:
    """Replace the single accuracy_summary row (delete + insert)."""
    conf = summary.by_confidence
    try:
        db.execute("DELETE FROM accuracy_summary")
        db.execute(
            """
            INSERT INTO accuracy_summary (
                total_predictions, total_completed, winner_correct, winner_accuracy,
                avg_home_score_diff, avg_away_score_diff,
                high_confidence_correct, high_confidence_total,
                medium_confidence_correct, medium_confidence_total,
                low_confidence_correct, low_confidence_total,
                last_updated
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                summary.total_predictions, summary.total_completed,
                summary.winner_correct, summary.winner_accuracy,
                summary.avg_home_score_diff, summary.avg_away_score_diff,
                conf["High"].correct, conf["High"].total,
                conf["Medium"].correct, conf["Medium"].total,
                conf["Low"].correct, conf["Low"].total,
                summary.last_updated or _now(),
            ),
        )
        return True
    except Exception as exc:
        logger.error("Error updating accuracy summary: %s", exc)
        return False


def get_accuracy_summary() -> Optional[dict]:
    return db.fetch_one("SELECT * FROM accuracy_summary ORDER BY id DESC LIMIT 1")


# ---------------------------------------------------------------------------
# Player props
# ---------------------------------------------------------------------------

def save_prop_prediction(
    game_id: str,
    game_date: str,
    player_name: str,
    team: str,
    position: str,
    prop_type: str,
    line: float,
    prediction: str,
    confidence: str,
    projection: Optional[float] = None,
    sport: str = "nfl",
) -> bool:
    if not player_name or not player_name.strip():
        return False
    try:
        db.execute(
            """
            INSERT INTO prop_predictions (
                game_id, game_date, sport, player_name, team, position,
                prop_type, line, projection, prediction, confidence, prediction_time
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(game_id, player_name, prop_type) DO UPDATE SET
                game_date = excluded.game_date,
                sport = excluded.sport,
                team = excluded.team,
                position = excluded.position,
                line = excluded.line,
                projection = excluded.projection,
                prediction = excluded.prediction,
                confidence = excluded.confidence,
                prediction_time = excluded.prediction_time
            """,
            (
                str(game_id), game_date, sport, player_name.strip(), team, position or "",
                prop_type, float(line), projection, prediction, confidence, _now(),
            ),
        )
        return True
    except Exception as exc:
        logger.error("Error saving prop prediction for %s: %s", player_name, exc)
        return False


def save_prop_result(result: PropResult) -> bool:
    try:
        db.execute(
            """
            INSERT INTO prop_results (
                game_id, player_name, prop_type, actual_value, updated_time
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(game_id, player_name, prop_type) DO UPDATE SET
                actual_value = excluded.actual_value,
                updated_time = excluded.updated_time
            """,
            (str(result.game_id), result.player_name, result.prop_type,
             float(result.actual_value), _now()),
        )
        return True
    except Exception as exc:
        logger.error("Error saving prop result for %s: %s", result.player_name, exc)
        return False


def get_pending_prop_predictions() -> List[dict]:
    return db.fetch_all(
        """
        SELECT pp.*
        FROM prop_predictions pp
        LEFT JOIN prop_results pr ON pp.game_id = pr.game_id
            AND pp.player_name = pr.player_name
            AND pp.prop_type = pr.prop_type
        WHERE pr.actual_value IS NULL
        """
    )


def is_prop_correct(prediction: str, line: float, actual: float) -> bool:
    if prediction == "OVER":
        return actual > line
    if prediction == "UNDER":
        return actual < line
    return False


def calculate_prop_accuracy() -> PropAccuracy:
    rows = db.fetch_all(
        """
        SELECT p.*, r.actual_value
        FROM prop_predictions p
        INNER JOIN prop_results r ON p.game_id = r.game_id
            AND p.player_name = r.player_name
            AND p.prop_type = r.prop_type
        """
    )
    total = db.fetch_one("SELECT COUNT(*) AS count FROM prop_predictions")["count"]
    result = PropAccuracy(total_props=total, total_completed=len(rows))
    for row in rows:
        bucket = result.by_confidence.get(row["confidence"])
        if is_prop_correct(row["prediction"], row["line"], row["actual_value"]):
            result.correct += 1
            if bucket is not None:
                bucket.correct += 1
        if bucket is not None:
            bucket.total += 1
    return result
