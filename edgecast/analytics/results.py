"""Result syncing, prop grading and the daily auto-prediction job."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from edgecast.analytics.prediction import predict_matchup, save_prediction
from edgecast.data import espn
from edgecast.data.injury_scraper import normalize_name, strip_suffix
from edgecast.database import store
from edgecast.database.models import ActualResult, PropResult

logger = logging.getLogger(__name__)

LEAGUES = ("nfl", "nba")
PREDICTION_TIMEOUT = 8.0
MAX_PREDICTION_WORKERS = 6

# prop label -> ESPN box-score stat key
BOX_SCORE_KEYS = {
    "Passing Yards": "passingYards",
    "Rushing Yards": "rushingYards",
    "Receiving Yards": "receivingYards",
    "Receptions": "receptions",
    "Passing TDs": "passingTouchdowns",
    "Rushing TDs": "rushingTouchdowns",
    "Points": "points",
    "Rebounds": "rebounds",
    "Assists": "assists",
    "3-Pointers": "threePointFieldGoalsMade",
}


def _score(side: dict) -> Optional[int]:
    try:
        return int(side.get("score"))
    except (TypeError, ValueError):
        return None


def completed_results(games: List[dict], league: str) -> List[ActualResult]:
    results = []
    for game in games:
        if not game["status"]["completed"]:
            continue
        home_score = _score(game["homeTeam"])
        away_score = _score(game["awayTeam"])
        if home_score is None or away_score is None:
            continue
        results.append(ActualResult(
            game_id=game["id"],
            game_date=game["gameDate"],
            home_team=game["homeTeam"]["code"],
            away_team=game["awayTeam"]["code"],
            home_score=home_score,
            away_score=away_score,
            sport=league,
        ))
    return results


def update_results(league: str, date_str: Optional[str] = None) -> int:
    """Store final scores for *date_str*'s completed games; returns rows written."""
    date_str = date_str or espn.today_eastern()
    results = completed_results(espn.fetch_games(league, date_str), league)
    updated = sum(1 for result in results if store.save_actual_result(result))
    logger.info("Updated %d %s results for %s", updated, league.upper(), date_str)
    return updated


def save_prop_results(game_id: str, props: List[dict]) -> int:
    """Manual grading: ``props`` is a list of ``{playerName, propType, actualValue}``."""
    updated = 0
    for prop in props:
        try:
            result = PropResult(
                game_id=str(game_id),
                player_name=prop["playerName"],
                prop_type=prop["propType"],
                actual_value=float(prop["actualValue"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed prop result %r: %s", prop, exc)
            continue
        if store.save_prop_result(result):
            updated += 1
    return updated


def box_score_value(box: Dict[str, Dict[str, float]], player_name: str, prop_type: str) -> Optional[float]:
    key = BOX_SCORE_KEYS.get(prop_type)
    if key is None:
        return None
    line = box.get(normalize_name(player_name)) or box.get(normalize_name(strip_suffix(player_name)))
    if line is None:
        return None
    return line.get(key)


def grade_pending_props() -> int:
    """Grade stored props for finished games from ESPN box scores."""
    finished = store.get_result_game_ids()
    pending = [p for p in store.get_pending_prop_predictions() if p["game_id"] in finished]
    boxes: Dict[str, Dict[str, Dict[str, float]]] = {}
    graded = 0
    for prop in pending:
        game_id = prop["game_id"]
        if game_id not in boxes:
            boxes[game_id] = espn.fetch_box_score(prop.get("sport") or "nfl", game_id)
        value = box_score_value(boxes[game_id], prop["player_name"], prop["prop_type"])
        if value is None:
            continue
        if store.save_prop_result(PropResult(game_id, prop["player_name"], prop["prop_type"], value)):
            graded += 1
    logger.info("Graded %d of %d pending props", graded, len(pending))
    return graded


def predict_games(league: str, games: List[dict], team1_home: bool = True,
                  timeout: float = PREDICTION_TIMEOUT) -> List[dict]:
    """Attach ``prediction`` to each game; a failed or slow prediction leaves it ``None``.

    With ``team1_home`` the home side is team1, otherwise the away side is.
    """
    if not games:
        return []

    def run(game):
        home, away = game["homeTeam"]["code"], game["awayTeam"]["code"]
        if team1_home:
            return predict_matchup(league, home, away, True, game["gameDate"])
        return predict_matchup(league, away, home, False, game["gameDate"])

    out = []
    pool = ThreadPoolExecutor(max_workers=min(MAX_PREDICTION_WORKERS, len(games)))
    try:
        futures = [pool.submit(run, game) for game in games]
        for game, future in zip(games, futures):
            try:
                prediction = future.result(timeout=timeout)
            except FutureTimeout:
                logger.warning("Prediction for %s timed out after %.0fs", game["shortName"], timeout)
                prediction = None
            except Exception as exc:
                logger.warning("Prediction for %s failed: %s", game["shortName"], exc)
                prediction = None
            out.append(dict(game, prediction=prediction))
    finally:
        # Stragglers finish in the background; their results are discarded
        pool.shutdown(wait=False, cancel_futures=True)
    return out


def auto_predict_upcoming(league: str) -> int:
    """Predict and store every upcoming game that has no stored prediction yet."""
    games = [g for g in espn.fetch_upcoming_games(league)
             if not store.is_game_predicted(g["id"], g["gameDate"], g["homeTeam"]["code"], g["awayTeam"]["code"])]
    saved = 0
    for game in predict_games(league, games):
        if game["prediction"] is not None and save_prediction(game["prediction"], game["id"], game["gameDate"]):
            saved += 1
    logger.info("Auto-predicted %d new %s games", saved, league.upper())
    return saved


def run_daily_jobs(today: Optional[str] = None,
                   status_callback: Optional[Callable[[str], None]] = None) -> Dict[str, int]:
    """Yesterday's and today's results, then prop grading, then new predictions."""
    today = today or espn.today_eastern()
    yesterday = (date.fromisoformat(today) - timedelta(days=1)).isoformat()
    summary = {"results": 0, "props": 0, "predictions": 0}

    def status(msg):
        logger.info(msg)
        if status_callback:
            status_callback(msg)

    for league in LEAGUES:
        status("Updating %s results..." % league.upper())
        for day in (yesterday, today):
            summary["results"] += update_results(league, day)

    status("Grading props...")
    summary["props"] = grade_pending_props()

    for league in LEAGUES:
        status("Predicting upcoming %s games..." % league.upper())
        summary["predictions"] += auto_predict_upcoming(league)

    store.calculate_accuracy()
    return summary
