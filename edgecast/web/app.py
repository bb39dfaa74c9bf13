from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from edgecast import config
from edgecast.analytics.cache import cache_stats
from edgecast.analytics.prediction import predict_matchup, save_prediction
from edgecast.analytics.results import (
    grade_pending_props,
    predict_games,
    run_daily_jobs,
    save_prop_results,
    update_results,
)
from edgecast.analytics.same_game import same_game_parlay
from edgecast.data import espn
from edgecast.data.teams import UnknownTeamError, get_team, teams_for
from edgecast.database import db, store
from edgecast.database.migrations import init_db

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

EASTERN = ZoneInfo("America/New_York")
DAILY_JOB_HOUR = 8
SCHEDULER_INTERVAL = 60 * 60


# ── Daily jobs ──────────────────────────────────────────────────────

_last_daily_run: Optional[str] = None


def _daily_jobs_due(now: datetime) -> bool:
    return now.hour == DAILY_JOB_HOUR and _last_daily_run != now.date().isoformat()


async def _background_scheduler() -> None:
    """Hourly check; the daily jobs run once in the 08:00 Eastern hour."""
    global _last_daily_run
    while True:
        now = datetime.now(EASTERN)
        if _daily_jobs_due(now):
            _last_daily_run = now.date().isoformat()
            try:
                summary = await asyncio.get_event_loop().run_in_executor(None, run_daily_jobs)
                logger.info("Daily jobs finished: %s", summary)
            except Exception:
                logger.exception("Daily jobs failed")
        await asyncio.sleep(SCHEDULER_INTERVAL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    scheduler = None
    if config.scheduler_enabled():
        scheduler = asyncio.create_task(_background_scheduler())
        logger.info("Daily job scheduler started")
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.cancel()
        db.close_all()


app = FastAPI(title="EdgeCast", lifespan=lifespan)
app.mount(
    "/static",
    StaticFiles(directory=str(BASE_DIR / "static")),
    name="static",
)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Bad Request", "message": message})


@app.exception_handler(UnknownTeamError)
async def unknown_team_handler(request: Request, exc: UnknownTeamError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid team", "message": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "message": str(exc)})


# ── Pages ───────────────────────────────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {"nfl_teams": teams_for("nfl").values(), "nba_teams": teams_for("nba").values()},
    )


# ── League routes (mounted under /api and /api/nba) ─────────────────

def _league_router(league: str) -> APIRouter:
    router = APIRouter()

    @router.get("/teams")
    def teams() -> list:
        return [team.to_dict() for team in teams_for(league).values()]

    @router.get("/games")
    def games(date: Optional[str] = None) -> dict:
        date = date or espn.today_eastern()
        return {"date": date, "games": espn.fetch_games(league, date)}

    @router.get("/games-with-predictions")
    def games_with_predictions(date: Optional[str] = None) -> dict:
        date = date or espn.today_eastern()
        games = predict_games(league, espn.fetch_games(league, date))
        for game in games:
            if game["prediction"] is not None:
                game["prediction"] = game["prediction"].to_dict()
        return {"date": date, "games": games}

    @router.get("/predict")
    def predict(
        team1: Optional[str] = None,
        team2: Optional[str] = None,
        homeTeam: Optional[str] = None,
        gameDate: Optional[str] = None,
        gameId: Optional[str] = None,
    ):
        if not team1 or not team2:
            return _bad_request("Both team1 and team2 are required")
        team1_code = get_team(team1, league).code
        team1_home = homeTeam is None or get_team(homeTeam, league).code == team1_code
        prediction = predict_matchup(league, team1, team2, team1_home, gameDate)
        if gameId and gameDate:
            save_prediction(prediction, gameId, gameDate)
        return prediction.to_dict()

    @router.get("/same-game-parlay")
    def same_game(
        homeTeam: Optional[str] = None,
        awayTeam: Optional[str] = None,
        gameId: Optional[str] = None,
        gameDate: Optional[str] = None,
    ):
        if not homeTeam or not awayTeam:
            return _bad_request("Both homeTeam and awayTeam are required")
        return same_game_parlay(league, homeTeam, awayTeam, gameId, gameDate)

    @router.post("/update-results")
    def update(payload: Optional[dict] = Body(default=None)) -> dict:
        payload = payload or {}
        updated = update_results(league, payload.get("date"))
        store.calculate_accuracy()
        return {
            "success": True,
            "updated": updated,
            "message": "Updated %d completed game results" % updated,
        }

    return router


app.include_router(_league_router("nfl"), prefix="/api")
app.include_router(_league_router("nba"), prefix="/api/nba")


# ── NFL-only and shared routes ──────────────────────────────────────

@app.get("/api/upcoming-games")
def upcoming_games() -> dict:
    games = predict_games("nfl", espn.fetch_upcoming_games("nfl"), team1_home=False)
    return {
        "games": [
            {
                "id": game["id"],
                "team1": game["awayTeam"],
                "team2": game["homeTeam"],
                "homeTeam": game["homeTeam"]["code"],
                "gameTime": game["date"],
                "gameDate": game["gameDate"],
                "venue": game["venue"],
                "broadcast": game["broadcast"],
                "status": game["status"],
                "prediction": game["prediction"].to_dict() if game["prediction"] else None,
            }
            for game in games
        ]
    }


@app.get("/api/accuracy")
def accuracy(start: Optional[str] = None, end: Optional[str] = None):
    """Overall accuracy, or over ``start``..``end`` (inclusive) when both are given."""
    if start or end:
        if not (start and end):
            return _bad_request("Provide both start and end dates")
        return store.get_historical_accuracy(start, end).to_dict()
    return store.calculate_accuracy().to_dict()


@app.get("/api/prop-accuracy")
def prop_accuracy() -> dict:
    return store.calculate_prop_accuracy().to_dict()


@app.post("/api/update-prop-results")
def update_prop_results(payload: Optional[dict] = Body(default=None)):
    payload = payload or {}
    game_id = payload.get("gameId")
    props = payload.get("props")
    if not game_id or not isinstance(props, list):
        return _bad_request("Invalid request. Provide gameId and props array.")
    updated = save_prop_results(game_id, props)
    return {"success": True, "message": "Updated %d prop results" % updated}


@app.post("/api/update-all-prop-results")
def update_all_prop_results() -> dict:
    updated = grade_pending_props()
    return {"success": True, "updated": updated, "message": "Graded %d pending props" % updated}


@app.get("/api/history")
def history(limit: int = 20, date: Optional[str] = None) -> dict:
    if date:
        return {"predictions": store.get_predictions_by_date(date)}
    return {"predictions": store.get_recent_predictions(max(1, min(limit, 500)))}


@app.get("/api/health")
def health() -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": db.backend_name(),
        "pendingPredictions": len(store.get_pending_predictions()),
        "accuracyUpdated": (store.get_accuracy_summary() or {}).get("last_updated"),
        "caches": cache_stats(),
    }


def create_app() -> FastAPI:
    """Factory for embedding or testing."""
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("edgecast.web.app:app", host="0.0.0.0", port=config.get_port(), reload=False)
