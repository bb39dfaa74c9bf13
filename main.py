"""Entry point: FastAPI web server plus a few maintenance commands."""

import argparse
import logging

from edgecast.bootstrap import bootstrap, setup_logging

logger = logging.getLogger(__name__)


def serve(args):
    """Initialize DB, launch Uvicorn."""
    import uvicorn

    from edgecast import config
    from edgecast.web.app import app

    port = args.port or config.get_port()
    logger.info("Starting web server on http://%s:%d", args.host, port)
    uvicorn.run(app, host=args.host, port=port, log_level="info")


def predict_upcoming(args):
    from edgecast.analytics.results import auto_predict_upcoming

    for league in args.leagues:
        saved = auto_predict_upcoming(league)
        print("%s: %d new predictions saved" % (league.upper(), saved))


def update_results_cmd(args):
    from edgecast.analytics.results import grade_pending_props, update_results
    from edgecast.database import store

    for league in args.leagues:
        updated = update_results(league, args.date)
        print("%s: %d results updated" % (league.upper(), updated))
    print("%d props graded" % grade_pending_props())
    summary = store.calculate_accuracy()
    print("Winner accuracy: %d/%d (%.1f%%)" % (
        summary.winner_correct, summary.total_completed, summary.winner_accuracy))
    print("%d predictions still awaiting a final score" % len(store.get_pending_predictions()))


def high_confidence(args):
    from edgecast.database import store

    rows = store.get_high_confidence_predictions(args.limit)
    if not rows:
        print("No high-confidence predictions stored.")
        return
    for row in rows:
        home_fav = row["home_win_prob"] >= row["away_win_prob"]
        fav = row["home_team"] if home_fav else row["away_team"]
        prob = row["home_win_prob"] if home_fav else row["away_win_prob"]
        outcome = ""
        if row.get("actual_winner"):
            outcome = "  [%s]" % ("HIT" if row["actual_winner"] == fav else "MISS")
        print("%s  %-4s %s @ %s  ->  %s (%.1f%%)%s" % (
            row["game_date"], (row.get("sport") or "nfl").upper(),
            row["away_team"], row["home_team"], fav, prob, outcome))


def reset_db(args):
    from edgecast.database.migrations import clear_all

    if not args.yes:
        print("Refusing to wipe the database without --yes")
        return 1
    clear_all()
    print("All predictions, results and props deleted")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="edgecast", description="NFL/NBA predictions and props")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("serve", help="run the web server (default)")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=None)
    p.set_defaults(func=serve)

    leagues = dict(action="append", choices=("nfl", "nba"), dest="leagues",
                   help="limit to one league (repeatable); default both")

    p = sub.add_parser("predict-upcoming", help="predict and store upcoming games")
    p.add_argument("--league", **leagues)
    p.set_defaults(func=predict_upcoming)

    p = sub.add_parser("update-results", help="sync final scores and grade props")
    p.add_argument("--league", **leagues)
    p.add_argument("--date", default=None, help="YYYY-MM-DD (Eastern), default today")
    p.set_defaults(func=update_results_cmd)

    p = sub.add_parser("high-confidence", help="list stored High-confidence predictions")
    p.add_argument("--limit", type=int, default=50)
    p.set_defaults(func=high_confidence)

    p = sub.add_parser("reset-db", help="delete every stored prediction, result and prop")
    p.add_argument("--yes", action="store_true", help="confirm the wipe")
    p.set_defaults(func=reset_db)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["serve"] + list(argv or []))

    if getattr(args, "leagues", "unset") is None:
        args.leagues = ["nfl", "nba"]

    setup_logging()
    bootstrap()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
