"""Shared bootstrap logic for the web server and CLI entry points."""

import atexit
import logging
import sys
import threading
import traceback

_logger = logging.getLogger(__name__)
_booted = False


def setup_logging():
    """Configure root logging from the ``log_level`` setting."""
    from edgecast import config

    level = getattr(logging, config.get_log_level(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _thread_excepthook(args):
    """Log unhandled exceptions from background threads."""
    if args.exc_type is SystemExit:
        return
    _logger.error(
        "Unhandled exception in thread %s:\n%s",
        args.thread.name if args.thread else "<unknown>",
        "".join(
            traceback.format_exception(
                args.exc_type, args.exc_value, args.exc_traceback
            )
        ),
    )


def bootstrap(status_callback=None):
    """Run the shared initialisation sequence.

    Parameters
    ----------
    status_callback : callable, optional
        Called with a status string at each init stage.
    """
    global _booted

    threading.excepthook = _thread_excepthook

    def _status(msg):
        _logger.info(msg)
        if status_callback:
            status_callback(msg)

    # 1. Header patching happens on package import
    _status("Patching NBA API headers...")
    import edgecast  # noqa: F401

    # 2. Database
    from edgecast.database import db
    from edgecast.database.migrations import init_db

    _status("Initializing %s database..." % db.backend_name())
    init_db()

    if not _booted:
        atexit.register(shutdown)
        _booted = True


def shutdown():
    """Release database connections."""
    from edgecast.database import db

    _logger.info("Closing database connections...")
    db.close_all()
