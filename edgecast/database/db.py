"""Relational store access: SQLite locally, Postgres when ``POSTGRES_URL`` is set.

Every module talks to the database through the module-level helpers
(``execute``, ``execute_many``, ``execute_script``, ``fetch_one``,
``fetch_all``).  SQL is written once with ``?`` placeholders and
``ON CONFLICT ... DO UPDATE`` upserts, which both engines accept; the
Postgres backend rewrites the placeholders to ``%s``.

SQLite:
  - thread-local disk connections in WAL mode (FastAPI runs sync routes
    on a threadpool);
  - writes serialised through one lock, reads run concurrently.

Postgres:
  - one short-lived connection per call, no pool kept in app memory.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, List, Optional

from edgecast.config import get_database_url, get_db_path

logger = logging.getLogger(__name__)

DB_BUSY_TIMEOUT = 30000  # 30 seconds


class _SQLiteBackend:
    name = "sqlite"
    placeholder = "?"

    def __init__(self, path: str):
        self.path = path
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._all_conns: List[sqlite3.Connection] = []
        self._registry_lock = threading.Lock()
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self.path,
                timeout=DB_BUSY_TIMEOUT / 1000,
                check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=%d" % DB_BUSY_TIMEOUT)
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
            with self._registry_lock:
                self._all_conns.append(conn)
        return conn

    def execute(self, sql: str, params: tuple = ()) -> int:
        with self._write_lock:
            conn = self._conn()
            try:
                cur = conn.execute(sql, params)
                conn.commit()
                return cur.rowcount
            except Exception:
                conn.rollback()
                raise

    def execute_many(self, sql: str, params_list: Iterable[tuple]) -> None:
        with self._write_lock:
            conn = self._conn()
            try:
                conn.executemany(sql, list(params_list))
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def execute_script(self, script: str) -> None:
        with self._write_lock:
            self._conn().executescript(script)

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[dict]:
        row = self._conn().execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> List[dict]:
        return [dict(r) for r in self._conn().execute(sql, params).fetchall()]

    def close(self) -> None:
        with self._registry_lock:
            for conn in self._all_conns:
                try:
                    conn.close()
                except sqlite3.Error as exc:
                    logger.debug("Ignoring close error: %s", exc)
            self._all_conns.clear()
        self._local = threading.local()


class _PostgresBackend:
    name = "postgres"
    placeholder = "%s"

    def __init__(self, dsn: str):
        import psycopg2
        import psycopg2.extras

        self._psycopg2 = psycopg2
        self._cursor_factory = psycopg2.extras.RealDictCursor
        self.dsn = dsn

    @contextmanager
    def _connect(self):
        conn = self._psycopg2.connect(self.dsn, cursor_factory=self._cursor_factory)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _translate(sql: str) -> str:
        return sql.replace("?", "%s")

    def execute(self, sql: str, params: tuple = ()) -> int:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(self._translate(sql), params)
                return cur.rowcount

    def execute_many(self, sql: str, params_list: Iterable[tuple]) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.executemany(self._translate(sql), list(params_list))

    def execute_script(self, script: str) -> None:
        statements = [s.strip() for s in script.split(";") if s.strip()]
        with self._connect() as conn:
            with conn.cursor() as cur:
                for stmt in statements:
                    cur.execute(stmt)

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[dict]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(self._translate(sql), params)
                row = cur.fetchone()
                return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> List[dict]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(self._translate(sql), params)
                return [dict(r) for r in cur.fetchall()]

    def close(self) -> None:
        pass


_backend: Any = None
_backend_lock = threading.Lock()


def get_backend():
    """Return the active backend, creating it on first use."""
    global _backend
    if _backend is not None:
        return _backend
    with _backend_lock:
        if _backend is None:
            dsn = get_database_url()
            if dsn:
                _backend = _PostgresBackend(dsn)
                logger.info("Using Postgres backend")
            else:
                path = get_db_path()
                _backend = _SQLiteBackend(path)
                logger.info("Using SQLite backend at %s", path)
    return _backend


def backend_name() -> str:
    return get_backend().name


def is_postgres() -> bool:
    return backend_name() == "postgres"


def execute(sql: str, params: tuple = ()) -> int:
    """Run a single write statement and return the affected row count."""
    return get_backend().execute(sql, params)


def execute_many(sql: str, params_list: Iterable[tuple]) -> None:
    get_backend().execute_many(sql, params_list)


def execute_script(sql: str) -> None:
    """Run a multi-statement script (DDL)."""
    get_backend().execute_script(sql)


def fetch_one(sql: str, params: tuple = ()) -> Optional[dict]:
    return get_backend().fetch_one(sql, params)


def fetch_all(sql: str, params: tuple = ()) -> List[dict]:
    return get_backend().fetch_all(sql, params)


def close_all() -> None:
    """Close connections and forget the backend (next call reconnects)."""
    global _backend
    with _backend_lock:
        if _backend is not None:
            _backend.close()
            _backend = None
