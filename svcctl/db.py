from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is an existing directory (a bind mount created
    before the file existed), the DB file is placed inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "svcctl.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path())
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def session() -> Iterator[sqlite3.Connection]:
    """Connection that commits on success and is always closed."""
    conn = connect()
    try:
        with conn:
            yield conn
    finally:
        conn.close()


# resolved paths whose schema already exists in this process
_initialized: set[str] = set()


def init_db() -> None:
    """Create tables if they do not exist."""
    path = _resolve_db_path()
    if path in _initialized:
        return
    with session() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              service_name TEXT,
              action TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_events_service ON events(service_name);
            """
        )
    _initialized.add(path)


def log_event(level: str, message: str, service_name: str | None = None, action: str | None = None) -> None:
    """Append one event to the log.

    DEBUG events are dropped unless SVCCTL_DEBUG is on. A broken sink (bad
    path, locked or corrupt database) never reaches the caller.
    """
    level = level.upper()
    if not settings.enable_event_log:
        return
    if level == "DEBUG" and not settings.debug:
        return
    try:
        init_db()
        with session() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, service_name, action, message) VALUES (?, ?, ?, ?, ?)",
                (utc_now(), level, service_name, action, message),
            )
    except (sqlite3.Error, OSError):
        return


@dataclass(frozen=True)
class EventRow:
    id: int
    ts: str
    level: str
    service_name: str | None
    action: str | None
    message: str


def _rows_to_dataclass(rows: Iterable[sqlite3.Row], cls: Any) -> list[Any]:
    out: list[Any] = []
    for r in rows:
        out.append(cls(**dict(r)))
    return out


def list_events(limit: int = 50, service_name: str | None = None) -> list[EventRow]:
    init_db()
    limit = max(1, int(limit))
    with session() as conn:
        if service_name:
            cur = conn.execute(
                "SELECT * FROM events WHERE service_name=? ORDER BY id DESC LIMIT ?",
                (service_name, limit),
            )
        else:
            cur = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,))
        return _rows_to_dataclass(cur.fetchall(), EventRow)
