from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import PersistenceFailure
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, roll back and re-raise otherwise.

    Driver errors leave this block as PersistenceFailure. Duplicate-key
    violations are marked as conflicts.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        logger.warning("database connection failed: %s", exc)
        raise PersistenceFailure("Database is unavailable") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        conn.rollback()
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise PersistenceFailure("Conflicting write, retry the request", conflict=True) from exc
        raise PersistenceFailure(f"Integrity error: {exc.msg}") from exc
    except mysql.connector.Error as exc:
        conn.rollback()
        logger.warning("database operation failed: %s", exc)
        raise PersistenceFailure(f"Database error: {exc.msg}") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
