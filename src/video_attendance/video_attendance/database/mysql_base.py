from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode, errors

from ..core.exceptions import TransientStoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Lock wait timeout and deadlock: the statement can simply be replayed.
RETRYABLE_ERRNOS = frozenset({errorcode.ER_LOCK_WAIT_TIMEOUT, errorcode.ER_LOCK_DEADLOCK})

# Pool exhausted, server unreachable or connection dropped.
UNAVAILABLE_ERRORS = (errors.PoolError, errors.InterfaceError, errors.OperationalError)


def _is_retryable(e: mysql.connector.Error) -> bool:
    return e.errno in RETRYABLE_ERRNOS or isinstance(e, UNAVAILABLE_ERRORS)


def _rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error as e:
        logger.warning("Rollback failed: %s", e)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except UNAVAILABLE_ERRORS as e:
        logger.warning("MySQL connection unavailable: %s", e)
        raise TransientStoreError("Store temporarily unavailable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        _rollback(conn)
        if _is_retryable(e):
            logger.warning("Retryable MySQL error %s: %s", e.errno, e.msg)
            raise TransientStoreError(f"Store temporarily unavailable ({e.errno})") from e
        raise
    except Exception:
        _rollback(conn)
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(error: Exception) -> bool:
    return isinstance(error, mysql.connector.IntegrityError) and error.errno == errorcode.ER_DUP_ENTRY
