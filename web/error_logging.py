"""Persistent error log for the catalog API.

Handler failures are written to an ``error_log`` table in the catalog's
SQLite database so they survive restarts and can be inspected later.

Error types captured:
- validation_error: payload rejected by the product schema
- database_error: query failures, locked or missing database
- unexpected_error: anything else raised inside a handler

Each entry records timestamp, request id, operation (handler name), message,
stack trace and a JSON context (path, query parameters).
"""

import json
import logging
import sqlite3
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import current_app, has_app_context

__all__ = [
    "ErrorLogger",
    "init_error_logging_db",
    "get_error_logger",
    "log_validation_error",
    "log_database_error",
    "log_unexpected_error",
]

logger = logging.getLogger(__name__)


class ErrorLogger:
    """Log errors to the SQLite database."""

    def __init__(self, db_path: Union[Path, str]):
        self.db_path = db_path
        self._ensure_table_exists()

    def _get_connection(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table_exists(self) -> None:
        """Create the error_log table if it doesn't exist."""
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS error_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    request_id TEXT,
                    error_type TEXT NOT NULL,
                    error_message TEXT NOT NULL,
                    stack_trace TEXT,
                    context JSON,
                    operation TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_error_timestamp
                ON error_log(timestamp)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_error_type
                ON error_log(error_type)
            """)
            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"Failed to create error_log table: {e}")

    def log_error(
        self,
        error_type: str,
        error_message: str,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        stack_trace: Optional[str] = None,
    ) -> None:
        """Log error to database.

        Failures to write are reported through ``logging`` and never raised,
        so a broken error log cannot mask the original error.
        """
        if stack_trace is None:
            stack_trace = traceback.format_exc() if sys.exc_info()[0] else None

        try:
            conn = self._get_connection()
            conn.execute("""
                INSERT INTO error_log (
                    timestamp, request_id, error_type, error_message,
                    stack_trace, context, operation
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                datetime.now().isoformat(),
                request_id,
                error_type,
                error_message,
                stack_trace,
                json.dumps(context, default=str) if context else None,
                operation,
            ))
            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"Failed to log error to database: {e}")

    def get_errors(
        self,
        error_type: Optional[str] = None,
        request_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Query errors, newest first."""
        query = "SELECT * FROM error_log WHERE 1=1"
        params: List[Any] = []

        if error_type:
            query += " AND error_type = ?"
            params.append(error_type)
        if request_id:
            query += " AND request_id = ?"
            params.append(request_id)

        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        conn = self._get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        errors = []
        for row in rows:
            error = dict(row)
            if error.get("context"):
                error["context"] = json.loads(error["context"])
            errors.append(error)
        return errors

    def get_error_summary(self) -> Dict[str, Any]:
        """Get error summary statistics."""
        conn = self._get_connection()
        try:
            total = conn.execute("SELECT COUNT(*) as count FROM error_log").fetchone()["count"]
            by_type = {
                row["error_type"]: row["count"]
                for row in conn.execute("""
                    SELECT error_type, COUNT(*) as count
                    FROM error_log
                    GROUP BY error_type
                    ORDER BY count DESC
                """).fetchall()
            }
            by_operation = {
                row["operation"]: row["count"]
                for row in conn.execute("""
                    SELECT operation, COUNT(*) as count
                    FROM error_log
                    WHERE operation IS NOT NULL
                    GROUP BY operation
                    ORDER BY count DESC
                """).fetchall()
            }
        finally:
            conn.close()

        return {
            "total_errors": total,
            "errors_by_type": by_type,
            "errors_by_operation": by_operation,
        }


# Global error logger instance
_error_logger: Optional[ErrorLogger] = None


def init_error_logging_db(db_path: Union[Path, str]) -> ErrorLogger:
    """Initialize the error log in ``db_path``."""
    global _error_logger
    _error_logger = ErrorLogger(db_path)
    return _error_logger


def get_error_logger() -> Optional[ErrorLogger]:
    """Return the current app's error logger, or the last initialized one."""
    if has_app_context() and "error_logger" in current_app.extensions:
        return current_app.extensions["error_logger"]
    return _error_logger


def _log(error_type: str, error_message: str, **kwargs: Any) -> None:
    error_logger = get_error_logger()
    if error_logger is None:
        logger.warning(f"Error log not initialized; dropping {error_type}: {error_message}")
        return
    error_logger.log_error(error_type=error_type, error_message=error_message, **kwargs)


def log_validation_error(
    error_message: str,
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Log a payload rejected by the product schema."""
    _log("validation_error", error_message, request_id=request_id, operation=operation, context=context)


def log_database_error(
    error_message: str,
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Log database query error."""
    _log("database_error", error_message, request_id=request_id, operation=operation, context=context)


def log_unexpected_error(
    error_message: str,
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Log unexpected error with full stack trace."""
    _log("unexpected_error", error_message, request_id=request_id, operation=operation, context=context)
