"""
Database connection management with thread safety.

Provides ConnectionManager for thread-safe SQLite access in WAL mode. The
grouping engine writes from its caller's thread while background fetch
passes read and write the signature cache, so writers share one lock.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


class ConnectionManager:
    """
    Opens one short-lived SQLite connection per unit of work.

    Each connection runs inside an explicit transaction that is committed
    when the block exits normally and rolled back when it raises. Writers
    pass ``exclusive=True`` to serialize on a process-wide lock.
    """

    def __init__(self, db_path: str, timeout: float = 30.0):
        """
        Initialize connection manager.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait for a locked database
        """
        self.db_path = str(db_path)
        self.timeout = timeout
        self._write_lock = threading.Lock()
        self._ensure_directory()

    def _ensure_directory(self):
        """Create the parent directory of the database file if needed."""
        db_path = Path(self.db_path).resolve()
        db_dir = db_path.parent
        if db_dir and db_dir != db_path:
            db_dir.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager yielding a connection inside a transaction.

        Args:
            exclusive: Hold the write lock for the duration of the block

        Example:
            with conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM retention")
        """
        if exclusive:
            self._write_lock.acquire()

        try:
            conn = self._open()
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()
        finally:
            if exclusive:
                self._write_lock.release()

    def vacuum(self) -> None:
        """Compact the database file (VACUUM cannot run in a transaction)."""
        with self._write_lock:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            try:
                conn.execute("VACUUM")
            finally:
                conn.close()


__all__ = ['ConnectionManager']
