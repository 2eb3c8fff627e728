"""
Per-day advance quota.

The number of groups finalized today is kept in the settings store next to
the calendar date it belongs to. The first call on a new day resets it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from ..config import DAILY_ADVANCE_LIMIT

logger = logging.getLogger(__name__)

ADVANCE_DATE_KEY = 'quota.advance_date'
ADVANCE_COUNT_KEY = 'quota.advance_count'


class MemorySettings:
    """Dict-backed settings store for sessions without a database."""

    def __init__(self, initial: Optional[dict] = None):
        self._values = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class DailyQuota:
    """
    Tracks how many groups were finalized on the current calendar day.

    Args:
        settings: Object with get(key, default) and set(key, value)
        limit: Groups allowed per day
    """

    def __init__(self, settings: Optional[Any] = None, limit: int = DAILY_ADVANCE_LIMIT):
        self.settings = settings if settings is not None else MemorySettings()
        self.limit = max(0, int(limit))
        self.used = 0
        self.remaining = self.limit
        self.refresh()

    def _stored_date(self) -> Optional[date]:
        value = self.settings.get(ADVANCE_DATE_KEY)
        if not value:
            return None
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            logger.warning(f"Ignoring malformed quota date: {value!r}")
            return None

    def _write(self, day: date, used: int) -> None:
        # Best effort: a failed write must not block the session
        try:
            self.settings.set(ADVANCE_DATE_KEY, day.isoformat())
            self.settings.set(ADVANCE_COUNT_KEY, used)
        except Exception as e:
            logger.warning(f"Could not persist advance quota: {e}")

    def refresh(self, now: Optional[datetime] = None) -> int:
        """
        Re-read the counter, resetting it on a new calendar day.

        Returns:
            Remaining advances for today
        """
        today = (now or datetime.now()).date()

        if self._stored_date() != today:
            self._write(today, 0)
            self.used = 0
        else:
            try:
                stored = int(self.settings.get(ADVANCE_COUNT_KEY, 0) or 0)
            except (TypeError, ValueError):
                stored = 0
            self.used = min(max(stored, 0), self.limit)

        self.remaining = max(0, self.limit - self.used)
        return self.remaining

    def consume(self, now: Optional[datetime] = None) -> bool:
        """
        Use one advance.

        Returns:
            False when nothing was left to consume
        """
        self.refresh(now)
        if self.remaining <= 0:
            return False

        self.used = min(self.limit, self.used + 1)
        self.remaining = max(0, self.limit - self.used)
        self._write((now or datetime.now()).date(), self.used)
        return True

    def to_dict(self) -> dict:
        return {'limit': self.limit, 'used': self.used, 'remaining': self.remaining}
