"""Time sources for engine decisions.

Every time comparison in the engine goes through a ``Clock`` so that
scheduler ticks, transition decisions and report periods can be replayed
deterministically in tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from studio_engine.shared.utils import ensure_utc, utc_now


class Clock:
    """System clock bound to the studio timezone."""

    def __init__(self, studio_timezone: str | ZoneInfo = "UTC") -> None:
        if isinstance(studio_timezone, str):
            studio_timezone = ZoneInfo(studio_timezone)
        self.studio_zone = studio_timezone

    def now(self) -> datetime:
        """Return the current instant as aware UTC datetime."""
        return utc_now()

    def now_in_studio(self) -> datetime:
        """Return the current instant in studio civil time."""
        return self.to_studio(self.now())

    def to_studio(self, dt: datetime) -> datetime:
        return ensure_utc(dt).astimezone(self.studio_zone)


class FixedClock(Clock):
    """Manually driven clock for tests and replays."""

    def __init__(self, instant: datetime, studio_timezone: str | ZoneInfo = "UTC") -> None:
        super().__init__(studio_timezone)
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant
