from datetime import datetime, timedelta, timezone


class SystemClock:
    """Naive UTC 'now'; DB kolonları timezone'suz tutuluyor."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Testler için elle ilerletilen saat."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs):
        self._now = self._now + timedelta(**kwargs)
        return self._now
