from __future__ import annotations

import math
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def to_gym_local(moment: datetime, timezone_name: Optional[str]) -> datetime:
    """Express ``moment`` as a naive wall-clock time in the gym's zone.

    Naive values are taken as already gym-local. Aware values are converted when
    the gym has a zone configured, otherwise only their tzinfo is dropped.
    """

    if moment.tzinfo is None:
        return moment
    if timezone_name:
        moment = moment.astimezone(ZoneInfo(timezone_name))
    return moment.replace(tzinfo=None)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored. Negative when end < start."""
    return math.floor((end - start).total_seconds() / 60)
