"""Time sources and interval helpers used throughout the planner."""
from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

_BASE36 = string.digits + string.ascii_lowercase


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in a fixed timezone."""

    def __init__(self, tz: tzinfo | str = timezone.utc) -> None:
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """A settable clock for simulations and tests."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.instant.tzinfo)
        self.instant = instant

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> datetime:
        self.instant = self.instant + timedelta(minutes=minutes, seconds=seconds)
        return self.instant


def same_day(a: datetime, b: datetime) -> bool:
    if a.tzinfo is not None and b.tzinfo is not None:
        b = b.astimezone(a.tzinfo)
    return a.date() == b.date()


def generate_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{time.time_ns() // 1_000_000}-{suffix}"


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open overlap test: intervals that only touch do not overlap."""
    return start1 < end2 and end1 > start2


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def round_up(instant: datetime, minutes: int) -> datetime:
    """Round up to the next multiple of ``minutes`` past the hour."""
    floored = instant.replace(second=0, microsecond=0)
    if floored != instant:
        floored += timedelta(minutes=1)
    remainder = floored.minute % minutes
    if remainder:
        floored += timedelta(minutes=minutes - remainder)
    return floored


def at_hour(instant: datetime, hour: int) -> datetime:
    """``instant``'s calendar day at ``hour``:00; hour 24 means the following midnight."""
    midnight = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(hours=hour)
