"""Time gates derived from a game's kickoff instant.

All functions are pure; callers pass ``now`` explicitly so tests can place it
before, inside or after each window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_join_cutoff(start_time: datetime, offset_minutes: int) -> datetime:
    return to_utc(start_time) - timedelta(minutes=offset_minutes)


def build_confirmation_window_start(start_time: datetime, window_hours: int) -> datetime:
    return to_utc(start_time) - timedelta(hours=window_hours)


@dataclass(frozen=True)
class ConfirmationWindow:
    starts_at: datetime
    join_cutoff: datetime

    @property
    def is_configured(self) -> bool:
        # A cutoff at or before the window start leaves no room to confirm.
        return self.join_cutoff > self.starts_at

    def contains(self, now: datetime) -> bool:
        if not self.is_configured:
            return False
        return self.starts_at <= to_utc(now) < self.join_cutoff


def resolve_confirmation_window(
    start_time: datetime | None,
    *,
    offset_minutes: int,
    window_hours: int,
) -> ConfirmationWindow | None:
    if start_time is None:
        return None
    return ConfirmationWindow(
        starts_at=build_confirmation_window_start(start_time, window_hours),
        join_cutoff=build_join_cutoff(start_time, offset_minutes),
    )


def is_confirmation_window_open(
    start_time: datetime | None,
    now: datetime,
    *,
    offset_minutes: int,
    window_hours: int,
) -> bool:
    window = resolve_confirmation_window(
        start_time, offset_minutes=offset_minutes, window_hours=window_hours
    )
    return window is not None and window.contains(now)


def parse_time_local(value: str | None) -> tuple[int, int] | None:
    """Parse ``"HH:MM"`` (seconds ignored). Returns None on anything malformed."""
    if not value:
        return None
    segments = value.strip().split(":")
    if len(segments) < 2:
        return None
    try:
        hours = int(segments[0])
        minutes = int(segments[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours, minutes


def _local_date(reference: datetime, zone: ZoneInfo) -> date:
    return to_utc(reference).astimezone(zone).date()


def build_zoned_time(
    reference: datetime,
    timezone_name: str,
    time_local: str | None,
) -> datetime | None:
    """Resolve a local wall-clock time on the reference instant's local day.

    The calendar day is taken in ``timezone_name`` (not UTC), combined with the
    parsed hour and minute, and converted back to UTC using the zone's offset
    at that local instant, so DST transitions resolve to the right instant.
    """
    parts = parse_time_local(time_local)
    if parts is None:
        return None
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    local_day = _local_date(reference, zone)
    local = datetime.combine(local_day, time(hour=parts[0], minute=parts[1]), tzinfo=zone)
    return local.astimezone(timezone.utc)
