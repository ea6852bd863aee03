"""Calendar normalization — company-local days over UTC storage.

Every instant stored in the database is UTC. Every business rule (work day,
holiday, leave coverage, "today") is evaluated on the calendar day of the
company's IANA timezone. These helpers are the only place where the two are
converted, so the rest of the codebase compares plain ``date`` objects or
``YYYY-MM-DD`` keys and never raw instants.

Naive datetimes are treated as UTC (SQLite hands them back that way).
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from teamready.common.constants import DATE_FORMAT, DEFAULT_WORK_DAYS, WEEKDAY_CODES
from teamready.common.exceptions import InconsistentDateError, ValidationException

UTC = timezone.utc

DateLike = Union[date, datetime]


# ── Zones ───────────────────────────────────────────────────────────

def get_zone(tz: str) -> ZoneInfo:
    """Resolve an IANA zone name or raise ``InconsistentDateError``."""
    if not tz or not isinstance(tz, str):
        raise InconsistentDateError("timezone", tz, "is not a valid IANA timezone.")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise InconsistentDateError("timezone", tz, "is not a valid IANA timezone.")


def validate_timezone(tz: str) -> str:
    get_zone(tz)
    return tz


def is_valid_timezone(tz: str) -> bool:
    try:
        get_zone(tz)
    except InconsistentDateError:
        return False
    return True


# ── Instants ────────────────────────────────────────────────────────

def ensure_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_zone(instant: datetime, tz: str) -> datetime:
    return ensure_utc(instant).astimezone(get_zone(tz))


def now_in(tz: str, now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in *tz* (or *now* converted into it)."""
    return to_zone(now or utc_now(), tz)


def local_date(value: DateLike, tz: str) -> date:
    """Company-local calendar day of *value*.

    A ``date`` is already a calendar day and passes through unchanged; a
    ``datetime`` is an instant and is projected into *tz*.
    """
    if isinstance(value, datetime):
        return to_zone(value, tz).date()
    return value


def today_in(tz: str, now: Optional[datetime] = None) -> date:
    return now_in(tz, now).date()


def date_key(value: DateLike, tz: str = "UTC") -> str:
    """``YYYY-MM-DD`` key used for day-set membership tests."""
    return local_date(value, tz).strftime(DATE_FORMAT)


def to_db_date(value: DateLike, tz: str) -> datetime:
    """Noon UTC of the local calendar day.

    Noon keeps the instant on the same calendar day for every offset
    between UTC-12 and UTC+12, so consumers that truncate it get the
    right day back.
    """
    d = local_date(value, tz)
    return datetime(d.year, d.month, d.day, 12, 0, tzinfo=UTC)


# ── Day boundaries ──────────────────────────────────────────────────

def start_of_day(value: DateLike, tz: str) -> datetime:
    d = local_date(value, tz)
    return datetime.combine(d, time.min, tzinfo=get_zone(tz))


def end_of_day(value: DateLike, tz: str) -> datetime:
    d = local_date(value, tz)
    return datetime.combine(d, time.max, tzinfo=get_zone(tz))


def start_of_next_day(value: DateLike, tz: str) -> datetime:
    return start_of_day(local_date(value, tz) + timedelta(days=1), tz)


def day_bounds_utc(value: DateLike, tz: str) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC bounds of the local day."""
    return (
        start_of_day(value, tz).astimezone(UTC),
        start_of_next_day(value, tz).astimezone(UTC),
    )


def range_bounds_utc(start: date, end: date, tz: str) -> tuple[datetime, datetime]:
    """Half-open UTC bounds covering the local days ``start..end`` inclusive."""
    return (
        start_of_day(start, tz).astimezone(UTC),
        start_of_next_day(end, tz).astimezone(UTC),
    )


# ── Work week ───────────────────────────────────────────────────────

def weekday_code(value: DateLike, tz: str = "UTC") -> str:
    return WEEKDAY_CODES[local_date(value, tz).weekday()]


def parse_work_days(raw: Union[str, Iterable[str], None]) -> tuple[str, ...]:
    """Normalize ``"mon, Tue,WED"`` or an iterable of codes into a tuple."""
    if raw is None:
        raw = DEFAULT_WORK_DAYS
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    codes = tuple(p.strip().upper() for p in parts if p and p.strip())
    unknown = [c for c in codes if c not in WEEKDAY_CODES]
    if unknown:
        raise ValidationException(
            {"work_days": [f"Unknown day code(s): {', '.join(unknown)}."]}
        )
    return codes


def format_work_days(codes: Iterable[str]) -> str:
    return ",".join(parse_work_days(codes))


def is_work_day(value: DateLike, work_days: Union[str, Iterable[str]], tz: str = "UTC") -> bool:
    return weekday_code(value, tz) in parse_work_days(work_days)


def count_work_days(start: date, end: date, work_days: Union[str, Iterable[str]]) -> int:
    codes = parse_work_days(work_days)
    return sum(1 for d in iter_days(start, end) if WEEKDAY_CODES[d.weekday()] in codes)


# ── Ranges ──────────────────────────────────────────────────────────

def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each calendar day from *start* to *end* inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def days_between(start: date, end: date) -> int:
    """Inclusive number of calendar days; zero when *end* precedes *start*."""
    if end < start:
        return 0
    return (end - start).days + 1


def last_n_days(days: int, tz: str, now: Optional[datetime] = None) -> tuple[date, date]:
    """``(start, end)`` of the *days*-long window ending today inclusive."""
    if days < 1:
        raise ValidationException({"days": ["Window must be at least 1 day."]})
    end = today_in(tz, now)
    return end - timedelta(days=days - 1), end


# ── Parsing ─────────────────────────────────────────────────────────

def parse_date(raw: str, field: str = "date") -> date:
    """``YYYY-MM-DD`` to a date; impossible days such as 2026-02-30 are rejected."""
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InconsistentDateError(field, raw, "is not a calendar date (YYYY-MM-DD).")


def parse_time(raw: str, field: str = "time") -> time:
    """Parse ``HH:MM`` (24h)."""
    try:
        hours, minutes = raw.split(":")
        if len(hours) != 2 or len(minutes) != 2:
            raise ValueError(raw)
        return time(int(hours), int(minutes))
    except (AttributeError, TypeError, ValueError):
        raise ValidationException({field: [f"'{raw}' is not a valid HH:MM time."]})


def is_valid_time_format(raw: str) -> bool:
    try:
        parse_time(raw)
    except ValidationException:
        return False
    return True


def shift_has_ended(shift_end: time, tz: str, now: Optional[datetime] = None) -> bool:
    """True once the local wall clock is strictly past *shift_end*."""
    local = now_in(tz, now)
    return (local.hour * 60 + local.minute) > (shift_end.hour * 60 + shift_end.minute)


# ── Streaks ─────────────────────────────────────────────────────────

def streak_continues(
    last_checkin: Optional[date],
    today: date,
    work_days: Union[str, Iterable[str]],
    max_gap_days: int = 3,
) -> bool:
    """Whether a streak ending on *last_checkin* is still alive on *today*.

    Alive when the gap is at most *max_gap_days* and every day strictly
    between the two is a non-work day.
    """
    if last_checkin is None or last_checkin > today:
        return False
    gap = (today - last_checkin).days
    if gap == 0:
        return True
    if gap > max_gap_days:
        return False
    codes = parse_work_days(work_days)
    return not any(
        WEEKDAY_CODES[d.weekday()] in codes
        for d in iter_days(last_checkin + timedelta(days=1), today - timedelta(days=1))
    )
