"""Enums and constants for TeamReady — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Users / Roles ───────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    worker = "worker"
    member = "member"
    team_lead = "team_lead"
    supervisor = "supervisor"
    executive = "executive"
    admin = "admin"


# Roles that are expected to check in daily and count toward team rosters.
WORKER_ROLES = (UserRole.worker, UserRole.member)


# ── Calendar ────────────────────────────────────────────────────────

class WeekDay(str, enum.Enum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"


# Indexed by ``date.weekday()`` (Monday == 0).
WEEKDAY_CODES: tuple[str, ...] = tuple(d.value for d in WeekDay)

DEFAULT_WORK_DAYS = "MON,TUE,WED,THU,FRI"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


# ── Check-ins / Readiness ───────────────────────────────────────────

class ReadinessStatus(str, enum.Enum):
    green = "green"
    yellow = "yellow"
    red = "red"


METRIC_MIN = 1
METRIC_MAX = 10
GREEN_THRESHOLD = 70
YELLOW_THRESHOLD = 40


# ── Leave exceptions ────────────────────────────────────────────────

class ExceptionType(str, enum.Enum):
    sick_leave = "sick_leave"
    personal_leave = "personal_leave"
    medical_appointment = "medical_appointment"
    family_emergency = "family_emergency"
    other = "other"


class ExceptionStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ── Absences ────────────────────────────────────────────────────────

class AbsenceStatus(str, enum.Enum):
    pending_justification = "pending_justification"
    excused = "excused"
    unexcused = "unexcused"


class AbsenceReason(str, enum.Enum):
    sick = "sick"
    emergency = "emergency"
    personal = "personal"
    forgot_checkin = "forgot_checkin"
    technical_issue = "technical_issue"
    other = "other"


class AbsenceFilter(str, enum.Enum):
    """Team-lead view filter over absences."""

    all = "all"
    pending_justification = "pending_justification"
    pending_review = "pending_review"
    excused = "excused"
    unexcused = "unexcused"


class ReviewAction(str, enum.Enum):
    excuse = "excuse"
    reject = "reject"


# ── Grading ─────────────────────────────────────────────────────────

class Trend(str, enum.Enum):
    up = "up"
    down = "down"
    stable = "stable"


class GradeColor(str, enum.Enum):
    green = "green"
    yellow = "yellow"
    orange = "orange"
    red = "red"


READINESS_WEIGHT = 0.6
COMPLIANCE_WEIGHT = 0.4
TREND_THRESHOLD = 3
AT_RISK_SCORE = 70
CRITICAL_SCORE = 60


# ── Pagination ──────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
