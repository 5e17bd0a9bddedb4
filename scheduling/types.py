"""
Data types and constants for the scheduling rules engine.

This module contains:
- Enumerations for rule, action, conflict and session status values
- Per-rule-type condition payloads (one dataclass per rule type)
- DTOs passed between the service layer, evaluators and views
- Constants used across the application
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')

MIN_SESSION_DURATION = 15
MAX_SESSION_DURATION = 480
DEFAULT_RULE_PRIORITY = 50
DEFAULT_MIN_BUFFER_MINUTES = 15


class RuleType(str, Enum):
    TIME_CONSTRAINT = 'TIME_CONSTRAINT'
    CAPACITY_LIMIT = 'CAPACITY_LIMIT'
    ADVANCE_BOOKING = 'ADVANCE_BOOKING'
    RECURRING_PATTERN = 'RECURRING_PATTERN'
    CUSTOM = 'CUSTOM'


class ActionType(str, Enum):
    ALLOW = 'ALLOW'
    DENY = 'DENY'
    WARN = 'WARN'
    AUTO_RESCHEDULE = 'AUTO_RESCHEDULE'


class SessionStatus(str, Enum):
    SCHEDULED = 'SCHEDULED'
    CONFIRMED = 'CONFIRMED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    NO_SHOW = 'NO_SHOW'
    RESCHEDULE_REQUESTED = 'RESCHEDULE_REQUESTED'


ACTIVE_SESSION_STATUSES = (
    SessionStatus.SCHEDULED.value,
    SessionStatus.CONFIRMED.value,
    SessionStatus.IN_PROGRESS.value,
)


class ConflictType(str, Enum):
    TIME_OVERLAP = 'TIME_OVERLAP'
    INSUFFICIENT_BUFFER = 'INSUFFICIENT_BUFFER'


class RecurrenceFrequency(str, Enum):
    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'
    BIWEEKLY = 'BIWEEKLY'
    MONTHLY = 'MONTHLY'


def time_to_minutes(value: str) -> int:
    """
    Convert an HH:MM string into minutes since midnight.

    Raises:
        ValueError: If value is not a valid 24h HH:MM time
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError(f"Invalid time value: {value!r}")
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def sunday_based_weekday(day: date) -> int:
    """Day of week with 0=Sunday and 6=Saturday."""
    return (day.weekday() + 1) % 7


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'{key}' must be an integer, got {value!r}")
    return value


def _optional_time(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    time_to_minutes(value)
    return value


def _parse_calendar_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO date string, got {value!r}")
    # Datetime strings are compared by their calendar date.
    return date.fromisoformat(value[:10])


@dataclass(frozen=True)
class TimeConstraintConditions:
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_of_week: Optional[Tuple[int, ...]] = None
    specific_dates: Optional[Tuple[date, ...]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeConstraintConditions':
        days = data.get('days_of_week')
        if days is not None:
            if not isinstance(days, (list, tuple)):
                raise TypeError("'days_of_week' must be a list")
            days = tuple(int(d) for d in days)

        dates = data.get('specific_dates')
        if dates is not None:
            if not isinstance(dates, (list, tuple)):
                raise TypeError("'specific_dates' must be a list")
            dates = tuple(_parse_calendar_date(d) for d in dates)

        return cls(
            start_time=_optional_time(data, 'start_time'),
            end_time=_optional_time(data, 'end_time'),
            days_of_week=days,
            specific_dates=dates,
        )


@dataclass(frozen=True)
class CapacityLimitConditions:
    max_sessions_per_day: Optional[int] = None
    max_sessions_per_week: Optional[int] = None
    # Stored for rule authors; not enforced by the evaluator.
    max_sessions_per_month: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CapacityLimitConditions':
        return cls(
            max_sessions_per_day=_optional_int(data, 'max_sessions_per_day'),
            max_sessions_per_week=_optional_int(data, 'max_sessions_per_week'),
            max_sessions_per_month=_optional_int(data, 'max_sessions_per_month'),
        )


@dataclass(frozen=True)
class AdvanceBookingConditions:
    min_advance_booking: Optional[int] = None
    max_advance_booking: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdvanceBookingConditions':
        return cls(
            min_advance_booking=_optional_int(data, 'min_advance_booking'),
            max_advance_booking=_optional_int(data, 'max_advance_booking'),
        )


@dataclass(frozen=True)
class RecurringPatternConditions:
    frequency: Optional[RecurrenceFrequency] = None
    interval: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecurringPatternConditions':
        frequency = data.get('frequency')
        return cls(
            frequency=RecurrenceFrequency(frequency) if frequency is not None else None,
            interval=_optional_int(data, 'interval'),
        )


@dataclass(frozen=True)
class CustomConditions:
    custom_logic: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomConditions':
        logic = data.get('custom_logic')
        if logic is not None and not isinstance(logic, str):
            raise TypeError("'custom_logic' must be a string")
        return cls(custom_logic=logic)


CONDITIONS_BY_TYPE = {
    RuleType.TIME_CONSTRAINT: TimeConstraintConditions,
    RuleType.CAPACITY_LIMIT: CapacityLimitConditions,
    RuleType.ADVANCE_BOOKING: AdvanceBookingConditions,
    RuleType.RECURRING_PATTERN: RecurringPatternConditions,
    RuleType.CUSTOM: CustomConditions,
}


def parse_conditions(rule_type, data: Dict[str, Any]):
    """
    Build the typed conditions payload for a rule type.

    Raises:
        ValueError: If the rule type is unknown or a field is malformed
        TypeError: If a field has the wrong shape
    """
    if not isinstance(data, dict):
        raise TypeError("Rule conditions must be an object")
    return CONDITIONS_BY_TYPE[RuleType(rule_type)].from_dict(data)


@dataclass(frozen=True)
class CandidateSession:
    """A proposed session to check against the scheduling rules."""
    therapist_id: str
    service_id: str
    scheduled_date: date
    scheduled_time: str
    duration: int
    patient_id: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class EvaluationResult:
    """Outcome of evaluating one rule against a candidate session."""
    rule_id: str
    rule_name: str
    rule_type: str
    violated: bool
    message: str = ''
    details: Dict[str, Any] = field(default_factory=dict)
    action: Optional[str] = None
    action_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ValidationSummary:
    """Aggregated verdict for one validation run."""
    valid: bool
    violations: List[EvaluationResult]
    warnings: List[EvaluationResult]
    validation_results: List[EvaluationResult]
    total_rules: int
    passed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'violations': [r.to_dict() for r in self.violations],
            'warnings': [r.to_dict() for r in self.warnings],
            'validation_results': [r.to_dict() for r in self.validation_results],
            'summary': {
                'total_rules': self.total_rules,
                'violations': len(self.violations),
                'warnings': len(self.warnings),
                'passed': self.passed,
            },
        }


@dataclass
class Conflict:
    """A scheduling problem between two consecutive sessions."""
    type: ConflictType
    sessions: Tuple[Any, Any]
    message: str
    overlap_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None


@dataclass(frozen=True)
class SchedulingPolicy:
    """Process-wide scheduling configuration, read once from settings."""
    min_buffer_minutes: int = DEFAULT_MIN_BUFFER_MINUTES
    active_statuses: Tuple[str, ...] = ACTIVE_SESSION_STATUSES


@dataclass
class RuleUpdateData:
    """DTO for rule update operations."""
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    conditions: Optional[Dict[str, Any]] = None
    actions: Optional[Dict[str, Any]] = None
    scope: Optional[Dict[str, Any]] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
