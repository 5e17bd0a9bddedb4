"""
Per-rule-type evaluation strategies.

Each strategy receives the rule's typed conditions, the candidate session
and an EvaluationContext, and returns True when the candidate violates the
rule. validate_against_rule wraps the dispatch and turns any failure into a
forced DENY so that a broken rule never lets a session through.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional

from django.utils import timezone

from .conf import get_scheduling_policy
from .models import SchedulingRule, TherapySession
from .types import (
    ActionType,
    AdvanceBookingConditions,
    CandidateSession,
    CapacityLimitConditions,
    CustomConditions,
    EvaluationResult,
    RecurringPatternConditions,
    RuleType,
    TimeConstraintConditions,
    parse_conditions,
    sunday_based_weekday,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

SessionCounter = Callable[[str, date, date], int]


def count_active_sessions(therapist_id: str, start_date: date, end_date: date) -> int:
    """
    Count a therapist's active sessions between two days, inclusive.

    Active statuses come from the configured SchedulingPolicy.
    """
    policy = get_scheduling_policy()
    return (
        TherapySession.objects
        .active(policy.active_statuses)
        .for_therapist(therapist_id)
        .in_date_range(start_date, end_date)
        .count()
    )


@dataclass(frozen=True)
class EvaluationContext:
    """Collaborators a strategy may need besides the rule and candidate."""
    count_sessions: SessionCounter = count_active_sessions
    today: Optional[date] = None

    def current_date(self) -> date:
        return self.today if self.today is not None else timezone.localdate()


def evaluate_time_constraint(
    conditions: TimeConstraintConditions,
    candidate: CandidateSession,
    context: EvaluationContext
) -> bool:
    """Violated when the session falls outside the allowed days or hours."""
    if conditions.days_of_week is not None:
        if sunday_based_weekday(candidate.scheduled_date) not in conditions.days_of_week:
            return True

    if conditions.specific_dates is not None:
        if candidate.scheduled_date in conditions.specific_dates:
            return True

    if conditions.start_time and conditions.end_time:
        window_start = time_to_minutes(conditions.start_time)
        window_end = time_to_minutes(conditions.end_time)
        session_start = time_to_minutes(candidate.scheduled_time)
        session_end = session_start + candidate.duration

        if session_start < window_start or session_end > window_end:
            return True

    return False


def evaluate_capacity_limit(
    conditions: CapacityLimitConditions,
    candidate: CandidateSession,
    context: EvaluationContext
) -> bool:
    """
    Violated when existing bookings already reach a configured limit.

    The candidate itself is not booked yet, so it is not part of the counts.
    Weeks run Sunday to Saturday.
    """
    day = candidate.scheduled_date

    if conditions.max_sessions_per_day is not None:
        daily_count = context.count_sessions(candidate.therapist_id, day, day)
        if daily_count >= conditions.max_sessions_per_day:
            return True

    if conditions.max_sessions_per_week is not None:
        week_start = day - timedelta(days=sunday_based_weekday(day))
        week_end = week_start + timedelta(days=6)
        weekly_count = context.count_sessions(candidate.therapist_id, week_start, week_end)
        if weekly_count >= conditions.max_sessions_per_week:
            return True

    return False


def evaluate_advance_booking(
    conditions: AdvanceBookingConditions,
    candidate: CandidateSession,
    context: EvaluationContext
) -> bool:
    """Violated when the session is booked too early or too late."""
    # Whole calendar days between today and the session date.
    days_difference = (candidate.scheduled_date - context.current_date()).days

    if conditions.min_advance_booking is not None and days_difference < conditions.min_advance_booking:
        return True

    if conditions.max_advance_booking is not None and days_difference > conditions.max_advance_booking:
        return True

    return False


def evaluate_recurring_pattern(
    conditions: RecurringPatternConditions,
    candidate: CandidateSession,
    context: EvaluationContext
) -> bool:
    """
    Recurring pattern rules are not supported yet and never report a violation.
    """
    logger.debug("Recurring pattern rules are not enforced; treating as passed")
    return False


def evaluate_custom(
    conditions: CustomConditions,
    candidate: CandidateSession,
    context: EvaluationContext
) -> bool:
    """
    Custom rules are not supported yet and never report a violation.

    Stored custom logic is never executed. Support needs a restricted
    expression grammar with its own interpreter.
    """
    logger.debug("Custom rules are not enforced; treating as passed")
    return False


# rule type -> (strategy, violation message, details key)
STRATEGIES = {
    RuleType.TIME_CONSTRAINT: (evaluate_time_constraint, 'Time constraint violation', 'constraint'),
    RuleType.CAPACITY_LIMIT: (evaluate_capacity_limit, 'Capacity limit exceeded', 'limit'),
    RuleType.ADVANCE_BOOKING: (evaluate_advance_booking, 'Advance booking constraint violation', 'constraint'),
    RuleType.RECURRING_PATTERN: (evaluate_recurring_pattern, 'Recurring pattern violation', 'pattern'),
    RuleType.CUSTOM: (evaluate_custom, 'Custom rule violation', 'rule'),
}


def validate_against_rule(
    rule: SchedulingRule,
    candidate: CandidateSession,
    context: Optional[EvaluationContext] = None
) -> EvaluationResult:
    """
    Evaluate a candidate session against a single rule.

    Args:
        rule: SchedulingRule instance (scope is not checked here)
        candidate: CandidateSession to check
        context: EvaluationContext; defaults to ORM counts and today's date

    Returns:
        EvaluationResult. If the rule cannot be evaluated, the result is a
        violation with action DENY.
    """
    context = context or EvaluationContext()

    try:
        raw_conditions = rule.conditions_data
        rule_type = RuleType(rule.type)
        strategy, violation_message, details_key = STRATEGIES[rule_type]
        conditions = parse_conditions(rule_type, raw_conditions)

        violated = strategy(conditions, candidate, context)
        actions = rule.actions_data
        action = actions.get('type')
        action_message = actions.get('message')
    except Exception as e:
        logger.exception(f"Error validating rule {rule.id} ({rule.type})")
        return EvaluationResult(
            rule_id=str(rule.id),
            rule_name=rule.name,
            rule_type=rule.type,
            violated=True,
            message='Error validating rule',
            details={'error': str(e)},
            action=ActionType.DENY.value,
            action_message='Rule validation failed',
        )

    return EvaluationResult(
        rule_id=str(rule.id),
        rule_name=rule.name,
        rule_type=rule.type,
        violated=violated,
        message=violation_message if violated else '',
        details={details_key: raw_conditions} if violated else {},
        action=action,
        action_message=action_message,
    )
