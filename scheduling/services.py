"""
Service layer for scheduling rule business logic.
Services are framework-agnostic and handle all business operations.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from django.db import DatabaseError, transaction

from .conf import get_scheduling_policy
from .conflicts import find_conflicts
from .evaluators import EvaluationContext, validate_against_rule
from .exceptions import RuleNotFound
from .models import SchedulingRule, TherapySession
from .types import (
    ActionType,
    CandidateSession,
    Conflict,
    DEFAULT_RULE_PRIORITY,
    EvaluationResult,
    RuleUpdateData,
    SchedulingPolicy,
    ValidationSummary,
)

logger = logging.getLogger(__name__)


def list_rules(
    therapist_id: Optional[str] = None,
    service_id: Optional[str] = None,
    rule_type: Optional[str] = None,
    is_active: Optional[bool] = None
) -> List[SchedulingRule]:
    """
    List rules matching optional filters.

    Args:
        therapist_id: Only rules whose scope lists this therapist
        service_id: Only rules whose scope lists this service
        rule_type: Only rules of this type
        is_active: Only active (True) or inactive (False) rules

    Returns:
        List of SchedulingRule instances, highest priority first, newest first on ties
    """
    queryset = SchedulingRule.objects.by_priority()

    if rule_type:
        queryset = queryset.of_type(rule_type)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)

    rules = list(queryset)

    if therapist_id:
        rules = [r for r in rules if _scope_lists(r, 'therapist_ids', therapist_id)]
    if service_id:
        rules = [r for r in rules if _scope_lists(r, 'service_ids', service_id)]

    return rules


def _scope_lists(rule: SchedulingRule, key: str, value: str) -> bool:
    return str(value) in {str(v) for v in rule.scope_data.get(key) or []}


def get_rule(rule_id) -> SchedulingRule:
    """
    Fetch a rule by id, active or not.

    Raises:
        RuleNotFound: If no rule has this id
    """
    try:
        return SchedulingRule.objects.get(pk=rule_id)
    except SchedulingRule.DoesNotExist:
        raise RuleNotFound()


@transaction.atomic
def create_rule(
    name: str,
    rule_type: str,
    conditions: Dict[str, Any],
    actions: Dict[str, Any],
    scope: Dict[str, Any],
    description: str = '',
    priority: int = DEFAULT_RULE_PRIORITY,
    is_active: bool = True
) -> SchedulingRule:
    """
    Create a scheduling rule.

    Returns:
        Created SchedulingRule instance
    """
    rule = SchedulingRule(
        name=name,
        description=description,
        type=rule_type,
        priority=priority,
        is_active=is_active,
    )
    rule.conditions_data = conditions
    rule.actions_data = actions
    rule.scope_data = scope
    rule.save()

    logger.info(f"Created scheduling rule {rule.id} ({rule.type}, priority {rule.priority})")
    return rule


@transaction.atomic
def update_rule(rule: SchedulingRule, update_data: RuleUpdateData) -> SchedulingRule:
    """
    Update a scheduling rule. Only fields that are not None change.

    Args:
        rule: SchedulingRule instance to update
        update_data: RuleUpdateData with fields to update

    Returns:
        Updated SchedulingRule instance
    """
    _apply_field_updates(rule, {
        'name': update_data.name,
        'description': update_data.description,
        'type': update_data.type,
        'priority': update_data.priority,
        'is_active': update_data.is_active,
    })
    _apply_field_updates(rule, {
        'conditions_data': update_data.conditions,
        'actions_data': update_data.actions,
        'scope_data': update_data.scope,
    })

    rule.save()
    logger.info(f"Updated scheduling rule {rule.id}")
    return rule


@transaction.atomic
def delete_rule(rule: SchedulingRule) -> SchedulingRule:
    """
    Soft-delete a rule by deactivating it. History is kept.

    Returns:
        The deactivated SchedulingRule instance
    """
    rule.is_active = False
    rule.save()
    logger.info(f"Deactivated scheduling rule {rule.id}")
    return rule


def _apply_field_updates(obj, fields: dict) -> None:
    """Apply field updates to object if values are not None."""
    for field_name, value in fields.items():
        if value is not None:
            setattr(obj, field_name, value)


def get_applicable_rules(
    therapist_id: str,
    service_id: str,
    patient_id: Optional[str] = None
) -> List[SchedulingRule]:
    """
    Get the active rules in scope for a session, highest priority first.

    If the rules cannot be read, the error is logged and an empty list is
    returned: an unreachable rule store blocks nothing but enforces nothing.
    """
    try:
        rules = list(SchedulingRule.objects.active().by_priority())
        return [r for r in rules if r.applies_to(therapist_id, service_id, patient_id)]
    except (DatabaseError, ValueError, TypeError):
        logger.exception(
            f"Could not load scheduling rules for therapist {therapist_id}; "
            f"validating without rules"
        )
        return []


def validate_scheduling(
    candidate: CandidateSession,
    context: Optional[EvaluationContext] = None
) -> ValidationSummary:
    """
    Validate a candidate session against every applicable rule.

    All rules are evaluated, even after a violation. Violations of DENY
    rules block the session; violations of WARN rules are reported only.
    Bucketing follows the rule's configured action, also for a rule that
    failed to evaluate (whose result itself carries a forced DENY).

    Args:
        candidate: CandidateSession to validate
        context: EvaluationContext passed to every rule evaluation

    Returns:
        ValidationSummary
    """
    applicable_rules = get_applicable_rules(
        candidate.therapist_id,
        candidate.service_id,
        candidate.patient_id
    )

    validation_results = []
    violations = []
    warnings = []

    for rule in applicable_rules:
        result = validate_against_rule(rule, candidate, context)
        validation_results.append(result)

        if result.violated:
            action = _configured_action(rule)
            if action == ActionType.DENY.value:
                violations.append(result)
            elif action == ActionType.WARN.value:
                warnings.append(result)

    total_rules = len(applicable_rules)
    summary = ValidationSummary(
        valid=not violations,
        violations=violations,
        warnings=warnings,
        validation_results=validation_results,
        total_rules=total_rules,
        # ALLOW/AUTO_RESCHEDULE violations fall in neither bucket but are
        # still counted here as passed.
        passed=total_rules - len(violations) - len(warnings),
    )

    logger.info(
        f"Validated session for therapist {candidate.therapist_id} on "
        f"{candidate.scheduled_date} {candidate.scheduled_time}: "
        f"valid={summary.valid}, rules={total_rules}, "
        f"violations={len(violations)}, warnings={len(warnings)}"
    )
    return summary


def _configured_action(rule: SchedulingRule) -> Optional[str]:
    """
    Action type configured on the rule, which decides its bucket.

    A rule whose actions cannot be read is bucketed as DENY.
    """
    try:
        return rule.action_type
    except ValueError:
        return ActionType.DENY.value


def run_rule_test(
    rule: SchedulingRule,
    candidate: CandidateSession,
    context: Optional[EvaluationContext] = None
) -> EvaluationResult:
    """
    Dry-run one rule against a candidate session, ignoring scope.
    """
    return validate_against_rule(rule, candidate, context)


def detect_conflicts(
    therapist_id: str,
    day: date,
    policy: Optional[SchedulingPolicy] = None
) -> Tuple[List[Conflict], List[TherapySession]]:
    """
    Find overlapping or tightly packed sessions in a therapist's day.

    Args:
        therapist_id: Therapist to audit
        day: Calendar day to audit
        policy: SchedulingPolicy; read from settings when omitted

    Returns:
        Tuple of (conflicts, active sessions of that day in time order)
    """
    policy = policy or get_scheduling_policy()

    sessions = list(
        TherapySession.objects
        .active(policy.active_statuses)
        .for_therapist(therapist_id)
        .on_date(day)
    )
    sessions.sort(key=lambda s: s.start_minutes)

    conflicts = find_conflicts(sessions, policy.min_buffer_minutes)
    if conflicts:
        logger.info(f"Found {len(conflicts)} conflict(s) for therapist {therapist_id} on {day}")

    return conflicts, sessions
