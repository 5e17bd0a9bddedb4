"""
Tests for the scheduling rules engine.

Tests cover:
- Condition parsing and time helpers
- Per-rule-type evaluation strategies and fault isolation
- Rule scoping, retrieval and the aggregated validation verdict
- Conflict detection (pure detector and day audit)
- API endpoints (rules, validation, dry-run, conflicts)
- Management commands and configuration
"""

from datetime import date
from io import StringIO
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from . import services
from .conf import get_scheduling_policy
from .conflicts import find_conflicts
from .evaluators import EvaluationContext, validate_against_rule
from .models import SchedulingRule, TherapySession
from .types import (
    CandidateSession,
    ConflictType,
    RuleUpdateData,
    SchedulingPolicy,
    TimeConstraintConditions,
    parse_conditions,
    sunday_based_weekday,
    time_to_minutes,
)


THERAPIST = '11111111-1111-1111-1111-111111111111'
OTHER_THERAPIST = '22222222-2222-2222-2222-222222222222'
SERVICE = '33333333-3333-3333-3333-333333333333'
OTHER_SERVICE = '44444444-4444-4444-4444-444444444444'
PATIENT = '55555555-5555-5555-5555-555555555555'

# 2024-11-10 is a Sunday, 2024-11-16 a Saturday.
FRIDAY = date(2024, 11, 15)
SATURDAY = date(2024, 11, 16)


def build_rule(rule_type, conditions=None, action='DENY', scope=None, **kwargs):
    """Build an unsaved rule."""
    rule = SchedulingRule(
        name=kwargs.pop('name', f'{rule_type} rule'),
        type=rule_type,
        **kwargs
    )
    rule.conditions_data = conditions or {}
    rule.actions_data = {'type': action, 'message': f'{action} message'}
    rule.scope_data = scope if scope is not None else {'apply_to_all': True}
    return rule


def create_rule(rule_type, conditions=None, action='DENY', scope=None, **kwargs):
    """Create and save a rule."""
    rule = build_rule(rule_type, conditions, action, scope, **kwargs)
    rule.save()
    return rule


def candidate(scheduled_date=FRIDAY, scheduled_time='10:00', duration=60, **kwargs):
    return CandidateSession(
        therapist_id=kwargs.pop('therapist_id', THERAPIST),
        service_id=kwargs.pop('service_id', SERVICE),
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        duration=duration,
        **kwargs
    )


def fixed_counter(count):
    """Session counter that records its calls and always returns count."""
    calls = []

    def count_sessions(therapist_id, start_date, end_date):
        calls.append((therapist_id, start_date, end_date))
        return count

    count_sessions.calls = calls
    return count_sessions


class TimeHelperTests(SimpleTestCase):
    """Test time and weekday helpers."""

    def test_time_to_minutes(self):
        """Test HH:MM conversion, with and without zero padding."""
        self.assertEqual(time_to_minutes('16:30'), 990)
        self.assertEqual(time_to_minutes('9:05'), 545)
        self.assertEqual(time_to_minutes('00:00'), 0)

    def test_time_to_minutes_rejects_invalid(self):
        """Test that malformed times raise ValueError."""
        for value in ('24:00', '12:60', 'noon', '', None):
            with self.assertRaises(ValueError):
                time_to_minutes(value)

    def test_sunday_based_weekday(self):
        """Test that Sunday is day 0 and Saturday day 6."""
        self.assertEqual(sunday_based_weekday(date(2024, 11, 10)), 0)
        self.assertEqual(sunday_based_weekday(date(2024, 11, 11)), 1)
        self.assertEqual(sunday_based_weekday(SATURDAY), 6)


class ConditionParsingTests(SimpleTestCase):
    """Test typed condition payloads."""

    def test_parse_time_constraint(self):
        """Test parsing time constraint conditions."""
        conditions = parse_conditions('TIME_CONSTRAINT', {
            'start_time': '09:00',
            'end_time': '17:00',
            'days_of_week': [1, 2, 3],
            'specific_dates': ['2024-12-25', '2024-12-31T00:00:00.000Z'],
        })

        self.assertIsInstance(conditions, TimeConstraintConditions)
        self.assertEqual(conditions.days_of_week, (1, 2, 3))
        self.assertEqual(conditions.specific_dates, (date(2024, 12, 25), date(2024, 12, 31)))

    def test_parse_rejects_wrong_shapes(self):
        """Test that malformed conditions raise."""
        with self.assertRaises(TypeError):
            parse_conditions('TIME_CONSTRAINT', {'days_of_week': 'monday'})
        with self.assertRaises(TypeError):
            parse_conditions('CAPACITY_LIMIT', {'max_sessions_per_day': 'three'})
        with self.assertRaises(ValueError):
            parse_conditions('TIME_CONSTRAINT', {'start_time': '9am', 'end_time': '17:00'})
        with self.assertRaises(ValueError):
            parse_conditions('RECURRING_PATTERN', {'frequency': 'HOURLY'})

    def test_parse_rejects_unknown_type(self):
        """Test that an unknown rule type raises ValueError."""
        with self.assertRaises(ValueError):
            parse_conditions('LUNAR_PHASE', {})


class TimeConstraintTests(SimpleTestCase):
    """Test TIME_CONSTRAINT evaluation."""

    def test_session_ending_after_window_is_violated(self):
        """Test that a session ending at 17:30 breaks a 09:00-17:00 window."""
        rule = build_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'})

        result = validate_against_rule(rule, candidate(scheduled_time='16:30', duration=60))

        self.assertTrue(result.violated)
        self.assertEqual(result.message, 'Time constraint violation')
        self.assertEqual(result.details, {'constraint': {'start_time': '09:00', 'end_time': '17:00'}})

    def test_session_ending_at_window_end_passes(self):
        """Test that a session ending exactly at 17:00 is allowed."""
        rule = build_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'})

        result = validate_against_rule(rule, candidate(scheduled_time='16:00', duration=60))

        self.assertFalse(result.violated)
        self.assertEqual(result.message, '')
        self.assertEqual(result.details, {})

    def test_session_starting_before_window_is_violated(self):
        """Test that a session starting at 08:45 breaks a 09:00 start."""
        rule = build_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'})

        result = validate_against_rule(rule, candidate(scheduled_time='8:45', duration=30))

        self.assertTrue(result.violated)

    def test_excluded_weekday_is_violated(self):
        """Test that a Saturday session breaks a Monday-Friday rule."""
        rule = build_rule('TIME_CONSTRAINT', {'days_of_week': [1, 2, 3, 4, 5]})

        self.assertTrue(validate_against_rule(rule, candidate(scheduled_date=SATURDAY)).violated)
        self.assertFalse(validate_against_rule(rule, candidate(scheduled_date=FRIDAY)).violated)

    def test_blocked_specific_date_is_violated(self):
        """Test that listed dates are blocked, whatever their ISO form."""
        rule = build_rule('TIME_CONSTRAINT', {'specific_dates': ['2024-11-15T00:00:00.000Z']})

        self.assertTrue(validate_against_rule(rule, candidate(scheduled_date=FRIDAY)).violated)
        self.assertFalse(validate_against_rule(rule, candidate(scheduled_date=SATURDAY)).violated)

    def test_missing_conditions_are_skipped(self):
        """Test that absent or half-configured checks never violate."""
        empty_rule = build_rule('TIME_CONSTRAINT', {})
        start_only = build_rule('TIME_CONSTRAINT', {'start_time': '12:00'})

        self.assertFalse(validate_against_rule(empty_rule, candidate(scheduled_time='06:00')).violated)
        self.assertFalse(validate_against_rule(start_only, candidate(scheduled_time='06:00')).violated)


class CapacityLimitTests(SimpleTestCase):
    """Test CAPACITY_LIMIT evaluation with an injected session counter."""

    def test_daily_limit_reached_is_violated(self):
        """Test that 3 existing sessions break a limit of 3 per day."""
        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})
        context = EvaluationContext(count_sessions=fixed_counter(3))

        result = validate_against_rule(rule, candidate(), context)

        self.assertTrue(result.violated)
        self.assertEqual(result.message, 'Capacity limit exceeded')
        self.assertEqual(result.details, {'limit': {'max_sessions_per_day': 3}})

    def test_daily_limit_not_reached_passes(self):
        """Test that 2 existing sessions leave room under a limit of 3."""
        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})
        counter = fixed_counter(2)

        result = validate_against_rule(rule, candidate(), EvaluationContext(count_sessions=counter))

        self.assertFalse(result.violated)
        self.assertEqual(counter.calls, [(THERAPIST, FRIDAY, FRIDAY)])

    def test_weekly_limit_uses_sunday_to_saturday_week(self):
        """Test that the weekly count covers the Sunday-aligned week."""
        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_week': 10})
        expected_week = (date(2024, 11, 10), date(2024, 11, 16))

        for day in (date(2024, 11, 10), date(2024, 11, 13), SATURDAY):
            counter = fixed_counter(9)
            result = validate_against_rule(
                rule, candidate(scheduled_date=day), EvaluationContext(count_sessions=counter)
            )
            self.assertFalse(result.violated)
            self.assertEqual(counter.calls, [(THERAPIST, *expected_week)])

    def test_weekly_limit_reached_is_violated(self):
        """Test that reaching the weekly limit violates."""
        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_week': 10})
        context = EvaluationContext(count_sessions=fixed_counter(10))

        self.assertTrue(validate_against_rule(rule, candidate(), context).violated)

    def test_each_limit_queries_separately(self):
        """Test that day and week limits each issue their own count."""
        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 5, 'max_sessions_per_week': 20})
        counter = fixed_counter(1)

        validate_against_rule(rule, candidate(), EvaluationContext(count_sessions=counter))

        self.assertEqual(len(counter.calls), 2)


class AdvanceBookingTests(SimpleTestCase):
    """Test ADVANCE_BOOKING evaluation against a fixed 'today'."""

    def setUp(self):
        self.context = EvaluationContext(today=date(2024, 11, 4))

    def test_minimum_advance(self):
        """Test that tomorrow breaks a 2-day minimum and the day after does not."""
        rule = build_rule('ADVANCE_BOOKING', {'min_advance_booking': 2})

        tomorrow = validate_against_rule(rule, candidate(scheduled_date=date(2024, 11, 5)), self.context)
        day_after = validate_against_rule(rule, candidate(scheduled_date=date(2024, 11, 6)), self.context)

        self.assertTrue(tomorrow.violated)
        self.assertEqual(tomorrow.message, 'Advance booking constraint violation')
        self.assertFalse(day_after.violated)

    def test_maximum_advance(self):
        """Test that booking beyond the maximum horizon violates."""
        rule = build_rule('ADVANCE_BOOKING', {'max_advance_booking': 30})

        at_limit = validate_against_rule(rule, candidate(scheduled_date=date(2024, 12, 4)), self.context)
        beyond = validate_against_rule(rule, candidate(scheduled_date=date(2024, 12, 5)), self.context)

        self.assertFalse(at_limit.violated)
        self.assertTrue(beyond.violated)


class UnsupportedRuleTypeTests(SimpleTestCase):
    """Test rule types that are accepted but not enforced yet."""

    def test_recurring_pattern_never_violates(self):
        """Test RECURRING_PATTERN rules always pass."""
        rule = build_rule('RECURRING_PATTERN', {'frequency': 'WEEKLY', 'interval': 2})

        self.assertFalse(validate_against_rule(rule, candidate()).violated)

    def test_custom_rule_never_violates_or_runs_logic(self):
        """Test CUSTOM rules always pass and never execute stored logic."""
        rule = build_rule('CUSTOM', {'custom_logic': "__import__('os').system('false')"})

        with patch('os.system') as system:
            result = validate_against_rule(rule, candidate())

        self.assertFalse(result.violated)
        system.assert_not_called()


class RuleEvaluationFaultTests(SimpleTestCase):
    """Test that broken rules fail closed."""

    def assert_forced_deny(self, result):
        self.assertTrue(result.violated)
        self.assertEqual(result.action, 'DENY')
        self.assertEqual(result.message, 'Error validating rule')
        self.assertEqual(result.action_message, 'Rule validation failed')
        self.assertIn('error', result.details)

    def test_malformed_conditions_force_deny(self):
        """Test conditions of the wrong shape for the rule type."""
        rule = build_rule('TIME_CONSTRAINT', {'start_time': 'morning', 'end_time': '17:00'}, action='WARN')

        self.assert_forced_deny(validate_against_rule(rule, candidate()))

    def test_corrupt_stored_json_forces_deny(self):
        """Test conditions text that is not valid JSON."""
        rule = build_rule('CAPACITY_LIMIT', {}, action='ALLOW')
        rule.conditions = '{"max_sessions_per_day": '

        self.assert_forced_deny(validate_against_rule(rule, candidate()))

    def test_unknown_stored_type_forces_deny(self):
        """Test a rule whose type is not one of the known types."""
        rule = build_rule('TIME_CONSTRAINT', {})
        rule.type = 'LUNAR_PHASE'

        self.assert_forced_deny(validate_against_rule(rule, candidate()))

    def test_failing_counter_forces_deny(self):
        """Test a session counter that raises."""
        def broken_counter(therapist_id, start_date, end_date):
            raise DatabaseError('session store unavailable')

        rule = build_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})
        result = validate_against_rule(rule, candidate(), EvaluationContext(count_sessions=broken_counter))

        self.assert_forced_deny(result)

    def test_result_carries_rule_identity_and_action(self):
        """Test the result wrapper fields."""
        rule = build_rule('TIME_CONSTRAINT', {}, action='WARN', name='Office hours')

        result = validate_against_rule(rule, candidate())

        self.assertEqual(result.rule_id, str(rule.id))
        self.assertEqual(result.rule_name, 'Office hours')
        self.assertEqual(result.rule_type, 'TIME_CONSTRAINT')
        self.assertEqual(result.action, 'WARN')
        self.assertEqual(result.action_message, 'WARN message')


class RuleScopeTests(SimpleTestCase):
    """Test which sessions a rule applies to."""

    def test_rule_for_other_therapist_does_not_apply(self):
        """Test a therapist-scoped rule against another therapist and unlisted service."""
        rule = build_rule('TIME_CONSTRAINT', scope={'apply_to_all': False, 'therapist_ids': [THERAPIST]})

        self.assertFalse(rule.applies_to(OTHER_THERAPIST, SERVICE))
        self.assertTrue(rule.applies_to(THERAPIST, OTHER_SERVICE))

    def test_scope_dimensions_are_alternatives(self):
        """Test that any matching dimension is enough."""
        rule = build_rule('TIME_CONSTRAINT', scope={
            'therapist_ids': [THERAPIST],
            'service_ids': [SERVICE],
            'patient_ids': [PATIENT],
        })

        self.assertTrue(rule.applies_to(OTHER_THERAPIST, SERVICE))
        self.assertTrue(rule.applies_to(OTHER_THERAPIST, OTHER_SERVICE, PATIENT))
        self.assertFalse(rule.applies_to(OTHER_THERAPIST, OTHER_SERVICE))

    def test_patient_scope_needs_patient(self):
        """Test patient-scoped rules only apply when a patient is given."""
        rule = build_rule('TIME_CONSTRAINT', scope={'patient_ids': [PATIENT]})

        self.assertFalse(rule.applies_to(THERAPIST, SERVICE))
        self.assertTrue(rule.applies_to(THERAPIST, SERVICE, PATIENT))

    def test_apply_to_all_and_inactive(self):
        """Test global rules apply unless inactive."""
        rule = build_rule('TIME_CONSTRAINT', scope={'apply_to_all': True})
        self.assertTrue(rule.applies_to(OTHER_THERAPIST, OTHER_SERVICE))

        rule.is_active = False
        self.assertFalse(rule.applies_to(OTHER_THERAPIST, OTHER_SERVICE))

    def test_empty_scope_applies_to_nothing(self):
        """Test that a missing scope parses as empty and matches nothing."""
        rule = build_rule('TIME_CONSTRAINT')
        rule.scope = ''

        self.assertEqual(rule.scope_data, {})
        self.assertFalse(rule.applies_to(THERAPIST, SERVICE, PATIENT))


class RuleServiceTests(TestCase):
    """Test rule storage operations."""

    def test_create_rule_stores_json_documents(self):
        """Test creating a rule and reading its documents back."""
        rule = services.create_rule(
            name='Weekdays only',
            rule_type='TIME_CONSTRAINT',
            conditions={'days_of_week': [1, 2, 3, 4, 5]},
            actions={'type': 'DENY'},
            scope={'apply_to_all': True},
        )

        rule.refresh_from_db()
        self.assertEqual(rule.conditions_data, {'days_of_week': [1, 2, 3, 4, 5]})
        self.assertEqual(rule.action_type, 'DENY')
        self.assertEqual(rule.priority, 50)
        self.assertTrue(rule.is_active)

    def test_update_rule_changes_only_given_fields(self):
        """Test partial rule updates."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 4}, priority=10)

        services.update_rule(rule, RuleUpdateData(priority=90, conditions={'max_sessions_per_day': 6}))

        rule.refresh_from_db()
        self.assertEqual(rule.priority, 90)
        self.assertEqual(rule.conditions_data, {'max_sessions_per_day': 6})
        self.assertEqual(rule.type, 'CAPACITY_LIMIT')
        self.assertEqual(rule.action_type, 'DENY')

    def test_delete_rule_is_soft(self):
        """Test that deleting deactivates without removing the row."""
        rule = create_rule('TIME_CONSTRAINT')

        services.delete_rule(rule)

        rule.refresh_from_db()
        self.assertFalse(rule.is_active)
        self.assertTrue(SchedulingRule.objects.filter(pk=rule.pk).exists())

    def test_list_rules_filters_and_order(self):
        """Test listing with filters, highest priority first."""
        low = create_rule('TIME_CONSTRAINT', priority=10, scope={'therapist_ids': [THERAPIST]})
        high = create_rule('CAPACITY_LIMIT', priority=90, scope={'therapist_ids': [THERAPIST]})
        other = create_rule('TIME_CONSTRAINT', priority=50, scope={'therapist_ids': [OTHER_THERAPIST]})
        inactive = create_rule('TIME_CONSTRAINT', priority=70, is_active=False)

        self.assertEqual(services.list_rules(), [high, inactive, other, low])
        self.assertEqual(services.list_rules(therapist_id=THERAPIST), [high, low])
        self.assertEqual(services.list_rules(rule_type='TIME_CONSTRAINT', is_active=True), [other, low])
        self.assertEqual(services.list_rules(is_active=False), [inactive])

    def test_non_object_documents_are_rejected(self):
        """Test that conditions, actions and scope must be JSON objects."""
        for field_name in ('conditions', 'actions', 'scope'):
            rule = build_rule('TIME_CONSTRAINT')
            setattr(rule, field_name, '["DENY"]')

            with self.assertRaises(ValidationError) as ctx:
                rule.save()

            self.assertIn(field_name, ctx.exception.message_dict)
        self.assertEqual(SchedulingRule.objects.count(), 0)

    def test_get_rule_not_found(self):
        """Test fetching a missing rule."""
        with self.assertRaises(services.RuleNotFound):
            services.get_rule('99999999-9999-9999-9999-999999999999')


class ApplicableRulesTests(TestCase):
    """Test rule retrieval for a candidate session."""

    def test_only_active_rules_in_scope_by_priority(self):
        """Test scoping, inactivity and priority ordering."""
        low = create_rule('TIME_CONSTRAINT', priority=20)
        high = create_rule('TIME_CONSTRAINT', priority=80, scope={'service_ids': [SERVICE]})
        create_rule('TIME_CONSTRAINT', priority=90, is_active=False)
        create_rule('TIME_CONSTRAINT', priority=95, scope={'therapist_ids': [OTHER_THERAPIST]})

        rules = services.get_applicable_rules(THERAPIST, SERVICE)

        self.assertEqual(rules, [high, low])

    def test_storage_failure_returns_no_rules(self):
        """Test that an unreachable rule store yields an empty rule set."""
        with patch('scheduling.services.SchedulingRule') as rule_model:
            rule_model.objects.active.side_effect = DatabaseError('connection refused')
            rules = services.get_applicable_rules(THERAPIST, SERVICE)

        self.assertEqual(rules, [])

    def test_non_object_scope_returns_no_rules(self):
        """Test stored scopes that are JSON but not usable objects."""
        for scope in ('[]', '{"therapist_ids": 5}'):
            rule = create_rule('TIME_CONSTRAINT', {'days_of_week': [1]})
            SchedulingRule.objects.filter(pk=rule.pk).update(scope=scope)

            self.assertEqual(services.get_applicable_rules(THERAPIST, SERVICE), [])
            summary = services.validate_scheduling(candidate())
            self.assertTrue(summary.valid)
            self.assertEqual(summary.total_rules, 0)

            rule.delete()

    def test_storage_failure_validates_without_rules(self):
        """Test that validation still succeeds with zero rules."""
        with patch('scheduling.services.SchedulingRule') as rule_model:
            rule_model.objects.active.side_effect = DatabaseError('connection refused')
            summary = services.validate_scheduling(candidate())

        self.assertTrue(summary.valid)
        self.assertEqual(summary.total_rules, 0)


class ValidateSchedulingTests(TestCase):
    """Test the aggregated validation verdict."""

    def setUp(self):
        self.context = EvaluationContext(count_sessions=fixed_counter(0), today=date(2024, 11, 1))

    def test_one_deny_violation_two_passes(self):
        """Test that a single DENY violation blocks the session."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1, 2, 3, 4, 5]}, priority=60)
        create_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'}, priority=50)
        create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 5}, priority=40)

        summary = services.validate_scheduling(candidate(scheduled_date=SATURDAY), self.context)

        self.assertFalse(summary.valid)
        self.assertEqual(len(summary.violations), 1)
        self.assertEqual(summary.warnings, [])
        self.assertEqual(summary.total_rules, 3)
        self.assertEqual(summary.passed, 2)
        self.assertEqual(summary.to_dict()['summary'], {
            'total_rules': 3, 'violations': 1, 'warnings': 0, 'passed': 2,
        })

    def test_warnings_do_not_block(self):
        """Test that WARN violations are reported but the session stays valid."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1, 2, 3, 4, 5]}, action='WARN')

        summary = services.validate_scheduling(candidate(scheduled_date=SATURDAY), self.context)

        self.assertTrue(summary.valid)
        self.assertEqual(len(summary.warnings), 1)
        self.assertEqual(summary.passed, 0)

    def test_all_rules_evaluated_after_violation(self):
        """Test that there is no early exit."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1]}, priority=90)
        create_rule('TIME_CONSTRAINT', {'days_of_week': [2]}, priority=80)
        create_rule('TIME_CONSTRAINT', {'days_of_week': [3]}, action='WARN', priority=70)

        summary = services.validate_scheduling(candidate(), self.context)

        self.assertEqual(len(summary.validation_results), 3)
        self.assertEqual(len(summary.violations), 2)
        self.assertEqual(len(summary.warnings), 1)
        self.assertEqual(
            [r.rule_name for r in summary.validation_results],
            ['TIME_CONSTRAINT rule'] * 3
        )

    def test_allow_violation_lands_in_no_bucket(self):
        """Test that violated ALLOW rules are neither violations nor warnings."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1]}, action='ALLOW')
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1]}, action='AUTO_RESCHEDULE')

        summary = services.validate_scheduling(candidate(), self.context)

        self.assertTrue(summary.valid)
        self.assertTrue(all(r.violated for r in summary.validation_results))
        self.assertEqual(summary.violations, [])
        self.assertEqual(summary.warnings, [])
        self.assertEqual(summary.passed, 2)

    def test_broken_rule_is_isolated(self):
        """Test that one broken rule is denied while others still evaluate."""
        create_rule('TIME_CONSTRAINT', {'start_time': 'nine', 'end_time': '17:00'}, action='WARN', priority=90)
        create_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'}, priority=10)

        summary = services.validate_scheduling(candidate(), self.context)

        broken, healthy = summary.validation_results
        self.assertTrue(broken.violated)
        self.assertEqual(broken.action, 'DENY')
        self.assertFalse(healthy.violated)
        self.assertEqual(summary.warnings, [broken])
        self.assertEqual(summary.violations, [])
        self.assertTrue(summary.valid)

    def test_broken_rule_is_bucketed_by_configured_action(self):
        """Test that broken DENY rules block and broken ALLOW rules land nowhere."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': 'weekdays'}, action='DENY', priority=90)
        create_rule('TIME_CONSTRAINT', {'days_of_week': 'weekdays'}, action='ALLOW', priority=80)

        summary = services.validate_scheduling(candidate(), self.context)

        deny_rule, allow_rule = summary.validation_results
        self.assertEqual(summary.violations, [deny_rule])
        self.assertEqual(summary.warnings, [])
        self.assertEqual(allow_rule.action, 'DENY')
        self.assertFalse(summary.valid)

    def test_non_object_actions_are_isolated(self):
        """Test a stored actions document that is JSON but not an object."""
        broken = create_rule('TIME_CONSTRAINT', {}, priority=90)
        create_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'}, priority=10)
        SchedulingRule.objects.filter(pk=broken.pk).update(actions='["DENY"]')

        summary = services.validate_scheduling(candidate(), self.context)

        broken_result, healthy_result = summary.validation_results
        self.assertTrue(broken_result.violated)
        self.assertEqual(broken_result.action, 'DENY')
        self.assertEqual(broken_result.message, 'Error validating rule')
        self.assertFalse(healthy_result.violated)
        self.assertEqual(summary.violations, [broken_result])

    def test_no_rules_is_valid(self):
        """Test validation with no applicable rules."""
        summary = services.validate_scheduling(candidate(), self.context)

        self.assertTrue(summary.valid)
        self.assertEqual(summary.to_dict()['summary'], {
            'total_rules': 0, 'violations': 0, 'warnings': 0, 'passed': 0,
        })

    def test_repeated_validation_is_identical(self):
        """Test that validating twice gives the same summary."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1, 2, 3, 4, 5]})
        create_rule('ADVANCE_BOOKING', {'min_advance_booking': 30}, action='WARN')

        first = services.validate_scheduling(candidate(scheduled_date=SATURDAY), self.context)
        second = services.validate_scheduling(candidate(scheduled_date=SATURDAY), self.context)

        self.assertEqual(first.to_dict(), second.to_dict())


class CapacityLimitStoreTests(TestCase):
    """Test capacity limits against sessions in the database."""

    def add_session(self, day, time, status='SCHEDULED', therapist_id=THERAPIST):
        return TherapySession.objects.create(
            therapist_id=therapist_id,
            service_id=SERVICE,
            scheduled_date=day,
            scheduled_time=time,
            duration=60,
            status=status
        )

    def test_daily_limit_counts_active_sessions_only(self):
        """Test that cancelled and completed sessions do not count."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})
        self.add_session(FRIDAY, '09:00', 'CONFIRMED')
        self.add_session(FRIDAY, '11:00', 'IN_PROGRESS')
        self.add_session(FRIDAY, '13:00', 'CANCELLED')
        self.add_session(FRIDAY, '15:00', 'COMPLETED')
        self.add_session(FRIDAY, '16:00', therapist_id=OTHER_THERAPIST)

        self.assertFalse(validate_against_rule(rule, candidate()).violated)

        self.add_session(FRIDAY, '17:00')
        self.assertTrue(validate_against_rule(rule, candidate()).violated)

    def test_daily_limit_uses_configured_active_statuses(self):
        """Test that capacity counts follow SCHEDULING['ACTIVE_SESSION_STATUSES']."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 2})
        self.add_session(FRIDAY, '09:00', 'CONFIRMED')
        self.add_session(FRIDAY, '11:00', 'SCHEDULED')

        self.assertTrue(validate_against_rule(rule, candidate()).violated)

        with override_settings(SCHEDULING={'ACTIVE_SESSION_STATUSES': ['SCHEDULED']}):
            self.assertFalse(validate_against_rule(rule, candidate()).violated)

    def test_weekly_limit_counts_whole_week(self):
        """Test the weekly count from Sunday through Saturday."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_week': 2})
        self.add_session(date(2024, 11, 9), '10:00')   # previous Saturday
        self.add_session(date(2024, 11, 10), '10:00')  # Sunday
        self.add_session(date(2024, 11, 17), '10:00')  # next Sunday

        self.assertFalse(validate_against_rule(rule, candidate()).violated)

        self.add_session(SATURDAY, '10:00')
        self.assertTrue(validate_against_rule(rule, candidate()).violated)


class FindConflictsTests(SimpleTestCase):
    """Test the conflict detector over in-memory sessions."""

    def session(self, time, duration):
        return TherapySession(therapist_id=THERAPIST, scheduled_time=time, duration=duration)

    def test_overlap_reports_overlap_and_buffer(self):
        """Test a 09:00-10:00 session followed by one at 09:45."""
        conflicts = find_conflicts([self.session('09:00', 60), self.session('09:45', 30)])

        self.assertEqual([c.type for c in conflicts], [
            ConflictType.TIME_OVERLAP, ConflictType.INSUFFICIENT_BUFFER
        ])
        self.assertEqual(conflicts[0].overlap_minutes, 15)
        self.assertEqual(conflicts[0].message, 'Sessions overlap by 15 minutes')
        self.assertEqual(conflicts[1].buffer_minutes, -15)

    def test_short_gap_reports_buffer_only(self):
        """Test a session ending at 10:00 followed by one at 10:10."""
        conflicts = find_conflicts([self.session('09:00', 60), self.session('10:10', 30)])

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].type, ConflictType.INSUFFICIENT_BUFFER)
        self.assertEqual(conflicts[0].buffer_minutes, 10)
        self.assertEqual(
            conflicts[0].message,
            'Insufficient buffer time: 10 minutes between sessions'
        )

    def test_minimum_buffer_is_enough(self):
        """Test that exactly 15 minutes between sessions is fine."""
        conflicts = find_conflicts([self.session('09:00', 60), self.session('10:15', 30)])

        self.assertEqual(conflicts, [])

    def test_only_consecutive_pairs_are_compared(self):
        """Test that a long session is only compared with the next one."""
        long_session = self.session('09:00', 180)
        middle = self.session('10:00', 30)
        last = self.session('11:00', 30)

        conflicts = find_conflicts([long_session, middle, last])

        self.assertEqual(len(conflicts), 2)
        for conflict in conflicts:
            self.assertEqual(conflict.sessions, (long_session, middle))

    def test_sessions_are_sorted_by_time(self):
        """Test unordered input and unpadded times."""
        early = self.session('9:30', 30)
        late = self.session('10:00', 60)

        conflicts = find_conflicts([late, early])

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].sessions, (early, late))
        self.assertEqual(conflicts[0].buffer_minutes, 0)

    def test_custom_minimum_buffer(self):
        """Test a policy with no required buffer."""
        conflicts = find_conflicts(
            [self.session('09:00', 60), self.session('10:00', 30)],
            min_buffer_minutes=0
        )

        self.assertEqual(conflicts, [])


class DetectConflictsTests(TestCase):
    """Test auditing a therapist's day from the database."""

    def setUp(self):
        """Create a day with two conflicting sessions and some noise."""
        for time, duration, status in (
            ('09:00', 60, 'SCHEDULED'),
            ('09:45', 45, 'CONFIRMED'),
            ('11:00', 60, 'CANCELLED'),
            ('14:00', 60, 'IN_PROGRESS'),
        ):
            TherapySession.objects.create(
                therapist_id=THERAPIST,
                service_id=SERVICE,
                scheduled_date=FRIDAY,
                scheduled_time=time,
                duration=duration,
                status=status
            )
        TherapySession.objects.create(
            therapist_id=OTHER_THERAPIST,
            service_id=SERVICE,
            scheduled_date=FRIDAY,
            scheduled_time='10:00',
            duration=60
        )
        TherapySession.objects.create(
            therapist_id=THERAPIST,
            service_id=SERVICE,
            scheduled_date=SATURDAY,
            scheduled_time='09:30',
            duration=60
        )

    def test_detect_conflicts_for_day(self):
        """Test that only the therapist's active sessions that day are compared."""
        conflicts, sessions = services.detect_conflicts(THERAPIST, FRIDAY)

        self.assertEqual([s.scheduled_time for s in sessions], ['09:00', '09:45', '14:00'])
        self.assertEqual([c.type for c in conflicts], [
            ConflictType.TIME_OVERLAP, ConflictType.INSUFFICIENT_BUFFER
        ])

    def test_detect_conflicts_with_policy(self):
        """Test an injected policy."""
        policy = SchedulingPolicy(min_buffer_minutes=300)

        conflicts, _ = services.detect_conflicts(THERAPIST, FRIDAY, policy=policy)

        self.assertEqual(len(conflicts), 3)


class SchedulingPolicyTests(SimpleTestCase):
    """Test configuration loading."""

    def test_default_policy(self):
        """Test defaults when nothing is configured."""
        with override_settings(SCHEDULING={}):
            policy = get_scheduling_policy()

        self.assertEqual(policy.min_buffer_minutes, 15)
        self.assertEqual(policy.active_statuses, ('SCHEDULED', 'CONFIRMED', 'IN_PROGRESS'))

    def test_configured_buffer(self):
        """Test overriding the minimum buffer."""
        with override_settings(SCHEDULING={'MIN_BUFFER_MINUTES': 5}):
            self.assertEqual(get_scheduling_policy().min_buffer_minutes, 5)

    def test_negative_buffer_rejected(self):
        """Test that a negative buffer is a configuration error."""
        with override_settings(SCHEDULING={'MIN_BUFFER_MINUTES': -1}):
            with self.assertRaises(ValueError):
                get_scheduling_policy()


class SchedulingRuleAPITests(APITestCase):
    """Test scheduling rule API endpoints."""

    def setUp(self):
        """Set up test client."""
        self.client = APIClient()

    def rule_payload(self, **overrides):
        data = {
            'name': 'Office hours',
            'description': 'Sessions during office hours only',
            'type': 'TIME_CONSTRAINT',
            'conditions': {'start_time': '09:00', 'end_time': '17:00'},
            'actions': {'type': 'DENY', 'message': 'Outside office hours'},
            'scope': {'therapist_ids': [THERAPIST]},
            'priority': 70,
        }
        data.update(overrides)
        return data

    def test_create_rule(self):
        """Test creating a rule via API."""
        response = self.client.post('/api/scheduling/rules/', self.rule_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['conditions'], {'start_time': '09:00', 'end_time': '17:00'})
        self.assertEqual(response.data['scope'], {'therapist_ids': [THERAPIST], 'apply_to_all': False})
        self.assertEqual(response.data['actions']['type'], 'DENY')
        self.assertTrue(response.data['is_active'])
        self.assertEqual(SchedulingRule.objects.count(), 1)

    def test_create_rule_drops_fields_of_other_types(self):
        """Test that conditions keep only the rule type's fields."""
        payload = self.rule_payload(conditions={
            'days_of_week': [1, 2],
            'max_sessions_per_day': 4,
        })

        response = self.client.post('/api/scheduling/rules/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['conditions'], {'days_of_week': [1, 2]})

    def test_create_rule_validation_errors(self):
        """Test malformed rule payloads are rejected with field errors."""
        bad_time = self.rule_payload(conditions={'start_time': '25:00', 'end_time': '17:00'})
        response = self.client.post('/api/scheduling/rules/', bad_time, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('start_time', response.data['conditions'])

        bad_capacity = self.rule_payload(type='CAPACITY_LIMIT', conditions={'max_sessions_per_day': 50})
        response = self.client.post('/api/scheduling/rules/', bad_capacity, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('max_sessions_per_day', response.data['conditions'])

        response = self.client.post('/api/scheduling/rules/', self.rule_payload(priority=0), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('priority', response.data)

        response = self.client.post(
            '/api/scheduling/rules/', self.rule_payload(actions={'type': 'IGNORE'}), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('actions', response.data)

        self.assertEqual(SchedulingRule.objects.count(), 0)

    def test_list_rules(self):
        """Test listing rules with filters."""
        create_rule('TIME_CONSTRAINT', priority=10)
        create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3}, priority=90)
        create_rule('TIME_CONSTRAINT', priority=50, is_active=False)

        response = self.client.get('/api/scheduling/rules/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual([r['priority'] for r in response.data['rules']], [90, 50, 10])

        response = self.client.get('/api/scheduling/rules/', {'type': 'TIME_CONSTRAINT', 'is_active': 'true'})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['rules'][0]['priority'], 10)

        response = self.client.get('/api/scheduling/rules/', {'type': 'BOGUS'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_rule_detail(self):
        """Test retrieving a single rule."""
        rule = create_rule('ADVANCE_BOOKING', {'min_advance_booking': 1})

        response = self.client.get(f'/api/scheduling/rules/{rule.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['conditions'], {'min_advance_booking': 1})

    def test_missing_rule_is_not_found(self):
        """Test that unknown rule ids return 404 on every endpoint."""
        url = '/api/scheduling/rules/99999999-9999-9999-9999-999999999999/'

        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(
            self.client.patch(url, {'name': 'x'}, format='json').status_code,
            status.HTTP_404_NOT_FOUND
        )
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(
            self.client.post(f'{url}test/', {'test_data': {}}, format='json').status_code,
            status.HTTP_404_NOT_FOUND
        )

    def test_update_rule(self):
        """Test partially updating a rule."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})

        response = self.client.patch(
            f'/api/scheduling/rules/{rule.id}/',
            {'name': 'Daily cap', 'conditions': {'max_sessions_per_day': 5}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Daily cap')
        self.assertEqual(response.data['conditions'], {'max_sessions_per_day': 5})
        self.assertEqual(response.data['type'], 'CAPACITY_LIMIT')

    def test_update_type_revalidates_conditions(self):
        """Test that changing the type checks conditions against the new type."""
        rule = create_rule('CAPACITY_LIMIT', {'max_sessions_per_day': 3})

        response = self.client.patch(
            f'/api/scheduling/rules/{rule.id}/',
            {'type': 'TIME_CONSTRAINT', 'conditions': {'start_time': 'late'}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        rule.refresh_from_db()
        self.assertEqual(rule.type, 'CAPACITY_LIMIT')

    def test_delete_rule(self):
        """Test that deleting a rule deactivates it."""
        rule = create_rule('TIME_CONSTRAINT', {'days_of_week': [1]})

        response = self.client.delete(f'/api/scheduling/rules/{rule.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['rule']['is_active'])
        rule.refresh_from_db()
        self.assertFalse(rule.is_active)
        self.assertEqual(services.get_applicable_rules(THERAPIST, SERVICE), [])

    def test_test_rule_dry_run_ignores_scope(self):
        """Test dry-running a rule scoped to someone else."""
        rule = create_rule(
            'TIME_CONSTRAINT',
            {'days_of_week': [1, 2, 3, 4, 5]},
            scope={'therapist_ids': [OTHER_THERAPIST]}
        )
        test_data = {
            'therapist_id': THERAPIST,
            'service_id': SERVICE,
            'scheduled_date': '2024-11-16T00:00:00Z',
            'scheduled_time': '10:00',
            'duration': 60,
        }

        response = self.client.post(
            f'/api/scheduling/rules/{rule.id}/test/', {'test_data': test_data}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['passed'])
        self.assertTrue(response.data['result']['violated'])
        self.assertEqual(response.data['rule']['id'], str(rule.id))
        self.assertEqual(response.data['test_data'], test_data)

    def test_test_rule_requires_valid_test_data(self):
        """Test dry-run input validation."""
        rule = create_rule('TIME_CONSTRAINT')

        response = self.client.post(
            f'/api/scheduling/rules/{rule.id}/test/', {'test_data': {'duration': 60}}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('test_data', response.data)


class SchedulingValidationAPITests(APITestCase):
    """Test the validation endpoint."""

    def setUp(self):
        self.client = APIClient()
        self.payload = {
            'therapist_id': THERAPIST,
            'service_id': SERVICE,
            'scheduled_date': '2024-11-16T00:00:00Z',
            'scheduled_time': '16:30',
            'duration': 60,
        }

    def test_validate_post(self):
        """Test a candidate that breaks a DENY and a WARN rule."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1, 2, 3, 4, 5]}, priority=90)
        create_rule('TIME_CONSTRAINT', {'start_time': '09:00', 'end_time': '17:00'}, action='WARN')
        create_rule('RECURRING_PATTERN', {'frequency': 'WEEKLY'})

        response = self.client.post('/api/scheduling/validate/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['valid'])
        self.assertEqual(response.data['summary'], {
            'total_rules': 3, 'violations': 1, 'warnings': 1, 'passed': 1,
        })
        self.assertEqual(response.data['violations'][0]['message'], 'Time constraint violation')
        self.assertEqual(len(response.data['validation_results']), 3)

    def test_validate_get_with_query_params(self):
        """Test validation from query parameters."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [6]})

        response = self.client.get('/api/scheduling/validate/', self.payload)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['summary']['passed'], 1)

    def test_validate_accepts_bare_date(self):
        """Test that a date without time is accepted."""
        self.payload['scheduled_date'] = '2024-11-16'

        response = self.client.post('/api/scheduling/validate/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_out_of_scope_rules_are_ignored(self):
        """Test that rules for other therapists do not count."""
        create_rule('TIME_CONSTRAINT', {'days_of_week': [1]}, scope={'therapist_ids': [OTHER_THERAPIST]})

        response = self.client.post('/api/scheduling/validate/', self.payload, format='json')

        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['summary']['total_rules'], 0)

    def test_invalid_candidate_is_client_error(self):
        """Test that malformed candidates are rejected before evaluation."""
        cases = {
            'scheduled_time': '24:00',
            'duration': 10,
            'therapist_id': 'not-a-uuid',
            'scheduled_date': 'next tuesday',
        }
        for field_name, value in cases.items():
            payload = dict(self.payload, **{field_name: value})
            response = self.client.post('/api/scheduling/validate/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field_name)
            self.assertIn(field_name, response.data)

    def test_unexpected_error_is_generic_server_error(self):
        """Test that internal errors do not leak details."""
        with patch('scheduling.services.validate_scheduling', side_effect=RuntimeError('secret detail')):
            response = self.client.post('/api/scheduling/validate/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'detail': 'Internal server error'})


class SchedulingConflictAPITests(APITestCase):
    """Test the conflicts endpoint."""

    def setUp(self):
        self.client = APIClient()
        for time, duration in (('09:00', 60), ('10:10', 50)):
            TherapySession.objects.create(
                therapist_id=THERAPIST,
                service_id=SERVICE,
                scheduled_date=FRIDAY,
                scheduled_time=time,
                duration=duration,
                patient_name='Alex Doe'
            )

    def test_get_conflicts(self):
        """Test listing a day's conflicts."""
        response = self.client.get('/api/scheduling/conflicts/', {
            'therapist_id': THERAPIST,
            'date': '2024-11-15'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary'], {
            'total_sessions': 2, 'conflicts': 1, 'has_conflicts': True,
        })
        conflict = response.data['conflicts'][0]
        self.assertEqual(conflict['type'], 'INSUFFICIENT_BUFFER')
        self.assertEqual(conflict['buffer_minutes'], 10)
        self.assertNotIn('overlap_minutes', conflict)
        self.assertEqual([s['scheduled_time'] for s in conflict['sessions']], ['09:00', '10:10'])

    def test_conflicts_require_therapist_and_date(self):
        """Test missing query parameters."""
        response = self.client.get('/api/scheduling/conflicts/', {'therapist_id': THERAPIST})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date', response.data)


class ManagementCommandTests(TestCase):
    """Test management commands."""

    def test_detect_conflicts_command(self):
        """Test the detect_conflicts management command."""
        for time in ('09:00', '09:30'):
            TherapySession.objects.create(
                therapist_id=THERAPIST,
                service_id=SERVICE,
                scheduled_date=FRIDAY,
                scheduled_time=time,
                duration=60
            )

        out = StringIO()
        call_command('detect_conflicts', f'--therapist={THERAPIST}', '--date=2024-11-15', stdout=out)

        output = out.getvalue()
        self.assertIn('Checked 2 session(s)', output)
        self.assertIn('TIME_OVERLAP', output)
        self.assertIn('Found 2 conflict(s)', output)

    def test_detect_conflicts_command_clean_day(self):
        """Test a day without conflicts."""
        out = StringIO()
        call_command('detect_conflicts', f'--therapist={THERAPIST}', '--date=2024-11-15', stdout=out)

        self.assertIn('No conflicts found', out.getvalue())

    def test_detect_conflicts_command_rejects_bad_input(self):
        """Test invalid arguments."""
        with self.assertRaises(CommandError):
            call_command('detect_conflicts', f'--therapist={THERAPIST}', '--date=15/11/2024')
        with self.assertRaises(CommandError):
            call_command('detect_conflicts', '--therapist=abc', '--date=2024-11-15')
