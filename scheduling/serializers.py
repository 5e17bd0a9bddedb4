"""
Serializers for the scheduling rules API.
"""

from django.utils import timezone
from rest_framework import serializers

from .models import SchedulingRule, TherapySession
from .types import (
    ActionType,
    CandidateSession,
    DEFAULT_RULE_PRIORITY,
    MAX_SESSION_DURATION,
    MIN_SESSION_DURATION,
    RecurrenceFrequency,
    RuleType,
    TIME_PATTERN,
)


def _time_field(**kwargs):
    return serializers.RegexField(
        TIME_PATTERN,
        error_messages={'invalid': 'Time must be in HH:MM format.'},
        **kwargs
    )


def _drop_empty(data):
    return {key: value for key, value in data.items() if value is not None}


class TimeConstraintConditionsSerializer(serializers.Serializer):
    start_time = _time_field(required=False)
    end_time = _time_field(required=False)
    days_of_week = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6),
        required=False
    )
    specific_dates = serializers.ListField(
        child=serializers.CharField(),
        required=False
    )

    def validate_specific_dates(self, value):
        """Accept ISO dates or datetimes; store them as given."""
        date_field = serializers.DateField()
        datetime_field = serializers.DateTimeField()
        for item in value:
            try:
                date_field.to_internal_value(item)
            except serializers.ValidationError:
                datetime_field.to_internal_value(item)
        return value


class CapacityLimitConditionsSerializer(serializers.Serializer):
    max_sessions_per_day = serializers.IntegerField(min_value=1, max_value=20, required=False)
    max_sessions_per_week = serializers.IntegerField(min_value=1, max_value=50, required=False)
    max_sessions_per_month = serializers.IntegerField(min_value=1, max_value=200, required=False)


class AdvanceBookingConditionsSerializer(serializers.Serializer):
    min_advance_booking = serializers.IntegerField(min_value=0, max_value=365, required=False)
    max_advance_booking = serializers.IntegerField(min_value=0, max_value=365, required=False)


class RecurringPatternConditionsSerializer(serializers.Serializer):
    frequency = serializers.ChoiceField(
        choices=[f.value for f in RecurrenceFrequency],
        required=False
    )
    interval = serializers.IntegerField(min_value=1, max_value=52, required=False)


class CustomConditionsSerializer(serializers.Serializer):
    custom_logic = serializers.CharField(required=False, allow_blank=True)


CONDITIONS_SERIALIZERS = {
    RuleType.TIME_CONSTRAINT.value: TimeConstraintConditionsSerializer,
    RuleType.CAPACITY_LIMIT.value: CapacityLimitConditionsSerializer,
    RuleType.ADVANCE_BOOKING.value: AdvanceBookingConditionsSerializer,
    RuleType.RECURRING_PATTERN.value: RecurringPatternConditionsSerializer,
    RuleType.CUSTOM.value: CustomConditionsSerializer,
}


def validate_conditions_for_type(rule_type, conditions):
    """
    Validate a conditions payload against its rule type's field set.

    Keys that do not belong to the rule type are dropped.

    Raises:
        serializers.ValidationError: With per-field errors under 'conditions'
    """
    serializer = CONDITIONS_SERIALIZERS[rule_type](data=conditions)
    if not serializer.is_valid():
        raise serializers.ValidationError({'conditions': serializer.errors})
    return _drop_empty(serializer.validated_data)


class AutoRescheduleOptionsSerializer(serializers.Serializer):
    preferred_time_slots = serializers.ListField(child=serializers.CharField(), required=False)
    max_attempts = serializers.IntegerField(min_value=1, max_value=10, required=False)
    fallback_action = serializers.ChoiceField(
        choices=[ActionType.DENY.value, ActionType.WARN.value],
        required=False
    )


class RuleActionsSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[a.value for a in ActionType])
    message = serializers.CharField(required=False, allow_blank=True)
    auto_reschedule_options = AutoRescheduleOptionsSerializer(required=False)


class RuleScopeSerializer(serializers.Serializer):
    therapist_ids = serializers.ListField(child=serializers.UUIDField(format='hex_verbose'), required=False)
    service_ids = serializers.ListField(child=serializers.UUIDField(format='hex_verbose'), required=False)
    patient_ids = serializers.ListField(child=serializers.UUIDField(format='hex_verbose'), required=False)
    apply_to_all = serializers.BooleanField(default=False)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        for key in ('therapist_ids', 'service_ids', 'patient_ids'):
            if key in value:
                value[key] = [str(v) for v in value[key]]
        return value


class SchedulingRuleReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying SchedulingRule (output)."""

    conditions = serializers.JSONField(source='conditions_data')
    actions = serializers.JSONField(source='actions_data')
    scope = serializers.JSONField(source='scope_data')

    class Meta:
        model = SchedulingRule
        fields = [
            'id',
            'name',
            'description',
            'type',
            'conditions',
            'actions',
            'scope',
            'priority',
            'is_active',
            'created_at',
            'updated_at',
        ]


class SchedulingRuleCreateSerializer(serializers.Serializer):
    """Serializer for creating a scheduling rule."""

    name = serializers.CharField(min_length=1, max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    type = serializers.ChoiceField(choices=[t.value for t in RuleType])
    conditions = serializers.DictField()
    actions = RuleActionsSerializer()
    scope = RuleScopeSerializer()
    priority = serializers.IntegerField(min_value=1, max_value=100, default=DEFAULT_RULE_PRIORITY)
    is_active = serializers.BooleanField(default=True)

    def validate(self, data):
        """Check conditions against the fields of the rule type."""
        data['conditions'] = validate_conditions_for_type(data['type'], data['conditions'])
        return data


class SchedulingRuleUpdateSerializer(serializers.Serializer):
    """Serializer for partially updating a scheduling rule."""

    name = serializers.CharField(min_length=1, max_length=100, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=[t.value for t in RuleType], required=False)
    conditions = serializers.DictField(required=False)
    actions = RuleActionsSerializer(required=False)
    scope = RuleScopeSerializer(required=False)
    priority = serializers.IntegerField(min_value=1, max_value=100, required=False)
    is_active = serializers.BooleanField(required=False)

    def validate(self, data):
        """
        Re-check conditions whenever the type or the conditions change.

        The stored value is used for whichever of the two is not given.
        """
        if 'type' not in data and 'conditions' not in data:
            return data

        rule = self.instance
        rule_type = data.get('type', rule.type if rule else None)
        conditions = data.get('conditions')
        if conditions is None:
            conditions = rule.conditions_data if rule else {}

        data['conditions'] = validate_conditions_for_type(rule_type, conditions)
        return data


class CandidateSessionSerializer(serializers.Serializer):
    """Serializer for a proposed session to validate."""

    therapist_id = serializers.UUIDField()
    service_id = serializers.UUIDField()
    scheduled_date = serializers.CharField()
    scheduled_time = _time_field()
    duration = serializers.IntegerField(min_value=MIN_SESSION_DURATION, max_value=MAX_SESSION_DURATION)
    patient_id = serializers.UUIDField(required=False, allow_null=True)
    session_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_scheduled_date(self, value):
        """Accept an ISO datetime or a bare ISO date; keep the calendar date."""
        try:
            parsed = serializers.DateTimeField().to_internal_value(value)
        except serializers.ValidationError:
            try:
                return serializers.DateField().to_internal_value(value)
            except serializers.ValidationError:
                raise serializers.ValidationError(
                    'Date must be an ISO 8601 datetime or date.'
                )
        if timezone.is_aware(parsed):
            parsed = timezone.localtime(parsed)
        return parsed.date()

    def to_candidate(self) -> CandidateSession:
        """Build the CandidateSession from validated data."""
        return candidate_from_validated_data(self.validated_data)


def candidate_from_validated_data(data) -> CandidateSession:
    """Build a CandidateSession from CandidateSessionSerializer output."""
    return CandidateSession(
        therapist_id=str(data['therapist_id']),
        service_id=str(data['service_id']),
        scheduled_date=data['scheduled_date'],
        scheduled_time=data['scheduled_time'],
        duration=data['duration'],
        patient_id=str(data['patient_id']) if data.get('patient_id') else None,
        session_id=str(data['session_id']) if data.get('session_id') else None,
    )


class RuleTestSerializer(serializers.Serializer):
    """Serializer for a rule dry-run request."""

    test_data = CandidateSessionSerializer()

    def to_candidate(self) -> CandidateSession:
        return candidate_from_validated_data(self.validated_data['test_data'])


class ConflictQuerySerializer(serializers.Serializer):
    """Serializer for conflict query parameters."""

    therapist_id = serializers.UUIDField()
    date = serializers.DateField()


class TherapySessionReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying TherapySession (output)."""

    class Meta:
        model = TherapySession
        fields = [
            'id',
            'therapist_id',
            'service_id',
            'patient_id',
            'patient_name',
            'service_name',
            'scheduled_date',
            'scheduled_time',
            'duration',
            'status',
        ]


def serialize_conflict(conflict):
    """Render a Conflict with its two sessions."""
    data = {
        'type': conflict.type.value,
        'sessions': TherapySessionReadSerializer(conflict.sessions, many=True).data,
        'message': conflict.message,
    }
    if conflict.overlap_minutes is not None:
        data['overlap_minutes'] = conflict.overlap_minutes
    if conflict.buffer_minutes is not None:
        data['buffer_minutes'] = conflict.buffer_minutes
    return data
