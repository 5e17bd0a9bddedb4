"""
Models for the scheduling rules engine.

- SchedulingRule stores configurable business rules evaluated against
  proposed sessions. Its conditions, actions and scope sub-documents are
  kept as serialized JSON text and parsed back on every read.
- TherapySession stores booked sessions; the rules engine only reads it
  (capacity counts and conflict detection).
"""

import json
import uuid

from django.db import models
from django.core.exceptions import ValidationError

from .managers import SchedulingRuleManager, TherapySessionManager
from .types import (
    ActionType,
    DEFAULT_RULE_PRIORITY,
    RuleType,
    SessionStatus,
    TIME_PATTERN,
    time_to_minutes,
)


def parse_json_document(raw):
    """
    Parse a stored JSON sub-document.

    A missing or empty value parses as an empty dict.

    Raises:
        ValueError: If the stored text is not a valid JSON object
    """
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def dump_json_document(value):
    """Serialize a sub-document for storage."""
    return json.dumps(value or {})


class SchedulingRule(models.Model):
    """
    A prioritized business rule applied to proposed sessions.

    Rules are never removed physically; deleting a rule deactivates it.
    """

    TYPE_CHOICES = [(t.value, t.value.replace('_', ' ').title()) for t in RuleType]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')

    type = models.CharField(max_length=32, choices=TYPE_CHOICES)

    conditions = models.TextField(blank=True, default='{}')
    actions = models.TextField(blank=True, default='{}')
    scope = models.TextField(blank=True, default='{}')

    priority = models.PositiveSmallIntegerField(
        default=DEFAULT_RULE_PRIORITY,
        help_text="1-100; higher priority rules are evaluated first"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive rules are never evaluated"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SchedulingRuleManager()

    class Meta:
        ordering = ['-priority', '-created_at']
        indexes = [
            models.Index(fields=['is_active', 'priority'], name='rule_active_priority_idx'),
            models.Index(fields=['type'], name='rule_type_idx'),
        ]

    def __str__(self):
        state = '' if self.is_active else ' [inactive]'
        return f"{self.name} ({self.type}, priority {self.priority}){state}"

    @property
    def conditions_data(self):
        return parse_json_document(self.conditions)

    @conditions_data.setter
    def conditions_data(self, value):
        self.conditions = dump_json_document(value)

    @property
    def actions_data(self):
        return parse_json_document(self.actions)

    @actions_data.setter
    def actions_data(self, value):
        self.actions = dump_json_document(value)

    @property
    def scope_data(self):
        return parse_json_document(self.scope)

    @scope_data.setter
    def scope_data(self, value):
        self.scope = dump_json_document(value)

    @property
    def action_type(self):
        """Configured action type, e.g. 'DENY' or 'WARN'."""
        return self.actions_data.get('type')

    def applies_to(self, therapist_id, service_id, patient_id=None):
        """
        Check whether this rule is in scope for a session.

        Scope dimensions are OR-ed: matching any listed therapist, service
        or patient is enough.
        """
        if not self.is_active:
            return False

        scope = self.scope_data
        if scope.get('apply_to_all'):
            return True
        if str(therapist_id) in _as_id_set(scope.get('therapist_ids')):
            return True
        if str(service_id) in _as_id_set(scope.get('service_ids')):
            return True
        if patient_id and str(patient_id) in _as_id_set(scope.get('patient_ids')):
            return True
        return False

    def clean(self):
        """Validate rule data."""
        super().clean()

        if not 1 <= self.priority <= 100:
            raise ValidationError({'priority': 'Priority must be between 1 and 100.'})

        for field_name in ('conditions', 'actions', 'scope'):
            try:
                parse_json_document(getattr(self, field_name))
            except ValueError:
                raise ValidationError({field_name: 'Must be a valid JSON object.'})

        action = self.action_type
        if action is not None and action not in {a.value for a in ActionType}:
            raise ValidationError({'actions': f'Unknown action type "{action}".'})

    def save(self, *args, **kwargs):
        """Save with validation."""
        self.full_clean()
        super().save(*args, **kwargs)


def _as_id_set(values):
    return {str(v) for v in values or []}


class TherapySession(models.Model):
    """A booked therapy session, as seen by the scheduling rules engine."""

    STATUS_CHOICES = [(s.value, s.value.replace('_', ' ').title()) for s in SessionStatus]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    therapist_id = models.UUIDField(db_index=True)
    service_id = models.UUIDField()
    patient_id = models.UUIDField(null=True, blank=True)

    scheduled_date = models.DateField()
    scheduled_time = models.CharField(max_length=5, help_text="HH:MM, 24h")
    duration = models.PositiveIntegerField(default=60, help_text="Minutes")

    status = models.CharField(
        max_length=24,
        choices=STATUS_CHOICES,
        default=SessionStatus.SCHEDULED.value
    )

    patient_name = models.CharField(max_length=200, blank=True, default='')
    service_name = models.CharField(max_length=200, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TherapySessionManager()

    class Meta:
        ordering = ['scheduled_date', 'scheduled_time']
        indexes = [
            models.Index(fields=['therapist_id', 'scheduled_date', 'status'], name='session_therapist_day_idx'),
        ]

    def __str__(self):
        return f"{self.scheduled_date} {self.scheduled_time} ({self.duration} min) [{self.status}]"

    @property
    def start_minutes(self):
        return time_to_minutes(self.scheduled_time)

    @property
    def end_minutes(self):
        return self.start_minutes + self.duration

    def clean(self):
        """Validate and normalize session data."""
        super().clean()

        if not TIME_PATTERN.match(self.scheduled_time or ''):
            raise ValidationError({'scheduled_time': 'Time must be in HH:MM format.'})

        # Zero-pad so that string ordering matches time ordering.
        hours, minutes = self.scheduled_time.split(':')
        self.scheduled_time = f"{int(hours):02d}:{minutes}"

    def save(self, *args, **kwargs):
        """Save with validation."""
        self.full_clean()
        super().save(*args, **kwargs)
