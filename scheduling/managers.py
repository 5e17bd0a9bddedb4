"""
Query helpers for scheduling rules and booked sessions.

Rule lookups filter by activity and type and order by evaluation priority;
session lookups narrow a therapist's calendar to the statuses and days that
capacity counts and conflict audits look at.
"""

from django.db import models

from .types import ACTIVE_SESSION_STATUSES


class SchedulingRuleQuerySet(models.QuerySet):
    """Custom queryset for SchedulingRule model with chainable methods."""

    def active(self):
        """Get all active rules."""
        return self.filter(is_active=True)

    def of_type(self, rule_type):
        """Get rules of a single rule type."""
        return self.filter(type=rule_type)

    def by_priority(self):
        """Order by priority (highest first), newest first on ties."""
        return self.order_by('-priority', '-created_at')


class SchedulingRuleManager(models.Manager):
    """Custom manager for SchedulingRule model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return SchedulingRuleQuerySet(self.model, using=self._db)

    def active(self):
        """Get all active rules."""
        return self.get_queryset().active()

    def of_type(self, rule_type):
        """Get rules of a single rule type."""
        return self.get_queryset().of_type(rule_type)

    def by_priority(self):
        """Order by priority (highest first), newest first on ties."""
        return self.get_queryset().by_priority()


class TherapySessionQuerySet(models.QuerySet):
    """Custom queryset for TherapySession model with chainable methods."""

    def active(self, statuses=ACTIVE_SESSION_STATUSES):
        """
        Get sessions that still occupy the therapist's calendar.

        Args:
            statuses: iterable of status values counted as active
        """
        return self.filter(status__in=statuses)

    def for_therapist(self, therapist_id):
        return self.filter(therapist_id=therapist_id)

    def on_date(self, day):
        """
        Get sessions on a calendar day.

        Args:
            day: date object
        """
        return self.filter(scheduled_date=day)

    def in_date_range(self, start_date, end_date):
        """
        Get sessions between two calendar days, both inclusive.

        Args:
            start_date: date object
            end_date: date object
        """
        return self.filter(
            scheduled_date__gte=start_date,
            scheduled_date__lte=end_date
        )


class TherapySessionManager(models.Manager):
    """Custom manager for TherapySession model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return TherapySessionQuerySet(self.model, using=self._db)

    def active(self, statuses=ACTIVE_SESSION_STATUSES):
        return self.get_queryset().active(statuses)

    def for_therapist(self, therapist_id):
        return self.get_queryset().for_therapist(therapist_id)

    def on_date(self, day):
        return self.get_queryset().on_date(day)

    def in_date_range(self, start_date, end_date):
        return self.get_queryset().in_date_range(start_date, end_date)
