"""
Scheduling configuration read from Django settings.

Settings are read once into an immutable SchedulingPolicy which callers
pass down explicitly.

    SCHEDULING = {
        'MIN_BUFFER_MINUTES': 15,
        'ACTIVE_SESSION_STATUSES': ['SCHEDULED', 'CONFIRMED', 'IN_PROGRESS'],
    }
"""

from django.conf import settings

from .types import ACTIVE_SESSION_STATUSES, DEFAULT_MIN_BUFFER_MINUTES, SchedulingPolicy


def get_scheduling_policy() -> SchedulingPolicy:
    """Build the scheduling policy from the SCHEDULING setting."""
    options = getattr(settings, 'SCHEDULING', {})

    min_buffer = int(options.get('MIN_BUFFER_MINUTES', DEFAULT_MIN_BUFFER_MINUTES))
    if min_buffer < 0:
        raise ValueError("SCHEDULING['MIN_BUFFER_MINUTES'] must not be negative")

    statuses = tuple(options.get('ACTIVE_SESSION_STATUSES', ACTIVE_SESSION_STATUSES))

    return SchedulingPolicy(min_buffer_minutes=min_buffer, active_statuses=statuses)
