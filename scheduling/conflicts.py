"""
Conflict detection over a therapist's already-booked day.

Only consecutive sessions (by start time) are compared. The detector
reports problems; it never blocks a booking.
"""

from typing import Iterable, List

from .types import Conflict, ConflictType, DEFAULT_MIN_BUFFER_MINUTES, time_to_minutes


def find_conflicts(
    sessions: Iterable,
    min_buffer_minutes: int = DEFAULT_MIN_BUFFER_MINUTES
) -> List[Conflict]:
    """
    Find overlaps and short gaps between consecutive sessions.

    An overlapping pair is also reported as INSUFFICIENT_BUFFER, with a
    negative buffer.

    Args:
        sessions: objects with scheduled_time (HH:MM) and duration (minutes)
        min_buffer_minutes: smallest acceptable gap between sessions

    Returns:
        List of Conflict instances, in schedule order
    """
    ordered = sorted(sessions, key=lambda s: time_to_minutes(s.scheduled_time))
    conflicts = []

    for current, following in zip(ordered, ordered[1:]):
        current_end = time_to_minutes(current.scheduled_time) + current.duration
        next_start = time_to_minutes(following.scheduled_time)

        if current_end > next_start:
            overlap = current_end - next_start
            conflicts.append(Conflict(
                type=ConflictType.TIME_OVERLAP,
                sessions=(current, following),
                overlap_minutes=overlap,
                message=f"Sessions overlap by {overlap} minutes",
            ))

        buffer_time = next_start - current_end
        if buffer_time < min_buffer_minutes:
            conflicts.append(Conflict(
                type=ConflictType.INSUFFICIENT_BUFFER,
                sessions=(current, following),
                buffer_minutes=buffer_time,
                message=f"Insufficient buffer time: {buffer_time} minutes between sessions",
            ))

    return conflicts
