"""
Management command to audit a therapist's day for scheduling conflicts.

Reports overlapping sessions and sessions without enough buffer time
between them. Nothing is changed.
"""

import uuid

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from scheduling import services


class Command(BaseCommand):
    help = "Report overlapping or tightly packed sessions in a therapist's day"

    def add_arguments(self, parser):
        parser.add_argument(
            '--therapist',
            required=True,
            help='Therapist id (UUID)'
        )
        parser.add_argument(
            '--date',
            required=True,
            help='Day to audit (YYYY-MM-DD)'
        )

    def handle(self, *args, **options):
        try:
            day = parse_date(options['date'])
        except ValueError:
            day = None
        if day is None:
            raise CommandError(f"Invalid date: {options['date']}")

        try:
            therapist_id = uuid.UUID(options['therapist'])
        except ValueError:
            raise CommandError(f"Invalid therapist id: {options['therapist']}")

        conflicts, sessions = services.detect_conflicts(therapist_id, day)

        self.stdout.write(
            f'Checked {len(sessions)} session(s) on {day}'
        )

        for conflict in conflicts:
            first, second = conflict.sessions
            self.stdout.write(
                self.style.WARNING(
                    f'{conflict.type.value}: {first.scheduled_time} / '
                    f'{second.scheduled_time} - {conflict.message}'
                )
            )

        if conflicts:
            self.stdout.write(self.style.ERROR(f'Found {len(conflicts)} conflict(s)'))
        else:
            self.stdout.write(self.style.SUCCESS('No conflicts found'))
