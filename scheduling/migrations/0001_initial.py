import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='SchedulingRule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True, default='')),
                ('type', models.CharField(choices=[('TIME_CONSTRAINT', 'Time Constraint'), ('CAPACITY_LIMIT', 'Capacity Limit'), ('ADVANCE_BOOKING', 'Advance Booking'), ('RECURRING_PATTERN', 'Recurring Pattern'), ('CUSTOM', 'Custom')], max_length=32)),
                ('conditions', models.TextField(blank=True, default='{}')),
                ('actions', models.TextField(blank=True, default='{}')),
                ('scope', models.TextField(blank=True, default='{}')),
                ('priority', models.PositiveSmallIntegerField(default=50, help_text='1-100; higher priority rules are evaluated first')),
                ('is_active', models.BooleanField(default=True, help_text='Inactive rules are never evaluated')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-priority', '-created_at'],
                'indexes': [
                    models.Index(fields=['is_active', 'priority'], name='rule_active_priority_idx'),
                    models.Index(fields=['type'], name='rule_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TherapySession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('therapist_id', models.UUIDField(db_index=True)),
                ('service_id', models.UUIDField()),
                ('patient_id', models.UUIDField(blank=True, null=True)),
                ('scheduled_date', models.DateField()),
                ('scheduled_time', models.CharField(help_text='HH:MM, 24h', max_length=5)),
                ('duration', models.PositiveIntegerField(default=60, help_text='Minutes')),
                ('status', models.CharField(choices=[('SCHEDULED', 'Scheduled'), ('CONFIRMED', 'Confirmed'), ('IN_PROGRESS', 'In Progress'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled'), ('NO_SHOW', 'No Show'), ('RESCHEDULE_REQUESTED', 'Reschedule Requested')], default='SCHEDULED', max_length=24)),
                ('patient_name', models.CharField(blank=True, default='', max_length=200)),
                ('service_name', models.CharField(blank=True, default='', max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['scheduled_date', 'scheduled_time'],
                'indexes': [
                    models.Index(fields=['therapist_id', 'scheduled_date', 'status'], name='session_therapist_day_idx'),
                ],
            },
        ),
    ]
