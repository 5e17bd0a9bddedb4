"""
Admin configuration for the scheduling app.
"""

from django.contrib import admin
from .models import SchedulingRule, TherapySession


@admin.register(SchedulingRule)
class SchedulingRuleAdmin(admin.ModelAdmin):
    """Admin interface for SchedulingRule model."""

    list_display = ['name', 'type', 'priority', 'action_type', 'is_active', 'updated_at']
    list_filter = ['is_active', 'type', 'created_at']
    search_fields = ['name', 'description']
    ordering = ['-priority', '-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'type', 'priority', 'is_active')
        }),
        ('Rule Definition', {
            'fields': ('conditions', 'actions', 'scope'),
            'description': 'JSON documents; conditions depend on the rule type.'
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['created_at', 'updated_at']


@admin.register(TherapySession)
class TherapySessionAdmin(admin.ModelAdmin):
    """Admin interface for TherapySession model."""

    list_display = ['scheduled_date', 'scheduled_time', 'duration', 'status', 'therapist_id', 'patient_name']
    list_filter = ['status', 'scheduled_date']
    search_fields = ['patient_name', 'service_name']
    date_hierarchy = 'scheduled_date'

    fieldsets = (
        ('Participants', {
            'fields': ('therapist_id', 'service_id', 'service_name', 'patient_id', 'patient_name')
        }),
        ('Schedule', {
            'fields': ('scheduled_date', 'scheduled_time', 'duration')
        }),
        ('Status', {
            'fields': ('status',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['created_at', 'updated_at']
