"""
URL routing for the scheduling API.
"""

from django.urls import path
from .views import (
    SchedulingRuleListCreateView,
    SchedulingRuleDetailView,
    SchedulingRuleTestView,
    SchedulingValidationView,
    SchedulingConflictView,
)

urlpatterns = [
    path('scheduling/rules/', SchedulingRuleListCreateView.as_view(), name='rule-list-create'),
    path('scheduling/rules/<uuid:pk>/', SchedulingRuleDetailView.as_view(), name='rule-detail'),
    path('scheduling/rules/<uuid:pk>/test/', SchedulingRuleTestView.as_view(), name='rule-test'),
    path('scheduling/validate/', SchedulingValidationView.as_view(), name='scheduling-validate'),
    path('scheduling/conflicts/', SchedulingConflictView.as_view(), name='scheduling-conflicts'),
]
