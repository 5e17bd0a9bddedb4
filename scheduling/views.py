"""Views for the scheduling rules API."""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CandidateSessionSerializer,
    ConflictQuerySerializer,
    RuleTestSerializer,
    SchedulingRuleCreateSerializer,
    SchedulingRuleReadSerializer,
    SchedulingRuleUpdateSerializer,
    TherapySessionReadSerializer,
    serialize_conflict,
)
from . import services
from .types import RuleType, RuleUpdateData


def _parse_bool(value):
    if value is None:
        return None
    return value.lower() == 'true'


class SchedulingRuleListCreateView(APIView):
    """
    List scheduling rules or create a new one.

    GET /api/scheduling/rules/ - List rules (therapist_id, service_id, type, is_active)
    POST /api/scheduling/rules/ - Create a rule
    """

    def get(self, request):
        """List scheduling rules."""
        params = request.query_params
        rule_type = params.get('type')
        if rule_type and rule_type not in {t.value for t in RuleType}:
            return Response(
                {'type': [f'"{rule_type}" is not a valid rule type.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        rules = services.list_rules(
            therapist_id=params.get('therapist_id'),
            service_id=params.get('service_id'),
            rule_type=rule_type,
            is_active=_parse_bool(params.get('is_active'))
        )

        serializer = SchedulingRuleReadSerializer(rules, many=True)
        return Response({
            'rules': serializer.data,
            'total': len(rules)
        })

    def post(self, request):
        """Create a scheduling rule."""
        serializer = SchedulingRuleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        rule = services.create_rule(
            name=data['name'],
            rule_type=data['type'],
            conditions=data['conditions'],
            actions=data['actions'],
            scope=data['scope'],
            description=data.get('description', ''),
            priority=data['priority'],
            is_active=data['is_active']
        )

        response_serializer = SchedulingRuleReadSerializer(rule)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class SchedulingRuleDetailView(APIView):
    """
    Retrieve, update, or delete a scheduling rule.

    GET /api/scheduling/rules/{id}/ - Retrieve rule
    PATCH /api/scheduling/rules/{id}/ - Update rule
    DELETE /api/scheduling/rules/{id}/ - Deactivate rule
    """

    def get(self, request, pk):
        """Retrieve a scheduling rule."""
        rule = services.get_rule(pk)
        serializer = SchedulingRuleReadSerializer(rule)
        return Response(serializer.data)

    def patch(self, request, pk):
        """Update a scheduling rule."""
        rule = services.get_rule(pk)
        serializer = SchedulingRuleUpdateSerializer(rule, data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        update_data = RuleUpdateData(
            name=data.get('name'),
            description=data.get('description'),
            type=data.get('type'),
            conditions=data.get('conditions'),
            actions=data.get('actions'),
            scope=data.get('scope'),
            priority=data.get('priority'),
            is_active=data.get('is_active')
        )
        updated_rule = services.update_rule(rule, update_data)

        response_serializer = SchedulingRuleReadSerializer(updated_rule)
        return Response(response_serializer.data)

    def delete(self, request, pk):
        """Soft-delete a scheduling rule."""
        rule = services.get_rule(pk)
        services.delete_rule(rule)

        return Response({
            'message': f'Scheduling rule "{rule.name}" has been deleted.',
            'rule': SchedulingRuleReadSerializer(rule).data
        }, status=status.HTTP_200_OK)


class SchedulingRuleTestView(APIView):
    """
    Dry-run a single rule against a sample session, ignoring its scope.

    POST /api/scheduling/rules/{id}/test/
    """

    def post(self, request, pk):
        """Evaluate one rule against the posted test data."""
        rule = services.get_rule(pk)
        serializer = RuleTestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.run_rule_test(rule, serializer.to_candidate())

        return Response({
            'rule': {
                'id': str(rule.id),
                'name': rule.name,
                'type': rule.type,
            },
            'test_data': request.data['test_data'],
            'result': result.to_dict(),
            'passed': not result.violated
        })


class SchedulingValidationView(APIView):
    """
    Validate a proposed session against all applicable rules.

    GET /api/scheduling/validate/?therapist_id=X&... - Candidate in query params
    POST /api/scheduling/validate/ - Candidate in the request body
    """

    def get(self, request):
        """Validate a candidate given as query parameters."""
        return self._validate(request.query_params)

    def post(self, request):
        """Validate a candidate given in the request body."""
        return self._validate(request.data)

    def _validate(self, payload):
        serializer = CandidateSessionSerializer(data=payload)
        serializer.is_valid(raise_exception=True)

        summary = services.validate_scheduling(serializer.to_candidate())
        return Response(summary.to_dict())


class SchedulingConflictView(APIView):
    """
    Report overlapping or tightly packed sessions in a therapist's day.

    GET /api/scheduling/conflicts/?therapist_id=X&date=YYYY-MM-DD
    """

    def get(self, request):
        """List conflicts for one therapist on one day."""
        query_serializer = ConflictQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        conflicts, sessions = services.detect_conflicts(
            therapist_id=query_serializer.validated_data['therapist_id'],
            day=query_serializer.validated_data['date']
        )

        return Response({
            'conflicts': [serialize_conflict(c) for c in conflicts],
            'sessions': TherapySessionReadSerializer(sessions, many=True).data,
            'summary': {
                'total_sessions': len(sessions),
                'conflicts': len(conflicts),
                'has_conflicts': bool(conflicts)
            }
        })
