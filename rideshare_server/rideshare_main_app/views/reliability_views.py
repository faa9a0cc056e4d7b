"""Driver reliability status views"""
from django.contrib.auth import get_user_model
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework.decorators import action
from rest_framework.generics import get_object_or_404

from ..models import CancellationEvent
from ..serializers import DriverReliabilityRecordSerializer, CancellationEventSerializer, ClearWarningsSerializer
from ..services import ReliabilityService
from .engine_errors import EngineErrorMixin


class DriverStatusViewSet(EngineErrorMixin, viewsets.ViewSet):
    authentication_classes = [JWTAuthentication]
    permission_classes = [IsAuthenticated]

    def list(self, request):
        service = ReliabilityService()
        stats = service.get_driver_stats(request.user.id)
        events = CancellationEvent.objects.filter(driver=request.user).order_by('-occurred_at')[:20]
        return Response({
            **stats,
            'recent_events': CancellationEventSerializer(events, many=True).data,
        })

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsAdminUser])
    def clear(self, request, pk=None):
        driver = get_object_or_404(get_user_model(), pk=pk)
        serializer = ClearWarningsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = ReliabilityService().clear_warnings(
            driver.id, performed_by=request.user, reason=serializer.validated_data['reason']
        )
        return Response(DriverReliabilityRecordSerializer(record).data, status=status.HTTP_200_OK)
