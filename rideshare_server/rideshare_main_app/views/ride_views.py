"""Ride posting views using BookingService and ConflictService"""
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework.decorators import action

from ..models import Ride
from ..serializers import RideSerializer, RideCancelSerializer, ConflictCheckSerializer, SlotSuggestionSerializer
from ..services import BookingService, ConflictService
from .engine_errors import EngineErrorMixin


class RideViewSet(EngineErrorMixin, viewsets.ModelViewSet):
    authentication_classes = [JWTAuthentication]
    permission_classes = [IsAuthenticated]
    serializer_class = RideSerializer
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        rides = Ride.objects.filter(driver=self.request.user)
        ride_status = self.request.query_params.get('status')
        if ride_status:
            rides = rides.filter(status=ride_status)
        return rides

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ride = BookingService().post_ride(request.user, **serializer.validated_data)
        return Response(self.get_serializer(ride).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ride = self.get_object()
        serializer = self.get_serializer(ride, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        ride = BookingService().reschedule_ride(request.user, ride.id, **serializer.validated_data)
        return Response(self.get_serializer(ride).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel_ride(self, request, pk=None):
        serializer = RideCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = BookingService().cancel_ride(request.user, pk, serializer.validated_data['reason'])
        outcome = result.outcome
        return Response({
            'message': 'Ride cancelled successfully',
            'ride': self.get_serializer(result.ride).data,
            'released_bookings': result.released_bookings,
            'reliability': {
                'warning_level': outcome.level,
                'cancellation_count': outcome.cancellation_count,
                'account_status': outcome.account_status,
                'suspension_until': outcome.suspension_until,
            },
        }, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'], url_path='check-conflicts')
    def check_conflicts(self, request):
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = ConflictService()
        arrival = data.get('arrival_time') or Ride(departure_time=data['departure_time']).scheduled_end
        report = service.check_conflicts(
            request.user.id, data['departure_time'], arrival, data.get('exclude_ride_id')
        )
        return Response({**report.to_dict(), 'message': service.format_conflict_message(report)})

    @action(detail=False, methods=['post'], url_path='suggest-slots')
    def suggest_slots(self, request):
        serializer = SlotSuggestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        slots = ConflictService().suggest_alternative_slots(
            request.user.id,
            serializer.validated_data['preferred_departure'],
            serializer.validated_data['duration_minutes'],
        )
        return Response({'suggestions': slots})
