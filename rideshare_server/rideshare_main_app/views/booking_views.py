"""Booking views using BookingService"""
from django.db.models import Q
from rest_framework import viewsets, mixins, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework.decorators import action

from ..models import Booking
from ..serializers import BookingSerializer, BookingCreateSerializer, BookingRejectSerializer, HoldSnapshotSerializer
from ..services import BookingService
from .engine_errors import EngineErrorMixin


class BookingViewSet(EngineErrorMixin, mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    authentication_classes = [JWTAuthentication]
    permission_classes = [IsAuthenticated]
    serializer_class = BookingSerializer

    def get_queryset(self):
        user = self.request.user
        return (
            Booking.objects.filter(Q(passenger=user) | Q(ride__driver=user))
            .select_related('ride', 'payment_hold')
            .order_by('-created_at')
        )

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking, authorization = BookingService().create_booking(
            request.user,
            data['ride'],
            data['seats_booked'],
            processor=data['processor'],
            payer_ref=data['payer_ref'],
            customer_ref=data.get('customer_ref') or None,
        )
        return Response({
            'booking': self.get_serializer(booking).data,
            'client_token': authorization.client_token,
            'hold_expires_at': authorization.expires_at,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        booking, earning = BookingService().accept_booking(request.user, pk)
        return Response({
            'message': 'Booking confirmed',
            'booking': self.get_serializer(booking).data,
            'earning': {'gross_amount': earning.gross_amount, 'service_fee': earning.service_fee_amount, 'amount': earning.amount},
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = BookingRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = BookingService().reject_booking(request.user, pk, serializer.validated_data['reason'])
        return Response({'message': 'Booking rejected', 'booking': self.get_serializer(booking).data})

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel_booking(self, request, pk=None):
        result = BookingService().cancel_booking(request.user, pk)
        return Response({
            'message': 'Booking cancelled successfully',
            'booking': self.get_serializer(result.booking).data,
            'refund_percentage': result.refund_percentage,
            'refund_amount': result.refund_amount,
            'cancellation_fee': result.cancellation_fee,
        })

    @action(detail=True, methods=['get'])
    def payment(self, request, pk=None):
        refresh = request.query_params.get('refresh') in ('1', 'true')
        snapshot = BookingService().get_payment(request.user, pk, refresh=refresh)
        return Response(HoldSnapshotSerializer(snapshot).data)
