from django.db.models import Sum
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.authentication import JWTAuthentication

from .models import DriverEarning
from .serializers import DriverEarningSerializer


class DriverEarningView(viewsets.ReadOnlyModelViewSet):
    serializer_class = DriverEarningSerializer
    permission_classes = [IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    def get_queryset(self):
        return DriverEarning.objects.filter(driver=self.request.user).select_related('ride')

    @action(detail=False, methods=['GET'])
    def summary(self, request):
        totals = (
            self.get_queryset()
            .values('status')
            .annotate(total=Sum('amount'))
            .order_by('status')
        )
        return Response({row['status']: row['total'] for row in totals}, status=status.HTTP_200_OK)
