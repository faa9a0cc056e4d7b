from rest_framework import serializers
from .models import DriverEarning


class DriverEarningSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriverEarning
        fields = [
            'id', 'ride', 'booking', 'gross_amount', 'service_fee_percentage', 'service_fee_amount',
            'amount', 'currency', 'status', 'description', 'earning_date',
        ]
