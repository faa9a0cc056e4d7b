"""Driver reliability serializers"""
from rest_framework import serializers
from ..models import DriverReliabilityRecord, CancellationEvent


class DriverReliabilityRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriverReliabilityRecord
        fields = ['driver', 'warnings_sent', 'account_status', 'suspension_until', 'last_warning_date', 'updated_at']


class CancellationEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = CancellationEvent
        fields = ['id', 'ride', 'occurred_at', 'warning_level', 'suspension_until']


class ClearWarningsSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
