"""Reliability service - escalating penalties for drivers who cancel rides.

Cancellations are appended to ``CancellationEvent``; the driver's
``DriverReliabilityRecord`` is a projection of that log and can be rebuilt
from it at any time with ``rebuild``.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from django.db import transaction
from django.utils import timezone

from ..exceptions import ProfileProvisioningError
from ..models import DriverReliabilityRecord, CancellationEvent, ReliabilityOverride
from ..utils.constants import AccountStatus, WarningLevel, BusinessRules
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

WINDOW = timedelta(days=BusinessRules.RELIABILITY_WINDOW_DAYS)


@dataclass
class ReliabilityState:
    account_status: str = AccountStatus.ACTIVE
    suspension_until: Optional[datetime] = None
    warnings_sent: int = 0
    last_warning_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record):
        return cls(
            account_status=record.account_status,
            suspension_until=record.suspension_until,
            warnings_sent=record.warnings_sent,
            last_warning_date=record.last_warning_date,
        )

    def apply_to(self, record):
        record.account_status = self.account_status
        record.suspension_until = self.suspension_until
        record.warnings_sent = self.warnings_sent
        record.last_warning_date = self.last_warning_date


@dataclass
class ReliabilityOutcome:
    level: str
    cancellation_count: int
    account_status: str
    suspension_until: Optional[datetime] = None
    warnings_sent: int = 0


@dataclass
class PostingDecision:
    allowed: bool
    reason: Optional[str] = None
    suspension_until: Optional[datetime] = None


def outcome_for_count(count, at):
    """Warning level and suspension end for a 30-day cancellation count"""
    if count >= BusinessRules.BAN_THRESHOLD:
        return WarningLevel.BANNED, None
    if count >= BusinessRules.LONG_SUSPENSION_THRESHOLD:
        return WarningLevel.SUSPENSION, at + timedelta(days=BusinessRules.LONG_SUSPENSION_DAYS)
    if count >= BusinessRules.SHORT_SUSPENSION_THRESHOLD:
        return WarningLevel.SUSPENSION, at + timedelta(days=BusinessRules.SHORT_SUSPENSION_DAYS)
    if count >= BusinessRules.WARNING_THRESHOLD:
        return WarningLevel.WARNING, None
    return WarningLevel.NONE, None


def apply_outcome(state, level, suspension_until, at):
    """Fold one outcome into the status projection.

    Severity never drops here: a ban sticks, an active suspension is only
    ever extended, and an expired suspension counts as a warning.
    """
    if level == WarningLevel.NONE:
        return state

    current = state.account_status
    current_until = state.suspension_until
    if current == AccountStatus.SUSPENDED and current_until is not None and current_until <= at:
        current, current_until = AccountStatus.WARNED, None

    proposed = WarningLevel.ACCOUNT_STATUS[level]
    severity = AccountStatus.SEVERITY
    status = proposed if severity[proposed] >= severity[current] else current

    if status == AccountStatus.SUSPENDED:
        candidates = [u for u in (current_until, suspension_until) if u is not None]
        until = max(candidates) if candidates else None
    else:
        until = None

    return replace(
        state,
        account_status=status,
        suspension_until=until,
        warnings_sent=state.warnings_sent + 1,
        last_warning_date=at,
    )


def replay_events(timestamps, reset_at=None):
    """Rebuild the projection from cancellation timestamps in recording order.

    Window counts include every event, but only events after ``reset_at``
    (the last administrative clear) change the projection.
    """
    state = ReliabilityState()
    seen = []
    for at in timestamps:
        seen.append(at)
        count = sum(1 for t in seen if at - WINDOW < t <= at)
        level, until = outcome_for_count(count, at)
        if reset_at is not None and at <= reset_at:
            continue
        state = apply_outcome(state, level, until, at)
    return state


class ReliabilityService:
    """Service for driver cancellation tracking and posting eligibility"""

    def __init__(self, notification_service=None):
        self.notification_service = notification_service or NotificationService()

    def ensure_profile(self, driver_id):
        record, created = DriverReliabilityRecord.objects.get_or_create(driver_id=driver_id)
        if created:
            logger.info(f'[RELIABILITY] Provisioned reliability profile for driver {driver_id}')
        return record

    def lock_profile(self, driver_id):
        """Row-lock the driver's record; provisions it when missing"""
        self.ensure_profile(driver_id)
        return DriverReliabilityRecord.objects.select_for_update().get(driver_id=driver_id)

    def count_recent_cancellations(self, driver_id, at=None):
        at = at or timezone.now()
        return CancellationEvent.objects.filter(
            driver_id=driver_id,
            occurred_at__gt=at - WINDOW,
            occurred_at__lte=at,
        ).count()

    @transaction.atomic
    def record_cancellation(self, driver_id, ride_id=None, at=None):
        """Log a driver-initiated cancellation and escalate if needed"""
        at = at or timezone.now()
        record = self.lock_profile(driver_id)

        event = CancellationEvent.objects.create(driver_id=driver_id, ride_id=ride_id, occurred_at=at)
        count = self.count_recent_cancellations(driver_id, at)
        level, suspension_until = outcome_for_count(count, at)

        event.warning_level = level
        event.suspension_until = suspension_until
        event.save(update_fields=['warning_level', 'suspension_until'])

        state = apply_outcome(ReliabilityState.from_record(record), level, suspension_until, at)
        state.apply_to(record)
        record.save()

        if level == WarningLevel.NONE:
            logger.info(f'[RELIABILITY] Driver {driver_id} cancellation recorded ({count} in window)')
        else:
            logger.warning(
                f'[RELIABILITY] Driver {driver_id} reached {level} with {count} cancellations '
                f'(status {record.account_status}, until {record.suspension_until})'
            )
            self.notification_service.send_reliability_outcome(driver_id, level, count, suspension_until)

        return ReliabilityOutcome(
            level=level,
            cancellation_count=count,
            account_status=record.account_status,
            suspension_until=record.suspension_until,
            warnings_sent=record.warnings_sent,
        )

    def can_driver_post(self, driver_id, now=None):
        """Posting gate; raises ProfileProvisioningError when the driver has no record"""
        now = now or timezone.now()
        try:
            record = DriverReliabilityRecord.objects.get(driver_id=driver_id)
        except DriverReliabilityRecord.DoesNotExist:
            raise ProfileProvisioningError(f'Driver {driver_id} has no reliability profile')

        if record.account_status == AccountStatus.BANNED:
            return PostingDecision(
                allowed=False,
                reason='Your account has been banned from posting rides due to repeated cancellations.',
            )
        if record.account_status == AccountStatus.SUSPENDED:
            if record.suspension_until is None or record.suspension_until > now:
                until = record.suspension_until
                reason = 'Your account is suspended due to repeated cancellations.'
                if until:
                    reason = f'Your account is suspended until {until:%Y-%m-%d %H:%M} due to repeated cancellations.'
                return PostingDecision(allowed=False, reason=reason, suspension_until=until)
        return PostingDecision(allowed=True)

    @transaction.atomic
    def clear_warnings(self, driver_id, performed_by=None, reason=''):
        """Administrative reset of the driver's status"""
        record = self.lock_profile(driver_id)
        ReliabilityOverride.objects.create(
            driver_id=driver_id,
            performed_by=performed_by,
            previous_status=record.account_status,
            reason=reason,
        )
        logger.warning(
            f'[RELIABILITY] Warnings cleared for driver {driver_id} by {performed_by or "system"} '
            f'(was {record.account_status}, {record.warnings_sent} warnings): {reason}'
        )
        ReliabilityState().apply_to(record)
        record.save()
        return record

    def replay(self, driver_id):
        """Projection recomputed from the event log"""
        last_override = ReliabilityOverride.objects.filter(driver_id=driver_id).order_by('-created_at').first()
        timestamps = list(
            CancellationEvent.objects.filter(driver_id=driver_id)
            .order_by('id')
            .values_list('occurred_at', flat=True)
        )
        return replay_events(timestamps, reset_at=last_override.created_at if last_override else None)

    @transaction.atomic
    def rebuild(self, driver_id):
        """Overwrite the stored projection with the replayed one; True when it changed"""
        record = self.lock_profile(driver_id)
        rebuilt = self.replay(driver_id)
        changed = rebuilt != ReliabilityState.from_record(record)
        if changed:
            logger.warning(f'[RELIABILITY] Rebuilt status for driver {driver_id}: {record.account_status} -> {rebuilt.account_status}')
            rebuilt.apply_to(record)
            record.save()
        return changed

    def get_driver_stats(self, driver_id, now=None):
        now = now or timezone.now()
        record = DriverReliabilityRecord.objects.filter(driver_id=driver_id).first()
        return {
            'total_cancellations': CancellationEvent.objects.filter(driver_id=driver_id).count(),
            'recent_cancellations': self.count_recent_cancellations(driver_id, now),
            'window_days': BusinessRules.RELIABILITY_WINDOW_DAYS,
            'warnings_sent': record.warnings_sent if record else 0,
            'account_status': record.account_status if record else AccountStatus.ACTIVE,
            'suspension_until': record.suspension_until if record else None,
            'last_warning_date': record.last_warning_date if record else None,
            'can_post': self.can_driver_post(driver_id, now).allowed if record else True,
        }
