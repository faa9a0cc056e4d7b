"""Conflict service - detects overlapping rides in a driver's schedule.

Classification is a pure function over intervals (``find_conflicts``);
``ConflictService`` only fetches the candidate rides and formats results.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import List, Optional

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..models import Ride
from ..utils.constants import RideStatus, ConflictType, BusinessRules

logger = logging.getLogger(__name__)


@dataclass
class ScheduledInterval:
    ride_id: Optional[int]
    start: datetime
    end: datetime
    from_location: str = ''
    to_location: str = ''

    @classmethod
    def from_ride(cls, ride):
        return cls(
            ride_id=ride.id,
            start=ride.departure_time,
            end=ride.scheduled_end,
            from_location=ride.from_location,
            to_location=ride.to_location,
        )


@dataclass
class RideConflict:
    ride_id: Optional[int]
    conflict_type: str
    overlap_start: Optional[datetime] = None
    overlap_end: Optional[datetime] = None
    overlap_minutes: float = 0.0
    same_day: bool = False
    from_location: str = ''
    to_location: str = ''
    departure_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@dataclass
class ConflictReport:
    conflict_exists: bool
    conflicts: List[RideConflict] = field(default_factory=list)

    @property
    def primary_conflict(self):
        return self.conflicts[0] if self.conflicts else None

    @property
    def conflicting_ride_id(self):
        primary = self.primary_conflict
        return primary.ride_id if primary else None

    @property
    def conflicting_ride_info(self):
        primary = self.primary_conflict
        if not primary or primary.ride_id is None:
            return None
        return f"{primary.from_location} → {primary.to_location} at {primary.departure_time:%Y-%m-%d %H:%M}"

    def to_dict(self):
        return {
            'conflict_exists': self.conflict_exists,
            'conflicting_ride_id': self.conflicting_ride_id,
            'conflicting_ride_info': self.conflicting_ride_info,
            'conflict_details': {'conflicts': [asdict(c) for c in self.conflicts]},
        }


def classify_overlap(new_start, new_end, existing_start, existing_end):
    """Classify how a proposed interval relates to an existing one.

    Returns None when the intervals do not overlap.
    """
    if not (new_start < existing_end and existing_start < new_end):
        return None
    if existing_start <= new_start and existing_end >= new_end:
        return ConflictType.EXISTING_COVERS_NEW
    if new_start <= existing_start and new_end >= existing_end:
        return ConflictType.NEW_COVERS_EXISTING
    if existing_start < new_start < existing_end:
        return ConflictType.STARTS_DURING
    if existing_start < new_end < existing_end:
        return ConflictType.ENDS_DURING
    return ConflictType.PARTIAL_OVERLAP


def invalid_window_report():
    return ConflictReport(
        conflict_exists=True,
        conflicts=[RideConflict(ride_id=None, conflict_type=ConflictType.INVALID_TIME_WINDOW)],
    )


def find_conflicts(proposed_start, proposed_end, intervals):
    """Build a ConflictReport for a proposed window against existing intervals.

    Conflicts are ordered by overlap length, largest first.
    """
    if proposed_start is None or proposed_end is None or proposed_end <= proposed_start:
        return invalid_window_report()

    conflicts = []
    for interval in intervals:
        conflict_type = classify_overlap(proposed_start, proposed_end, interval.start, interval.end)
        if conflict_type is None:
            continue

        overlap_start = max(proposed_start, interval.start)
        overlap_end = min(proposed_end, interval.end)
        overlap_minutes = (overlap_end - overlap_start).total_seconds() / 60
        if overlap_minutes <= 0:
            continue

        conflicts.append(RideConflict(
            ride_id=interval.ride_id,
            conflict_type=conflict_type,
            overlap_start=overlap_start,
            overlap_end=overlap_end,
            overlap_minutes=overlap_minutes,
            same_day=timezone.localtime(proposed_start).date() == timezone.localtime(interval.start).date(),
            from_location=interval.from_location,
            to_location=interval.to_location,
            departure_time=interval.start,
            end_time=interval.end,
        ))

    conflicts.sort(key=lambda c: c.overlap_minutes, reverse=True)
    return ConflictReport(conflict_exists=bool(conflicts), conflicts=conflicts)


def _coerce_datetime(value):
    if isinstance(value, str):
        try:
            value = parse_datetime(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


class ConflictService:
    """Service for ride schedule conflict checks"""

    def candidate_rides(self, driver_id, proposed_start, proposed_end, exclude_ride_id=None):
        """Non-cancelled rides of the driver whose window could touch the proposed one"""
        default_duration = timedelta(minutes=BusinessRules.DEFAULT_RIDE_DURATION_MINUTES)
        rides = Ride.objects.filter(
            driver_id=driver_id,
            departure_time__lt=proposed_end,
        ).exclude(
            status=RideStatus.CANCELLED,
        ).filter(
            Q(arrival_time__gt=proposed_start)
            | Q(arrival_time__isnull=True, departure_time__gt=proposed_start - default_duration)
        )
        if exclude_ride_id is not None:
            rides = rides.exclude(id=exclude_ride_id)
        return rides

    def check_conflicts(self, driver_id, proposed_departure, proposed_arrival, exclude_ride_id=None):
        """Return a ConflictReport; invalid windows are reported as conflicts"""
        start = _coerce_datetime(proposed_departure)
        end = _coerce_datetime(proposed_arrival)
        if start is None or end is None or end <= start:
            logger.info(f'[CONFLICT] Invalid window for driver {driver_id}: {proposed_departure} - {proposed_arrival}')
            return invalid_window_report()

        rides = self.candidate_rides(driver_id, start, end, exclude_ride_id)
        report = find_conflicts(start, end, [ScheduledInterval.from_ride(r) for r in rides])
        if report.conflict_exists:
            logger.info(
                f'[CONFLICT] Driver {driver_id} has {len(report.conflicts)} conflict(s), '
                f'primary ride {report.conflicting_ride_id}'
            )
        return report

    def is_time_slot_available(self, driver_id, departure, arrival, exclude_ride_id=None):
        return not self.check_conflicts(driver_id, departure, arrival, exclude_ride_id).conflict_exists

    def suggest_alternative_slots(self, driver_id, preferred_departure, duration_minutes):
        """Nearby conflict-free windows around a preferred departure"""
        base = _coerce_datetime(preferred_departure)
        if base is None or duration_minutes <= 0:
            return []

        suggestions = []
        for offset in BusinessRules.ALTERNATIVE_SLOT_OFFSETS_MINUTES:
            departure = base + timedelta(minutes=offset)
            arrival = departure + timedelta(minutes=duration_minutes)
            if self.is_time_slot_available(driver_id, departure, arrival):
                suggestions.append({'departure_time': departure, 'arrival_time': arrival})
                if len(suggestions) >= BusinessRules.MAX_ALTERNATIVE_SLOTS:
                    break
        return suggestions

    @staticmethod
    def format_conflict_message(report):
        """User-facing explanation of the primary conflict"""
        if not report.conflict_exists:
            return ''

        primary = report.primary_conflict
        if primary is None:
            return 'A scheduling conflict was detected. Please choose a different time.'
        if primary.conflict_type == ConflictType.INVALID_TIME_WINDOW:
            return 'The arrival time must be after the departure time.'

        info = report.conflicting_ride_info
        summary = (
            f'You already have a ride scheduled during this window: {info}'
            if info else 'You already have a ride scheduled during this time window.'
        )
        if primary.same_day:
            detail = 'Rides on the same day must not overlap; please leave enough time between your arrival and next departure.'
        else:
            detail = 'The arrival and departure times overlap. Adjust the schedule so rides do not overlap.'
        window = (
            f'Conflict window: {timezone.localtime(primary.overlap_start):%Y-%m-%d %H:%M} – '
            f'{timezone.localtime(primary.overlap_end):%Y-%m-%d %H:%M} ({int(-(-primary.overlap_minutes // 1))} minutes)'
        )

        if len(report.conflicts) == 1:
            return f'{summary}\n{detail}\n{window}'
        return f'{summary}\n{detail}\nThere are {len(report.conflicts)} conflicting rides. {window}'
