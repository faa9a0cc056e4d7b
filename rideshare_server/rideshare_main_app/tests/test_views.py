"""API tests for rides, bookings and driver status"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from ..exceptions import DeclinedError
from ..models import Booking, DriverReliabilityRecord, ReliabilityOverride
from ..utils.constants import AccountStatus, BookingStatus
from .helpers import make_user, make_ride, FakeGateway


class EngineApiTestCase(APITestCase):
    def setUp(self):
        self.driver = make_user('driver')
        self.passenger = make_user('passenger')
        self.gateway = FakeGateway()
        patcher = patch('rideshare_main_app.services.payment_service.get_gateway', return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)

    def as_user(self, user):
        self.client.force_authenticate(user=user)


class RideApiTest(EngineApiTestCase):
    def ride_payload(self, hours_ahead=24):
        departure = timezone.now().replace(microsecond=0) + timedelta(hours=hours_ahead)
        return {
            'from_location': 'Toronto',
            'to_location': 'Ottawa',
            'departure_time': departure.isoformat(),
            'arrival_time': (departure + timedelta(hours=2)).isoformat(),
            'total_seats': 3,
            'price_per_seat': '20.00',
        }

    def test_requires_authentication(self):
        response = self.client.post('/api/rides/', self.ride_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_post_ride_then_conflict(self):
        self.as_user(self.driver)
        response = self.client.post('/api/rides/', self.ride_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['available_seats'], 3)

        response = self.client.post('/api/rides/', self.ride_payload(hours_ahead=25), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'ride_conflict')
        self.assertTrue(response.data['conflict_exists'])

    def test_banned_driver_is_forbidden(self):
        DriverReliabilityRecord.objects.create(driver=self.driver, account_status=AccountStatus.BANNED)
        self.as_user(self.driver)
        response = self.client.post('/api/rides/', self.ride_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'driver_not_allowed')

    def test_check_conflicts_and_suggest_slots(self):
        ride = make_ride(self.driver, hours_ahead=24)
        self.as_user(self.driver)

        response = self.client.post('/api/rides/check-conflicts/', {
            'departure_time': (ride.departure_time + timedelta(hours=1)).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['conflict_exists'])
        self.assertEqual(response.data['conflicting_ride_id'], ride.id)

        response = self.client.post('/api/rides/suggest-slots/', {
            'preferred_departure': ride.departure_time.isoformat(),
            'duration_minutes': 60,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['suggestions']), 3)

    def test_cancel_ride_reports_reliability(self):
        ride = make_ride(self.driver)
        self.as_user(self.driver)
        response = self.client.post(f'/api/rides/{ride.id}/cancel/', {'reason': 'Sick'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reliability']['cancellation_count'], 1)

    def test_cannot_cancel_someone_elses_ride(self):
        ride = make_ride(self.driver)
        self.as_user(self.passenger)
        response = self.client.post(f'/api/rides/{ride.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BookingApiTest(EngineApiTestCase):
    def setUp(self):
        super().setUp()
        self.ride = make_ride(self.driver, price_per_seat=Decimal('25.00'))

    def create_booking(self):
        self.as_user(self.passenger)
        return self.client.post('/api/bookings/', {
            'ride': self.ride.id, 'seats_booked': 2, 'processor': 'stripe', 'payer_ref': 'pm_card_visa',
        }, format='json')

    def test_create_accept_and_view_payment(self):
        response = self.create_booking()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking_id = response.data['booking']['id']
        self.assertEqual(response.data['booking']['payment_status'], 'authorized')
        self.assertEqual(response.data['client_token'], 'secret_1')

        self.as_user(self.driver)
        response = self.client.post(f'/api/bookings/{booking_id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['booking']['status'], BookingStatus.CONFIRMED)
        self.assertEqual(response.data['earning']['amount'], Decimal('42.50'))

        response = self.client.get(f'/api/bookings/{booking_id}/payment/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'captured')

        response = self.client.post(f'/api/bookings/{booking_id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_declined_card_returns_402(self):
        self.gateway.fail('authorize', DeclinedError('Your card was declined.', decline_code='card_declined'))
        response = self.create_booking()

        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertEqual(response.data['decline_code'], 'card_declined')
        self.assertFalse(Booking.objects.exists())

    def test_invalid_payload(self):
        self.as_user(self.passenger)
        response = self.client.post('/api/bookings/', {'ride': self.ride.id, 'processor': 'bitcoin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_and_cancel(self):
        booking_id = self.create_booking().data['booking']['id']

        self.as_user(self.passenger)
        response = self.client.post(f'/api/bookings/{booking_id}/reject/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(f'/api/bookings/{booking_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['refund_amount'], Decimal('50.00'))

    def test_missing_booking(self):
        self.as_user(self.driver)
        response = self.client.post('/api/bookings/999999/accept/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_shows_own_bookings(self):
        self.create_booking()
        outsider = make_user('outsider')
        self.as_user(outsider)
        response = self.client.get('/api/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 0)


class DriverStatusApiTest(EngineApiTestCase):
    def test_own_status(self):
        self.as_user(self.driver)
        response = self.client.get('/api/driver-status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['account_status'], AccountStatus.ACTIVE)
        self.assertEqual(response.data['recent_events'], [])

    def test_clear_requires_staff(self):
        DriverReliabilityRecord.objects.create(driver=self.driver, account_status=AccountStatus.BANNED)

        self.as_user(self.passenger)
        response = self.client.post(f'/api/driver-status/{self.driver.id}/clear/', {'reason': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(make_user('support', is_staff=True))
        response = self.client.post(f'/api/driver-status/{self.driver.id}/clear/', {'reason': 'Appeal'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['account_status'], AccountStatus.ACTIVE)
        self.assertTrue(ReliabilityOverride.objects.filter(driver=self.driver, reason='Appeal').exists())
