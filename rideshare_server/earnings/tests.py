from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from rideshare_main_app.tests.helpers import make_user, make_ride, make_booking
from .models import DriverEarning
from .services import create_earning_for_booking, reverse_earning_for_booking, settle_earning_after_refund


class EarningServiceTest(TestCase):
    def setUp(self):
        self.driver = make_user('driver')
        self.booking = make_booking(make_ride(self.driver), make_user('passenger'))

    def test_fee_is_deducted(self):
        earning = create_earning_for_booking(self.booking, Decimal('33.33'))

        self.assertEqual(earning.driver, self.driver)
        self.assertEqual(earning.service_fee_amount, Decimal('5.00'))
        self.assertEqual(earning.amount, Decimal('28.33'))
        self.assertEqual(earning.currency, 'CAD')
        self.assertEqual(earning.status, DriverEarning.STATUS_PENDING)

    def test_reverse(self):
        self.assertFalse(reverse_earning_for_booking(self.booking))

        earning = create_earning_for_booking(self.booking, Decimal('50.00'))
        self.assertTrue(reverse_earning_for_booking(self.booking))
        earning.refresh_from_db()
        self.assertEqual(earning.status, DriverEarning.STATUS_REVERSED)

    def test_paid_out_earning_is_not_reversed(self):
        earning = create_earning_for_booking(self.booking, Decimal('50.00'))
        DriverEarning.objects.filter(id=earning.id).update(status=DriverEarning.STATUS_PAID_OUT)

        self.assertFalse(reverse_earning_for_booking(self.booking))

    def test_partial_refund_keeps_retained_share(self):
        create_earning_for_booking(self.booking, Decimal('50.00'))

        self.assertTrue(settle_earning_after_refund(self.booking, Decimal('25.00')))

        earning = DriverEarning.objects.get(booking=self.booking)
        self.assertEqual(earning.status, DriverEarning.STATUS_PENDING)
        self.assertEqual(earning.gross_amount, Decimal('25.00'))
        self.assertEqual(earning.service_fee_amount, Decimal('3.75'))
        self.assertEqual(earning.amount, Decimal('21.25'))

        self.assertTrue(settle_earning_after_refund(self.booking, Decimal('0.00')))
        self.assertEqual(DriverEarning.objects.get(booking=self.booking).status, DriverEarning.STATUS_REVERSED)


class DriverEarningViewTest(APITestCase):
    def test_lists_only_own_earnings(self):
        driver = make_user('driver')
        other = make_user('other')
        passenger = make_user('passenger')
        create_earning_for_booking(make_booking(make_ride(driver), passenger), Decimal('50.00'))
        create_earning_for_booking(make_booking(make_ride(other), passenger), Decimal('20.00'))

        self.client.force_authenticate(user=driver)
        response = self.client.get('/api/earnings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['amount'], '42.50')

        response = self.client.get('/api/earnings/summary/')
        self.assertEqual(response.data, {DriverEarning.STATUS_PENDING: Decimal('42.50')})
