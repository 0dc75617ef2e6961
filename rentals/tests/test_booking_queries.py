from datetime import date
from unittest import mock

from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from django.test import TestCase

from rentals.models import Booking
from rentals.services import BookingQueryService, BookingWithCar, BookingWithRenter

from .helpers import make_booking, make_car, make_user


class BookingQueryTests(TestCase):
    def setUp(self):
        self.queries = BookingQueryService()
        self.owner = make_user("owner", phone="555-0303", first_name="Olga")
        self.renter = make_user("renter", phone="555-0404", first_name="Raul")
        self.car = make_car(self.owner, make="Hyundai", model="Tucson")
        self.other_car = make_car(self.owner, make="Kia", model="Sonet")
        self.first = make_booking(self.car, self.renter, date(2030, 1, 1), date(2030, 1, 3))
        self.second = make_booking(self.other_car, self.renter, date(2030, 2, 1), date(2030, 2, 5))

    def test_renter_view_is_newest_first_with_car_and_owner(self):
        rows = self.queries.get_user_bookings(self.renter)

        self.assertEqual([r.booking.pk for r in rows], [self.second.pk, self.first.pk])
        self.assertIsInstance(rows[0], BookingWithCar)
        self.assertEqual(rows[0].car.make, "Kia")
        self.assertEqual(rows[0].car.images, ("cars/yaris-1.jpg", "cars/yaris-2.jpg"))
        self.assertEqual(rows[0].owner.first_name, "Olga")
        self.assertEqual(rows[0].owner.phone, "555-0303")

    def test_owner_view_includes_renter_contact(self):
        rows = self.queries.get_owner_bookings(self.owner)

        self.assertEqual(len(rows), 2)
        self.assertIsInstance(rows[0], BookingWithRenter)
        renter = rows[0].renter
        self.assertEqual(renter.first_name, "Raul")
        self.assertEqual(renter.email, "renter@example.com")
        self.assertEqual(renter.phone, "555-0404")

    def test_views_are_scoped_to_their_side(self):
        self.assertEqual(self.queries.get_user_bookings(self.owner), [])
        self.assertEqual(self.queries.get_owner_bookings(self.renter), [])

    def test_explicit_user_id_overrides_actor(self):
        rows = self.queries.get_user_bookings(None, user_id=self.renter.pk)
        self.assertEqual(len(rows), 2)

    def test_zero_user_id_does_not_fall_back_to_actor(self):
        self.assertEqual(self.queries.get_user_bookings(self.renter, user_id=0), [])
        self.assertEqual(self.queries.get_owner_bookings(self.owner, user_id=0), [])

    def test_anonymous_caller_gets_nothing(self):
        self.assertEqual(self.queries.get_user_bookings(None), [])
        self.assertEqual(self.queries.get_owner_bookings(AnonymousUser()), [])

    def test_terminal_bookings_are_still_listed(self):
        Booking.objects.filter(pk=self.first.pk).update(status=Booking.Status.CANCELLED)
        statuses = {r.booking.status for r in self.queries.get_user_bookings(self.renter)}
        self.assertIn(Booking.Status.CANCELLED, statuses)

    def test_datastore_error_returns_empty_list(self):
        with mock.patch.object(Booking.objects, "filter", side_effect=DatabaseError("down")):
            self.assertEqual(self.queries.get_owner_bookings(self.owner), [])

    def test_as_dict_serializes_joined_rows(self):
        data = self.queries.get_owner_bookings(self.owner)[-1].as_dict()

        self.assertEqual(data["id"], self.first.pk)
        self.assertEqual(data["start_date"], "2030-01-01")
        self.assertEqual(data["total_days"], 2)
        self.assertEqual(data["total_price"], "100.00")
        self.assertEqual(data["car"]["model"], "Tucson")
        self.assertEqual(data["car"]["features"], ["GPS", "Bluetooth"])
        self.assertEqual(data["renter"]["phone"], "555-0404")
