from datetime import date

from django.contrib.admin.sites import site
from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase
from django.urls import reverse

from rentals.admin import BookingInline
from rentals.models import Booking, Car

from .helpers import make_booking, make_car, make_user


class BookingAdminTests(TestCase):
    def setUp(self):
        self.admin_user = get_user_model().objects.create_superuser(
            username="admin", email="admin@example.com", password="testpass123"
        )
        self.owner = make_user("owner")
        self.renter = make_user("renter")
        self.car = make_car(self.owner, price="50.00")
        self.booking = make_booking(
            self.car, self.renter, date(2030, 1, 1), date(2030, 1, 4), Booking.Status.REJECTED
        )
        self.client.force_login(self.admin_user)

    def test_change_form_cannot_revive_or_resize_a_booking(self):
        other_car = make_car(self.owner, make="Kia")
        url = reverse("admin:rentals_booking_change", args=[self.booking.pk])

        response = self.client.post(
            url,
            {
                "car": other_car.pk,
                "start_date": "2030-01-01",
                "end_date": "2030-01-11",
                "status": Booking.Status.APPROVED,
                "message": "Revisado por soporte",
                "_save": "Guardar",
            },
        )

        self.assertEqual(response.status_code, 302)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.REJECTED)
        self.assertEqual(self.booking.car, self.car)
        self.assertEqual(self.booking.end_date, date(2030, 1, 4))
        self.assertEqual(self.booking.total_days, 3)
        self.assertEqual(self.booking.message, "Revisado por soporte")
        self.assertTrue(Car.objects.get(pk=self.car.pk).is_available)

    def test_booking_fields_are_read_only(self):
        request = RequestFactory().get("/admin/")
        request.user = self.admin_user
        booking_admin = site._registry[Booking]
        inline = BookingInline(Car, site)

        for model_admin in (booking_admin, inline):
            readonly = model_admin.get_readonly_fields(request, self.booking)
            for field in ("start_date", "end_date", "status"):
                with self.subTest(admin=type(model_admin).__name__, field=field):
                    self.assertIn(field, readonly)
        self.assertIn("car", booking_admin.get_readonly_fields(request, self.booking))

    def test_bookings_cannot_be_added_from_admin(self):
        response = self.client.get(reverse("admin:rentals_booking_add"))
        self.assertEqual(response.status_code, 403)
