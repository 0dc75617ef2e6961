import json
from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from rentals.forms import CarForm
from rentals.models import Booking, Car
from rentals.results import ErrorCode
from rentals.services import CarListingService

from .helpers import make_booking, make_car, make_user

NEW_LISTING = {
    "make": "Mazda",
    "model": "CX-5",
    "year": 2023,
    "price_per_day": "65.00",
    "category": "SUV",
    "seats": 5,
    "fuel_type": "Gasolina",
    "transmission": "automatic",
    "features": ["GPS", "Cámara de reversa"],
    "location": "David, Chiriquí",
    "images": ["cars/cx5-1.jpg"],
}


class CarFormTests(TestCase):
    def test_widgets_get_css_classes(self):
        form = CarForm()
        self.assertEqual(form.fields["make"].widget.attrs["class"], "form-control")
        self.assertEqual(form.fields["transmission"].widget.attrs["class"], "form-select")
        self.assertEqual(form.fields["is_available"].widget.attrs["class"], "form-check-input")

    def test_price_must_be_positive(self):
        form = CarForm({**NEW_LISTING, "price_per_day": "0"})
        self.assertFalse(form.is_valid())
        self.assertIn("price_per_day", form.errors)

    def test_features_must_be_a_list_of_strings(self):
        form = CarForm({**NEW_LISTING, "features": {"gps": True}})
        self.assertFalse(form.is_valid())
        self.assertIn("features", form.errors)

    def test_empty_lists_are_kept_as_lists(self):
        form = CarForm({**NEW_LISTING, "features": [], "images": []})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["features"], [])
        self.assertEqual(form.cleaned_data["images"], [])


class CarListingServiceTests(TestCase):
    def setUp(self):
        self.listings = CarListingService()
        self.owner = make_user("owner")
        self.stranger = make_user("stranger")
        self.car = make_car(self.owner, price="50.00")

    def test_owner_lists_a_car(self):
        result = self.listings.create_car(self.owner, NEW_LISTING)

        self.assertTrue(result.success)
        car = result.data
        self.assertEqual(car.owner, self.owner)
        self.assertEqual(car.price_per_day, Decimal("65.00"))
        self.assertTrue(car.is_available)
        self.assertEqual(car.features, ["GPS", "Cámara de reversa"])

    def test_create_requires_login_and_valid_data(self):
        self.assertEqual(
            self.listings.create_car(None, NEW_LISTING).code, ErrorCode.NOT_AUTHENTICATED
        )
        result = self.listings.create_car(self.owner, {**NEW_LISTING, "make": ""})
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)
        self.assertIn("Marca", result.error)
        self.assertEqual(Car.objects.count(), 1)

    def test_partial_update_keeps_other_fields(self):
        result = self.listings.update_car(self.owner, self.car.pk, {"price_per_day": "55.50"})

        self.assertTrue(result.success)
        self.car.refresh_from_db()
        self.assertEqual(self.car.price_per_day, Decimal("55.50"))
        self.assertEqual(self.car.make, "Toyota")
        self.assertEqual(self.car.features, ["GPS", "Bluetooth"])

    def test_update_ignores_owner_changes(self):
        self.listings.update_car(self.owner, self.car.pk, {"owner": self.stranger.pk})
        self.car.refresh_from_db()
        self.assertEqual(self.car.owner, self.owner)

    def test_only_the_owner_may_edit(self):
        result = self.listings.update_car(self.stranger, self.car.pk, {"price_per_day": "1.00"})

        self.assertEqual(result.code, ErrorCode.FORBIDDEN)
        self.car.refresh_from_db()
        self.assertEqual(self.car.price_per_day, Decimal("50.00"))

    def test_only_the_owner_may_delete(self):
        result = self.listings.delete_car(self.stranger, self.car.pk)

        self.assertEqual(result.code, ErrorCode.FORBIDDEN)
        self.assertTrue(Car.objects.filter(pk=self.car.pk).exists())

    def test_owner_deletes_car_and_its_bookings(self):
        make_booking(self.car, self.stranger, date(2030, 1, 1), date(2030, 1, 3))

        result = self.listings.delete_car(self.owner, self.car.pk)

        self.assertTrue(result.success)
        self.assertEqual(result.data, {"id": self.car.pk})
        self.assertFalse(Car.objects.filter(pk=self.car.pk).exists())
        self.assertFalse(Booking.objects.exists())

    def test_unknown_car(self):
        for call in (
            lambda: self.listings.update_car(self.owner, 999999, {}),
            lambda: self.listings.toggle_availability(self.owner, 999999),
            lambda: self.listings.delete_car(self.owner, 999999),
        ):
            self.assertEqual(call().code, ErrorCode.CAR_NOT_FOUND)

    def test_toggle_availability_flips_the_flag(self):
        first = self.listings.toggle_availability(self.owner, self.car.pk)
        second = self.listings.toggle_availability(self.owner, self.car.pk)

        self.assertFalse(first.data.is_available)
        self.assertTrue(second.data.is_available)
        self.assertEqual(
            self.listings.toggle_availability(self.stranger, self.car.pk).code, ErrorCode.FORBIDDEN
        )

    def test_catalogue_lists_only_available_cars(self):
        hidden = make_car(self.owner, make="Kia", is_available=False)
        other = make_car(self.stranger, make="Nissan")

        available = self.listings.get_available_cars()

        self.assertEqual([c.pk for c in available], [other.pk, self.car.pk])
        self.assertNotIn(hidden, available)

    def test_owner_sees_all_of_their_cars(self):
        hidden = make_car(self.owner, make="Kia", is_available=False)
        make_car(self.stranger, make="Nissan")

        self.assertEqual(
            [c.pk for c in self.listings.get_user_cars(self.owner)], [hidden.pk, self.car.pk]
        )
        self.assertEqual(self.listings.get_user_cars(None), [])
        self.assertEqual(self.listings.get_user_cars(self.owner, user_id=0), [])

    def test_datastore_error_on_create(self):
        with mock.patch.object(Car, "save", side_effect=DatabaseError("read only")):
            result = self.listings.create_car(self.owner, NEW_LISTING)
        self.assertEqual(result.code, ErrorCode.DATASTORE_ERROR)
        self.assertNotIn("read only", result.error)


class CarListingApiTests(TestCase):
    def setUp(self):
        self.owner = make_user("owner")
        self.stranger = make_user("stranger")
        self.car = make_car(self.owner, price="50.00")

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def test_catalogue_is_public(self):
        make_car(self.owner, make="Kia", is_available=False)

        body = self.client.get(reverse("rentals:cars")).json()

        self.assertTrue(body["success"])
        self.assertEqual([c["id"] for c in body["data"]], [self.car.pk])
        self.assertEqual(body["data"][0]["price_per_day"], "50.00")

    def test_create_listing(self):
        self.client.force_login(self.owner)

        response = self._post(reverse("rentals:cars"), NEW_LISTING)

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["owner_id"], self.owner.pk)
        self.assertEqual(data["images"], ["cars/cx5-1.jpg"])

    def test_create_listing_requires_login(self):
        response = self._post(reverse("rentals:cars"), NEW_LISTING)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "NOT_AUTHENTICATED")

    def test_invalid_listing_is_400(self):
        self.client.force_login(self.owner)
        response = self._post(reverse("rentals:cars"), {**NEW_LISTING, "year": "viejo"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_INPUT")

    def test_my_cars(self):
        make_car(self.stranger, make="Nissan")
        self.client.force_login(self.owner)

        data = self.client.get(reverse("rentals:owner_cars")).json()["data"]

        self.assertEqual([c["id"] for c in data], [self.car.pk])

    def test_stranger_cannot_edit_or_delete(self):
        self.client.force_login(self.stranger)

        edit = self._post(reverse("rentals:car_update", args=[self.car.pk]), {"make": "Otro"})
        delete = self._post(reverse("rentals:car_delete", args=[self.car.pk]))
        toggle = self._post(reverse("rentals:car_toggle_availability", args=[self.car.pk]))

        for response in (edit, delete, toggle):
            self.assertEqual(response.status_code, 403)
            self.assertNotIn("data", response.json())
        self.car.refresh_from_db()
        self.assertEqual(self.car.make, "Toyota")
        self.assertTrue(self.car.is_available)

    def test_owner_edits_toggles_and_deletes(self):
        self.client.force_login(self.owner)

        edit = self._post(reverse("rentals:car_update", args=[self.car.pk]), {"location": "Colón"})
        toggle = self._post(reverse("rentals:car_toggle_availability", args=[self.car.pk]))
        delete = self._post(reverse("rentals:car_delete", args=[self.car.pk]))

        self.assertEqual(edit.json()["data"]["location"], "Colón")
        self.assertFalse(toggle.json()["data"]["is_available"])
        self.assertEqual(delete.status_code, 200)
        self.assertEqual(delete.json()["data"], {"id": self.car.pk})
        self.assertFalse(Car.objects.filter(pk=self.car.pk).exists())

    def test_unknown_car_is_404(self):
        self.client.force_login(self.owner)
        response = self._post(reverse("rentals:car_delete", args=[999999]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "CAR_NOT_FOUND")
