from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from rentals.models import Booking, Car

_DEFAULT = object()


def make_user(
    username: str,
    *,
    phone: str = "555-0101",
    phone_verified: bool = True,
    license_number: str = "LIC-0001",
    license_expiry=_DEFAULT,
    **extra,
):
    """User with a profile that passes every booking gate unless told otherwise."""
    user = get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
        first_name=extra.pop("first_name", username.title()),
        last_name=extra.pop("last_name", "Prueba"),
        **extra,
    )
    profile = user.profile
    profile.phone = phone
    profile.phone_verified = phone_verified
    profile.driver_license_number = license_number
    profile.driver_license_expiry = (
        timezone.localdate() + timedelta(days=365) if license_expiry is _DEFAULT else license_expiry
    )
    profile.save()
    return user


def make_car(owner, *, price: str = "50.00", **fields) -> Car:
    defaults = {
        "make": "Toyota",
        "model": "Yaris",
        "year": 2022,
        "category": "Sedan",
        "location": "Ciudad de Panamá",
        "features": ["GPS", "Bluetooth"],
        "images": ["cars/yaris-1.jpg", "cars/yaris-2.jpg"],
    }
    defaults.update(fields)
    return Car.objects.create(owner=owner, price_per_day=Decimal(price), **defaults)


def make_booking(car: Car, renter, start: date, end: date, status: str = Booking.Status.PENDING) -> Booking:
    """Insert a booking row directly, bypassing the service gates."""
    days, price = Booking.quote(car.price_per_day, start, end)
    return Booking.objects.create(
        car=car,
        renter=renter,
        owner=car.owner,
        start_date=start,
        end_date=end,
        total_days=days,
        total_price=price,
        status=status,
    )
