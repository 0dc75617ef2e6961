"""
Booking lifecycle, booking queries, car listings and car reviews.

Every operation receives the acting user explicitly and returns a
:class:`~rentals.results.ServiceResult` (or a plain list for read paths)
instead of raising, so views can branch on the outcome directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Avg, Count
from django.forms.models import model_to_dict
from django.utils import timezone

from .availability import AvailabilityResult, check_availability
from .forms import CarForm, first_error
from .models import Booking, Car, Profile, Review
from .results import ErrorCode, ServiceResult

logger = logging.getLogger(__name__)

Status = Booking.Status

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Status.PENDING: frozenset({Status.APPROVED, Status.REJECTED, Status.CANCELLED}),
    Status.APPROVED: frozenset({Status.COMPLETED, Status.CANCELLED}),
}

# Car.is_available after a booking enters the given status.
CAR_AVAILABLE_AFTER: dict[str, bool] = {
    Status.APPROVED: False,
    Status.REJECTED: True,
    Status.CANCELLED: True,
    Status.COMPLETED: True,
}


def _is_authenticated(actor) -> bool:
    return bool(actor is not None and getattr(actor, "is_authenticated", False))


def _target_user(actor, user_id):
    """An explicit ``user_id`` wins, even a falsy one; otherwise the signed-in actor."""
    if user_id is not None:
        return user_id
    return actor.pk if _is_authenticated(actor) else None


# -----------------------------------------------------------------------------
# Joined read models
# -----------------------------------------------------------------------------


def serialize_booking(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.pk,
        "car_id": booking.car_id,
        "renter_id": booking.renter_id,
        "owner_id": booking.owner_id,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
        "total_days": booking.total_days,
        "total_price": str(booking.total_price),
        "status": booking.status,
        "message": booking.message,
        "created_at": booking.created_at.isoformat(),
        "updated_at": booking.updated_at.isoformat(),
    }


@dataclass(frozen=True)
class CarDetails:
    id: int
    owner_id: int
    make: str
    model: str
    year: int
    price_per_day: Decimal
    is_available: bool
    category: str
    seats: int
    fuel_type: str
    transmission: str
    features: tuple[str, ...]
    description: str
    location: str
    images: tuple[str, ...]

    @classmethod
    def from_car(cls, car: Car) -> "CarDetails":
        return cls(
            id=car.pk,
            owner_id=car.owner_id,
            make=car.make,
            model=car.model,
            year=car.year,
            price_per_day=car.price_per_day,
            is_available=car.is_available,
            category=car.category,
            seats=car.seats,
            fuel_type=car.fuel_type,
            transmission=car.transmission,
            features=tuple(car.features or ()),
            description=car.description,
            location=car.location,
            images=tuple(car.images or ()),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "price_per_day": str(self.price_per_day),
            "is_available": self.is_available,
            "category": self.category,
            "seats": self.seats,
            "fuel_type": self.fuel_type,
            "transmission": self.transmission,
            "features": list(self.features),
            "description": self.description,
            "location": self.location,
            "images": list(self.images),
        }


@dataclass(frozen=True)
class ContactDetails:
    """Public contact fields shared between the two sides of a booking."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str

    @classmethod
    def from_user(cls, user) -> "ContactDetails":
        try:
            phone = user.profile.phone
        except Profile.DoesNotExist:
            phone = ""
        return cls(
            id=user.pk,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=phone,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class BookingWithCar:
    """A booking as seen by its renter."""

    booking: Booking
    car: CarDetails
    owner: ContactDetails

    def as_dict(self) -> dict[str, Any]:
        data = serialize_booking(self.booking)
        data["car"] = self.car.as_dict()
        data["owner"] = self.owner.as_dict()
        return data


@dataclass(frozen=True)
class BookingWithRenter:
    """A booking as seen by the car owner."""

    booking: Booking
    car: CarDetails
    renter: ContactDetails

    def as_dict(self) -> dict[str, Any]:
        data = serialize_booking(self.booking)
        data["car"] = self.car.as_dict()
        data["renter"] = self.renter.as_dict()
        return data


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------


class BookingLifecycleManager:
    """Create bookings and move them through their statuses."""

    def __init__(
        self,
        checker: Callable[..., AvailabilityResult] = check_availability,
    ) -> None:
        self.checker = checker

    def create_booking(
        self,
        actor,
        car_id,
        start_date: date,
        end_date: date,
        message: str = "",
    ) -> ServiceResult:
        """
        Request ``car_id`` for ``[start_date, end_date]`` on behalf of ``actor``.

        Preconditions are checked in order and each one reports its own
        error code: identity, phone, driver's license, car, dates and
        finally calendar conflicts. The booking row is the only write.
        """
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)

        try:
            failure = self._check_renter_profile(actor)
            if failure is not None:
                return failure

            with transaction.atomic():
                # Row lock serializes concurrent requests for the same car.
                car = Car.objects.select_for_update().filter(pk=car_id).first()
                if car is None:
                    return ServiceResult.fail(ErrorCode.CAR_NOT_FOUND)
                if not car.is_available:
                    return ServiceResult.fail(ErrorCode.CAR_UNAVAILABLE)
                if car.owner_id == actor.pk:
                    return ServiceResult.fail(ErrorCode.OWN_CAR)
                if end_date <= start_date:
                    return ServiceResult.fail(ErrorCode.INVALID_DATES)

                availability = self.checker(car.pk, start_date, end_date)
                if not availability.available:
                    logger.warning(
                        "Booking request by user %s for car %s (%s - %s) conflicts",
                        actor.pk,
                        car.pk,
                        start_date,
                        end_date,
                    )
                    return ServiceResult.fail(ErrorCode.DATES_UNAVAILABLE)

                total_days, total_price = Booking.quote(car.price_per_day, start_date, end_date)
                try:
                    with transaction.atomic():
                        booking = Booking.objects.create(
                            car=car,
                            renter=actor,
                            owner_id=car.owner_id,
                            start_date=start_date,
                            end_date=end_date,
                            total_days=total_days,
                            total_price=total_price,
                            status=Status.PENDING,
                            message=message or "",
                        )
                except IntegrityError:
                    # Raised by the database-side exclusion constraint.
                    logger.warning("Overlap constraint rejected booking for car %s", car.pk)
                    return ServiceResult.fail(ErrorCode.DATES_UNAVAILABLE)
        except DatabaseError:
            logger.exception("Booking creation failed for car %s", car_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info(
            "Booking %s created: car=%s renter=%s days=%s total=%s",
            booking.pk,
            booking.car_id,
            booking.renter_id,
            booking.total_days,
            booking.total_price,
        )
        return ServiceResult.ok(booking)

    def update_booking_status(self, actor, booking_id, new_status: str) -> ServiceResult:
        """Owner-side transition (approve, reject, complete or cancel)."""
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        try:
            new_status = Status(new_status)
        except ValueError:
            return ServiceResult.fail(ErrorCode.INVALID_STATUS)

        try:
            with transaction.atomic():
                booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
                if booking is None:
                    return ServiceResult.fail(ErrorCode.NOT_FOUND)
                if booking.owner_id != actor.pk:
                    logger.warning(
                        "User %s tried to set booking %s to %s without owning it",
                        actor.pk,
                        booking_id,
                        new_status,
                    )
                    return ServiceResult.fail(ErrorCode.FORBIDDEN)
                failure = self._check_transition(booking, new_status)
                if failure is not None:
                    return failure
                self._apply_status(booking, new_status)
        except DatabaseError:
            logger.exception("Status update failed for booking %s", booking_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Booking %s moved to %s by owner %s", booking.pk, new_status, actor.pk)
        return ServiceResult.ok(booking)

    def cancel_booking(self, actor, booking_id) -> ServiceResult:
        """Renter-side cancellation; the row is kept with status ``cancelled``."""
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)

        try:
            with transaction.atomic():
                booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
                if booking is None:
                    return ServiceResult.fail(ErrorCode.NOT_FOUND)
                if booking.renter_id != actor.pk:
                    logger.warning(
                        "User %s tried to cancel booking %s without being its renter",
                        actor.pk,
                        booking_id,
                    )
                    return ServiceResult.fail(
                        ErrorCode.FORBIDDEN, "No tienes permiso para cancelar esta reserva."
                    )
                failure = self._check_transition(booking, Status.CANCELLED)
                if failure is not None:
                    return failure
                self._apply_status(booking, Status.CANCELLED)
        except DatabaseError:
            logger.exception("Cancellation failed for booking %s", booking_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Booking %s cancelled by renter %s", booking.pk, actor.pk)
        return ServiceResult.ok(booking)

    # -- helpers --------------------------------------------------------------

    @staticmethod
    def _check_renter_profile(actor) -> ServiceResult | None:
        profile = Profile.objects.filter(user=actor).first()
        if profile is None or not profile.phone:
            return ServiceResult.fail(ErrorCode.PHONE_MISSING)
        if not profile.phone_verified:
            return ServiceResult.fail(ErrorCode.PHONE_UNVERIFIED)
        if not profile.driver_license_number or not profile.driver_license_expiry:
            return ServiceResult.fail(ErrorCode.LICENSE_MISSING)
        if not profile.has_valid_license(timezone.localdate()):
            return ServiceResult.fail(ErrorCode.LICENSE_EXPIRED)
        return None

    @staticmethod
    def _check_transition(booking: Booking, new_status: str) -> ServiceResult | None:
        if new_status in (Status.APPROVED, Status.REJECTED) and booking.status != Status.PENDING:
            return ServiceResult.fail(
                ErrorCode.INVALID_TRANSITION, "La reserva ya no está pendiente."
            )
        if new_status not in ALLOWED_TRANSITIONS.get(booking.status, frozenset()):
            return ServiceResult.fail(
                ErrorCode.INVALID_TRANSITION,
                f"No se puede pasar de {booking.get_status_display()} "
                f"a {Status(new_status).label}.",
            )
        return None

    @staticmethod
    def _apply_status(booking: Booking, new_status: str) -> None:
        """Write the booking status and the car flag; caller owns the transaction."""
        booking.status = new_status
        booking.save(update_fields=["status", "updated_at"])

        car = Car.objects.select_for_update().get(pk=booking.car_id)
        car.is_available = CAR_AVAILABLE_AFTER[new_status]
        car.save(update_fields=["is_available", "updated_at"])
        booking.car = car


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


class BookingQueryService:
    """Read-only booking listings for renters and owners."""

    def get_user_bookings(self, actor=None, user_id=None) -> list[BookingWithCar]:
        target = _target_user(actor, user_id)
        if target is None:
            return []
        try:
            bookings = list(
                Booking.objects.filter(renter_id=target)
                .select_related("car", "owner", "owner__profile")
                .order_by("-created_at", "-pk")
            )
        except DatabaseError:
            logger.exception("Could not load bookings for renter %s", target)
            return []
        return [
            BookingWithCar(
                booking=b,
                car=CarDetails.from_car(b.car),
                owner=ContactDetails.from_user(b.owner),
            )
            for b in bookings
        ]

    def get_owner_bookings(self, actor=None, user_id=None) -> list[BookingWithRenter]:
        target = _target_user(actor, user_id)
        if target is None:
            return []
        try:
            bookings = list(
                Booking.objects.filter(owner_id=target)
                .select_related("car", "renter", "renter__profile")
                .order_by("-created_at", "-pk")
            )
        except DatabaseError:
            logger.exception("Could not load bookings for owner %s", target)
            return []
        return [
            BookingWithRenter(
                booking=b,
                car=CarDetails.from_car(b.car),
                renter=ContactDetails.from_user(b.renter),
            )
            for b in bookings
        ]


# -----------------------------------------------------------------------------
# Listings
# -----------------------------------------------------------------------------


def _car_form_data(car: Car, changes: dict[str, Any]) -> dict[str, Any]:
    """Current listing values overlaid with the submitted ones, so edits may be partial."""
    data = model_to_dict(car, fields=CarForm.Meta.fields)
    data.update({k: v for k, v in changes.items() if k in CarForm.Meta.fields})
    return data


class CarListingService:
    """Owner-side management of car listings and the public catalogue."""

    def get_available_cars(self) -> list[Car]:
        try:
            return list(Car.objects.filter(is_available=True).order_by("-created_at", "-pk"))
        except DatabaseError:
            logger.exception("Could not load available cars")
            return []

    def get_user_cars(self, actor=None, user_id=None) -> list[Car]:
        target = _target_user(actor, user_id)
        if target is None:
            return []
        try:
            return list(Car.objects.filter(owner_id=target).order_by("-created_at", "-pk"))
        except DatabaseError:
            logger.exception("Could not load cars for owner %s", target)
            return []

    def create_car(self, actor, changes: dict[str, Any]) -> ServiceResult:
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        form = CarForm(_car_form_data(Car(), changes))
        if not form.is_valid():
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, first_error(form))
        try:
            car = form.save(commit=False)
            car.owner = actor
            car.save()
        except DatabaseError:
            logger.exception("Listing creation failed for owner %s", actor.pk)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Car %s listed by owner %s", car.pk, actor.pk)
        return ServiceResult.ok(car)

    def update_car(self, actor, car_id, changes: dict[str, Any]) -> ServiceResult:
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        try:
            with transaction.atomic():
                car, failure = self._owned_car(actor, car_id, "edit")
                if failure is not None:
                    return failure
                form = CarForm(_car_form_data(car, changes), instance=car)
                if not form.is_valid():
                    return ServiceResult.fail(ErrorCode.INVALID_INPUT, first_error(form))
                car = form.save()
        except DatabaseError:
            logger.exception("Listing update failed for car %s", car_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Car %s updated by owner %s", car.pk, actor.pk)
        return ServiceResult.ok(car)

    def toggle_availability(self, actor, car_id) -> ServiceResult:
        """Flip ``is_available``; the owner can pause or reopen a listing at any time."""
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        try:
            with transaction.atomic():
                car, failure = self._owned_car(actor, car_id, "toggle")
                if failure is not None:
                    return failure
                car.is_available = not car.is_available
                car.save(update_fields=["is_available", "updated_at"])
        except DatabaseError:
            logger.exception("Availability toggle failed for car %s", car_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Car %s is_available=%s (owner %s)", car.pk, car.is_available, actor.pk)
        return ServiceResult.ok(car)

    def delete_car(self, actor, car_id) -> ServiceResult:
        """Remove a listing together with its bookings and reviews."""
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        try:
            with transaction.atomic():
                car, failure = self._owned_car(actor, car_id, "delete")
                if failure is not None:
                    return failure
                car.delete()
        except DatabaseError:
            logger.exception("Listing deletion failed for car %s", car_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Car %s deleted by owner %s", car_id, actor.pk)
        return ServiceResult.ok({"id": car_id})

    @staticmethod
    def _owned_car(actor, car_id, action: str) -> tuple[Car | None, ServiceResult | None]:
        car = Car.objects.select_for_update().filter(pk=car_id).first()
        if car is None:
            return None, ServiceResult.fail(ErrorCode.CAR_NOT_FOUND)
        if car.owner_id != actor.pk:
            logger.warning("User %s tried to %s car %s without owning it", actor.pk, action, car_id)
            return None, ServiceResult.fail(
                ErrorCode.FORBIDDEN, "Solo el propietario puede modificar este vehículo."
            )
        return car, None


def serialize_car(car: Car) -> dict[str, Any]:
    return CarDetails.from_car(car).as_dict()


# -----------------------------------------------------------------------------
# Reviews
# -----------------------------------------------------------------------------


class ReviewService:
    MIN_RATING = 1
    MAX_RATING = 5

    def create_review(self, actor, booking_id, rating: int, comment: str = "") -> ServiceResult:
        if not _is_authenticated(actor):
            return ServiceResult.fail(ErrorCode.NOT_AUTHENTICATED)
        if (
            isinstance(rating, bool)
            or not isinstance(rating, int)
            or not self.MIN_RATING <= rating <= self.MAX_RATING
        ):
            return ServiceResult.fail(ErrorCode.INVALID_RATING)

        try:
            booking = Booking.objects.filter(pk=booking_id).first()
            if booking is None:
                return ServiceResult.fail(ErrorCode.NOT_FOUND)
            if booking.renter_id != actor.pk:
                return ServiceResult.fail(
                    ErrorCode.FORBIDDEN, "Solo el arrendatario puede reseñar esta reserva."
                )
            if booking.status != Status.COMPLETED:
                return ServiceResult.fail(ErrorCode.REVIEW_NOT_ALLOWED)
            try:
                with transaction.atomic():
                    review = Review.objects.create(
                        car_id=booking.car_id,
                        reviewer=actor,
                        booking=booking,
                        rating=rating,
                        comment=comment or "",
                    )
            except IntegrityError:
                return ServiceResult.fail(ErrorCode.ALREADY_REVIEWED)
        except DatabaseError:
            logger.exception("Review creation failed for booking %s", booking_id)
            return ServiceResult.fail(ErrorCode.DATASTORE_ERROR)

        logger.info("Review %s created for car %s", review.pk, review.car_id)
        return ServiceResult.ok(review)

    def get_car_reviews(self, car_id) -> list[Review]:
        try:
            return list(
                Review.objects.filter(car_id=car_id)
                .select_related("reviewer")
                .order_by("-created_at", "-pk")
            )
        except DatabaseError:
            logger.exception("Could not load reviews for car %s", car_id)
            return []

    def get_car_average_rating(self, car_id) -> tuple[float, int]:
        try:
            stats = Review.objects.filter(car_id=car_id).aggregate(
                average=Avg("rating"), count=Count("id")
            )
        except DatabaseError:
            logger.exception("Could not compute rating for car %s", car_id)
            return 0.0, 0
        if not stats["count"]:
            return 0.0, 0
        average = Decimal(str(stats["average"])).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return float(average), stats["count"]


def serialize_review(review: Review) -> dict[str, Any]:
    reviewer = review.reviewer
    return {
        "id": review.pk,
        "car_id": review.car_id,
        "booking_id": review.booking_id,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": review.created_at.isoformat(),
        "reviewer": {
            "id": reviewer.pk,
            "first_name": reviewer.first_name,
            "last_name": reviewer.last_name,
        },
    }


lifecycle = BookingLifecycleManager()
queries = BookingQueryService()
reviews = ReviewService()
listings = CarListingService()
