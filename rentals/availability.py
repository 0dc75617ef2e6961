"""
Date-range conflict checks for car bookings.

Two ranges ``[a, b]`` and ``[c, d]`` overlap when ``a <= d and c <= b``;
both ends are inclusive calendar dates. Only pending and approved
bookings hold a car's calendar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from django.db import DatabaseError, transaction

from .models import Booking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    conflicting_bookings: list[Booking] = field(default_factory=list)
    error: str | None = None


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a <= end_b and start_b <= end_a


def conflicting_bookings(car_id, start_date: date, end_date: date, *, exclude_pk=None):
    """Queryset of active bookings for the car that touch the requested range."""
    return (
        Booking.objects.filter(
            car_id=car_id,
            status__in=Booking.ACTIVE_STATUSES,
            start_date__lte=end_date,
            end_date__gte=start_date,
        )
        .exclude(pk=exclude_pk)
        .order_by("start_date")
    )


def check_availability(
    car_id,
    start_date: date,
    end_date: date,
    *,
    exclude_pk=None,
) -> AvailabilityResult:
    """
    Report whether ``car_id`` is free between ``start_date`` and ``end_date``.

    Read-only. Any datastore failure is reported as unavailable so a
    broken query can never let a double booking through.
    """
    try:
        # Savepoint: a failed query must not break the caller's transaction.
        with transaction.atomic():
            conflicts = list(
                conflicting_bookings(car_id, start_date, end_date, exclude_pk=exclude_pk)
            )
    except DatabaseError as exc:
        logger.exception("Availability check failed for car %s", car_id)
        return AvailabilityResult(available=False, error=str(exc))

    if conflicts:
        logger.debug(
            "Car %s has %d conflicting booking(s) between %s and %s",
            car_id,
            len(conflicts),
            start_date,
            end_date,
        )
    return AvailabilityResult(available=not conflicts, conflicting_bookings=conflicts)
