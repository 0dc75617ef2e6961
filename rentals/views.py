"""
rentals.views

Endpoints JSON del marketplace y contrato PDF de la reserva.
"""

from __future__ import annotations

import json
import logging
from io import BytesIO

from django.contrib.auth.mixins import LoginRequiredMixin
from django.db.models import Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.template.loader import get_template
from django.views import View
from django.views.decorators.http import require_GET, require_http_methods, require_POST
from xhtml2pdf import pisa

from .availability import check_availability
from .forms import AvailabilityForm, BookingRequestForm, BookingStatusForm, ReviewForm, first_error
from .models import Booking, Car
from .results import ErrorCode, ServiceResult
from .services import (
    lifecycle,
    listings,
    queries,
    reviews,
    serialize_booking,
    serialize_car,
    serialize_review,
)

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_CODE = {
    ErrorCode.NOT_AUTHENTICATED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CAR_NOT_FOUND: 404,
    ErrorCode.CAR_UNAVAILABLE: 409,
    ErrorCode.DATES_UNAVAILABLE: 409,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.REVIEW_NOT_ALLOWED: 409,
    ErrorCode.ALREADY_REVIEWED: 409,
    ErrorCode.DATASTORE_ERROR: 503,
}


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _actor(request):
    """Usuario autenticado o None; los servicios reciben la identidad explícita."""
    return request.user if request.user.is_authenticated else None


def _json_payload(request) -> dict | None:
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _invalid(error: str) -> JsonResponse:
    return JsonResponse(ServiceResult.fail(ErrorCode.INVALID_INPUT, error).as_dict(), status=400)


def _result_response(result: ServiceResult, data=None, status: int = 200) -> JsonResponse:
    if not result.success:
        return JsonResponse(result.as_dict(), status=HTTP_STATUS_BY_CODE.get(result.code, 400))
    return JsonResponse(ServiceResult.ok(data).as_dict(), status=status)


def _render_contract_pdf(html: str) -> bytes | None:
    buffer = BytesIO()
    pisa_status = pisa.CreatePDF(html, dest=buffer)
    if pisa_status.err:
        return None
    return buffer.getvalue()


# -----------------------------------------------------------------------------
# Vehículos
# -----------------------------------------------------------------------------


@require_http_methods(["GET", "POST"])
def cars_api(request):
    """GET: catálogo de vehículos disponibles. POST: publicar un vehículo propio."""
    if request.method == "GET":
        cars = listings.get_available_cars()
        return JsonResponse(ServiceResult.ok([serialize_car(c) for c in cars]).as_dict())

    payload = _json_payload(request)
    if payload is None:
        return _invalid("JSON inválido")
    result = listings.create_car(_actor(request), payload)
    data = serialize_car(result.data) if result.success else None
    return _result_response(result, data, status=201)


@require_GET
def owner_cars_api(request):
    cars = listings.get_user_cars(_actor(request))
    return JsonResponse(ServiceResult.ok([serialize_car(c) for c in cars]).as_dict())


@require_POST
def car_update_api(request, car_id: int):
    payload = _json_payload(request)
    if payload is None:
        return _invalid("JSON inválido")
    result = listings.update_car(_actor(request), car_id, payload)
    data = serialize_car(result.data) if result.success else None
    return _result_response(result, data)


@require_POST
def car_toggle_availability_api(request, car_id: int):
    result = listings.toggle_availability(_actor(request), car_id)
    data = serialize_car(result.data) if result.success else None
    return _result_response(result, data)


@require_POST
def car_delete_api(request, car_id: int):
    result = listings.delete_car(_actor(request), car_id)
    return _result_response(result, result.data)


# -----------------------------------------------------------------------------
# Disponibilidad
# -----------------------------------------------------------------------------


@require_GET
def car_availability_api(request, car_id: int):
    car = Car.objects.filter(pk=car_id).first()
    if car is None:
        return JsonResponse(ServiceResult.fail(ErrorCode.CAR_NOT_FOUND).as_dict(), status=404)

    form = AvailabilityForm(request.GET)
    if not form.is_valid():
        return _invalid(first_error(form))

    start_date = form.cleaned_data["start_date"]
    end_date = form.cleaned_data["end_date"]
    result = check_availability(car.pk, start_date, end_date)
    total_days, total_price = Booking.quote(car.price_per_day, start_date, end_date)
    data = {
        "car_id": car.pk,
        "available": result.available and car.is_available,
        # Only the blocked ranges; renter details stay private.
        "conflicts": [
            {
                "start_date": b.start_date.isoformat(),
                "end_date": b.end_date.isoformat(),
                "status": b.status,
            }
            for b in result.conflicting_bookings
        ],
        "total_days": total_days,
        "total_price": str(total_price),
    }
    return JsonResponse(ServiceResult.ok(data).as_dict())


# -----------------------------------------------------------------------------
# Reservas
# -----------------------------------------------------------------------------


@require_POST
def booking_create_api(request):
    payload = _json_payload(request)
    if payload is None:
        return _invalid("JSON inválido")
    form = BookingRequestForm(payload)
    if not form.is_valid():
        return _invalid(first_error(form))

    result = lifecycle.create_booking(
        _actor(request),
        form.cleaned_data["car_id"],
        form.cleaned_data["start_date"],
        form.cleaned_data["end_date"],
        form.cleaned_data["message"],
    )
    data = serialize_booking(result.data) if result.success else None
    return _result_response(result, data, status=201)


@require_GET
def renter_bookings_api(request):
    bookings = queries.get_user_bookings(_actor(request))
    return JsonResponse(ServiceResult.ok([b.as_dict() for b in bookings]).as_dict())


@require_GET
def owner_bookings_api(request):
    bookings = queries.get_owner_bookings(_actor(request))
    return JsonResponse(ServiceResult.ok([b.as_dict() for b in bookings]).as_dict())


@require_POST
def booking_status_api(request, pk: int):
    payload = _json_payload(request)
    if payload is None:
        return _invalid("JSON inválido")
    form = BookingStatusForm(payload)
    if not form.is_valid():
        return JsonResponse(
            ServiceResult.fail(ErrorCode.INVALID_STATUS).as_dict(), status=400
        )

    result = lifecycle.update_booking_status(_actor(request), pk, form.cleaned_data["status"])
    data = serialize_booking(result.data) if result.success else None
    return _result_response(result, data)


@require_POST
def booking_cancel_api(request, pk: int):
    result = lifecycle.cancel_booking(_actor(request), pk)
    data = serialize_booking(result.data) if result.success else None
    return _result_response(result, data)


# -----------------------------------------------------------------------------
# Reseñas
# -----------------------------------------------------------------------------


@require_GET
def car_reviews_api(request, car_id: int):
    if not Car.objects.filter(pk=car_id).exists():
        return JsonResponse(ServiceResult.fail(ErrorCode.CAR_NOT_FOUND).as_dict(), status=404)
    average, count = reviews.get_car_average_rating(car_id)
    data = {
        "average": average,
        "count": count,
        "reviews": [serialize_review(r) for r in reviews.get_car_reviews(car_id)],
    }
    return JsonResponse(ServiceResult.ok(data).as_dict())


@require_POST
def booking_review_api(request, pk: int):
    payload = _json_payload(request)
    if payload is None:
        return _invalid("JSON inválido")
    form = ReviewForm(payload)
    if not form.is_valid():
        return _invalid(first_error(form))

    result = reviews.create_review(
        _actor(request), pk, form.cleaned_data["rating"], form.cleaned_data["comment"]
    )
    data = serialize_review(result.data) if result.success else None
    return _result_response(result, data, status=201)


# -----------------------------------------------------------------------------
# Contrato
# -----------------------------------------------------------------------------


class BookingContractView(LoginRequiredMixin, View):
    """Contrato PDF de una reserva aprobada o completada (solo las partes)."""

    def get(self, request, pk):
        booking = get_object_or_404(
            Booking.objects.select_related("car", "renter", "owner").filter(
                Q(renter=request.user) | Q(owner=request.user)
            ),
            pk=pk,
        )
        if booking.status not in (Booking.Status.APPROVED, Booking.Status.COMPLETED):
            return HttpResponse("La reserva aún no tiene contrato.", status=400)

        template = get_template("rentals/booking_contract.html")
        context = {
            "booking": booking,
            "car": booking.car,
            "renter": booking.renter,
            "owner": booking.owner,
        }
        html = template.render(context)
        pdf_bytes = _render_contract_pdf(html)
        if pdf_bytes is None:
            logger.error("Contract rendering failed for booking %s", booking.pk)
            return HttpResponse("Error al generar el PDF.", status=500)
        response = HttpResponse(pdf_bytes, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="reserva-{booking.id}.pdf"'
        return response
