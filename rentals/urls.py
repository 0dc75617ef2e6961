from __future__ import annotations

from django.urls import path
from . import views

app_name = "rentals"

urlpatterns = [
    path("api/cars/", views.cars_api, name="cars"),
    path("api/cars/mine/", views.owner_cars_api, name="owner_cars"),
    path("api/cars/<int:car_id>/", views.car_update_api, name="car_update"),
    path("api/cars/<int:car_id>/delete/", views.car_delete_api, name="car_delete"),
    path(
        "api/cars/<int:car_id>/toggle-availability/",
        views.car_toggle_availability_api,
        name="car_toggle_availability",
    ),
    path("api/cars/<int:car_id>/availability/", views.car_availability_api, name="car_availability"),
    path("api/cars/<int:car_id>/reviews/", views.car_reviews_api, name="car_reviews"),

    path("api/bookings/", views.booking_create_api, name="booking_create"),
    path("api/bookings/mine/", views.renter_bookings_api, name="renter_bookings"),
    path("api/bookings/owned/", views.owner_bookings_api, name="owner_bookings"),
    path("api/bookings/<int:pk>/status/", views.booking_status_api, name="booking_status"),
    path("api/bookings/<int:pk>/cancel/", views.booking_cancel_api, name="booking_cancel"),
    path("api/bookings/<int:pk>/review/", views.booking_review_api, name="booking_review"),

    path("bookings/<int:pk>/contract/", views.BookingContractView.as_view(), name="booking_contract"),
]
