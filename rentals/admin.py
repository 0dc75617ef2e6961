"""
Django admin customizations for the rentals app.

Registering models here lets staff inspect listings, bookings and
profiles through Django's admin interface. A booking's car, parties,
dates, status and amounts are read-only: status changes go through the
booking API so the transition rules and the car's availability flag
stay in step.
"""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, Car, Profile, Review

BOOKING_LOCKED_FIELDS = (
    'car', 'renter', 'owner', 'start_date', 'end_date', 'status', 'total_days', 'total_price',
)


class BookingInline(admin.TabularInline):
    model = Booking
    fk_name = "car"
    extra = 0
    fields = ("renter", "start_date", "end_date", "status", "total_days", "total_price")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Car)
class CarAdmin(admin.ModelAdmin):
    list_display = ('make', 'model', 'year', 'owner', 'price_per_day', 'is_available', 'updated_at')
    search_fields = ('make', 'model', 'location', 'owner__username')
    list_filter = ('is_available', 'category', 'transmission', 'year')
    inlines = (BookingInline,)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('car', 'renter', 'owner', 'start_date', 'end_date', 'status', 'total_price', 'updated_at')
    list_filter = ('status', 'start_date')
    search_fields = ('renter__username', 'owner__username', 'car__make', 'car__model')
    readonly_fields = BOOKING_LOCKED_FIELDS + ('created_at', 'updated_at')

    def has_add_permission(self, request) -> bool:
        # Bookings are created through the booking API so the profile gates apply.
        return False


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'phone', 'phone_verified', 'driver_license_number', 'driver_license_expiry')
    list_filter = ('phone_verified',)
    search_fields = ('user__username', 'user__email', 'phone', 'driver_license_number')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('car', 'reviewer', 'rating', 'created_at')
    list_filter = ('rating',)
    search_fields = ('car__make', 'car__model', 'reviewer__username')
