"""
Data models for the car rental marketplace.

This module defines the core entities of the system: owner-listed cars,
renter profiles, bookings and reviews. Bookings freeze their price at
creation time; the overlap rules live in :mod:`rentals.availability` and
are shared with the booking services.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class Profile(models.Model):
    """Renter/owner details that gate booking requests."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='profile',
        verbose_name='Usuario',
    )
    phone = models.CharField(max_length=20, blank=True, verbose_name='Teléfono')
    phone_verified = models.BooleanField(default=False, verbose_name='Teléfono verificado')
    driver_license_number = models.CharField(
        max_length=50, blank=True, verbose_name='Número de licencia'
    )
    driver_license_expiry = models.DateField(
        null=True, blank=True, verbose_name='Vencimiento de licencia'
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    class Meta:
        verbose_name = 'Perfil'
        verbose_name_plural = 'Perfiles'

    def __str__(self) -> str:
        return f"Perfil de {self.user}"

    def has_valid_license(self, today: date | None = None) -> bool:
        if not self.driver_license_number or not self.driver_license_expiry:
            return False
        return self.driver_license_expiry >= (today or timezone.localdate())


class Car(models.Model):
    """A vehicle listed for rent by its owner."""

    TRANSMISSION_CHOICES = [
        ('automatic', 'Automática'),
        ('manual', 'Manual'),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cars',
        verbose_name='Propietario',
    )
    make = models.CharField(max_length=50, verbose_name='Marca')
    model = models.CharField(max_length=50, verbose_name='Modelo')
    year = models.PositiveIntegerField(verbose_name='Año')
    price_per_day = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        verbose_name='Precio por día',
    )
    is_available = models.BooleanField(default=True, verbose_name='Disponible')
    category = models.CharField(max_length=30, blank=True, verbose_name='Categoría')
    seats = models.PositiveIntegerField(default=5, verbose_name='Asientos')
    fuel_type = models.CharField(max_length=20, blank=True, verbose_name='Combustible')
    transmission = models.CharField(
        max_length=12,
        choices=TRANSMISSION_CHOICES,
        default='automatic',
        verbose_name='Transmisión',
    )
    # Free-form feature tags (e.g. "GPS", "Bluetooth").
    features = models.JSONField(default=list, blank=True, verbose_name='Características')
    description = models.TextField(blank=True, verbose_name='Descripción')
    location = models.CharField(max_length=255, blank=True, verbose_name='Ubicación')
    # Ordered image references; storage is handled outside this app.
    images = models.JSONField(default=list, blank=True, verbose_name='Imágenes')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    class Meta:
        verbose_name = 'Vehículo'
        verbose_name_plural = 'Vehículos'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=Q(price_per_day__gt=0),
                name='car_price_per_day_positive',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.make} {self.model} {self.year}"


class Booking(models.Model):
    """A renter's request to use a car between two calendar dates."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pendiente'
        APPROVED = 'approved', 'Aprobada'
        REJECTED = 'rejected', 'Rechazada'
        COMPLETED = 'completed', 'Completada'
        CANCELLED = 'cancelled', 'Cancelada'

    # Statuses that hold the car's calendar.
    ACTIVE_STATUSES = (Status.PENDING, Status.APPROVED)

    car = models.ForeignKey(
        Car, on_delete=models.CASCADE, related_name='bookings', verbose_name='Vehículo'
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bookings_as_renter',
        verbose_name='Arrendatario',
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bookings_as_owner',
        verbose_name='Propietario',
    )
    start_date = models.DateField(verbose_name='Fecha de inicio')
    end_date = models.DateField(verbose_name='Fecha de fin')
    total_days = models.PositiveIntegerField(editable=False, verbose_name='Días')
    total_price = models.DecimalField(
        max_digits=10, decimal_places=2, editable=False, verbose_name='Precio total'
    )
    status = models.CharField(
        max_length=12, choices=Status.choices, default=Status.PENDING, verbose_name='Estado'
    )
    message = models.TextField(blank=True, verbose_name='Mensaje')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Actualizado")

    class Meta:
        verbose_name = 'Reserva'
        verbose_name_plural = 'Reservas'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gt=F('start_date')),
                name='booking_end_after_start',
            ),
        ]
        indexes = [
            models.Index(
                fields=['car', 'status', 'start_date', 'end_date'],
                name='booking_car_status_dates_idx',
            ),
            models.Index(fields=['renter', '-created_at'], name='booking_renter_created_idx'),
            models.Index(fields=['owner', '-created_at'], name='booking_owner_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.renter} - {self.car} ({self.start_date} - {self.end_date})"

    @staticmethod
    def rental_days(start_date: date, end_date: date) -> int:
        """Whole days between the dates; calendar dates make the ceiling exact."""
        return (end_date - start_date).days

    @classmethod
    def quote(cls, price_per_day: Decimal, start_date: date, end_date: date) -> tuple[int, Decimal]:
        days = cls.rental_days(start_date, end_date)
        return days, price_per_day * Decimal(days)

    @staticmethod
    def validate_dates(start_date: date, end_date: date) -> None:
        if end_date <= start_date:
            raise ValidationError('La fecha de fin debe ser posterior a la de inicio.')

    def save(self, *args, **kwargs) -> None:
        """Quote days and price on insert; later saves keep the frozen amounts."""
        if self._state.adding and (self.total_days is None or self.total_price is None):
            self.total_days, self.total_price = Booking.quote(
                self.car.price_per_day, self.start_date, self.end_date
            )
        super().save(*args, **kwargs)

    def clean(self) -> None:
        """Reject admin edits that break the date range or double-book the car."""
        from .availability import check_availability

        if self.start_date is None or self.end_date is None:
            return
        Booking.validate_dates(self.start_date, self.end_date)
        if self.status not in self.ACTIVE_STATUSES or not self.car_id:
            return
        result = check_availability(
            self.car_id, self.start_date, self.end_date, exclude_pk=self.pk
        )
        if not result.available:
            raise ValidationError('El vehículo ya tiene una reserva en el rango seleccionado.')


class Review(models.Model):
    """A renter's rating of a car after a completed booking."""

    car = models.ForeignKey(
        Car, on_delete=models.CASCADE, related_name='reviews', verbose_name='Vehículo'
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='car_reviews',
        verbose_name='Autor',
    )
    booking = models.OneToOneField(
        Booking, on_delete=models.CASCADE, related_name='review', verbose_name='Reserva'
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        verbose_name='Calificación',
    )
    comment = models.TextField(blank=True, verbose_name='Comentario')
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Creado")

    class Meta:
        verbose_name = 'Reseña'
        verbose_name_plural = 'Reseñas'
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.reviewer} - {self.car} ({self.rating}/5)"
