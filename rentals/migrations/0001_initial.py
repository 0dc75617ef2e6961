import django.core.validators
import django.db.models.deletion
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Car",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("make", models.CharField(max_length=50, verbose_name="Marca")),
                ("model", models.CharField(max_length=50, verbose_name="Modelo")),
                ("year", models.PositiveIntegerField(verbose_name="Año")),
                (
                    "price_per_day",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                        verbose_name="Precio por día",
                    ),
                ),
                ("is_available", models.BooleanField(default=True, verbose_name="Disponible")),
                ("category", models.CharField(blank=True, max_length=30, verbose_name="Categoría")),
                ("seats", models.PositiveIntegerField(default=5, verbose_name="Asientos")),
                ("fuel_type", models.CharField(blank=True, max_length=20, verbose_name="Combustible")),
                (
                    "transmission",
                    models.CharField(
                        choices=[("automatic", "Automática"), ("manual", "Manual")],
                        default="automatic",
                        max_length=12,
                        verbose_name="Transmisión",
                    ),
                ),
                ("features", models.JSONField(blank=True, default=list, verbose_name="Características")),
                ("description", models.TextField(blank=True, verbose_name="Descripción")),
                ("location", models.CharField(blank=True, max_length=255, verbose_name="Ubicación")),
                ("images", models.JSONField(blank=True, default=list, verbose_name="Imágenes")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cars",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Propietario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Vehículo",
                "verbose_name_plural": "Vehículos",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("price_per_day__gt", 0)),
                        name="car_price_per_day_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField(verbose_name="Fecha de inicio")),
                ("end_date", models.DateField(verbose_name="Fecha de fin")),
                ("total_days", models.PositiveIntegerField(editable=False, verbose_name="Días")),
                (
                    "total_price",
                    models.DecimalField(decimal_places=2, editable=False, max_digits=10, verbose_name="Precio total"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendiente"),
                            ("approved", "Aprobada"),
                            ("rejected", "Rechazada"),
                            ("completed", "Completada"),
                            ("cancelled", "Cancelada"),
                        ],
                        default="pending",
                        max_length=12,
                        verbose_name="Estado",
                    ),
                ),
                ("message", models.TextField(blank=True, verbose_name="Mensaje")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
                (
                    "car",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="rentals.car",
                        verbose_name="Vehículo",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_owner",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Propietario",
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_renter",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Arrendatario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reserva",
                "verbose_name_plural": "Reservas",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["car", "status", "start_date", "end_date"],
                        name="booking_car_status_dates_idx",
                    ),
                    models.Index(fields=["renter", "-created_at"], name="booking_renter_created_idx"),
                    models.Index(fields=["owner", "-created_at"], name="booking_owner_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="booking_end_after_start",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="Teléfono")),
                ("phone_verified", models.BooleanField(default=False, verbose_name="Teléfono verificado")),
                (
                    "driver_license_number",
                    models.CharField(blank=True, max_length=50, verbose_name="Número de licencia"),
                ),
                (
                    "driver_license_expiry",
                    models.DateField(blank=True, null=True, verbose_name="Vencimiento de licencia"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Actualizado")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Usuario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Perfil",
                "verbose_name_plural": "Perfiles",
            },
        ),
        migrations.CreateModel(
            name="Review",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "rating",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                        verbose_name="Calificación",
                    ),
                ),
                ("comment", models.TextField(blank=True, verbose_name="Comentario")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Creado")),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="review",
                        to="rentals.booking",
                        verbose_name="Reserva",
                    ),
                ),
                (
                    "car",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reviews",
                        to="rentals.car",
                        verbose_name="Vehículo",
                    ),
                ),
                (
                    "reviewer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="car_reviews",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Autor",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reseña",
                "verbose_name_plural": "Reseñas",
                "ordering": ["-created_at"],
            },
        ),
    ]
