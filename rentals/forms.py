"""
Forms for the rentals application.

The JSON endpoints bind decoded request bodies to these forms so that
dates, ids and free text are validated the same way Django validates
any other form input. ``CarForm`` is a ModelForm over the owner-editable
listing fields.
"""

from __future__ import annotations

from django import forms

from .models import Booking, Car


class AvailabilityForm(forms.Form):
    start_date = forms.DateField(label='Fecha de inicio')
    end_date = forms.DateField(label='Fecha de fin')

    def clean(self):
        cleaned = super().clean()
        start_date = cleaned.get('start_date')
        end_date = cleaned.get('end_date')
        if start_date and end_date and end_date <= start_date:
            raise forms.ValidationError('La fecha de fin debe ser posterior a la de inicio.')
        return cleaned


class BookingRequestForm(forms.Form):
    """Renter's booking request; date order is left to the booking service."""

    car_id = forms.IntegerField(min_value=1, label='Vehículo')
    start_date = forms.DateField(label='Fecha de inicio')
    end_date = forms.DateField(label='Fecha de fin')
    message = forms.CharField(required=False, max_length=1000, label='Mensaje')


class BookingStatusForm(forms.Form):
    status = forms.ChoiceField(choices=Booking.Status.choices, label='Estado')


class ReviewForm(forms.Form):
    rating = forms.IntegerField(label='Calificación')
    comment = forms.CharField(required=False, max_length=2000, label='Comentario')


class CarForm(forms.ModelForm):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            if isinstance(field.widget, forms.Select):
                field.widget.attrs.setdefault("class", "form-select")
            elif isinstance(field.widget, forms.CheckboxInput):
                field.widget.attrs.setdefault("class", "form-check-input")
            else:
                field.widget.attrs.setdefault("class", "form-control")

    class Meta:
        model = Car
        fields = [
            'make', 'model', 'year', 'price_per_day', 'is_available', 'category', 'seats',
            'fuel_type', 'transmission', 'features', 'description', 'location', 'images',
        ]
        widgets = {
            'year': forms.NumberInput(attrs={'min': 1900, 'max': 2100}),
            'price_per_day': forms.NumberInput(attrs={'step': '0.01'}),
        }

    def clean_year(self):
        year = self.cleaned_data['year']
        if not 1900 <= year <= 2100:
            raise forms.ValidationError('Año fuera de rango.')
        return year

    def _clean_string_list(self, name: str) -> list[str]:
        value = self.cleaned_data.get(name)
        if value in (None, ''):
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise forms.ValidationError('Debe ser una lista de textos.')
        return value

    def clean_features(self):
        return self._clean_string_list('features')

    def clean_images(self):
        return self._clean_string_list('images')


def first_error(form: forms.Form) -> str:
    """Flatten a bound form's errors into one message for JSON responses."""
    for field, errors in form.errors.items():
        if field == '__all__':
            return errors[0]
        label = form.fields[field].label if field in form.fields else field
        return f"{label}: {errors[0]}"
    return 'Datos inválidos.'
