from django.db import migrations

CONSTRAINT_NAME = "booking_no_overlap_active"


def add_no_overlap_constraint(apps, schema_editor):
    # Exclusion constraints need PostgreSQL; other backends rely on the car row lock.
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    schema_editor.execute(
        "ALTER TABLE rentals_booking ADD CONSTRAINT "
        f"{CONSTRAINT_NAME} EXCLUDE USING gist ("
        "car_id WITH =, daterange(start_date, end_date, '[]') WITH &&"
        ") WHERE (status IN ('pending', 'approved'))"
    )


def drop_no_overlap_constraint(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(
        f"ALTER TABLE rentals_booking DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}"
    )


class Migration(migrations.Migration):
    dependencies = [
        ("rentals", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_no_overlap_constraint, drop_no_overlap_constraint),
    ]
