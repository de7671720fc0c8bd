import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

import apps.quotes.models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Quote",
            fields=[
                ("subtotal",       money()),
                ("shipping_cost",  money(validators=[django.core.validators.MinValueValidator(0)])),
                ("insurance_cost", money(validators=[django.core.validators.MinValueValidator(0)])),
                ("customs_duty",   money(validators=[django.core.validators.MinValueValidator(0)])),
                ("discount",       money(validators=[django.core.validators.MinValueValidator(0)])),
                ("tax_amount",     money(validators=[django.core.validators.MinValueValidator(0)])),
                ("total_amount",   money()),
                ("currency",       models.CharField(default="USD", max_length=3)),
                ("id",             models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quote_number",   models.CharField(db_index=True, max_length=20, unique=True)),
                ("status",         models.CharField(
                    choices=[
                        ("draft",     "Draft"),
                        ("sent",      "Sent"),
                        ("accepted",  "Accepted"),
                        ("rejected",  "Rejected"),
                        ("expired",   "Expired"),
                        ("converted", "Converted"),
                    ],
                    default="draft",
                    max_length=10,
                )),
                ("customer_name",    models.CharField(max_length=120)),
                ("customer_email",   models.EmailField(max_length=254)),
                ("customer_phone",   models.CharField(blank=True, max_length=30)),
                ("customer_company", models.CharField(blank=True, max_length=120)),
                ("deposit_percent",  models.DecimalField(
                    decimal_places=2, default=70, max_digits=5,
                    validators=[
                        django.core.validators.MinValueValidator(0),
                        django.core.validators.MaxValueValidator(100),
                    ],
                )),
                ("shipping_method",   models.CharField(blank=True, max_length=40)),
                ("delivery_type",     models.CharField(blank=True, max_length=20)),
                ("destination_id",    models.CharField(blank=True, max_length=30)),
                ("origin_city",       models.CharField(default="Shenzhen", max_length=80)),
                ("destination_city",  models.CharField(blank=True, max_length=80)),
                ("estimated_transit", models.CharField(blank=True, max_length=40)),
                ("notes",             models.TextField(blank=True)),
                ("valid_until",       models.DateTimeField(default=apps.quotes.models.default_valid_until)),
                ("sent_at",           models.DateTimeField(blank=True, null=True)),
                ("created_at",        models.DateTimeField(auto_now_add=True)),
                ("updated_at",        models.DateTimeField(auto_now=True)),
                ("customer",          models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="quotes",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="QuoteItem",
            fields=[
                ("id",          models.BigAutoField(auto_created=True, primary_key=True, serialize=False)),
                ("name",        models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("unit",        models.CharField(default="piece", max_length=20)),
                ("quantity",    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("unit_price",  models.DecimalField(
                    decimal_places=2, max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)],
                )),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("length_cm",   models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("width_cm",    models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("height_cm",   models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("weight_kg",   models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("quote",       models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items",
                    to="quotes.quote",
                )),
            ],
            options={"ordering": ["id"], "abstract": False},
        ),
        migrations.AddIndex(
            model_name="quote",
            index=models.Index(fields=["status"], name="quote_status_idx"),
        ),
        migrations.AddIndex(
            model_name="quote",
            index=models.Index(fields=["customer_email"], name="quote_customer_email_idx"),
        ),
        migrations.AddIndex(
            model_name="quote",
            index=models.Index(fields=["created_at"], name="quote_created_idx"),
        ),
    ]
