import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12, **kwargs)


ORDER_STATUSES = [
    ("pending",    "Pending"),
    ("confirmed",  "Confirmed"),
    ("sourcing",   "Sourcing"),
    ("packing",    "Packing"),
    ("in_transit", "In transit"),
    ("customs",    "Customs"),
    ("delivered",  "Delivered"),
    ("closed",     "Closed"),
    ("cancelled",  "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("quotes", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
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
                ("order_number",   models.CharField(db_index=True, max_length=20, unique=True)),
                ("status",         models.CharField(choices=ORDER_STATUSES, default="pending", max_length=12)),
                ("customer_name",    models.CharField(max_length=120)),
                ("customer_email",   models.EmailField(max_length=254)),
                ("customer_phone",   models.CharField(blank=True, max_length=30)),
                ("customer_company", models.CharField(blank=True, max_length=120)),
                ("deposit_amount",   money()),
                ("balance_due",      money()),
                ("shipping_method",  models.CharField(blank=True, max_length=40)),
                ("origin_city",      models.CharField(blank=True, max_length=80)),
                ("destination_city", models.CharField(blank=True, max_length=80)),
                ("tracking_id",          models.CharField(blank=True, db_index=True, max_length=60)),
                ("vessel_name",          models.CharField(blank=True, max_length=80)),
                ("shipment_destination", models.CharField(blank=True, max_length=120)),
                ("estimated_delivery",   models.DateField(blank=True, null=True)),
                ("notes",      models.TextField(blank=True)),
                ("closed_at",  models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="orders",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("quote", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="order",
                    to="quotes.quote",
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="OrderItem",
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
                ("order",       models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items",
                    to="orders.order",
                )),
            ],
            options={"ordering": ["id"], "abstract": False},
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                ("id",         models.BigAutoField(auto_created=True, primary_key=True, serialize=False)),
                ("sequence",   models.PositiveIntegerField()),
                ("status",     models.CharField(choices=ORDER_STATUSES, max_length=12)),
                ("note",       models.TextField(blank=True)),
                ("actor",      models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order",      models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="history",
                    to="orders.order",
                )),
            ],
            options={"ordering": ["order", "sequence"]},
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["status"], name="order_status_idx"),
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["customer_email"], name="order_customer_email_idx"),
        ),
        migrations.AddConstraint(
            model_name="orderstatushistory",
            constraint=models.UniqueConstraint(fields=("order", "sequence"), name="uniq_order_history_sequence"),
        ),
    ]
