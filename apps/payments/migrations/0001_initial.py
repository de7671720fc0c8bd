import django.db.models.deletion
import uuid
from django.db import migrations, models

import apps.payments.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        ("quotes", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id",             models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("payment_number", models.CharField(db_index=True, max_length=20, unique=True)),
                ("amount",         models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency",       models.CharField(default="USD", max_length=3)),
                ("method",         models.CharField(
                    choices=[
                        ("airwallex",     "Airwallex"),
                        ("sandbox",       "Sandbox"),
                        ("bank_transfer", "Bank transfer"),
                        ("wire",          "Wire"),
                        ("cash",          "Cash"),
                        ("other",         "Other"),
                    ],
                    default="bank_transfer",
                    max_length=20,
                )),
                ("status",         models.CharField(
                    choices=[
                        ("processing", "Processing"),
                        ("completed",  "Completed"),
                        ("failed",     "Failed"),
                        ("refunded",   "Refunded"),
                    ],
                    default="processing",
                    max_length=10,
                )),
                ("payment_type",   models.CharField(
                    choices=[("deposit", "Deposit"), ("balance", "Balance"), ("full", "Full")],
                    default="deposit",
                    max_length=10,
                )),
                ("external_id",    models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ("notes",          models.TextField(blank=True)),
                ("paid_at",        models.DateTimeField(blank=True, null=True)),
                ("failed_at",      models.DateTimeField(blank=True, null=True)),
                ("refunded_at",    models.DateTimeField(blank=True, null=True)),
                ("created_at",     models.DateTimeField(auto_now_add=True)),
                ("updated_at",     models.DateTimeField(auto_now=True)),
                ("order",          models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments",
                    to="orders.order",
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="PaymentLink",
            fields=[
                ("id",          models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("token",       models.CharField(default=apps.payments.models.generate_token, max_length=64, unique=True)),
                ("amount",      models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency",    models.CharField(default="USD", max_length=3)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("status",      models.CharField(
                    choices=[("active", "Active"), ("used", "Used"), ("expired", "Expired")],
                    default="active",
                    max_length=10,
                )),
                ("expires_at",  models.DateTimeField()),
                ("used_at",     models.DateTimeField(blank=True, null=True)),
                ("created_at",  models.DateTimeField(auto_now_add=True)),
                ("payment",     models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="link",
                    to="payments.payment",
                )),
                ("quote",       models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="payment_link",
                    to="quotes.quote",
                )),
            ],
        ),
        migrations.AddIndex(
            model_name="payment",
            index=models.Index(fields=["status"], name="payment_status_idx"),
        ),
        migrations.AddIndex(
            model_name="paymentlink",
            index=models.Index(fields=["status", "expires_at"], name="paylink_status_expiry_idx"),
        ),
    ]
