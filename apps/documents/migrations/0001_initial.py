import django.core.serializers.json
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Document",
            fields=[
                ("id",              models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("document_number", models.CharField(db_index=True, max_length=20, unique=True)),
                ("doc_type",        models.CharField(
                    choices=[
                        ("invoice",        "Invoice"),
                        ("receipt",        "Receipt"),
                        ("purchase_order", "Purchase order"),
                    ],
                    max_length=20,
                )),
                ("snapshot",   models.JSONField(encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("issued_by",  models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order",      models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="documents",
                    to="orders.order",
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
    ]
