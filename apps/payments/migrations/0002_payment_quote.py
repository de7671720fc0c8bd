import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
        ("quotes", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="payment",
            name="quote",
            field=models.ForeignKey(
                blank=True, null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="checkout_payments", to="quotes.quote",
            ),
        ),
    ]
