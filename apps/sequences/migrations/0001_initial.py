from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SequenceCounter",
            fields=[
                ("id",         models.BigAutoField(auto_created=True, primary_key=True, serialize=False)),
                ("prefix",     models.CharField(max_length=8)),
                ("year",       models.PositiveSmallIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.AddConstraint(
            model_name="sequencecounter",
            constraint=models.UniqueConstraint(fields=("prefix", "year"), name="uniq_sequence_prefix_year"),
        ),
    ]
