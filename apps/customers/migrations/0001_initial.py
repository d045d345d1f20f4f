import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("contact", models.CharField(max_length=50)),
                ("contact_normalized", models.CharField(max_length=50, unique=True)),
                ("secondary_contact", models.CharField(blank=True, max_length=50)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("join_date", models.DateTimeField(auto_now_add=True)),
                ("reliability_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "behavioral_tag",
                    models.CharField(
                        choices=[
                            ("VIP_RELIABLE", "VIP / Reliable"),
                            ("FORGETFUL", "Forgetful payer"),
                            ("STRATEGIC_DELAYER", "Strategic delayer"),
                            ("HIGH_RISK", "High risk"),
                            ("UNKNOWN", "Unknown"),
                        ],
                        default="UNKNOWN",
                        max_length=20,
                    ),
                ),
                ("ai_insight", models.TextField(blank=True)),
                ("last_analysis_date", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["join_date"],
                "indexes": [
                    models.Index(fields=["contact_normalized"], name="customer_contact_norm_idx"),
                    models.Index(fields=["name"], name="customer_name_idx"),
                ],
            },
        ),
    ]
