import uuid
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StoreSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("current_gold_rate_24k", models.DecimalField(decimal_places=2, default=Decimal("7200.00"), max_digits=12)),
                ("current_gold_rate_22k", models.DecimalField(decimal_places=2, default=Decimal("6600.00"), max_digits=12)),
                ("default_tax_rate", models.DecimalField(decimal_places=2, default=Decimal("3.00"), max_digits=5)),
                ("gold_rate_protection_max", models.DecimalField(decimal_places=2, default=Decimal("500.00"), max_digits=12)),
                ("whatsapp_phone_number_id", models.CharField(blank=True, max_length=64)),
                ("whatsapp_business_account_id", models.CharField(blank=True, max_length=64)),
                ("whatsapp_business_token", models.TextField(blank=True)),
                ("rate_updated_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name_plural": "store settings",
            },
        ),
        migrations.CreateModel(
            name="PaymentPlanTemplate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=120, unique=True)),
                ("months", models.PositiveIntegerField()),
                ("interest_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("advance_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("enabled", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["months", "name"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(months__gt=0), name="plan_template_months_gt_zero"),
                    models.CheckConstraint(
                        condition=models.Q(advance_percentage__gte=0, advance_percentage__lte=100),
                        name="plan_template_advance_pct_range",
                    ),
                ],
            },
        ),
    ]
