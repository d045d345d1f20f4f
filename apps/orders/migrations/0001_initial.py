import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.orders.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("pricing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "share_token",
                    models.CharField(
                        default=apps.orders.models.generate_share_token, editable=False, max_length=64, unique=True
                    ),
                ),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_contact", models.CharField(max_length=50)),
                ("secondary_contact", models.CharField(blank=True, max_length=50)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("rate_24k", models.DecimalField(decimal_places=2, max_digits=12)),
                ("rate_22k", models.DecimalField(decimal_places=2, max_digits=12)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("additional_charges", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("original_total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ACTIVE", "Active"),
                            ("COMPLETED", "Completed"),
                            ("OVERDUE", "Overdue"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="ACTIVE",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
                    models.Index(fields=["customer_contact"], name="order_customer_contact_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(total_amount__gte=0), name="order_total_gte_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JewelryItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("category", models.CharField(max_length=80)),
                (
                    "metal_color",
                    models.CharField(
                        choices=[("Yellow Gold", "Yellow Gold"), ("Rose Gold", "Rose Gold"), ("White Gold", "White Gold")],
                        default="Yellow Gold",
                        max_length=16,
                    ),
                ),
                ("gross_weight", models.DecimalField(decimal_places=3, max_digits=10)),
                ("net_weight", models.DecimalField(decimal_places=3, max_digits=10)),
                ("wastage_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("making_charges_per_gram", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("stone_charges", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                (
                    "purity",
                    models.CharField(choices=[("22K", "22K"), ("24K", "24K"), ("18K", "18K")], default="22K", max_length=4),
                ),
                ("customization_details", models.TextField(blank=True)),
                ("base_metal_value", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("wastage_value", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_labor_value", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("final_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                (
                    "production_status",
                    models.CharField(
                        choices=[
                            ("DESIGNING", "Designing"),
                            ("PRODUCTION", "Production"),
                            ("QC", "Quality check"),
                            ("READY", "Ready"),
                            ("DELIVERED", "Delivered"),
                        ],
                        default="DESIGNING",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order"
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(net_weight__gt=0), name="item_net_weight_gt_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("UPI", "UPI"),
                            ("CARD", "Card"),
                            ("BANK_TRANSFER", "Bank transfer"),
                            ("CHEQUE", "Cheque"),
                        ],
                        default="CASH",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField()),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="orders.order"
                    ),
                ),
            ],
            options={
                "ordering": ["paid_at", "created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name="payment_amount_gt_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentPlan",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "plan_type",
                    models.CharField(
                        choices=[("PRE_CREATED", "Pre-created"), ("MANUAL", "Manual")],
                        default="PRE_CREATED",
                        max_length=16,
                    ),
                ),
                ("months", models.PositiveIntegerField(default=0)),
                ("interest_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("advance_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("gold_rate_protection", models.BooleanField(default=True)),
                ("protection_rate_booked", models.DecimalField(decimal_places=2, max_digits=12)),
                ("protection_limit", models.DecimalField(decimal_places=2, max_digits=12)),
                ("protection_deadline", models.DateField(blank=True, null=True)),
                (
                    "protection_status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("WARNING", "Warning"), ("LAPSED", "Lapsed")],
                        default="ACTIVE",
                        max_length=16,
                    ),
                ),
                ("grace_period_end_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="plan", to="orders.order"
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="pricing.paymentplantemplate",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["gold_rate_protection", "protection_status"], name="plan_protection_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Milestone",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sequence", models.PositiveIntegerField()),
                ("due_date", models.DateField()),
                ("target_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("cumulative_target", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("PAID", "Paid"), ("PARTIAL", "Partial")],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("warning_count", models.PositiveIntegerField(default=0)),
                ("last_warning_sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="milestones",
                        to="orders.paymentplan",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "indexes": [
                    models.Index(fields=["status", "due_date"], name="milestone_status_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=["plan", "sequence"], name="milestone_plan_sequence_uniq"),
                ],
            },
        ),
    ]
