import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MessageLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("provider_message_id", models.CharField(blank=True, max_length=128)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("phone_number", models.CharField(max_length=32)),
                ("message", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("QUEUED", "Queued"),
                            ("SENT", "Sent"),
                            ("DELIVERED", "Delivered"),
                            ("READ", "Read"),
                            ("FAILED", "Failed"),
                        ],
                        default="SENT",
                        max_length=16,
                    ),
                ),
                (
                    "message_type",
                    models.CharField(
                        choices=[
                            ("TEMPLATE", "Template"),
                            ("CUSTOM", "Custom"),
                            ("AI_RECOVERY", "AI recovery"),
                            ("INBOUND", "Inbound"),
                            ("SYSTEM_ALERT", "System alert"),
                        ],
                        default="CUSTOM",
                        max_length=16,
                    ),
                ),
                ("context", models.CharField(blank=True, max_length=120)),
                (
                    "direction",
                    models.CharField(
                        choices=[("outbound", "Outbound"), ("inbound", "Inbound")], default="outbound", max_length=10
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["phone_number", "created_at"], name="msglog_phone_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MessageTemplate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=512, unique=True)),
                ("content", models.TextField()),
                (
                    "tactic",
                    models.CharField(
                        choices=[
                            ("LOSS_AVERSION", "Loss aversion"),
                            ("SOCIAL_PROOF", "Social proof"),
                            ("AUTHORITY", "Authority"),
                            ("RECIPROCITY", "Reciprocity"),
                            ("URGENCY", "Urgency"),
                            ("EMPATHY", "Empathy"),
                            ("MARKET_PANIC", "Market panic"),
                            ("INVENTORY_RELEASE", "Inventory release"),
                        ],
                        default="EMPATHY",
                        max_length=20,
                    ),
                ),
                (
                    "target_profile",
                    models.CharField(
                        choices=[
                            ("VIP", "VIP"),
                            ("REGULAR", "Regular"),
                            ("FORGETFUL", "Forgetful"),
                            ("HIGH_RISK", "High risk"),
                        ],
                        default="REGULAR",
                        max_length=16,
                    ),
                ),
                ("is_ai_generated", models.BooleanField(default=False)),
                ("performance_rating", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("UTILITY", "Utility"),
                            ("MARKETING", "Marketing"),
                            ("AUTHENTICATION", "Authentication"),
                        ],
                        default="UTILITY",
                        max_length=16,
                    ),
                ),
                (
                    "app_group",
                    models.CharField(
                        choices=[
                            ("PAYMENT_COLLECTION", "Payment collection"),
                            ("ORDER_STATUS", "Order status"),
                            ("MARKETING_PROMO", "Marketing promo"),
                            ("GENERAL_SUPPORT", "General support"),
                            ("SYSTEM_NOTIFICATIONS", "System notifications"),
                            ("UNCATEGORIZED", "Uncategorized"),
                        ],
                        default="UNCATEGORIZED",
                        max_length=24,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("APPROVED", "Approved"),
                            ("REJECTED", "Rejected"),
                            ("PENDING", "Pending"),
                            ("PAUSED", "Paused"),
                            ("DISABLED", "Disabled"),
                        ],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("variable_examples", models.JSONField(blank=True, default=list)),
                ("structure", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="OutboundMessage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("ORDER_CONFIRMATION", "Order confirmation"),
                            ("PAYMENT_RECEIPT", "Payment receipt"),
                            ("PROTECTION_WARNING", "Protection warning"),
                            ("PROTECTION_LAPSE", "Protection lapse"),
                        ],
                        max_length=24,
                    ),
                ),
                (
                    "channel",
                    models.CharField(choices=[("TEMPLATE", "Template"), ("TEXT", "Text")], max_length=10),
                ),
                ("phone_number", models.CharField(max_length=50)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("template_name", models.CharField(blank=True, max_length=512)),
                ("language", models.CharField(default="en_US", max_length=10)),
                ("variables", models.JSONField(blank=True, default=list)),
                ("text", models.TextField(blank=True)),
                ("context", models.CharField(blank=True, max_length=120)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("DISPATCHING", "Dispatching"),
                            ("SENT", "Sent"),
                            ("FAILED", "Failed"),
                        ],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("dispatched_at", models.DateTimeField(blank=True, null=True)),
                (
                    "message_log",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="messaging.messagelog",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="outbound_messages",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="outbound_status_created_idx"),
                ],
            },
        ),
    ]
