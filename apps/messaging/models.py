import uuid

from django.db import models


class MessageDirection(models.TextChoices):
    OUTBOUND = "outbound", "Outbound"
    INBOUND = "inbound", "Inbound"


class MessageType(models.TextChoices):
    TEMPLATE = "TEMPLATE", "Template"
    CUSTOM = "CUSTOM", "Custom"
    AI_RECOVERY = "AI_RECOVERY", "AI recovery"
    INBOUND = "INBOUND", "Inbound"
    SYSTEM_ALERT = "SYSTEM_ALERT", "System alert"


class MessageStatus(models.TextChoices):
    QUEUED = "QUEUED", "Queued"
    SENT = "SENT", "Sent"
    DELIVERED = "DELIVERED", "Delivered"
    READ = "READ", "Read"
    FAILED = "FAILED", "Failed"


class Tactic(models.TextChoices):
    LOSS_AVERSION = "LOSS_AVERSION", "Loss aversion"
    SOCIAL_PROOF = "SOCIAL_PROOF", "Social proof"
    AUTHORITY = "AUTHORITY", "Authority"
    RECIPROCITY = "RECIPROCITY", "Reciprocity"
    URGENCY = "URGENCY", "Urgency"
    EMPATHY = "EMPATHY", "Empathy"
    MARKET_PANIC = "MARKET_PANIC", "Market panic"
    INVENTORY_RELEASE = "INVENTORY_RELEASE", "Inventory release"


class RiskProfile(models.TextChoices):
    VIP = "VIP", "VIP"
    REGULAR = "REGULAR", "Regular"
    FORGETFUL = "FORGETFUL", "Forgetful"
    HIGH_RISK = "HIGH_RISK", "High risk"


class TemplateCategory(models.TextChoices):
    UTILITY = "UTILITY", "Utility"
    MARKETING = "MARKETING", "Marketing"
    AUTHENTICATION = "AUTHENTICATION", "Authentication"


class AppGroup(models.TextChoices):
    PAYMENT_COLLECTION = "PAYMENT_COLLECTION", "Payment collection"
    ORDER_STATUS = "ORDER_STATUS", "Order status"
    MARKETING_PROMO = "MARKETING_PROMO", "Marketing promo"
    GENERAL_SUPPORT = "GENERAL_SUPPORT", "General support"
    SYSTEM_NOTIFICATIONS = "SYSTEM_NOTIFICATIONS", "System notifications"
    UNCATEGORIZED = "UNCATEGORIZED", "Uncategorized"


class TemplateStatus(models.TextChoices):
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"
    PENDING = "PENDING", "Pending"
    PAUSED = "PAUSED", "Paused"
    DISABLED = "DISABLED", "Disabled"


class OutboundKind(models.TextChoices):
    ORDER_CONFIRMATION = "ORDER_CONFIRMATION", "Order confirmation"
    PAYMENT_RECEIPT = "PAYMENT_RECEIPT", "Payment receipt"
    PROTECTION_WARNING = "PROTECTION_WARNING", "Protection warning"
    PROTECTION_LAPSE = "PROTECTION_LAPSE", "Protection lapse"


class OutboundChannel(models.TextChoices):
    TEMPLATE = "TEMPLATE", "Template"
    TEXT = "TEXT", "Text"


class OutboundStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    DISPATCHING = "DISPATCHING", "Dispatching"
    SENT = "SENT", "Sent"
    FAILED = "FAILED", "Failed"


class MessageLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    provider_message_id = models.CharField(max_length=128, blank=True)
    customer_name = models.CharField(max_length=255, blank=True)
    phone_number = models.CharField(max_length=32)
    message = models.TextField()
    status = models.CharField(max_length=16, choices=MessageStatus.choices, default=MessageStatus.SENT)
    message_type = models.CharField(max_length=16, choices=MessageType.choices, default=MessageType.CUSTOM)
    context = models.CharField(max_length=120, blank=True)
    direction = models.CharField(max_length=10, choices=MessageDirection.choices, default=MessageDirection.OUTBOUND)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["phone_number", "created_at"], name="msglog_phone_created_idx"),
        ]


class MessageTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=512, unique=True)
    content = models.TextField()
    tactic = models.CharField(max_length=20, choices=Tactic.choices, default=Tactic.EMPATHY)
    target_profile = models.CharField(max_length=16, choices=RiskProfile.choices, default=RiskProfile.REGULAR)
    is_ai_generated = models.BooleanField(default=False)
    performance_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    category = models.CharField(max_length=16, choices=TemplateCategory.choices, default=TemplateCategory.UTILITY)
    app_group = models.CharField(max_length=24, choices=AppGroup.choices, default=AppGroup.UNCATEGORIZED)
    status = models.CharField(max_length=16, choices=TemplateStatus.choices, default=TemplateStatus.PENDING)
    variable_examples = models.JSONField(default=list, blank=True)
    structure = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class OutboundMessage(models.Model):
    """Notification intent written in the same transaction as its cause.

    Rows move PENDING -> DISPATCHING -> SENT/FAILED exactly once.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, null=True, blank=True, related_name="outbound_messages")
    kind = models.CharField(max_length=24, choices=OutboundKind.choices)
    channel = models.CharField(max_length=10, choices=OutboundChannel.choices)
    phone_number = models.CharField(max_length=50)
    customer_name = models.CharField(max_length=255, blank=True)
    template_name = models.CharField(max_length=512, blank=True)
    language = models.CharField(max_length=10, default="en_US")
    variables = models.JSONField(default=list, blank=True)
    text = models.TextField(blank=True)
    context = models.CharField(max_length=120, blank=True)
    status = models.CharField(max_length=16, choices=OutboundStatus.choices, default=OutboundStatus.PENDING)
    error = models.TextField(blank=True)
    message_log = models.ForeignKey(MessageLog, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="outbound_status_created_idx"),
        ]
