import secrets
import uuid
from decimal import Decimal

from django.db import models


def generate_share_token():
    return secrets.token_urlsafe(16)


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"
    OVERDUE = "OVERDUE", "Overdue"
    CANCELLED = "CANCELLED", "Cancelled"


class Purity(models.TextChoices):
    K22 = "22K", "22K"
    K24 = "24K", "24K"
    K18 = "18K", "18K"


class MetalColor(models.TextChoices):
    YELLOW = "Yellow Gold", "Yellow Gold"
    ROSE = "Rose Gold", "Rose Gold"
    WHITE = "White Gold", "White Gold"


class ProductionStatus(models.TextChoices):
    DESIGNING = "DESIGNING", "Designing"
    PRODUCTION = "PRODUCTION", "Production"
    QUALITY_CHECK = "QC", "Quality check"
    READY = "READY", "Ready"
    DELIVERED = "DELIVERED", "Delivered"


class PlanType(models.TextChoices):
    PRE_CREATED = "PRE_CREATED", "Pre-created"
    MANUAL = "MANUAL", "Manual"


class ProtectionStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    WARNING = "WARNING", "Warning"
    LAPSED = "LAPSED", "Lapsed"


class MilestoneStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    PARTIAL = "PARTIAL", "Partial"


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    UPI = "UPI", "UPI"
    CARD = "CARD", "Card"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"
    CHEQUE = "CHEQUE", "Cheque"


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    share_token = models.CharField(max_length=64, unique=True, default=generate_share_token, editable=False)
    customer_name = models.CharField(max_length=255)
    customer_contact = models.CharField(max_length=50)
    secondary_contact = models.CharField(max_length=50, blank=True)
    customer_email = models.EmailField(blank=True)
    rate_24k = models.DecimalField(max_digits=12, decimal_places=2)
    rate_22k = models.DecimalField(max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    additional_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    original_total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.ACTIVE)
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["customer_contact"], name="order_customer_contact_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(total_amount__gte=0), name="order_total_gte_zero"),
        ]

    @property
    def total_paid(self):
        return sum((payment.amount for payment in self.payments.all()), Decimal("0.00")).quantize(Decimal("0.01"))

    @property
    def balance_due(self):
        return (self.total_amount - self.total_paid).quantize(Decimal("0.01"))

    @property
    def total_grams(self):
        return sum((item.net_weight for item in self.items.all()), Decimal("0"))

    def __str__(self):
        return f"Order {str(self.id)[-6:]} - {self.customer_name}"


class JewelryItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    category = models.CharField(max_length=80)
    metal_color = models.CharField(max_length=16, choices=MetalColor.choices, default=MetalColor.YELLOW)
    gross_weight = models.DecimalField(max_digits=10, decimal_places=3)
    net_weight = models.DecimalField(max_digits=10, decimal_places=3)
    wastage_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    making_charges_per_gram = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    stone_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    purity = models.CharField(max_length=4, choices=Purity.choices, default=Purity.K22)
    customization_details = models.TextField(blank=True)
    base_metal_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    wastage_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_labor_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    production_status = models.CharField(
        max_length=16, choices=ProductionStatus.choices, default=ProductionStatus.DESIGNING
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(net_weight__gt=0), name="item_net_weight_gt_zero"),
        ]


class PaymentRecord(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    paid_at = models.DateTimeField()
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["paid_at", "created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="payment_amount_gt_zero"),
        ]


class PaymentPlan(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="plan")
    plan_type = models.CharField(max_length=16, choices=PlanType.choices, default=PlanType.PRE_CREATED)
    template = models.ForeignKey("pricing.PaymentPlanTemplate", on_delete=models.SET_NULL, null=True, blank=True)
    months = models.PositiveIntegerField(default=0)
    interest_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    advance_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    gold_rate_protection = models.BooleanField(default=True)
    protection_rate_booked = models.DecimalField(max_digits=12, decimal_places=2)
    protection_limit = models.DecimalField(max_digits=12, decimal_places=2)
    protection_deadline = models.DateField(null=True, blank=True)
    protection_status = models.CharField(
        max_length=16, choices=ProtectionStatus.choices, default=ProtectionStatus.ACTIVE
    )
    grace_period_end_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["gold_rate_protection", "protection_status"], name="plan_protection_idx"),
        ]

    @property
    def protection_threshold(self):
        return self.protection_rate_booked + self.protection_limit


class Milestone(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plan = models.ForeignKey(PaymentPlan, on_delete=models.CASCADE, related_name="milestones")
    sequence = models.PositiveIntegerField()
    due_date = models.DateField()
    target_amount = models.DecimalField(max_digits=12, decimal_places=2)
    cumulative_target = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=MilestoneStatus.choices, default=MilestoneStatus.PENDING)
    warning_count = models.PositiveIntegerField(default=0)
    last_warning_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(fields=["plan", "sequence"], name="milestone_plan_sequence_uniq"),
        ]
        indexes = [
            models.Index(fields=["status", "due_date"], name="milestone_status_due_idx"),
        ]
