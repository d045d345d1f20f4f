from decimal import Decimal

from rest_framework import serializers

from apps.common.money import quantize
from apps.orders.models import (
    JewelryItem,
    Milestone,
    Order,
    PaymentMethod,
    PaymentPlan,
    PaymentRecord,
    PlanType,
    ProductionStatus,
)
from apps.pricing.models import PaymentPlanTemplate


class JewelryItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = JewelryItem
        fields = [
            "id",
            "category",
            "metal_color",
            "gross_weight",
            "net_weight",
            "wastage_percentage",
            "making_charges_per_gram",
            "stone_charges",
            "purity",
            "customization_details",
            "base_metal_value",
            "wastage_value",
            "total_labor_value",
            "tax_amount",
            "final_amount",
            "production_status",
        ]
        read_only_fields = [
            "id",
            "base_metal_value",
            "wastage_value",
            "total_labor_value",
            "tax_amount",
            "final_amount",
            "production_status",
        ]

    def validate(self, attrs):
        if attrs["net_weight"] <= 0:
            raise serializers.ValidationError({"net_weight": "Net weight must be greater than 0."})
        if attrs["net_weight"] > attrs["gross_weight"]:
            raise serializers.ValidationError({"net_weight": "Net weight cannot exceed gross weight."})
        for field in ("wastage_percentage", "making_charges_per_gram", "stone_charges"):
            if attrs.get(field, Decimal("0")) < 0:
                raise serializers.ValidationError({field: "Must not be negative."})
        return attrs


class MilestoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = Milestone
        fields = [
            "id",
            "sequence",
            "due_date",
            "target_amount",
            "cumulative_target",
            "status",
            "warning_count",
            "last_warning_sent_at",
        ]
        read_only_fields = fields


class PaymentRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRecord
        fields = ["id", "amount", "method", "paid_at", "note", "created_at"]
        read_only_fields = fields


class PaymentPlanSerializer(serializers.ModelSerializer):
    milestones = MilestoneSerializer(many=True, read_only=True)
    template_name = serializers.CharField(source="template.name", read_only=True, default=None)

    class Meta:
        model = PaymentPlan
        fields = [
            "plan_type",
            "template",
            "template_name",
            "months",
            "interest_percentage",
            "advance_percentage",
            "gold_rate_protection",
            "protection_rate_booked",
            "protection_limit",
            "protection_deadline",
            "protection_status",
            "grace_period_end_at",
            "milestones",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = JewelryItemSerializer(many=True, read_only=True)
    payments = PaymentRecordSerializer(many=True, read_only=True)
    plan = PaymentPlanSerializer(read_only=True)
    total_paid = serializers.SerializerMethodField()
    balance_due = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "share_token",
            "customer_name",
            "customer_contact",
            "secondary_contact",
            "customer_email",
            "rate_24k",
            "rate_22k",
            "tax_rate",
            "additional_charges",
            "total_amount",
            "original_total_amount",
            "status",
            "created_by",
            "created_at",
            "updated_at",
            "items",
            "payments",
            "plan",
            "total_paid",
            "balance_due",
        ]
        read_only_fields = fields

    def get_total_paid(self, obj):
        return str(obj.total_paid)

    def get_balance_due(self, obj):
        return str(obj.balance_due)


class PublicOrderSerializer(OrderSerializer):
    """Customer-facing projection served on the share link."""

    class Meta(OrderSerializer.Meta):
        fields = [
            "customer_name",
            "rate_22k",
            "additional_charges",
            "total_amount",
            "original_total_amount",
            "status",
            "created_at",
            "items",
            "payments",
            "plan",
            "total_paid",
            "balance_due",
        ]
        read_only_fields = fields


class ManualMilestoneSerializer(serializers.Serializer):
    due_date = serializers.DateField()
    cumulative_target = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))


class PlanInputSerializer(serializers.Serializer):
    plan_type = serializers.ChoiceField(choices=PlanType.choices, default=PlanType.PRE_CREATED)
    template = serializers.PrimaryKeyRelatedField(
        queryset=PaymentPlanTemplate.objects.filter(enabled=True), required=False, allow_null=True
    )
    months = serializers.IntegerField(required=False, min_value=1, max_value=120)
    interest_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=Decimal("0"))
    advance_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, min_value=Decimal("0"), max_value=Decimal("100")
    )
    gold_rate_protection = serializers.BooleanField(default=True)
    protection_rate_booked = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.01"))
    protection_limit = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0"))
    milestones = ManualMilestoneSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs["plan_type"] == PlanType.MANUAL:
            if not attrs.get("milestones"):
                raise serializers.ValidationError({"milestones": "Manual plans need at least one milestone."})
        elif not attrs.get("template") and not attrs.get("months"):
            raise serializers.ValidationError({"months": "Choose a plan template or the number of months."})
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    customer_contact = serializers.CharField(max_length=50)
    secondary_contact = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    items = JewelryItemSerializer(many=True)
    additional_charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0"))
    rate_24k = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.01"))
    rate_22k = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.01"))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=Decimal("0"))
    plan = PlanInputSerializer()

    def validate_customer_contact(self, value):
        if not any(ch.isdigit() for ch in value):
            raise serializers.ValidationError("Contact must contain a phone number.")
        return value.strip()

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Add at least one item.")
        return value


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.UPI)
    paid_at = serializers.DateTimeField(required=False)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Payment amount must be greater than 0.")
        return quantize(value)


class ItemStatusSerializer(serializers.Serializer):
    item = serializers.UUIDField()
    production_status = serializers.ChoiceField(choices=ProductionStatus.choices)


class ContactUpdateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255, required=False)
    customer_contact = serializers.CharField(max_length=50, required=False)
    secondary_contact = serializers.CharField(max_length=50, required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class CollectionEntrySerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    customer_name = serializers.CharField()
    customer_contact = serializers.CharField()
    sequence = serializers.IntegerField(allow_null=True)
    due_date = serializers.DateField(allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    status = serializers.CharField()
    paid_at = serializers.DateTimeField(allow_null=True)
    method = serializers.CharField(allow_blank=True)
