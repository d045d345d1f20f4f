from rest_framework import serializers

from apps.pricing.models import PaymentPlanTemplate, StoreSettings


class StoreSettingsSerializer(serializers.ModelSerializer):
    whatsapp_business_token = serializers.CharField(write_only=True, required=False, allow_blank=True)
    has_whatsapp_credentials = serializers.BooleanField(read_only=True)

    class Meta:
        model = StoreSettings
        fields = [
            "current_gold_rate_24k",
            "current_gold_rate_22k",
            "default_tax_rate",
            "gold_rate_protection_max",
            "whatsapp_phone_number_id",
            "whatsapp_business_account_id",
            "whatsapp_business_token",
            "has_whatsapp_credentials",
            "rate_updated_at",
            "updated_at",
        ]
        read_only_fields = ["rate_updated_at", "updated_at"]

    def validate(self, attrs):
        for field in ("current_gold_rate_24k", "current_gold_rate_22k"):
            if field in attrs and attrs[field] <= 0:
                raise serializers.ValidationError({field: "Rate must be greater than 0."})
        if "default_tax_rate" in attrs and not (0 <= attrs["default_tax_rate"] <= 100):
            raise serializers.ValidationError({"default_tax_rate": "Tax rate must be between 0 and 100."})
        if "gold_rate_protection_max" in attrs and attrs["gold_rate_protection_max"] < 0:
            raise serializers.ValidationError({"gold_rate_protection_max": "Protection limit cannot be negative."})
        return attrs


class PaymentPlanTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentPlanTemplate
        fields = ["id", "name", "months", "interest_percentage", "advance_percentage", "enabled", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        months = attrs.get("months", getattr(self.instance, "months", None))
        if months is not None and months <= 0:
            raise serializers.ValidationError({"months": "Plan must span at least one month."})
        advance = attrs.get("advance_percentage")
        if advance is not None and not (0 <= advance <= 100):
            raise serializers.ValidationError({"advance_percentage": "Advance must be between 0 and 100."})
        interest = attrs.get("interest_percentage")
        if interest is not None and interest < 0:
            raise serializers.ValidationError({"interest_percentage": "Interest cannot be negative."})
        return attrs


class RateRefreshSerializer(serializers.Serializer):
    rate_24k = serializers.DecimalField(max_digits=12, decimal_places=2)
    rate_22k = serializers.DecimalField(max_digits=12, decimal_places=2)
    success = serializers.BooleanField()
    error = serializers.CharField(allow_blank=True)
    source = serializers.CharField(allow_blank=True)
