from rest_framework import serializers

from apps.customers.models import BehavioralTag, Customer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "contact",
            "contact_normalized",
            "secondary_contact",
            "email",
            "join_date",
            "reliability_score",
            "behavioral_tag",
            "ai_insight",
            "last_analysis_date",
        ]
        read_only_fields = fields


class CustomerUpsertSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    contact = serializers.CharField(max_length=50)
    secondary_contact = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")

    def validate_contact(self, value):
        if not any(ch.isdigit() for ch in value):
            raise serializers.ValidationError("Contact must contain a phone number.")
        return value.strip()

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required.")
        return value.strip()


class DirectoryEntrySerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    contact = serializers.CharField()
    contact_normalized = serializers.CharField()
    secondary_contact = serializers.CharField(allow_blank=True)
    email = serializers.CharField(allow_blank=True)
    join_date = serializers.DateTimeField()
    reliability_score = serializers.IntegerField(allow_null=True)
    behavioral_tag = serializers.ChoiceField(choices=BehavioralTag.choices)
    ai_insight = serializers.CharField(allow_blank=True)
    last_analysis_date = serializers.DateTimeField(allow_null=True)
    is_manual = serializers.BooleanField()
    order_ids = serializers.ListField(child=serializers.CharField())
    total_spent = serializers.DecimalField(max_digits=14, decimal_places=2)
