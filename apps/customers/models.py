import re
import uuid

from django.core.exceptions import ValidationError
from django.db import models


def normalize_phone(value):
    raw = str(value or "").strip()
    normalized = re.sub(r"\D+", "", raw)
    return normalized or raw


class BehavioralTag(models.TextChoices):
    VIP_RELIABLE = "VIP_RELIABLE", "VIP / Reliable"
    FORGETFUL = "FORGETFUL", "Forgetful payer"
    STRATEGIC_DELAYER = "STRATEGIC_DELAYER", "Strategic delayer"
    HIGH_RISK = "HIGH_RISK", "High risk"
    UNKNOWN = "UNKNOWN", "Unknown"


class Customer(models.Model):
    """Manually entered customer profile.

    Customers implied by order contact details are not stored here; the
    directory in ``apps.customers.directory`` merges both.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    contact = models.CharField(max_length=50)
    contact_normalized = models.CharField(max_length=50, unique=True)
    secondary_contact = models.CharField(max_length=50, blank=True)
    email = models.EmailField(blank=True)
    join_date = models.DateTimeField(auto_now_add=True)
    reliability_score = models.PositiveSmallIntegerField(null=True, blank=True)
    behavioral_tag = models.CharField(max_length=20, choices=BehavioralTag.choices, default=BehavioralTag.UNKNOWN)
    ai_insight = models.TextField(blank=True)
    last_analysis_date = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["join_date"]
        indexes = [
            models.Index(fields=["contact_normalized"], name="customer_contact_norm_idx"),
            models.Index(fields=["name"], name="customer_name_idx"),
        ]

    def clean(self):
        if not self.contact:
            raise ValidationError("contact is required")
        if not re.search(r"\d", self.contact):
            raise ValidationError("contact must contain at least one digit")

    def save(self, *args, **kwargs):
        self.contact = str(self.contact or "").strip()
        self.name = str(self.name or "").strip()
        self.contact_normalized = normalize_phone(self.contact)
        self.full_clean()
        super().save(*args, **kwargs)

    @classmethod
    def get_or_create_by_phone(cls, contact, name="", email="", secondary_contact=""):
        normalized = normalize_phone(contact)
        customer = cls.objects.filter(contact_normalized=normalized).first()
        if customer:
            updated_fields = []
            for field, value in (("name", name), ("email", email), ("secondary_contact", secondary_contact)):
                value = str(value or "").strip()
                if value and getattr(customer, field) != value:
                    setattr(customer, field, value)
                    updated_fields.append(field)
            if updated_fields:
                customer.save(update_fields=updated_fields + ["updated_at"])
            return customer
        return cls.objects.create(
            contact=str(contact).strip(),
            name=str(name).strip(),
            email=str(email or "").strip(),
            secondary_contact=str(secondary_contact or "").strip(),
        )

    def __str__(self):
        return f"{self.name} ({self.contact})"
