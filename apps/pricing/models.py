import uuid
from decimal import Decimal

from django.db import models

DEFAULT_RATE_24K = Decimal("7200.00")
DEFAULT_RATE_22K = Decimal("6600.00")
DEFAULT_TAX_RATE = Decimal("3.00")
DEFAULT_PROTECTION_MAX = Decimal("500.00")

DEFAULT_PLAN_TEMPLATES = [
    {"name": "Short Term (3 Months)", "months": 3, "interest_percentage": Decimal("0"), "advance_percentage": Decimal("20")},
    {"name": "Standard (6 Months)", "months": 6, "interest_percentage": Decimal("5"), "advance_percentage": Decimal("15")},
    {"name": "Long Term (12 Months)", "months": 12, "interest_percentage": Decimal("8"), "advance_percentage": Decimal("10")},
]


class StoreSettings(models.Model):
    current_gold_rate_24k = models.DecimalField(max_digits=12, decimal_places=2, default=DEFAULT_RATE_24K)
    current_gold_rate_22k = models.DecimalField(max_digits=12, decimal_places=2, default=DEFAULT_RATE_22K)
    default_tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=DEFAULT_TAX_RATE)
    gold_rate_protection_max = models.DecimalField(max_digits=12, decimal_places=2, default=DEFAULT_PROTECTION_MAX)
    whatsapp_phone_number_id = models.CharField(max_length=64, blank=True)
    whatsapp_business_account_id = models.CharField(max_length=64, blank=True)
    whatsapp_business_token = models.TextField(blank=True)
    rate_updated_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "store settings"

    @classmethod
    def load(cls):
        instance, _ = cls.objects.get_or_create(pk=1)
        return instance

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @property
    def has_whatsapp_credentials(self):
        return bool(self.whatsapp_phone_number_id and self.whatsapp_business_token)


class PaymentPlanTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True)
    months = models.PositiveIntegerField()
    interest_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    advance_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["months", "name"]
        constraints = [
            models.CheckConstraint(condition=models.Q(months__gt=0), name="plan_template_months_gt_zero"),
            models.CheckConstraint(
                condition=models.Q(advance_percentage__gte=0, advance_percentage__lte=100),
                name="plan_template_advance_pct_range",
            ),
        ]

    def __str__(self):
        return self.name
