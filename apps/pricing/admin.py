from django.contrib import admin

from apps.pricing.models import PaymentPlanTemplate, StoreSettings


@admin.register(StoreSettings)
class StoreSettingsAdmin(admin.ModelAdmin):
    list_display = ("current_gold_rate_24k", "current_gold_rate_22k", "default_tax_rate", "gold_rate_protection_max", "updated_at")


@admin.register(PaymentPlanTemplate)
class PaymentPlanTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "months", "interest_percentage", "advance_percentage", "enabled")
    list_filter = ("enabled",)
    search_fields = ("name",)
