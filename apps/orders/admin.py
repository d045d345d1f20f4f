from django.contrib import admin

from apps.orders.models import JewelryItem, Milestone, Order, PaymentPlan, PaymentRecord


class JewelryItemInline(admin.TabularInline):
    model = JewelryItem
    extra = 0


class PaymentRecordInline(admin.TabularInline):
    model = PaymentRecord
    extra = 0


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "customer_name",
        "customer_contact",
        "total_amount",
        "original_total_amount",
        "status",
        "created_by",
        "created_at",
    )
    list_filter = ("status",)
    search_fields = ("customer_name", "customer_contact", "customer_email", "share_token")
    inlines = [JewelryItemInline, PaymentRecordInline]


@admin.register(PaymentPlan)
class PaymentPlanAdmin(admin.ModelAdmin):
    list_display = (
        "order",
        "plan_type",
        "months",
        "gold_rate_protection",
        "protection_rate_booked",
        "protection_limit",
        "protection_status",
        "grace_period_end_at",
    )
    list_filter = ("plan_type", "gold_rate_protection", "protection_status")
    search_fields = ("order__customer_name", "order__customer_contact")
    inlines = [MilestoneInline]


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ("order", "amount", "method", "paid_at", "created_by")
    list_filter = ("method",)
    search_fields = ("order__customer_name", "order__customer_contact")
