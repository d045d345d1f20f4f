from django.contrib import admin

from apps.customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "contact", "behavioral_tag", "reliability_score", "join_date")
    list_filter = ("behavioral_tag",)
    search_fields = ("name", "contact", "contact_normalized", "email")
