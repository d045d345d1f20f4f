from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.pricing.views import PaymentPlanTemplateViewSet, RateRefreshView, StoreSettingsView

router = DefaultRouter()
router.register("plan-templates", PaymentPlanTemplateViewSet, basename="plan-template")

urlpatterns = [
    path("settings/", StoreSettingsView.as_view(), name="store-settings"),
    path("settings/refresh-rate/", RateRefreshView.as_view(), name="store-settings-refresh-rate"),
] + router.urls
