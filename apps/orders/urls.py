from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.orders.views import CollectionsView, OrderViewSet, PublicOrderView

router = DefaultRouter()
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("public/orders/", PublicOrderView.as_view(), name="public-order"),
    path("collections/", CollectionsView.as_view(), name="collections"),
] + router.urls
