from django.urls import path

from apps.intelligence.views import ChatInsightView, CollectionRiskView, OrderReminderDraftView

urlpatterns = [
    path(
        "intelligence/orders/<uuid:order_id>/reminder-draft/",
        OrderReminderDraftView.as_view(),
        name="order-reminder-draft",
    ),
    path("intelligence/collection-risk/", CollectionRiskView.as_view(), name="collection-risk"),
    path("intelligence/chat-insight/", ChatInsightView.as_view(), name="chat-insight"),
]
