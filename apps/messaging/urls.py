from rest_framework.routers import DefaultRouter

from apps.messaging.views import MessageLogViewSet, MessageTemplateViewSet, OutboundMessageViewSet

router = DefaultRouter()
router.register("messages", MessageLogViewSet, basename="message")
router.register("message-templates", MessageTemplateViewSet, basename="message-template")
router.register("outbox", OutboundMessageViewSet, basename="outbox")

urlpatterns = router.urls
