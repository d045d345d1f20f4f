from rest_framework.routers import DefaultRouter

from apps.audit.views import ActivityViewSet, ErrorEventViewSet

router = DefaultRouter()
router.register("activity", ActivityViewSet, basename="activity")
router.register("system-errors", ErrorEventViewSet, basename="system-error")

urlpatterns = router.urls
