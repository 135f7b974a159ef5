from rest_framework.routers import DefaultRouter

from .views import RateCardViewSet

router = DefaultRouter()
router.register(r'rate-cards', RateCardViewSet, basename='rate-cards')

urlpatterns = router.urls
