from django.urls import path

from .views import FeatureFlagsView

urlpatterns = [
    path('admin/feature-flags', FeatureFlagsView.as_view(), name='feature-flags'),
]
