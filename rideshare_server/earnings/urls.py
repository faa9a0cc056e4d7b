from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import DriverEarningView

router = DefaultRouter()
router.register(r'earnings', DriverEarningView, basename='earnings')

urlpatterns = [
    path('', include(router.urls)),
]
