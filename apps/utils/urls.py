from django.urls import path
from .health import health_check
from .views import ServerInfoView, StorefrontConfigView

urlpatterns = [
    path("health/", health_check, name="health"),
    path("info/", ServerInfoView.as_view(), name="server-info"),
    path("config/", StorefrontConfigView.as_view(), name="storefront-config"),
]
