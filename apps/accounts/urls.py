from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .views import MeView, SetPasswordView

urlpatterns = [
    path('token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('password/set/', SetPasswordView.as_view(), name='password-set'),
    path('me/', MeView.as_view(), name='user-me'),
]
