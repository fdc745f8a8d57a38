from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.conf import settings


class ServerInfoView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "app_name": settings.PROJECT_NAME,
            "version": "1.0.0",
            "debug": settings.DEBUG,
        })


class StorefrontConfigView(APIView):
    """
    Public storefront settings so the frontend does not hardcode keys.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "paystack_public_key": settings.PAYSTACK_PUBLIC_KEY,
            "currency": settings.PAYSTACK_CURRENCY,
            "image_base_url": settings.IMAGE_BASE_URL,
        })
