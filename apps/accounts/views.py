from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from apps.utils.throttle import BurstRateThrottle

from .services import AccountService
from .serializers import UserSerializer, SetPasswordSerializer


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class SetPasswordView(APIView):
    """
    Target of the welcome email link: turns a checkout-provisioned
    account into one the customer can log in with.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [BurstRateThrottle]

    def post(self, request):
        serializer = SetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AccountService.set_password_from_token(
            uid=serializer.validated_data['uid'],
            token=serializer.validated_data['token'],
            password=serializer.validated_data['password'],
        )
        return Response(
            {"message": "Password set successfully", "email": user.email},
            status=status.HTTP_200_OK
        )
