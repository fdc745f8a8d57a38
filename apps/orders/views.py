from rest_framework import viewsets, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from apps.catalog.models import Product
from apps.utils.throttle import CheckoutRateThrottle
from .cart import Cart
from .models import Order
from .serializers import (
    CartAddSerializer,
    CartQuantitySerializer,
    CartRemoveSerializer,
    CheckoutSerializer,
    OrderSerializer,
    PrepareCheckoutSerializer,
    ValidateCartSerializer,
)
from .services import CartValidationService, CheckoutService


def cart_payload(cart):
    return {
        "items": [item.to_dict() for item in cart],
        "total": float(cart.total()),
        "count": len(cart),
    }


class CartView(APIView):
    """
    The shopper's session cart.
    GET lists, POST adds one unit, PATCH sets a quantity, DELETE removes.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response(cart_payload(Cart.for_request(request)))

    def post(self, request):
        serializer = CartAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = Product.objects.storefront().filter(id=serializer.validated_data["productId"]).first()
        if product is None:
            return Response({"error": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        cart = Cart.for_request(request)
        cart.add_item(product)
        return Response(cart_payload(cart))

    def patch(self, request):
        serializer = CartQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = Cart.for_request(request)
        cart.set_quantity(serializer.validated_data["productId"], serializer.validated_data["quantity"])
        return Response(cart_payload(cart))

    def delete(self, request):
        serializer = CartRemoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = Cart.for_request(request)
        cart.remove_item(serializer.validated_data["productId"])
        return Response(cart_payload(cart))


class ValidateCartTotalView(APIView):
    """
    Recomputes a cart total from current catalog prices.
    """
    permission_classes = [AllowAny]
    throttle_classes = [CheckoutRateThrottle]

    def post(self, request):
        serializer = ValidateCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        total = CartValidationService.validate_total(serializer.validated_data["cart"])
        return Response({"validatedTotal": float(total)})


class PrepareCheckoutView(APIView):
    """
    Issues the hosted-checkout parameters for the session cart, or refuses
    when the cart's prices have drifted from the catalog.
    """
    permission_classes = [AllowAny]
    throttle_classes = [CheckoutRateThrottle]

    def post(self, request):
        serializer = PrepareCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        params = CheckoutService.prepare_payment(
            Cart.for_request(request),
            email=serializer.validated_data["form"]["email"],
        )
        params["total"] = float(params["total"])
        return Response(params)


class ProcessCheckoutView(APIView):
    """
    Called after the Paystack popup reports success.
    """
    permission_classes = [AllowAny]
    throttle_classes = [CheckoutRateThrottle]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = CheckoutService.process_checkout(
            lines=data["cart"],
            form=data["form"],
            payment_ref=data["payment_ref"],
            client_total=data["total"],
        )

        Cart.for_request(request).clear()
        return Response({"success": True, "orderId": str(order.id)}, status=status.HTTP_200_OK)


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user).order_by("-created_at")


class AccountOrdersView(APIView):
    """
    Account page: orders grouped the way the storefront shows them.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        buckets = {"active": [], "pending": [], "completed": [], "cancelled": []}
        for order in Order.objects.filter(user=request.user).order_by("-created_at"):
            buckets[order.account_bucket].append(OrderSerializer(order).data)

        profile = getattr(request.user, "profile", None)
        return Response({
            "name": profile.name if profile else request.user.full_name,
            **buckets,
        })
