from decimal import Decimal
from rest_framework import serializers
from apps.utils import validators
from .models import Order


class CartLineSerializer(serializers.Serializer):
    productId = serializers.CharField(source="product_id", max_length=64)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutCartLineSerializer(CartLineSerializer):
    """
    The storefront also sends the name and price it displayed; they are
    accepted for convenience and ignored in favour of catalog prices.
    """
    name = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=None, decimal_places=None, required=False)


class ValidateCartSerializer(serializers.Serializer):
    cart = CartLineSerializer(many=True, allow_empty=False)


class CheckoutFormSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=20)
    address = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_email(self, value):
        return value.strip().lower()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_phone(self, value):
        return validators.validate_phone(value)


class PrepareCheckoutSerializer(serializers.Serializer):
    form = CheckoutFormSerializer()


class CheckoutSerializer(serializers.Serializer):
    cart = CheckoutCartLineSerializer(many=True, allow_empty=False)
    form = CheckoutFormSerializer()
    payment_ref = serializers.CharField(max_length=100)
    total = serializers.DecimalField(max_digits=None, decimal_places=None, min_value=Decimal("0"))


class CartAddSerializer(serializers.Serializer):
    productId = serializers.UUIDField()


class CartQuantitySerializer(serializers.Serializer):
    productId = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField()


class CartRemoveSerializer(serializers.Serializer):
    productId = serializers.CharField(max_length=64)


class OrderSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'status_display', 'items', 'payment_ref',
            'total_amount', 'address', 'created_at', 'updated_at',
        ]
        read_only_fields = fields
