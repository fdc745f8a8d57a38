from rest_framework import serializers


class PaystackCustomerSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_blank=True)


class PaystackTransactionDataSerializer(serializers.Serializer):
    reference = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.IntegerField(min_value=0)
    currency = serializers.CharField(required=False, allow_blank=True)
    gateway_response = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    paid_at = serializers.DateTimeField(required=False, allow_null=True)
    customer = PaystackCustomerSerializer(required=False)


class PaystackVerifyResponseSerializer(serializers.Serializer):
    """
    Shape of GET /transaction/verify/<reference>. Anything else is treated
    as a failed verification.
    """
    status = serializers.BooleanField()
    message = serializers.CharField(required=False, allow_blank=True)
    data = PaystackTransactionDataSerializer(required=False, allow_null=True)
