from rest_framework import serializers


class UploadImageSerializer(serializers.Serializer):
    # `file` is checked by ImageStorageService.validate so its messages stay stable
    productId = serializers.UUIDField(required=False)


class DeleteImageSerializer(serializers.Serializer):
    url = serializers.URLField(required=False, allow_blank=True)
    productId = serializers.UUIDField(required=False)
