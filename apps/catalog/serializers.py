# apps/catalog/serializers.py
from django.conf import settings
from rest_framework import serializers
from .models import Product


class ProductListSerializer(serializers.ModelSerializer):
    """
    Card view: cover image only.
    """
    image = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ["id", "name", "slug", "price", "image", "description"]

    def get_image(self, obj):
        return obj.images[0] if obj.images else None


class ProductDetailSerializer(serializers.ModelSerializer):
    images = serializers.SerializerMethodField()
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "price",
            "vat_rate",
            "images",
            "description",
            "stock",
            "in_stock",
        ]

    def get_images(self, obj):
        return list(obj.images) if obj.images else [settings.PLACEHOLDER_IMAGE_URL]

    def get_in_stock(self, obj):
        return obj.stock > 0
