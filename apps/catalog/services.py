import logging
from django.core.exceptions import ValidationError
from django.db import transaction

from apps.utils.exceptions import ProductNotFound
from .models import Product

logger = logging.getLogger(__name__)


class ProductImageService:
    """
    Keeps Product.images in step with files on the image host.
    """

    @staticmethod
    def get_product(product_id, queryset=None):
        queryset = queryset if queryset is not None else Product.objects.all()
        try:
            return queryset.get(id=product_id, is_deleted=False)
        except (Product.DoesNotExist, ValueError, ValidationError):
            raise ProductNotFound(product_id)

    @staticmethod
    def _locked_product(product_id):
        return ProductImageService.get_product(product_id, Product.objects.select_for_update())

    @staticmethod
    @transaction.atomic
    def add_image(product_id, image_url: str) -> Product:
        product = ProductImageService._locked_product(product_id)
        if image_url not in product.images:
            product.images = [*product.images, image_url]
            product.save(update_fields=["images", "updated_at"])
            logger.info(f"Image attached to product {product.id}")
        return product

    @staticmethod
    @transaction.atomic
    def remove_image(product_id, image_url: str) -> Product:
        product = ProductImageService._locked_product(product_id)
        remaining = [url for url in product.images if url != image_url]
        if len(remaining) != len(product.images):
            product.images = remaining
            product.save(update_fields=["images", "updated_at"])
            logger.info(f"Image detached from product {product.id}")
        return product
