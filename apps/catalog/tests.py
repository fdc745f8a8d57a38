import os
import tempfile
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.utils.exceptions import ProductNotFound
from .models import Product
from .services import ProductImageService


class ProductModelTests(TestCase):
    def test_slug_auto_generated_and_unique(self):
        p1 = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))
        p2 = Product.objects.create(name="Shea Butter", price=Decimal("600.00"))

        self.assertEqual(p1.slug, "shea-butter")
        self.assertEqual(p2.slug, "shea-butter-1")

    def test_storefront_hides_inactive_and_deleted(self):
        visible = Product.objects.create(name="Visible", price=Decimal("1.00"))
        Product.objects.create(name="Hidden", price=Decimal("1.00"), is_active=False)
        gone = Product.objects.create(name="Gone", price=Decimal("1.00"))
        gone.soft_delete()

        self.assertEqual(list(Product.objects.storefront()), [visible])


@override_settings(PLACEHOLDER_IMAGE_URL="https://img.example.com/placeholder.jpg")
class ProductViewSetTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.soap = Product.objects.create(
            name="Black Soap",
            price=Decimal("250.00"),
            stock=4,
            images=["https://img.example.com/soap.jpg", "https://img.example.com/soap-2.jpg"],
            description="Traditional African black soap",
        )
        self.butter = Product.objects.create(name="Aloe Gel", price=Decimal("800.00"))
        self.hidden = Product.objects.create(name="Old Stock", price=Decimal("10.00"), is_active=False)

    def test_list_is_public_sorted_and_paginated(self):
        res = self.client.get(reverse("product-list"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 2)
        names = [p["name"] for p in res.data["results"]]
        self.assertEqual(names, ["Aloe Gel", "Black Soap"])
        self.assertIsNone(res.data["results"][0]["image"])
        self.assertEqual(res.data["results"][1]["image"], "https://img.example.com/soap.jpg")

    def test_search(self):
        res = self.client.get(reverse("product-list"), {"search": "african"})
        self.assertEqual([p["name"] for p in res.data["results"]], ["Black Soap"])

    def test_detail_by_slug(self):
        res = self.client.get(reverse("product-detail", args=[self.soap.slug]))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["images"]), 2)
        self.assertTrue(res.data["in_stock"])

    def test_detail_falls_back_to_placeholder(self):
        res = self.client.get(reverse("product-detail", args=[self.butter.slug]))

        self.assertEqual(res.data["images"], ["https://img.example.com/placeholder.jpg"])
        self.assertFalse(res.data["in_stock"])

    def test_inactive_detail_is_404(self):
        res = self.client.get(reverse("product-detail", args=[self.hidden.slug]))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class ProductImageServiceTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(name="Black Soap", price=Decimal("250.00"))

    def test_add_is_idempotent_and_remove_detaches(self):
        url = "https://img.example.com/a.jpg"
        ProductImageService.add_image(self.product.id, url)
        ProductImageService.add_image(self.product.id, url)
        self.product.refresh_from_db()
        self.assertEqual(self.product.images, [url])

        ProductImageService.remove_image(self.product.id, url)
        self.product.refresh_from_db()
        self.assertEqual(self.product.images, [])

    def test_unknown_product(self):
        with self.assertRaises(ProductNotFound):
            ProductImageService.add_image("not-a-uuid", "https://img.example.com/a.jpg")


class ImportCatalogCommandTests(TestCase):
    def test_imports_and_updates_by_slug(self):
        rows = (
            "name,price,stock,description,images,slug\n"
            "Shea Butter,500.00,10,Raw shea,https://img.example.com/1.jpg|https://img.example.com/2.jpg,shea-butter\n"
        )
        with tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False) as fh:
            fh.write(rows)
            path = fh.name
        self.addCleanup(os.remove, path)

        call_command("import_catalog", path, stdout=StringIO())
        call_command("import_catalog", path, stdout=StringIO())

        product = Product.objects.get(slug="shea-butter")
        self.assertEqual(Product.objects.count(), 1)
        self.assertEqual(product.price, Decimal("500.00"))
        self.assertEqual(len(product.images), 2)
