import ftplib
import re
import uuid
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.accounts.models import Profile, Role
from apps.catalog.models import Product
from apps.media.services import ImageStorageService


User = get_user_model()


def make_image(name="photo.PNG", content_type="image/png", size=64):
    return SimpleUploadedFile(name, b"\x89PNG" + b"0" * size, content_type=content_type)


class FilenameTests(TestCase):
    def test_generated_name_keeps_lowercased_extension(self):
        name = ImageStorageService.generate_filename("Holiday.JPEG")
        self.assertRegex(name, r"^img_\d+_[a-z0-9]{6}\.jpeg$")

    def test_extension_helper(self):
        self.assertEqual(ImageStorageService.file_extension("a.WebP"), "webp")
        self.assertEqual(ImageStorageService.file_extension("shell.php"), "php")

    def test_missing_extension_defaults_to_jpg(self):
        self.assertTrue(ImageStorageService.generate_filename("blob").endswith(".jpg"))

    def test_filename_from_url(self):
        self.assertEqual(
            ImageStorageService.filename_from_url("https://cdn.example.com/images/img_1_abc123.png"),
            "img_1_abc123.png",
        )


@override_settings(IMAGE_BASE_URL="https://cdn.example.com/images/", FTP_IMAGE_DIR="/public/images")
@mock.patch("apps.media.services.ftplib.FTP")
class ImageAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = User.objects.create_user(email="rep@example.com")
        Profile.objects.create(user=self.staff, email=self.staff.email, name="Rep", role=Role.SHOP_REP)
        self.customer = User.objects.create_user(email="buyer@example.com")
        Profile.objects.create(user=self.customer, email=self.customer.email, name="Buyer")
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))

    def ftp(self, mock_ftp_cls):
        return mock_ftp_cls.return_value.__enter__.return_value

    def test_upload_stores_file_and_returns_url(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(reverse("upload-image"), {"file": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertTrue(res.data["success"])
        self.assertTrue(re.match(r"^img_\d+_[a-z0-9]{6}\.png$", res.data["filename"]))
        self.assertEqual(res.data["url"], f"https://cdn.example.com/images/{res.data['filename']}")

        ftp = self.ftp(mock_ftp_cls)
        ftp.cwd.assert_called_with("/public/images")
        self.assertEqual(ftp.storbinary.call_args[0][0], f"STOR {res.data['filename']}")

    def test_upload_creates_missing_directory(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        ftp = self.ftp(mock_ftp_cls)
        ftp.cwd.side_effect = [ftplib.error_perm("550 No such directory"), None]

        res = self.client.post(reverse("upload-image"), {"file": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        ftp.mkd.assert_called_once_with("/public/images")

    def test_upload_attaches_to_product(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(
            reverse("upload-image"),
            {"file": make_image(), "productId": str(self.product.id)},
            format="multipart",
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.images, [res.data["url"]])

    def test_missing_file(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        res = self.client.post(reverse("upload-image"), {}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "No file provided")
        mock_ftp_cls.assert_not_called()

    def test_rejects_wrong_type_before_network(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        pdf = SimpleUploadedFile("doc.pdf", b"%PDF", content_type="application/pdf")

        res = self.client.post(reverse("upload-image"), {"file": pdf}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed")
        mock_ftp_cls.assert_not_called()

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=32)
    def test_rejects_oversized_file(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(reverse("upload-image"), {"file": make_image(size=64)}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "File size exceeds 5MB limit")
        mock_ftp_cls.assert_not_called()

    def test_ftp_failure_is_generic_500(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        mock_ftp_cls.side_effect = OSError("connection refused")

        res = self.client.post(reverse("upload-image"), {"file": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["error"], "Failed to upload image")

    def test_customers_cannot_upload(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.customer)

        res = self.client.post(reverse("upload-image"), {"file": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        mock_ftp_cls.assert_not_called()

    def test_delete_removes_file_and_product_link(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        url = "https://cdn.example.com/images/img_1_abc123.png"
        self.product.images = [url, "https://cdn.example.com/images/other.png"]
        self.product.save()

        res = self.client.post(
            reverse("delete-image"),
            {"url": url, "productId": str(self.product.id)},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["message"], "Image deleted successfully")
        self.ftp(mock_ftp_cls).delete.assert_called_once_with("img_1_abc123.png")
        self.product.refresh_from_db()
        self.assertEqual(self.product.images, ["https://cdn.example.com/images/other.png"])

    def test_delete_requires_url(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(reverse("delete-image"), {}, format="json")
        self.assertEqual(res.data["error"], "No image URL provided")

        res = self.client.post(reverse("delete-image"), {"url": "https://cdn.example.com/images/"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Invalid image URL")
        mock_ftp_cls.assert_not_called()

    def test_delete_ftp_failure_is_generic_500(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        self.ftp(mock_ftp_cls).delete.side_effect = ftplib.error_perm("550 Not found")

        res = self.client.post(reverse("delete-image"), {"url": "https://cdn.example.com/images/x.png"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["error"], "Failed to delete image")

    def test_rejects_script_extension_even_with_image_content_type(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        disguised = make_image(name="shell.php", content_type="image/png")

        res = self.client.post(reverse("upload-image"), {"file": disguised}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed")
        mock_ftp_cls.assert_not_called()

    def test_upload_rejects_malformed_product_id(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        res = self.client.post(
            reverse("upload-image"),
            {"file": make_image(), "productId": "not-a-uuid"},
            format="multipart",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        mock_ftp_cls.assert_not_called()

    def test_delete_with_unknown_product_keeps_remote_file(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)
        missing = uuid.uuid4()

        res = self.client.post(
            reverse("delete-image"),
            {"url": "https://cdn.example.com/images/img_1.png", "productId": str(missing)},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], f"Product {missing} not found")
        self.ftp(mock_ftp_cls).delete.assert_not_called()

    def test_delete_rejects_non_string_url(self, mock_ftp_cls):
        self.client.force_authenticate(user=self.staff)

        for bad in (123, {"href": "x"}):
            res = self.client.post(reverse("delete-image"), {"url": bad}, format="json")
            self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

        mock_ftp_cls.assert_not_called()
