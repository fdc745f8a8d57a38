import json
import logging
import re

from django.test import TestCase, RequestFactory, override_settings
from django.urls import reverse
from rest_framework import serializers
from rest_framework.test import APIClient

from .exceptions import (
    BusinessLogicException,
    DuplicateCheckout,
    ProductNotFound,
    UpstreamServiceError,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .middleware import GlobalExceptionMiddleware
from .utils import generate_payment_reference, random_suffix
from .validators import validate_phone


class ValidatorTests(TestCase):
    def test_phone_validator(self):
        self.assertEqual(validate_phone("+234 801-234-5678"), "+2348012345678")
        self.assertEqual(validate_phone("(0801) 234 5678"), "08012345678")
        with self.assertRaises(serializers.ValidationError):
            validate_phone("123")  # Invalid


class ReferenceTests(TestCase):
    def test_payment_reference_format(self):
        self.assertRegex(generate_payment_reference(), r"^jr-\d{13}-[a-z0-9]{10}$")

    def test_random_suffix_alphabet(self):
        self.assertTrue(re.fullmatch(r"[a-z0-9]{6}", random_suffix()))


class ExceptionHandlerTests(TestCase):
    def render(self, exc):
        return custom_exception_handler(exc, {"view": None})

    def test_business_errors_carry_message_and_code(self):
        res = self.render(ProductNotFound("p9"))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data, {"error": "Product p9 not found", "code": "product_not_found"})

    def test_status_codes_follow_the_exception(self):
        self.assertEqual(self.render(DuplicateCheckout("dup")).status_code, 409)
        self.assertEqual(self.render(UpstreamServiceError("Failed to fetch prices")).status_code, 500)
        self.assertEqual(self.render(BusinessLogicException("nope")).data["code"], "business_error")

    def test_validation_errors_are_flattened(self):
        res = self.render(serializers.ValidationError({"form": {"email": ["Enter a valid email address."]}}))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Enter a valid email address.")
        self.assertIn("form", res.data["details"])

    def test_unknown_errors_are_generic(self):
        res = self.render(RuntimeError("db password is hunter2"))
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.data, {"error": "Internal Server Error", "code": "server_error"})


class JSONFormatterTests(TestCase):
    def test_redacts_sensitive_keys_and_keeps_context(self):
        record = logging.LogRecord("apps", logging.INFO, __file__, 1, {"user": "ada", "password": "x"}, None, None)
        record.payment_ref = "jr-1-abc"

        payload = json.loads(JSONFormatter().format(record))

        self.assertIn("***REDACTED***", payload["msg"])
        self.assertNotIn("'x'", payload["msg"])
        self.assertEqual(payload["payment_ref"], "jr-1-abc")


class GlobalExceptionMiddlewareTests(TestCase):
    def test_api_paths_get_json_500(self):
        request = RequestFactory().get("/api/v1/anything/")
        middleware = GlobalExceptionMiddleware(lambda r: None)

        response = middleware.process_exception(request, RuntimeError("boom"))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.content)["code"], "server_error")

    def test_other_paths_are_left_to_django(self):
        request = RequestFactory().get("/admin/")
        middleware = GlobalExceptionMiddleware(lambda r: None)
        self.assertIsNone(middleware.process_exception(request, RuntimeError("boom")))


@override_settings(PAYSTACK_PUBLIC_KEY="pk_test_abc")
class PublicEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_health(self):
        res = self.client.get(reverse("health"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["components"], {"db": "ok", "cache": "ok"})

    def test_storefront_config_exposes_public_key_only(self):
        res = self.client.get(reverse("storefront-config"))
        self.assertEqual(res.data["paystack_public_key"], "pk_test_abc")
        self.assertEqual(res.data["currency"], "NGN")
        self.assertNotIn("paystack_secret_key", res.data)
