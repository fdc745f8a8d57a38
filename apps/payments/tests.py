from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, override_settings

from apps.utils.exceptions import PaymentVerificationFailed
from .services import PaystackService, to_minor_units


def provider_response(payload):
    response = mock.Mock()
    response.json.return_value = payload
    return response


def verified(reference="jr-1-abc", status="success", amount=150050):
    return {
        "status": True,
        "message": "Verification successful",
        "data": {
            "reference": reference,
            "status": status,
            "amount": amount,
            "currency": "NGN",
            "paid_at": "2024-05-01T10:00:00.000Z",
            "customer": {"email": "ada@example.com"},
        },
    }


@override_settings(PAYSTACK_SECRET_KEY="sk_test_123", PAYSTACK_BASE_URL="https://api.paystack.co/")
@mock.patch("apps.payments.services.requests.get")
class PaystackServiceTests(TestCase):

    def test_successful_verification(self, mock_get):
        mock_get.return_value = provider_response(verified())

        txn = PaystackService.verify_payment("jr-1-abc", expected_amount=Decimal("1500.50"))

        self.assertTrue(txn.is_successful)
        self.assertEqual(txn.amount, 150050)
        self.assertEqual(txn.customer_email, "ada@example.com")

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://api.paystack.co/transaction/verify/jr-1-abc")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk_test_123")
        self.assertIn("timeout", kwargs)

    def test_reference_is_url_quoted(self, mock_get):
        mock_get.return_value = provider_response(verified(reference="a/b"))

        PaystackService.verify_payment("a/b")

        self.assertTrue(mock_get.call_args[0][0].endswith("/transaction/verify/a%2Fb"))

    def test_unsuccessful_status_fails(self, mock_get):
        mock_get.return_value = provider_response(verified(status="abandoned"))

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_false_envelope_fails(self, mock_get):
        mock_get.return_value = provider_response({"status": False, "message": "Transaction reference not found"})

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_malformed_body_fails(self, mock_get):
        mock_get.return_value = provider_response({"unexpected": "shape"})

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_non_json_body_fails(self, mock_get):
        response = mock.Mock()
        response.json.side_effect = ValueError("No JSON")
        mock_get.return_value = response

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_transport_error_fails(self, mock_get):
        mock_get.side_effect = requests.Timeout("timed out")

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_reference_mismatch_fails(self, mock_get):
        mock_get.return_value = provider_response(verified(reference="someone-else"))

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc")

    def test_amount_mismatch_fails(self, mock_get):
        mock_get.return_value = provider_response(verified(amount=100))

        with self.assertRaises(PaymentVerificationFailed):
            PaystackService.verify_payment("jr-1-abc", expected_amount=Decimal("1500.50"))


class MinorUnitsTests(TestCase):
    def test_rounds_half_up_to_kobo(self):
        self.assertEqual(to_minor_units(Decimal("1000.00")), 100000)
        self.assertEqual(to_minor_units(Decimal("0.005")), 1)
        self.assertEqual(to_minor_units(Decimal("19.99")), 1999)
