from datetime import timedelta
from decimal import Decimal
from unittest import mock
import uuid

import requests
from django.contrib.auth import get_user_model
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.accounts.models import Profile
from apps.accounts.services import AccountService
from apps.catalog.models import Product
from apps.orders.cart import Cart
from apps.orders.models import Order, CheckoutAttempt
from apps.orders.services import CartValidationService, CheckoutService, totals_match
from apps.orders.tasks import flag_stalled_checkouts
from apps.utils.exceptions import ProductNotFound, PriceMismatch


User = get_user_model()


def paystack_response(reference, amount, txn_status="success", envelope_status=True):
    response = mock.Mock()
    response.json.return_value = {
        "status": envelope_status,
        "message": "Verification successful",
        "data": {
            "reference": reference,
            "status": txn_status,
            "amount": amount,
            "currency": "NGN",
            "gateway_response": "Approved",
            "customer": {"email": "buyer@example.com"},
        },
    }
    return response


class CartTests(TestCase):
    def setUp(self):
        self.storage = {}
        self.cart = Cart(self.storage, key="cart")
        self.p1 = {"id": "p1", "name": "Shea Butter", "price": "500.00"}
        self.p2 = {"id": "p2", "name": "Black Soap", "price": "250.50"}

    def test_adding_same_product_twice_increments_quantity(self):
        self.cart.add_item(self.p1)
        self.cart.add_item(self.p1)

        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.items()[0].quantity, 2)
        self.assertEqual(self.cart.total(), Decimal("1000.00"))

    def test_total_is_sum_of_lines(self):
        self.cart.add_item(self.p1)
        self.cart.add_item(self.p2)
        self.cart.set_quantity("p2", 3)

        self.assertEqual(self.cart.total(), Decimal("1251.50"))

    def test_set_quantity_below_one_removes_item(self):
        self.cart.add_item(self.p1)
        self.cart.set_quantity("p1", 0)

        self.assertNotIn("p1", self.cart)
        self.assertEqual(self.cart.total(), Decimal("0.00"))

    def test_removing_unknown_item_is_noop(self):
        self.cart.add_item(self.p1)
        self.cart.remove_item("missing")
        self.assertEqual(len(self.cart), 1)

    def test_cart_persists_and_reloads(self):
        self.cart.add_item(self.p1)
        self.assertIn("cart", self.storage)

        reloaded = Cart(self.storage, key="cart")
        self.assertIn("p1", reloaded)
        self.assertEqual(reloaded.total(), Decimal("500.00"))

    def test_emptied_cart_removes_storage_key(self):
        self.cart.add_item(self.p1)
        self.cart.clear()
        self.assertNotIn("cart", self.storage)

    def test_price_is_snapshot_at_add_time(self):
        product = Product.objects.create(name="Cocoa Butter", price=Decimal("300.00"))
        self.cart.add_item(product)

        product.price = Decimal("900.00")
        product.save()

        self.assertEqual(self.cart.total(), Decimal("300.00"))


class CartValidationServiceTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))

    def test_total_uses_catalog_prices(self):
        total = CartValidationService.validate_total([
            {"product_id": str(self.product.id), "quantity": 2},
        ])
        self.assertEqual(total, Decimal("1000.00"))

    def test_unknown_product_rejects_whole_cart(self):
        missing = str(uuid.uuid4())
        with self.assertRaises(ProductNotFound) as ctx:
            CartValidationService.validate_total([
                {"product_id": str(self.product.id), "quantity": 1},
                {"product_id": missing, "quantity": 1},
            ])
        self.assertEqual(ctx.exception.message, f"Product {missing} not found")

    def test_inactive_product_is_not_found(self):
        self.product.is_active = False
        self.product.save()

        with self.assertRaises(ProductNotFound):
            CartValidationService.validate_total([{"product_id": str(self.product.id), "quantity": 1}])

    def test_totals_match_tolerance(self):
        self.assertTrue(totals_match(Decimal("1000.00"), Decimal("1000.01")))
        self.assertFalse(totals_match(Decimal("1000.00"), Decimal("1000.02")))


class ValidateCartTotalAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("validate-cart-total")
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))

    def test_returns_server_total(self):
        res = self.client.post(
            self.url,
            {"cart": [{"productId": str(self.product.id), "quantity": 2}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["validatedTotal"], 1000.0)

    def test_unknown_product_is_400(self):
        res = self.client.post(self.url, {"cart": [{"productId": "p-unknown", "quantity": 1}]}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Product p-unknown not found")

    def test_malformed_input_is_400(self):
        res = self.client.post(self.url, {"cart": [{"productId": str(self.product.id), "quantity": 0}]}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("error", res.data)

        res = self.client.post(self.url, {"cart": []}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)


class CartAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("cart")
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))

    def test_add_update_and_remove(self):
        self.client.post(self.url, {"productId": str(self.product.id)}, format="json")
        res = self.client.post(self.url, {"productId": str(self.product.id)}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["items"][0]["quantity"], 2)
        self.assertEqual(res.data["total"], 1000.0)

        res = self.client.patch(self.url, {"productId": str(self.product.id), "quantity": 5}, format="json")
        self.assertEqual(res.data["items"][0]["quantity"], 5)

        res = self.client.delete(self.url, {"productId": str(self.product.id)}, format="json")
        self.assertEqual(res.data["count"], 0)

        res = self.client.get(self.url)
        self.assertEqual(res.data["items"], [])

    def test_adding_deleted_product_is_404(self):
        self.product.soft_delete()
        res = self.client.post(self.url, {"productId": str(self.product.id)}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class PrepareCheckoutAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("checkout-prepare")
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))
        self.form = {"form": {"email": "ada@example.com", "name": "Ada", "phone": "0801 234 5678"}}

    def _add_to_cart(self, times=1):
        for _ in range(times):
            self.client.post(reverse("cart"), {"productId": str(self.product.id)}, format="json")

    def test_returns_payment_parameters(self):
        self._add_to_cart(times=2)

        res = self.client.post(self.url, self.form, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["amount"], 100000)
        self.assertEqual(res.data["currency"], "NGN")
        self.assertEqual(res.data["email"], "ada@example.com")
        self.assertTrue(res.data["reference"].startswith("jr-"))

    def test_price_drift_blocks_payment(self):
        self._add_to_cart()
        self.product.price = Decimal("650.00")
        self.product.save()

        res = self.client.post(self.url, self.form, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Cart total mismatch. Please refresh your cart.")
        self.assertNotIn("reference", res.data)

    def test_empty_cart_is_rejected(self):
        res = self.client.post(self.url, self.form, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "empty_cart")


@mock.patch("apps.payments.services.requests.get")
class CheckoutAPITests(APITestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse("checkout")
        self.product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))
        self.ref = "jr-1700000000000-abcdefghij"

    def payload(self, email="ada@example.com", total="1000.00", quantity=2):
        return {
            "cart": [{"productId": str(self.product.id), "quantity": quantity, "name": "Shea Butter", "price": 1}],
            "form": {"email": email, "name": "Ada Obi", "phone": "+234 801 234 5678", "address": "12 Marina, Lagos"},
            "payment_ref": self.ref,
            "total": total,
        }

    def test_new_email_creates_user_profile_and_order(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)

        with self.captureOnCommitCallbacks(execute=True):
            res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertTrue(res.data["success"])

        self.assertEqual(User.objects.count(), 1)
        self.assertEqual(Profile.objects.count(), 1)
        user = User.objects.get()
        self.assertFalse(user.has_usable_password())
        self.assertEqual(user.profile.role, "customer")

        order = Order.objects.get()
        self.assertEqual(str(order.id), res.data["orderId"])
        self.assertEqual(order.user, user)
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.payment_ref, self.ref)
        self.assertEqual(order.total_amount, Decimal("1000.00"))
        # Catalog price, not the client's
        self.assertEqual(order.items[0]["price"], 500.0)
        self.assertEqual(order.address["detail"], "12 Marina, Lagos")

        attempt = CheckoutAttempt.objects.get(payment_ref=self.ref)
        self.assertEqual(attempt.status, CheckoutAttempt.Status.COMPLETED)
        self.assertTrue(attempt.account_created)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("/auth/callback?uid=", mail.outbox[0].body)

        args, kwargs = mock_get.call_args
        self.assertTrue(args[0].endswith(f"/transaction/verify/{self.ref}"))
        self.assertTrue(kwargs["headers"]["Authorization"].startswith("Bearer "))

    def test_existing_email_reuses_account(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)
        existing = User.objects.create_user(email="ada@example.com", password="pass12345")

        res = self.client.post(self.url, self.payload(email="ADA@Example.com"), format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(User.objects.count(), 1)
        self.assertEqual(Order.objects.get().user, existing)
        self.assertEqual(len(mail.outbox), 0)

    def test_failed_payment_creates_nothing(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000, txn_status="failed")

        res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Payment verification failed")
        self.assertEqual(User.objects.count(), 0)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(CheckoutAttempt.objects.get().status, CheckoutAttempt.Status.FAILED)

    def test_provider_unreachable_fails_closed(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")

        res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_amount_mismatch_with_provider_fails(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100)

        res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_client_total_mismatch_skips_payment_call(self, mock_get):
        res = self.client.post(self.url, self.payload(total="10.00"), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Cart total mismatch. Please refresh your cart.")
        mock_get.assert_not_called()

    def test_unknown_product_skips_payment_call(self, mock_get):
        payload = self.payload()
        payload["cart"][0]["productId"] = "ghost"

        res = self.client.post(self.url, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Product ghost not found")
        mock_get.assert_not_called()

    def test_invalid_form_is_rejected(self, mock_get):
        payload = self.payload()
        payload["form"]["email"] = "not-an-email"

        res = self.client.post(self.url, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        mock_get.assert_not_called()

    def test_replayed_reference_is_409(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)
        self.client.post(self.url, self.payload(), format="json")

        res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"], "This payment has already been used.")
        self.assertEqual(Order.objects.count(), 1)

    def test_concurrent_duplicate_is_409(self, mock_get):
        cache.add(f"checkout_lock:{self.ref}", "processing")

        res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        mock_get.assert_not_called()

    def test_resumed_attempt_reuses_resolved_user(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)
        user = User.objects.create_user(email="first@example.com")
        CheckoutAttempt.objects.create(
            payment_ref=self.ref,
            email="first@example.com",
            status=CheckoutAttempt.Status.USER_RESOLVED,
            user=user,
            account_created=True,
        )

        res = self.client.post(self.url, self.payload(email="other@example.com"), format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(User.objects.count(), 1)
        self.assertEqual(Order.objects.get().user, user)
        self.assertTrue(CheckoutAttempt.objects.get().account_created)

    def test_unexpected_error_is_generic_500(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)

        with mock.patch.object(AccountService, "provision_customer", side_effect=RuntimeError("smtp exploded")):
            res = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["error"], "Checkout failed. Please try again.")
        attempt = CheckoutAttempt.objects.get()
        self.assertEqual(attempt.status, CheckoutAttempt.Status.FAILED)
        self.assertIn("smtp exploded", attempt.last_error)

    def test_success_clears_session_cart(self, mock_get):
        mock_get.return_value = paystack_response(self.ref, 100000)
        self.client.post(reverse("cart"), {"productId": str(self.product.id)}, format="json")

        self.client.post(self.url, self.payload(), format="json")

        res = self.client.get(reverse("cart"))
        self.assertEqual(res.data["count"], 0)


class CheckoutServiceTests(TestCase):
    def test_process_checkout_rejects_mismatch_before_lock(self):
        product = Product.objects.create(name="Shea Butter", price=Decimal("500.00"))

        with self.assertRaises(PriceMismatch):
            CheckoutService.process_checkout(
                lines=[{"product_id": str(product.id), "quantity": 1}],
                form={"email": "a@example.com", "name": "A", "phone": "1"},
                payment_ref="jr-1",
                client_total=Decimal("1.00"),
            )
        self.assertFalse(CheckoutAttempt.objects.exists())


class AccountOrdersAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="ada@example.com", full_name="Ada Obi")
        Profile.objects.create(user=self.user, email=self.user.email, name="Ada")
        self.other = User.objects.create_user(email="other@example.com")

        def make(status_value, ref, user=None):
            return Order.objects.create(
                user=user or self.user,
                status=status_value,
                payment_ref=ref,
                total_amount=Decimal("100.00"),
            )

        self.active = make(Order.Status.PENDING, None)
        self.paid = make(Order.Status.PENDING, "jr-paid")
        self.shipped = make(Order.Status.SHIPPED, "jr-shipped")
        self.delivered = make(Order.Status.DELIVERED, "jr-done")
        self.cancelled = make(Order.Status.CANCELLED, "jr-cancel")
        self.foreign = make(Order.Status.PENDING, "jr-foreign", user=self.other)

    def test_orders_are_bucketed(self):
        self.client.force_authenticate(user=self.user)
        res = self.client.get(reverse("account-orders"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["name"], "Ada")
        self.assertEqual([o["id"] for o in res.data["active"]], [str(self.active.id)])
        self.assertEqual(
            {o["id"] for o in res.data["pending"]},
            {str(self.paid.id), str(self.shipped.id)},
        )
        self.assertEqual([o["id"] for o in res.data["completed"]], [str(self.delivered.id)])
        self.assertEqual([o["id"] for o in res.data["cancelled"]], [str(self.cancelled.id)])

    def test_order_list_only_shows_own_orders(self):
        self.client.force_authenticate(user=self.user)
        res = self.client.get(reverse("order-list"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        ids = {o["id"] for o in res.data["results"]}
        self.assertNotIn(str(self.foreign.id), ids)
        self.assertEqual(len(ids), 5)

        res = self.client.get(reverse("order-detail", args=[self.foreign.id]))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        res = self.client.get(reverse("account-orders"))
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class FlagStalledCheckoutsTaskTests(TestCase):
    def test_flags_paid_attempts_without_order(self):
        stalled = CheckoutAttempt.objects.create(
            payment_ref="jr-stalled",
            email="a@example.com",
            status=CheckoutAttempt.Status.FAILED,
            verified_amount=Decimal("100.00"),
        )
        CheckoutAttempt.objects.create(payment_ref="jr-fresh", email="b@example.com", verified_amount=Decimal("1.00"))
        CheckoutAttempt.objects.create(payment_ref="jr-unpaid", email="c@example.com")
        old = timezone.now() - timedelta(hours=2)
        CheckoutAttempt.objects.filter(payment_ref__in=[stalled.payment_ref, "jr-unpaid"]).update(updated_at=old)

        self.assertEqual(flag_stalled_checkouts(), "Flagged 1 stalled checkouts")
