import uuid
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.core.cache import cache
from django.db import transaction, DatabaseError

from apps.accounts.services import AccountService
from apps.catalog.models import Product
from apps.payments.services import PaystackService, to_minor_units
from apps.utils.exceptions import (
    BusinessLogicException,
    DuplicateCheckout,
    PriceMismatch,
    ProductNotFound,
    UpstreamServiceError,
)
from apps.utils.utils import generate_payment_reference
from .models import Order, CheckoutAttempt

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = Decimal("0.01")


def totals_match(client_total, server_total) -> bool:
    return abs(Decimal(str(client_total)) - Decimal(str(server_total))) <= PRICE_TOLERANCE


@dataclass
class PricedLine:
    product_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def as_order_item(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": float(self.price),
            "quantity": self.quantity,
        }


@dataclass
class ValidatedCart:
    lines: list = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0.00"))


class CartValidationService:
    """
    Re-prices a cart from the catalog. Client-side prices are never trusted.
    """

    @staticmethod
    def _as_uuid(product_id):
        try:
            return uuid.UUID(str(product_id))
        except ValueError:
            raise ProductNotFound(product_id)

    @staticmethod
    def price_cart(lines) -> ValidatedCart:
        """
        `lines` is an iterable of {"product_id", "quantity"}.
        All-or-nothing: one unknown or unavailable product rejects the cart.
        """
        lines = list(lines)
        if not lines:
            raise BusinessLogicException("Your cart is empty.", code="empty_cart")

        wanted = [CartValidationService._as_uuid(line["product_id"]) for line in lines]

        try:
            products = {
                str(p.id): p
                for p in Product.objects.storefront().filter(id__in=wanted).only("id", "name", "price")
            }
        except DatabaseError as e:
            raise UpstreamServiceError("Failed to fetch prices") from e

        priced = []
        for line, product_uuid in zip(lines, wanted):
            product = products.get(str(product_uuid))
            if product is None:
                raise ProductNotFound(line["product_id"])
            priced.append(PricedLine(
                product_id=str(product.id),
                name=product.name,
                price=product.price,
                quantity=int(line["quantity"]),
            ))

        return ValidatedCart(lines=priced)

    @staticmethod
    def validate_total(lines) -> Decimal:
        return CartValidationService.price_cart(lines).total


class CheckoutService:

    @staticmethod
    def prepare_payment(cart, email: str) -> dict:
        """
        Gatekeeper before the Paystack popup opens: the session cart's own
        total must agree with the catalog, otherwise no payment is started.
        """
        if not len(cart):
            raise BusinessLogicException("Your cart is empty.", code="empty_cart")

        server_total = CartValidationService.validate_total(cart.as_lines())
        if not totals_match(cart.total(), server_total):
            logger.info(f"Checkout blocked: cart total {cart.total()} vs catalog {server_total}")
            raise PriceMismatch()

        return {
            "key": settings.PAYSTACK_PUBLIC_KEY,
            "email": email,
            "amount": to_minor_units(server_total),
            "currency": settings.PAYSTACK_CURRENCY,
            "reference": generate_payment_reference(),
            "total": server_total,
        }

    @staticmethod
    def process_checkout(*, lines, form: dict, payment_ref: str, client_total) -> Order:
        """
        Turns a paid Paystack reference into an order.

        SEQUENCE:
        1. Re-price the cart and compare with the client's total (local reads only)
        2. Lock the reference so double submits cannot race
        3. Verify the payment with Paystack (fail closed)
        4. Find or provision the customer account
        5. Persist the order and close the step log
        """
        validated = CartValidationService.price_cart(lines)
        if not totals_match(client_total, validated.total):
            raise PriceMismatch()

        lock_key = f"checkout_lock:{payment_ref}"
        if not cache.add(lock_key, "processing", timeout=settings.CHECKOUT_LOCK_TIMEOUT):
            raise DuplicateCheckout("This payment is already being processed.")

        try:
            return CheckoutService._run(validated, form, payment_ref)
        finally:
            cache.delete(lock_key)

    @staticmethod
    def _run(validated: ValidatedCart, form: dict, payment_ref: str) -> Order:
        attempt, _ = CheckoutAttempt.objects.get_or_create(
            payment_ref=payment_ref,
            defaults={"email": form["email"]},
        )
        if attempt.status == CheckoutAttempt.Status.COMPLETED:
            logger.warning(f"Replay of completed checkout {payment_ref} rejected")
            raise DuplicateCheckout("This payment has already been used.")

        try:
            PaystackService.verify_payment(payment_ref, expected_amount=validated.total)
            attempt.advance(CheckoutAttempt.Status.PAYMENT_VERIFIED, verified_amount=validated.total)

            if attempt.user_id:
                # An earlier run already resolved the customer for this payment
                user, created = attempt.user, False
                logger.info(f"Resuming checkout {payment_ref} for user {user.id}")
            else:
                user, created = AccountService.provision_customer(
                    email=form["email"],
                    name=form["name"],
                    phone=form.get("phone", ""),
                )
            attempt.advance(CheckoutAttempt.Status.USER_RESOLVED, user=user, account_created=created or attempt.account_created)

            with transaction.atomic():
                order = Order.objects.create(
                    user=user,
                    status=Order.Status.PENDING,
                    items=[line.as_order_item() for line in validated.lines],
                    payment_ref=payment_ref,
                    total_amount=validated.total,
                    address={"detail": form.get("address", ""), "phone": form.get("phone", "")},
                )
                attempt.advance(CheckoutAttempt.Status.COMPLETED, order=order, last_error="")

        except BusinessLogicException as e:
            attempt.fail(e.message)
            raise
        except Exception as e:
            logger.exception(f"Checkout {payment_ref} failed at step '{attempt.status}'")
            attempt.fail(e)
            raise UpstreamServiceError("Checkout failed. Please try again.") from e

        logger.info(f"Order {order.id} created for payment {payment_ref}")
        return order
