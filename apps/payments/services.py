import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from urllib.parse import quote

import requests
from django.conf import settings

from apps.utils.exceptions import PaymentVerificationFailed
from .serializers import PaystackVerifyResponseSerializer

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"


@dataclass(frozen=True)
class PaystackTransaction:
    reference: str
    status: str
    amount: int  # minor units (kobo)
    currency: str = ""
    customer_email: str = ""
    paid_at: Optional[datetime] = None

    @property
    def is_successful(self) -> bool:
        return self.status == SUCCESS_STATUS


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaystackService:
    """
    Server-side verification of hosted-checkout payments.
    Every call is attempted once; failure is final for the request.
    """

    @staticmethod
    def _verify_url(reference: str) -> str:
        base = settings.PAYSTACK_BASE_URL.rstrip("/")
        return f"{base}/transaction/verify/{quote(reference, safe='')}"

    @staticmethod
    def fetch_transaction(reference: str) -> PaystackTransaction:
        """
        Calls the provider and parses its answer into a PaystackTransaction.
        Raises PaymentVerificationFailed for transport errors, malformed
        bodies or a `status: false` envelope.
        """
        try:
            response = requests.get(
                PaystackService._verify_url(reference),
                headers={"Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}"},
                timeout=settings.PAYSTACK_TIMEOUT,
            )
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Paystack verify call failed for {reference}: {e}")
            raise PaymentVerificationFailed() from e

        serializer = PaystackVerifyResponseSerializer(data=payload)
        if not serializer.is_valid():
            logger.error(f"Paystack verify returned unexpected payload for {reference}: {serializer.errors}")
            raise PaymentVerificationFailed()

        envelope = serializer.validated_data
        data = envelope.get("data")
        if not envelope["status"] or not data:
            logger.warning(f"Paystack rejected reference {reference}: {envelope.get('message', '')}")
            raise PaymentVerificationFailed()

        return PaystackTransaction(
            reference=data["reference"],
            status=data["status"],
            amount=data["amount"],
            currency=data.get("currency", ""),
            customer_email=data.get("customer", {}).get("email", ""),
            paid_at=data.get("paid_at"),
        )

    @staticmethod
    def verify_payment(reference: str, expected_amount: Optional[Decimal] = None) -> PaystackTransaction:
        """
        Fail-closed verification: the transaction must exist, match the
        reference, be successful and, when given, match the expected amount.
        """
        transaction = PaystackService.fetch_transaction(reference)

        if transaction.reference != reference:
            logger.warning(f"Paystack reference mismatch: asked {reference}, got {transaction.reference}")
            raise PaymentVerificationFailed()

        if not transaction.is_successful:
            logger.info(f"Payment {reference} not successful (status={transaction.status})")
            raise PaymentVerificationFailed()

        if expected_amount is not None and transaction.amount != to_minor_units(expected_amount):
            logger.warning(
                f"Payment {reference} amount {transaction.amount} does not match "
                f"expected {to_minor_units(expected_amount)}"
            )
            raise PaymentVerificationFailed()

        logger.info(f"Payment {reference} verified ({transaction.amount} {transaction.currency})")
        return transaction
