from celery import shared_task
from django.conf import settings
from django.utils import timezone
from datetime import timedelta
import logging
from .models import CheckoutAttempt

logger = logging.getLogger(__name__)


@shared_task
def flag_stalled_checkouts():
    """
    Runs every 15 minutes.
    Reports payments that Paystack confirmed but that never became an order,
    so staff can reconcile them by hand.
    """
    cutoff = timezone.now() - timedelta(minutes=settings.CHECKOUT_STALL_MINUTES)

    stalled = CheckoutAttempt.objects.filter(
        order__isnull=True,
        verified_amount__isnull=False,
        updated_at__lt=cutoff,
    )

    count = 0
    for attempt in stalled:
        logger.warning(
            f"Paid checkout {attempt.payment_ref} has no order (step '{attempt.status}', email {attempt.email})",
            extra={"payment_ref": attempt.payment_ref},
        )
        count += 1

    return f"Flagged {count} stalled checkouts"
