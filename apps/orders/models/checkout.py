from django.db import models
from django.conf import settings
from apps.utils.models import TimestampedModel
from .order import Order


class CheckoutAttempt(TimestampedModel):
    """
    Step log for one payment reference.

    Checkout talks to Paystack, creates accounts and writes the order in
    separate steps. Recording how far each reference got makes a run that
    died between "payment verified" and "order persisted" visible (see
    tasks.flag_stalled_checkouts) and lets a resubmission pick up the
    already-resolved user instead of starting over.
    """

    class Status(models.TextChoices):
        STARTED = "started", "Started"
        PAYMENT_VERIFIED = "payment_verified", "Payment Verified"
        USER_RESOLVED = "user_resolved", "User Resolved"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    payment_ref = models.CharField(max_length=100, unique=True)
    email = models.EmailField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.STARTED, db_index=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="checkout_attempts",
    )
    account_created = models.BooleanField(default=False)
    order = models.OneToOneField(
        Order,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="checkout_attempt",
    )

    verified_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    # Internal detail only, never returned to the shopper
    last_error = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.payment_ref} [{self.status}]"

    def advance(self, status, **fields):
        self.status = status
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=["status", "updated_at", *fields.keys()])

    def fail(self, error):
        self.advance(self.Status.FAILED, last_error=str(error)[:1000])
