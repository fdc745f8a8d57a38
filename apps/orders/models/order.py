from django.db import models
from django.conf import settings
from apps.utils.models import TimestampedModel


class Order(TimestampedModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')

    # Status changes are made by staff in the admin, never by checkout
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)

    # Snapshot of [{productId, name, price, quantity}] as priced at checkout
    items = models.JSONField(default=list)

    payment_ref = models.CharField(max_length=100, unique=True, null=True, blank=True, help_text="Paystack reference")
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    # {"detail": <address text>, "phone": <phone>}
    address = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id} [{self.status}]"

    @property
    def account_bucket(self):
        """
        Where the order shows up on the account page.
        """
        if self.status == self.Status.PENDING and not self.payment_ref:
            return "active"
        if self.status in (self.Status.PENDING, self.Status.PROCESSING, self.Status.SHIPPED):
            return "pending"
        if self.status == self.Status.DELIVERED:
            return "completed"
        return "cancelled"
