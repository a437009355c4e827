import uuid

from django.conf import settings
from django.db import models


class PayoutTransfer(models.Model):
    """
    One provider transfer covering a batch of a vendor's payouts.

    The row is written in INTENT state before the provider is called, so a
    crash between the transfer and the bookkeeping can be reconciled later
    by looking the transfer up with its idempotency key.
    """

    class Status(models.TextChoices):
        INTENT = "INTENT", "Intent"
        SUCCEEDED = "SUCCEEDED", "Succeeded"
        FAILED = "FAILED", "Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payout_transfers")
    destination = models.CharField(max_length=100)
    idempotency_key = models.CharField(max_length=100, unique=True)

    gross_amount = models.DecimalField(max_digits=12, decimal_places=2)
    fee_amount = models.DecimalField(max_digits=12, decimal_places=2)
    net_amount = models.DecimalField(max_digits=12, decimal_places=2)
    amount_minor = models.PositiveBigIntegerField()
    currency = models.CharField(max_length=10)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.INTENT)
    provider_reference = models.CharField(max_length=150, blank=True, null=True)
    error = models.TextField(blank=True)

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["vendor", "status"], name="payout_tx_vendor_status_idx"),
        ]

    def __str__(self):
        return f"{self.vendor_id} - {self.net_amount} {self.currency} ({self.status})"


class Payout(models.Model):
    """A vendor's earnings for one calendar month."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PROCESSING = "PROCESSING", "Processing"
        PAID = "PAID", "Paid"

    BANK_TRANSFER = "Bank Transfer"
    BANK_DETAILS_NOT_PROVIDED = "Not Provided"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payouts")
    # first day of the month the earnings belong to
    period = models.DateField()

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    method = models.CharField(max_length=30, default=BANK_TRANSFER)
    note = models.CharField(max_length=100)
    scheduled_for = models.DateTimeField()
    bank_details = models.CharField(max_length=255, default=BANK_DETAILS_NOT_PROVIDED)

    transfer = models.ForeignKey(
        PayoutTransfer,
        on_delete=models.SET_NULL,
        related_name="payouts",
        null=True,
        blank=True,
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["vendor", "period"], name="payout_unique_vendor_period"),
        ]
        indexes = [
            models.Index(fields=["status"], name="payout_status_idx"),
            models.Index(fields=["scheduled_for"], name="payout_scheduled_for_idx"),
        ]

    def __str__(self):
        return f"{self.vendor_id} - {self.note} - {self.amount} ({self.status})"
