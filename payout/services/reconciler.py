from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.utils import timezone

from account.models import User
from notifications.services import NotificationService, NotificationTemplates
from order.models import Order, OrderItem
from payout.models import Payout, PayoutTransfer
from .periods import localize, previous_month_bounds
from .provider import PayoutConfigurationError, PayoutGatewayError, PayoutServiceError

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
MINOR_UNITS = Decimal("100")


def split_platform_fee(gross: Decimal, fee_rate: Decimal) -> Tuple[Decimal, Decimal, int]:
    """
    Returns ``(fee, net, amount_minor)`` for a gross amount.

    The transferred amount is truncated to whole minor units and the fee
    absorbs the remainder, so ``fee + net == gross`` always holds.
    """
    exact_net = gross - gross * fee_rate
    amount_minor = int((exact_net * MINOR_UNITS).to_integral_value(rounding=ROUND_DOWN))
    net = (Decimal(amount_minor) / MINOR_UNITS).quantize(CENT)
    return (gross - net).quantize(CENT), net, amount_minor


@dataclass(frozen=True)
class PayoutJobContext:
    run_at: datetime
    period_start: datetime
    period_end: datetime
    scheduled_for: datetime
    note: str
    provider: Any = None
    using: str = DEFAULT_DB_ALIAS
    fee_rate: Decimal = Decimal("0.02")
    currency: str = "usd"

    @property
    def period(self) -> date:
        return self.period_start.date()

    @classmethod
    def for_run(cls, run_at: Optional[datetime] = None, provider=None, using: str = DEFAULT_DB_ALIAS):
        """Context for a job run at ``run_at``, targeting the month before it."""
        moment = localize(run_at)
        period_start, period_end = previous_month_bounds(moment)
        scheduled_for = moment.replace(
            day=int(getattr(settings, "PAYOUT_DISBURSEMENT_DAY", 7)),
            hour=int(getattr(settings, "PAYOUT_DISBURSEMENT_HOUR", 10)),
            minute=0,
            second=0,
            microsecond=0,
        )
        return cls(
            run_at=moment,
            period_start=period_start,
            period_end=period_end,
            scheduled_for=scheduled_for,
            note=f"{period_start:%B %Y}",
            provider=provider,
            using=using,
            fee_rate=Decimal(str(getattr(settings, "PAYOUT_PLATFORM_FEE_RATE", "0.02"))),
            currency=getattr(settings, "PAYOUT_CURRENCY", "usd"),
        )


@dataclass
class GenerationResult:
    period: date
    created: List[Payout] = field(default_factory=list)
    skipped_existing: List[str] = field(default_factory=list)
    skipped_zero: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.isoformat(),
            "created": [str(payout.id) for payout in self.created],
            "total_amount": str(sum((payout.amount for payout in self.created), ZERO)),
            "skipped_existing": self.skipped_existing,
            "skipped_zero": self.skipped_zero,
        }


@dataclass
class DisbursementResult:
    transfers: List[PayoutTransfer] = field(default_factory=list)
    reconciled: List[PayoutTransfer] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transfers": [str(transfer.id) for transfer in self.transfers],
            "total_net_amount": str(sum((transfer.net_amount for transfer in self.transfers), ZERO)),
            "reconciled": [str(transfer.id) for transfer in self.reconciled],
            "failed": self.failed,
        }


class PayoutReconciler:
    """
    Monthly vendor payout bookkeeping.

    Generation turns last month's delivered order items into one PENDING
    payout per vendor. Disbursement sweeps every vendor's unpaid payouts into
    a single provider transfer, net of the platform fee.
    """

    def __init__(self, context: PayoutJobContext) -> None:
        self.context = context

    # -----------------------------
    # Generation
    # -----------------------------
    def generate_monthly_payouts(self) -> GenerationResult:
        ctx = self.context
        result = GenerationResult(period=ctx.period)
        vendors = User.objects.db_manager(ctx.using).vendors().order_by("created_at")

        for vendor in vendors:
            if self._payout_exists(vendor):
                logger.info("Payout for vendor=%s period=%s already exists", vendor.id, ctx.period)
                result.skipped_existing.append(str(vendor.id))
                continue

            amount = self.vendor_earnings(vendor)
            if amount <= 0:
                result.skipped_zero.append(str(vendor.id))
                continue

            payout = self._create_payout(vendor, amount)
            if payout is None:
                result.skipped_existing.append(str(vendor.id))
                continue

            logger.info("Created payout %s for vendor=%s amount=%s", payout.id, vendor.id, amount)
            result.created.append(payout)
            self._notify(vendor, NotificationTemplates.payout_generated(payout))

        logger.info(
            "Generated %s payouts for %s (existing=%s, zero=%s)",
            len(result.created),
            ctx.note,
            len(result.skipped_existing),
            len(result.skipped_zero),
        )
        return result

    def vendor_earnings(self, vendor) -> Decimal:
        ctx = self.context
        items = OrderItem.objects.using(ctx.using).filter(
            vendor=vendor,
            order__status=Order.Status.DELIVERED,
            order__shipped_at__gte=ctx.period_start,
            order__shipped_at__lte=ctx.period_end,
        )
        return sum((item.line_total() for item in items), ZERO)

    def _payout_exists(self, vendor) -> bool:
        return Payout.objects.using(self.context.using).filter(vendor=vendor, period=self.context.period).exists()

    def _create_payout(self, vendor, amount: Decimal) -> Optional[Payout]:
        ctx = self.context
        try:
            with transaction.atomic(using=ctx.using):
                return Payout.objects.using(ctx.using).create(
                    vendor=vendor,
                    period=ctx.period,
                    amount=amount,
                    status=Payout.Status.PENDING,
                    method=Payout.BANK_TRANSFER,
                    note=ctx.note,
                    scheduled_for=ctx.scheduled_for,
                    bank_details=vendor.bank_details or Payout.BANK_DETAILS_NOT_PROVIDED,
                )
        except IntegrityError:
            # another run created it between the check and the insert
            logger.warning("Concurrent payout for vendor=%s period=%s; keeping the existing one", vendor.id, ctx.period)
            return None

    # -----------------------------
    # Disbursement
    # -----------------------------
    @property
    def provider(self):
        if self.context.provider is None:
            raise PayoutConfigurationError("A payout provider is required for disbursement")
        return self.context.provider

    def disburse_pending_payouts(self) -> DisbursementResult:
        provider = self.provider
        ctx = self.context
        result = DisbursementResult()
        vendors = (
            User.objects.db_manager(ctx.using)
            .vendors()
            .exclude(payout_account_id__isnull=True)
            .exclude(payout_account_id="")
            .order_by("created_at")
        )

        for vendor in vendors:
            try:
                result.reconciled.extend(self.reconcile_open_transfers(vendor, provider))
                transfer = self.disburse_vendor(vendor, provider)
            except PayoutServiceError as exc:
                logger.exception("Payout disbursement failed for vendor=%s", vendor.id)
                result.failed[str(vendor.id)] = str(exc)
                continue
            if transfer is not None:
                result.transfers.append(transfer)

        logger.info(
            "Disbursed %s transfers (reconciled=%s, failed=%s)",
            len(result.transfers),
            len(result.reconciled),
            len(result.failed),
        )
        return result

    def reconcile_open_transfers(self, vendor, provider) -> List[PayoutTransfer]:
        """Settle intents left open by a run that died before recording the outcome."""
        reconciled = []
        open_transfers = PayoutTransfer.objects.using(self.context.using).filter(
            vendor=vendor,
            status=PayoutTransfer.Status.INTENT,
        ).order_by("created_at")

        for transfer in open_transfers:
            found = provider.find_transfer(transfer.idempotency_key)
            if found is not None:
                logger.info("Open transfer %s was completed at the provider as %s", transfer.id, found.reference)
                self._complete_transfer(transfer, found.reference, found.raw_response)
            else:
                logger.info("Open transfer %s never reached the provider; releasing its payouts", transfer.id)
                self._fail_transfer(transfer, "Transfer not found at provider")
            reconciled.append(transfer)
        return reconciled

    def disburse_vendor(self, vendor, provider) -> Optional[PayoutTransfer]:
        transfer = self._open_transfer(vendor)
        if transfer is None:
            return None

        try:
            response = provider.create_transfer(
                destination=transfer.destination,
                amount_minor=transfer.amount_minor,
                currency=transfer.currency,
                idempotency_key=transfer.idempotency_key,
                description=f"Vendor payout {transfer.id}",
                metadata={"payout_transfer_id": str(transfer.id)},
            )
        except PayoutGatewayError as exc:
            if exc.outcome_unknown:
                logger.warning("Transfer %s outcome unknown; left open for reconciliation", transfer.id)
            else:
                self._fail_transfer(transfer, str(exc))
            raise
        except PayoutServiceError as exc:
            self._fail_transfer(transfer, str(exc))
            raise

        self._complete_transfer(transfer, response.reference, response.raw_response)
        return transfer

    def _open_transfer(self, vendor) -> Optional[PayoutTransfer]:
        """Claims the vendor's unpaid payouts under a committed INTENT transfer."""
        ctx = self.context
        with transaction.atomic(using=ctx.using):
            payouts = list(
                Payout.objects.using(ctx.using)
                .select_for_update()
                .filter(vendor=vendor, status=Payout.Status.PENDING, transfer__isnull=True)
                .order_by("period")
            )
            if not payouts:
                return None

            gross = sum((payout.amount for payout in payouts), ZERO)
            fee, net, amount_minor = split_platform_fee(gross, ctx.fee_rate)
            if net <= 0 or amount_minor <= 0:
                logger.info("Skipping vendor=%s: net amount %s is below one minor unit", vendor.id, net)
                return None

            transfer = PayoutTransfer.objects.using(ctx.using).create(
                vendor=vendor,
                destination=vendor.payout_account_id,
                idempotency_key=f"payout-{vendor.id}-{uuid.uuid4().hex}",
                gross_amount=gross,
                fee_amount=fee,
                net_amount=net,
                amount_minor=amount_minor,
                currency=ctx.currency,
                status=PayoutTransfer.Status.INTENT,
                metadata={
                    "payout_ids": [str(payout.id) for payout in payouts],
                    "periods": [payout.note for payout in payouts],
                    "fee_rate": str(ctx.fee_rate),
                },
            )
            Payout.objects.using(ctx.using).filter(id__in=[payout.id for payout in payouts]).update(
                status=Payout.Status.PROCESSING,
                transfer=transfer,
                updated_at=timezone.now(),
            )
        return transfer

    def _complete_transfer(self, transfer: PayoutTransfer, reference: str, raw_response: Dict[str, Any]) -> None:
        ctx = self.context
        now = timezone.now()
        with transaction.atomic(using=ctx.using):
            transfer.status = PayoutTransfer.Status.SUCCEEDED
            transfer.provider_reference = reference
            transfer.metadata = {**(transfer.metadata or {}), "provider_response": raw_response}
            transfer.save(using=ctx.using, update_fields=["status", "provider_reference", "metadata", "updated_at"])
            payout_ids = (transfer.metadata or {}).get("payout_ids", [])
            Payout.objects.using(ctx.using).filter(id__in=payout_ids, transfer=transfer).update(
                status=Payout.Status.PAID,
                paid_at=now,
                updated_at=now,
            )
        logger.info("Transfer %s paid %s %s to vendor=%s", transfer.id, transfer.net_amount, transfer.currency, transfer.vendor_id)
        self._notify(transfer.vendor, NotificationTemplates.payout_paid(transfer))

    def _fail_transfer(self, transfer: PayoutTransfer, error: str) -> None:
        ctx = self.context
        with transaction.atomic(using=ctx.using):
            transfer.status = PayoutTransfer.Status.FAILED
            transfer.error = error
            transfer.save(using=ctx.using, update_fields=["status", "error", "updated_at"])
            Payout.objects.using(ctx.using).filter(transfer=transfer, status=Payout.Status.PROCESSING).update(
                status=Payout.Status.PENDING,
                transfer=None,
                updated_at=timezone.now(),
            )

    @staticmethod
    def _notify(vendor, template) -> None:
        # Non-blocking: payout bookkeeping must not fail on notification errors.
        try:
            title, message, payload = template
            NotificationService.notify(
                user=vendor,
                notification_type=payload["type"],
                title=title,
                message=message,
                payload=payload,
            )
        except Exception:
            logger.exception("Failed to notify vendor=%s", vendor.id)
