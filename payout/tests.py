from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import requests
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from account.models import User
from notifications.models import Notification
from order.models import Order, OrderItem
from .models import Payout, PayoutTransfer
from .services.provider import (
    PayoutConfigurationError,
    PayoutGatewayError,
    PayoutProvider,
    TransferResult,
)
from .services.reconciler import PayoutJobContext, PayoutReconciler, split_platform_fee
from .services.revenue import compare_vendor_revenue, growth_percentage
from .services.stripe_sdk import StripeAPIError, StripeConnectSDK
from .tasks import disburse_vendor_payouts, generate_monthly_payouts, run_disbursement

DHAKA = ZoneInfo("Asia/Dhaka")
RUN_AT = datetime(2026, 10, 1, 0, 0, tzinfo=DHAKA)


def make_vendor(email, **extra):
    return User.objects.create_user(email=email, password="Pass123!", role=User.Role.SELLER, **extra)


class OrderFactoryMixin:
    def make_order(self, buyer, lines, status=Order.Status.DELIVERED, shipped_at=None, created_at=None):
        order = Order.objects.create(
            order_number=f"ORD-{Order.objects.count() + 1:06d}",
            user=buyer,
            status=status,
            total_amount=Decimal("0.00"),
            delivery_address="House 1, Road 2, Dhaka",
            shipped_at=shipped_at,
        )
        for vendor, price, discounted_price, quantity in lines:
            OrderItem.objects.create(
                order=order,
                vendor=vendor,
                product_name="Item",
                price=Decimal(price),
                discounted_price=Decimal(discounted_price) if discounted_price is not None else None,
                quantity=quantity,
            )
        if created_at is not None:
            Order.objects.filter(pk=order.pk).update(created_at=created_at)
        return order

    def make_payout(self, vendor, amount, period, note="September 2026", status=Payout.Status.PENDING):
        return Payout.objects.create(
            vendor=vendor,
            period=period,
            amount=Decimal(amount),
            status=status,
            note=note,
            scheduled_for=datetime(2026, 10, 7, 10, 0, tzinfo=DHAKA),
        )


class PayoutJobContextTests(TestCase):
    def test_run_on_first_targets_previous_month(self):
        ctx = PayoutJobContext.for_run(run_at=RUN_AT)

        self.assertEqual(ctx.period_start, datetime(2026, 9, 1, 0, 0, tzinfo=DHAKA))
        self.assertEqual(ctx.period_end, datetime(2026, 9, 30, 23, 59, 59, 999999, tzinfo=DHAKA))
        self.assertEqual(ctx.scheduled_for, datetime(2026, 10, 7, 10, 0, tzinfo=DHAKA))
        self.assertEqual(ctx.note, "September 2026")
        self.assertEqual(ctx.period.isoformat(), "2026-09-01")
        self.assertEqual(ctx.fee_rate, Decimal("0.02"))

    def test_january_run_crosses_year(self):
        ctx = PayoutJobContext.for_run(run_at=datetime(2027, 1, 1, 0, 5, tzinfo=DHAKA))
        self.assertEqual(ctx.note, "December 2026")
        self.assertEqual(ctx.period_end, datetime(2026, 12, 31, 23, 59, 59, 999999, tzinfo=DHAKA))

    def test_utc_instant_is_read_in_payout_time_zone(self):
        # 20:00 UTC on 30 September is already 1 October in Dhaka
        ctx = PayoutJobContext.for_run(run_at=datetime(2026, 9, 30, 20, 0, tzinfo=ZoneInfo("UTC")))
        self.assertEqual(ctx.note, "September 2026")


class GenerateMonthlyPayoutsTests(OrderFactoryMixin, TestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="buyer@bazar.com", password="Pass123!")
        self.vendor = make_vendor("vendor@bazar.com", bank_name="Sonali Bank", bank_account_number="0011")
        self.other_vendor = make_vendor("other@bazar.com")
        self.reconciler = PayoutReconciler(PayoutJobContext.for_run(run_at=RUN_AT))

    def test_sums_discounted_and_full_price_lines(self):
        self.make_order(
            self.buyer,
            [
                (self.vendor, "100.00", "80.00", 2),
                (self.vendor, "50.00", None, 1),
                (self.other_vendor, "999.00", None, 1),
            ],
            shipped_at=datetime(2026, 9, 15, 12, 0, tzinfo=DHAKA),
        )

        self.reconciler.generate_monthly_payouts()

        payout = Payout.objects.get(vendor=self.vendor)
        self.assertEqual(payout.amount, Decimal("210.00"))
        self.assertEqual(payout.status, Payout.Status.PENDING)
        self.assertEqual(payout.method, "Bank Transfer")
        self.assertEqual(payout.note, "September 2026")
        self.assertEqual(payout.bank_details, "Sonali Bank / 0011")
        self.assertEqual(payout.scheduled_for, datetime(2026, 10, 7, 10, 0, tzinfo=DHAKA))
        self.assertEqual(Payout.objects.get(vendor=self.other_vendor).bank_details, "Not Provided")

    def test_only_delivered_orders_shipped_in_period_count(self):
        self.make_order(self.buyer, [(self.vendor, "10.00", None, 1)], shipped_at=datetime(2026, 9, 1, 0, 0, tzinfo=DHAKA))
        self.make_order(self.buyer, [(self.vendor, "20.00", None, 1)], shipped_at=datetime(2026, 9, 30, 23, 59, tzinfo=DHAKA))
        self.make_order(self.buyer, [(self.vendor, "40.00", None, 1)], shipped_at=datetime(2026, 8, 31, 23, 59, tzinfo=DHAKA))
        self.make_order(self.buyer, [(self.vendor, "80.00", None, 1)], shipped_at=datetime(2026, 10, 1, 0, 0, tzinfo=DHAKA))
        self.make_order(
            self.buyer,
            [(self.vendor, "160.00", None, 1)],
            status=Order.Status.SHIPPED,
            shipped_at=datetime(2026, 9, 10, tzinfo=DHAKA),
        )

        self.assertEqual(self.reconciler.vendor_earnings(self.vendor), Decimal("30.00"))

    def test_vendor_without_sales_gets_no_record(self):
        result = self.reconciler.generate_monthly_payouts()

        self.assertFalse(Payout.objects.exists())
        self.assertEqual(len(result.created), 0)
        self.assertIn(str(self.vendor.id), result.skipped_zero)

    def test_rerun_does_not_duplicate(self):
        self.make_order(self.buyer, [(self.vendor, "50.00", None, 1)], shipped_at=datetime(2026, 9, 2, tzinfo=DHAKA))

        first = self.reconciler.generate_monthly_payouts()
        second = PayoutReconciler(PayoutJobContext.for_run(run_at=RUN_AT)).generate_monthly_payouts()

        self.assertEqual(len(first.created), 1)
        self.assertEqual(len(second.created), 0)
        self.assertIn(str(self.vendor.id), second.skipped_existing)
        self.assertEqual(Payout.objects.filter(vendor=self.vendor).count(), 1)

    def test_concurrent_insert_is_absorbed(self):
        self.make_order(self.buyer, [(self.vendor, "50.00", None, 1)], shipped_at=datetime(2026, 9, 2, tzinfo=DHAKA))

        with patch.object(PayoutReconciler, "_payout_exists", return_value=False):
            self.reconciler.generate_monthly_payouts()
            result = self.reconciler.generate_monthly_payouts()

        self.assertEqual(Payout.objects.filter(vendor=self.vendor).count(), 1)
        self.assertIn(str(self.vendor.id), result.skipped_existing)

    def test_database_rejects_second_record_for_period(self):
        self.make_payout(self.vendor, "10.00", RUN_AT.date().replace(month=9))
        with self.assertRaises(IntegrityError), transaction.atomic():
            self.make_payout(self.vendor, "20.00", RUN_AT.date().replace(month=9))

    def test_vendor_is_notified(self):
        self.make_order(self.buyer, [(self.vendor, "50.00", None, 1)], shipped_at=datetime(2026, 9, 2, tzinfo=DHAKA))

        self.reconciler.generate_monthly_payouts()

        notification = Notification.objects.get(user=self.vendor)
        self.assertEqual(notification.type, Notification.Type.PAYOUT_GENERATED)
        self.assertEqual(notification.payload["amount"], "50.00")

    @patch("payout.services.reconciler.NotificationService.notify", side_effect=RuntimeError("down"))
    def test_notification_failure_does_not_block_generation(self, _notify):
        self.make_order(self.buyer, [(self.vendor, "50.00", None, 1)], shipped_at=datetime(2026, 9, 2, tzinfo=DHAKA))

        result = self.reconciler.generate_monthly_payouts()

        self.assertEqual(len(result.created), 1)


class PlatformFeeTests(TestCase):
    def test_two_percent_of_thousand(self):
        self.assertEqual(split_platform_fee(Decimal("1000.00"), Decimal("0.02")), (Decimal("20.00"), Decimal("980.00"), 98000))

    def test_net_is_truncated_to_minor_units(self):
        fee, net, minor = split_platform_fee(Decimal("10.01"), Decimal("0.02"))
        self.assertEqual(minor, 980)
        self.assertEqual(net, Decimal("9.80"))
        self.assertEqual(fee + net, Decimal("10.01"))

    def test_sub_cent_net_is_zero(self):
        self.assertEqual(split_platform_fee(Decimal("0.01"), Decimal("0.02"))[2], 0)


class DisbursePendingPayoutsTests(OrderFactoryMixin, TestCase):
    def setUp(self):
        self.vendor = make_vendor("vendor@bazar.com", payout_account_id="acct_vendor")
        self.provider = MagicMock()
        self.provider.create_transfer.return_value = TransferResult(reference="tr_1", raw_response={"id": "tr_1"})
        self.provider.find_transfer.return_value = None

    def reconciler(self):
        return PayoutReconciler(PayoutJobContext.for_run(run_at=datetime(2026, 10, 7, 10, 0, tzinfo=DHAKA), provider=self.provider))

    def test_transfers_net_of_fee_and_marks_records_paid(self):
        august = self.make_payout(self.vendor, "600.00", datetime(2026, 8, 1).date(), note="August 2026")
        september = self.make_payout(self.vendor, "400.00", datetime(2026, 9, 1).date())

        result = self.reconciler().disburse_pending_payouts()

        kwargs = self.provider.create_transfer.call_args.kwargs
        self.assertEqual(kwargs["destination"], "acct_vendor")
        self.assertEqual(kwargs["amount_minor"], 98000)
        self.assertEqual(kwargs["currency"], "usd")

        transfer = PayoutTransfer.objects.get()
        self.assertEqual(result.transfers, [transfer])
        self.assertEqual(transfer.status, PayoutTransfer.Status.SUCCEEDED)
        self.assertEqual(transfer.provider_reference, "tr_1")
        self.assertEqual(transfer.gross_amount, Decimal("1000.00"))
        self.assertEqual(transfer.fee_amount, Decimal("20.00"))
        self.assertEqual(transfer.net_amount, Decimal("980.00"))
        self.assertEqual(kwargs["idempotency_key"], transfer.idempotency_key)

        for payout in (august, september):
            payout.refresh_from_db()
            self.assertEqual(payout.status, Payout.Status.PAID)
            self.assertIsNotNone(payout.paid_at)
            self.assertEqual(payout.transfer_id, transfer.id)

        self.assertTrue(Notification.objects.filter(user=self.vendor, type=Notification.Type.PAYOUT_PAID).exists())

    def test_paid_records_are_not_summed_again(self):
        self.make_payout(self.vendor, "500.00", datetime(2026, 8, 1).date(), status=Payout.Status.PAID)
        self.make_payout(self.vendor, "100.00", datetime(2026, 9, 1).date())

        self.reconciler().disburse_pending_payouts()

        self.assertEqual(self.provider.create_transfer.call_args.kwargs["amount_minor"], 9800)

    def test_truncates_fractional_minor_unit(self):
        self.make_payout(self.vendor, "10.01", datetime(2026, 9, 1).date())

        self.reconciler().disburse_pending_payouts()

        self.assertEqual(self.provider.create_transfer.call_args.kwargs["amount_minor"], 980)

    def test_nothing_to_transfer_below_one_minor_unit(self):
        payout = self.make_payout(self.vendor, "0.01", datetime(2026, 9, 1).date())

        result = self.reconciler().disburse_pending_payouts()

        self.provider.create_transfer.assert_not_called()
        self.assertEqual(result.transfers, [])
        self.assertFalse(PayoutTransfer.objects.exists())
        payout.refresh_from_db()
        self.assertEqual(payout.status, Payout.Status.PENDING)

    def test_vendor_without_connected_account_is_skipped(self):
        unconnected = make_vendor("plain@bazar.com")
        payout = self.make_payout(unconnected, "100.00", datetime(2026, 9, 1).date())

        self.reconciler().disburse_pending_payouts()

        self.provider.create_transfer.assert_not_called()
        payout.refresh_from_db()
        self.assertEqual(payout.status, Payout.Status.PENDING)

    def test_provider_rejection_is_isolated_per_vendor(self):
        second = make_vendor("second@bazar.com", payout_account_id="acct_second")
        rejected = self.make_payout(self.vendor, "100.00", datetime(2026, 9, 1).date())
        paid = self.make_payout(second, "200.00", datetime(2026, 9, 1).date())

        def create_transfer(**kwargs):
            if kwargs["destination"] == "acct_vendor":
                raise PayoutGatewayError("Insufficient platform balance")
            return TransferResult(reference="tr_second", raw_response={"id": "tr_second"})

        self.provider.create_transfer.side_effect = create_transfer

        result = self.reconciler().disburse_pending_payouts()

        self.assertEqual(result.failed, {str(self.vendor.id): "Insufficient platform balance"})
        rejected.refresh_from_db()
        paid.refresh_from_db()
        self.assertEqual(rejected.status, Payout.Status.PENDING)
        self.assertIsNone(rejected.transfer_id)
        self.assertEqual(paid.status, Payout.Status.PAID)
        failed_transfer = PayoutTransfer.objects.get(vendor=self.vendor)
        self.assertEqual(failed_transfer.status, PayoutTransfer.Status.FAILED)
        self.assertEqual(failed_transfer.error, "Insufficient platform balance")

    def test_unknown_outcome_is_settled_on_next_run(self):
        payout = self.make_payout(self.vendor, "100.00", datetime(2026, 9, 1).date())
        self.provider.create_transfer.side_effect = PayoutGatewayError("Read timed out", outcome_unknown=True)

        first = self.reconciler().disburse_pending_payouts()

        self.assertIn(str(self.vendor.id), first.failed)
        transfer = PayoutTransfer.objects.get()
        self.assertEqual(transfer.status, PayoutTransfer.Status.INTENT)
        payout.refresh_from_db()
        self.assertEqual(payout.status, Payout.Status.PROCESSING)

        self.provider.find_transfer.return_value = TransferResult(reference="tr_late", raw_response={"id": "tr_late"})
        second = self.reconciler().disburse_pending_payouts()

        self.provider.find_transfer.assert_called_with(transfer.idempotency_key)
        self.assertEqual(self.provider.create_transfer.call_count, 1)
        self.assertEqual(second.reconciled, [transfer])
        transfer.refresh_from_db()
        payout.refresh_from_db()
        self.assertEqual(transfer.status, PayoutTransfer.Status.SUCCEEDED)
        self.assertEqual(transfer.provider_reference, "tr_late")
        self.assertEqual(payout.status, Payout.Status.PAID)

    def test_open_intent_missing_at_provider_is_released_and_retried(self):
        payout = self.make_payout(self.vendor, "100.00", datetime(2026, 9, 1).date())
        self.provider.create_transfer.side_effect = PayoutGatewayError("Connection reset", outcome_unknown=True)
        self.reconciler().disburse_pending_payouts()

        self.provider.create_transfer.side_effect = None
        self.reconciler().disburse_pending_payouts()

        failed = PayoutTransfer.objects.get(status=PayoutTransfer.Status.FAILED)
        succeeded = PayoutTransfer.objects.get(status=PayoutTransfer.Status.SUCCEEDED)
        self.assertNotEqual(failed.idempotency_key, succeeded.idempotency_key)
        payout.refresh_from_db()
        self.assertEqual(payout.status, Payout.Status.PAID)
        self.assertEqual(payout.transfer_id, succeeded.id)

    def test_disbursement_requires_provider(self):
        reconciler = PayoutReconciler(PayoutJobContext.for_run(run_at=RUN_AT))
        with self.assertRaises(PayoutConfigurationError):
            reconciler.disburse_pending_payouts()


class RevenueComparisonTests(OrderFactoryMixin, TestCase):
    NOW = datetime(2026, 10, 15, 12, 0, tzinfo=DHAKA)

    def setUp(self):
        self.buyer = User.objects.create_user(email="buyer@bazar.com", password="Pass123!")
        self.vendor = make_vendor("vendor@bazar.com")

    def test_growth_against_previous_month(self):
        self.make_order(self.buyer, [(self.vendor, "150.00", None, 1)], created_at=datetime(2026, 10, 3, tzinfo=DHAKA))
        self.make_order(self.buyer, [(self.vendor, "100.00", None, 1)], created_at=datetime(2026, 9, 10, tzinfo=DHAKA))
        self.make_order(
            self.buyer,
            [(self.vendor, "500.00", None, 1)],
            status=Order.Status.CANCELLED,
            created_at=datetime(2026, 10, 4, tzinfo=DHAKA),
        )

        comparison = compare_vendor_revenue(self.vendor, now=self.NOW)

        self.assertEqual(comparison.current_month_revenue, Decimal("150.00"))
        self.assertEqual(comparison.previous_month_revenue, Decimal("100.00"))
        self.assertEqual(comparison.growth_percentage, Decimal("50.00"))

    def test_zero_baseline_counts_as_full_growth(self):
        self.make_order(self.buyer, [(self.vendor, "75.00", None, 1)], created_at=datetime(2026, 10, 3, tzinfo=DHAKA))

        comparison = compare_vendor_revenue(self.vendor, now=self.NOW)

        self.assertEqual(comparison.previous_month_revenue, Decimal("0.00"))
        self.assertEqual(comparison.growth_percentage, Decimal("100.00"))

    def test_growth_rounding(self):
        self.assertEqual(growth_percentage(Decimal("0"), Decimal("0")), Decimal("100.00"))
        self.assertEqual(growth_percentage(Decimal("50"), Decimal("150")), Decimal("-66.67"))


class StripeConnectSDKTests(TestCase):
    @patch("payout.services.stripe_sdk.requests.request")
    def test_create_transfer_sends_idempotency_key(self, mock_request):
        mock_request.return_value = MagicMock(ok=True, json=MagicMock(return_value={"id": "tr_1"}))
        sdk = StripeConnectSDK(secret_key="sk_test_1")

        response = sdk.create_transfer(
            destination="acct_1",
            amount=98000,
            currency="usd",
            idempotency_key="payout-key",
            metadata={"payout_transfer_id": "abc"},
        )

        self.assertEqual(response["id"], "tr_1")
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("POST", "https://api.stripe.com/v1/transfers"))
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk_test_1")
        self.assertEqual(kwargs["headers"]["Idempotency-Key"], "payout-key")
        self.assertEqual(kwargs["data"]["transfer_group"], "payout-key")
        self.assertEqual(kwargs["data"]["metadata[payout_transfer_id]"], "abc")

    @patch("payout.services.stripe_sdk.requests.request")
    def test_error_payload_is_raised(self, mock_request):
        mock_request.return_value = MagicMock(
            ok=False,
            status_code=400,
            json=MagicMock(return_value={"error": {"message": "No such destination", "code": "resource_missing"}}),
        )

        with self.assertRaises(StripeAPIError) as ctx:
            StripeConnectSDK(secret_key="sk_test_1").list_transfers(transfer_group="x")

        self.assertEqual(str(ctx.exception), "No such destination")
        self.assertEqual(ctx.exception.code, "resource_missing")


class PayoutProviderTests(TestCase):
    @patch.dict("os.environ", {"STRIPE_SECRET_KEY": ""})
    @override_settings(STRIPE_SECRET_KEY="")
    def test_missing_secret_key(self):
        with self.assertRaises(PayoutConfigurationError):
            PayoutProvider()

    def test_gateway_errors_classify_outcome(self):
        provider = PayoutProvider(secret_key="sk_test_1")

        provider.sdk.create_transfer = MagicMock(side_effect=StripeAPIError("Invalid amount", status_code=400))
        with self.assertRaises(PayoutGatewayError) as rejected:
            provider.create_transfer(destination="acct_1", amount_minor=100, currency="usd", idempotency_key="k1")
        self.assertFalse(rejected.exception.outcome_unknown)

        provider.sdk.create_transfer = MagicMock(side_effect=requests.Timeout("Read timed out"))
        with self.assertRaises(PayoutGatewayError) as timed_out:
            provider.create_transfer(destination="acct_1", amount_minor=100, currency="usd", idempotency_key="k2")
        self.assertTrue(timed_out.exception.outcome_unknown)

    def test_find_transfer(self):
        provider = PayoutProvider(secret_key="sk_test_1")
        provider.sdk.list_transfers = MagicMock(return_value={"data": [{"id": "tr_9"}]})
        self.assertEqual(provider.find_transfer("k1").reference, "tr_9")

        provider.sdk.list_transfers = MagicMock(return_value={"data": []})
        self.assertIsNone(provider.find_transfer("k1"))

    def test_onboarding_creates_account_once(self):
        vendor = make_vendor("vendor@bazar.com")
        provider = PayoutProvider(secret_key="sk_test_1")
        provider.sdk.create_account = MagicMock(return_value={"id": "acct_new"})
        provider.sdk.create_account_link = MagicMock(return_value={"url": "https://connect.stripe.com/setup/x"})

        link = provider.create_onboarding_link(vendor)
        provider.create_onboarding_link(vendor)

        self.assertEqual(link, {"account_id": "acct_new", "url": "https://connect.stripe.com/setup/x"})
        provider.sdk.create_account.assert_called_once()
        vendor.refresh_from_db()
        self.assertEqual(vendor.payout_account_id, "acct_new")


class PayoutTaskTests(OrderFactoryMixin, TestCase):
    def test_generation_task_accepts_iso_run_at(self):
        buyer = User.objects.create_user(email="buyer@bazar.com", password="Pass123!")
        vendor = make_vendor("vendor@bazar.com")
        self.make_order(buyer, [(vendor, "50.00", None, 2)], shipped_at=datetime(2026, 9, 20, tzinfo=DHAKA))

        result = generate_monthly_payouts("2026-10-01T00:00:00+06:00")

        self.assertEqual(result["period"], "2026-09-01")
        self.assertEqual(result["total_amount"], "100.00")
        self.assertEqual(len(result["created"]), 1)


    def test_disbursement_run_uses_given_provider(self):
        vendor = make_vendor("vendor@bazar.com", payout_account_id="acct_vendor")
        payout = self.make_payout(vendor, "1000.00", datetime(2026, 9, 1).date())
        provider = MagicMock()
        provider.find_transfer.return_value = None
        provider.create_transfer.return_value = TransferResult(reference="tr_1", raw_response={"id": "tr_1"})

        result = run_disbursement(run_at="2026-10-07T10:00:00+06:00", provider=provider)

        self.assertEqual(len(result["transfers"]), 1)
        self.assertEqual(result["total_net_amount"], "980.00")
        self.assertEqual(result["failed"], {})
        payout.refresh_from_db()
        self.assertEqual(payout.status, Payout.Status.PAID)

    @patch("payout.tasks.PayoutProvider")
    def test_disbursement_task_builds_configured_provider(self, mock_provider):
        vendor = make_vendor("vendor@bazar.com", payout_account_id="acct_vendor")
        self.make_payout(vendor, "1000.00", datetime(2026, 9, 1).date())
        mock_provider.return_value.find_transfer.return_value = None
        mock_provider.return_value.create_transfer.return_value = TransferResult(reference="tr_1")

        result = disburse_vendor_payouts("2026-10-07T10:00:00+06:00")

        mock_provider.assert_called_once_with()
        kwargs = mock_provider.return_value.create_transfer.call_args.kwargs
        self.assertEqual(kwargs["amount_minor"], 98000)
        self.assertEqual(len(result["transfers"]), 1)

class PayoutApiTests(OrderFactoryMixin, TestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = User.objects.create_user(email="admin@bazar.com", password="Pass123!", is_staff=True)
        self.vendor = make_vendor("vendor@bazar.com")
        self.other_vendor = make_vendor("other@bazar.com")
        self.customer = User.objects.create_user(email="buyer@bazar.com", password="Pass123!")
        self.make_payout(self.vendor, "210.00", datetime(2026, 9, 1).date())
        self.make_payout(self.vendor, "90.00", datetime(2026, 8, 1).date(), note="August 2026", status=Payout.Status.PAID)
        self.make_payout(self.other_vendor, "40.00", datetime(2026, 9, 1).date())

    def test_vendor_sees_own_payouts_with_totals(self):
        self.client.force_authenticate(self.vendor)
        resp = self.client.get("/payouts/")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(len(resp.data["payouts"]), 2)
        self.assertEqual(resp.data["totals"]["PENDING"], "210.00")
        self.assertEqual(resp.data["totals"]["PAID"], "90.00")

    def test_staff_sees_all_payouts(self):
        self.client.force_authenticate(self.staff)
        resp = self.client.get("/payouts/", {"status": "pending"})
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(len(resp.data["payouts"]), 2)
        self.assertEqual(resp.data["totals"]["PENDING"], "250.00")

    def test_customer_has_no_payouts(self):
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get("/payouts/").status_code, 403)

    def test_vendor_cannot_read_other_vendor(self):
        self.client.force_authenticate(self.vendor)
        resp = self.client.get(f"/payouts/vendors/{self.other_vendor.id}/")
        self.assertEqual(resp.status_code, 403)

        self.client.force_authenticate(self.staff)
        resp = self.client.get(f"/payouts/vendors/{self.other_vendor.id}/")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["totals"]["PENDING"], "40.00")

    def test_revenue_endpoint(self):
        self.make_order(self.customer, [(self.vendor, "75.00", None, 1)])
        self.client.force_authenticate(self.vendor)

        resp = self.client.get("/payouts/revenue/")

        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["current_month_revenue"], "75.00")
        self.assertEqual(resp.data["growth_percentage"], "100.00")

    @patch("payout.views.PayoutProvider")
    def test_onboarding_link(self, mock_provider):
        mock_provider.return_value.create_onboarding_link.return_value = {"account_id": "acct_1", "url": "https://x"}
        self.client.force_authenticate(self.vendor)

        resp = self.client.post("/payouts/onboarding/", {}, format="json")

        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertEqual(resp.data["url"], "https://x")

    @patch("payout.views.PayoutProvider")
    def test_onboarding_gateway_error(self, mock_provider):
        mock_provider.return_value.create_onboarding_link.side_effect = PayoutGatewayError("Stripe is down")
        self.client.force_authenticate(self.vendor)

        resp = self.client.post("/payouts/onboarding/", {}, format="json")

        self.assertEqual(resp.status_code, 502)

    def test_jobs_are_staff_only(self):
        self.client.force_authenticate(self.vendor)
        resp = self.client.post("/payouts/jobs/generate/", {}, format="json")
        self.assertEqual(resp.status_code, 403)

    def test_staff_triggers_generation(self):
        self.client.force_authenticate(self.staff)
        resp = self.client.post("/payouts/jobs/generate/", {"run_at": "2026-10-01T00:00:00+06:00"}, format="json")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["period"], "2026-09-01")
        self.assertCountEqual(resp.data["skipped_existing"], [str(self.vendor.id), str(self.other_vendor.id)])

    @patch("payout.tasks.PayoutProvider")
    def test_staff_triggers_disbursement(self, mock_provider):
        self.vendor.payout_account_id = "acct_vendor"
        self.vendor.save(update_fields=["payout_account_id", "updated_at"])
        mock_provider.return_value.find_transfer.return_value = None
        mock_provider.return_value.create_transfer.return_value = TransferResult(reference="tr_api")
        self.client.force_authenticate(self.staff)

        resp = self.client.post("/payouts/jobs/disburse/", {}, format="json")

        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(len(resp.data["transfers"]), 1)
        self.assertEqual(resp.data["total_net_amount"], "205.80")
        self.assertEqual(mock_provider.return_value.create_transfer.call_args.kwargs["amount_minor"], 20580)
        paid = self.client.get("/payouts/", {"status": "paid"})
        self.assertEqual(paid.data["totals"]["PAID"], "300.00")

    @patch.dict("os.environ", {"STRIPE_SECRET_KEY": ""})
    @override_settings(STRIPE_SECRET_KEY="")
    def test_disbursement_without_configuration(self):
        self.client.force_authenticate(self.staff)
        resp = self.client.post("/payouts/jobs/disburse/", {}, format="json")
        self.assertEqual(resp.status_code, 500)

    def test_unknown_job(self):
        self.client.force_authenticate(self.staff)
        self.assertEqual(self.client.post("/payouts/jobs/refund/", {}, format="json").status_code, 404)
