from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from .models import Payout, PayoutTransfer
from .services.provider import PayoutProvider, PayoutServiceError
from .services.reconciler import PayoutJobContext, PayoutReconciler


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
	list_display = ("id", "vendor", "note", "amount", "status", "scheduled_for", "paid_at")
	list_filter = ("status", "period")
	search_fields = ("vendor__email", "note", "transfer__provider_reference")
	readonly_fields = ("transfer", "paid_at", "created_at", "updated_at")


@admin.register(PayoutTransfer)
class PayoutTransferAdmin(admin.ModelAdmin):
	list_display = ("id", "vendor", "net_amount", "fee_amount", "currency", "status", "provider_reference", "created_at")
	list_filter = ("status", "currency")
	search_fields = ("vendor__email", "idempotency_key", "provider_reference")
	actions = ("reconcile_transfers",)

	def reconcile_transfers(self, request, queryset):
		try:
			reconciler = PayoutReconciler(PayoutJobContext.for_run(provider=PayoutProvider()))
		except PayoutServiceError as exc:
			self.message_user(request, str(exc), messages.ERROR)
			return

		vendors = {transfer.vendor for transfer in queryset.filter(status=PayoutTransfer.Status.INTENT).select_related("vendor")}
		settled = 0
		for vendor in vendors:
			try:
				settled += len(reconciler.reconcile_open_transfers(vendor, reconciler.provider))
			except PayoutServiceError as exc:
				self.message_user(request, f"{vendor.email}: {exc}", messages.ERROR)
		self.message_user(request, _("%d open transfers reconciled.") % settled, messages.SUCCESS)

	reconcile_transfers.short_description = "Reconcile selected open transfers"
