from django.urls import path

from .views import (
    PayoutJobTriggerView,
    PayoutListView,
    PayoutTransferListView,
    VendorOnboardingView,
    VendorPayoutListView,
    VendorRevenueView,
)

urlpatterns = [
    path("", PayoutListView.as_view(), name="payout-list"),
    path("vendors/<uuid:vendor_id>/", VendorPayoutListView.as_view(), name="vendor-payouts"),
    path("transfers/", PayoutTransferListView.as_view(), name="payout-transfers"),
    path("revenue/", VendorRevenueView.as_view(), name="vendor-revenue"),
    path("revenue/<uuid:vendor_id>/", VendorRevenueView.as_view(), name="vendor-revenue-detail"),
    path("onboarding/", VendorOnboardingView.as_view(), name="payout-onboarding"),
    path("jobs/<str:job>/", PayoutJobTriggerView.as_view(), name="payout-job"),
]
