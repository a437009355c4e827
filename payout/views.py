import logging
from decimal import Decimal

from django.db.models import Sum
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from account.models import User
from .models import Payout, PayoutTransfer
from .serializers import (
    JobTriggerSerializer,
    OnboardingLinkSerializer,
    PayoutSerializer,
    PayoutTransferSerializer,
    RevenueComparisonSerializer,
)
from .services.provider import (
    PayoutConfigurationError,
    PayoutGatewayError,
    PayoutProvider,
    PayoutServiceError,
)
from .services.revenue import compare_vendor_revenue
from .tasks import run_disbursement, run_generation

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _error_response(exc: PayoutServiceError) -> Response:
    if isinstance(exc, PayoutConfigurationError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif isinstance(exc, PayoutGatewayError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc)}, status=code)


def _status_totals(queryset):
    totals = {choice: "0.00" for choice in Payout.Status.values}
    for row in queryset.order_by().values("status").annotate(total=Sum("amount")):
        totals[row["status"]] = str((row["total"] or ZERO).quantize(ZERO))
    return totals


class PayoutListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        if user.is_staff:
            queryset = Payout.objects.select_related("vendor").all()
            vendor_id = request.query_params.get("vendor")
            if vendor_id:
                queryset = queryset.filter(vendor_id=vendor_id)
        elif user.is_vendor:
            queryset = Payout.objects.filter(vendor=user)
        else:
            return Response({"detail": "Only sellers have payouts"}, status=status.HTTP_403_FORBIDDEN)

        status_filter = request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())

        queryset = queryset.order_by("-period", "-created_at")
        return Response(
            {
                "totals": _status_totals(queryset),
                "payouts": PayoutSerializer(queryset, many=True).data,
            }
        )


class VendorPayoutListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, vendor_id):
        if not request.user.is_staff and request.user.id != vendor_id:
            return Response({"detail": "Not allowed"}, status=status.HTTP_403_FORBIDDEN)

        vendor = get_object_or_404(User, pk=vendor_id, role=User.Role.SELLER)
        queryset = Payout.objects.filter(vendor=vendor).order_by("-period")
        return Response(
            {
                "vendor_id": str(vendor.id),
                "totals": _status_totals(queryset),
                "payouts": PayoutSerializer(queryset, many=True).data,
            }
        )


class PayoutTransferListView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        queryset = PayoutTransfer.objects.all().order_by("-created_at")
        status_filter = request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        return Response(PayoutTransferSerializer(queryset, many=True).data)


class VendorRevenueView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, vendor_id=None):
        if vendor_id is None:
            if not request.user.is_vendor:
                return Response({"detail": "Only sellers have revenue"}, status=status.HTTP_403_FORBIDDEN)
            vendor = request.user
        else:
            if not request.user.is_staff and request.user.id != vendor_id:
                return Response({"detail": "Not allowed"}, status=status.HTTP_403_FORBIDDEN)
            vendor = get_object_or_404(User, pk=vendor_id, role=User.Role.SELLER)

        comparison = compare_vendor_revenue(vendor)
        return Response(RevenueComparisonSerializer(comparison).data)


class VendorOnboardingView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        if not request.user.is_vendor:
            return Response({"detail": "Only sellers can connect a payout account"}, status=status.HTTP_403_FORBIDDEN)

        serializer = OnboardingLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            link = PayoutProvider().create_onboarding_link(
                request.user,
                refresh_url=serializer.validated_data.get("refresh_url"),
                return_url=serializer.validated_data.get("return_url"),
            )
        except PayoutServiceError as exc:
            logger.warning("Onboarding link failed for vendor=%s: %s", request.user.id, exc)
            return _error_response(exc)

        return Response(link, status=status.HTTP_201_CREATED)


class PayoutJobTriggerView(APIView):
    permission_classes = [IsAdminUser]
    jobs = {
        "generate": run_generation,
        "disburse": run_disbursement,
    }

    def post(self, request, job):
        runner = self.jobs.get(job)
        if runner is None:
            return Response({"detail": f"Unknown payout job '{job}'"}, status=status.HTTP_404_NOT_FOUND)

        serializer = JobTriggerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = runner(run_at=serializer.validated_data.get("run_at"))
        except PayoutServiceError as exc:
            return _error_response(exc)

        logger.info("Payout job %s triggered by %s", job, request.user.email)
        return Response(result, status=status.HTTP_200_OK)
