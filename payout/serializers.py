from rest_framework import serializers

from .models import Payout, PayoutTransfer


class PayoutSerializer(serializers.ModelSerializer):
    vendor_email = serializers.EmailField(source="vendor.email", read_only=True)

    class Meta:
        model = Payout
        fields = [
            "id",
            "vendor",
            "vendor_email",
            "period",
            "amount",
            "status",
            "method",
            "note",
            "scheduled_for",
            "bank_details",
            "transfer",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutTransferSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutTransfer
        fields = [
            "id",
            "vendor",
            "destination",
            "idempotency_key",
            "gross_amount",
            "fee_amount",
            "net_amount",
            "amount_minor",
            "currency",
            "status",
            "provider_reference",
            "error",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RevenueComparisonSerializer(serializers.Serializer):
    vendor_id = serializers.UUIDField()
    current_month_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    previous_month_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    growth_percentage = serializers.DecimalField(max_digits=14, decimal_places=2)


class OnboardingLinkSerializer(serializers.Serializer):
    refresh_url = serializers.URLField(required=False)
    return_url = serializers.URLField(required=False)


class JobTriggerSerializer(serializers.Serializer):
    run_at = serializers.DateTimeField(required=False)
