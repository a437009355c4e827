import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PayoutTransfer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("destination", models.CharField(max_length=100)),
                ("idempotency_key", models.CharField(max_length=100, unique=True)),
                ("gross_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("fee_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("net_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("amount_minor", models.PositiveBigIntegerField()),
                ("currency", models.CharField(max_length=10)),
                ("status", models.CharField(choices=[("INTENT", "Intent"), ("SUCCEEDED", "Succeeded"), ("FAILED", "Failed")], default="INTENT", max_length=20)),
                ("provider_reference", models.CharField(blank=True, max_length=150, null=True)),
                ("error", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payout_transfers", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["vendor", "status"], name="payout_tx_vendor_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("period", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("PROCESSING", "Processing"), ("PAID", "Paid")], default="PENDING", max_length=20)),
                ("method", models.CharField(default="Bank Transfer", max_length=30)),
                ("note", models.CharField(max_length=100)),
                ("scheduled_for", models.DateTimeField()),
                ("bank_details", models.CharField(default="Not Provided", max_length=255)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("transfer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="payouts", to="payout.payouttransfer")),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payouts", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="payout_status_idx"),
                    models.Index(fields=["scheduled_for"], name="payout_scheduled_for_idx"),
                ],
                "constraints": [models.UniqueConstraint(fields=("vendor", "period"), name="payout_unique_vendor_period")],
            },
        ),
    ]
