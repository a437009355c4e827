from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from django.conf import settings

from .stripe_sdk import DEFAULT_BASE_URL, StripeAPIError, StripeConnectSDK

logger = logging.getLogger(__name__)


class PayoutServiceError(Exception):
    """Base exception for payout errors."""


class PayoutConfigurationError(PayoutServiceError):
    """Raised when required payout settings are missing."""


class PayoutGatewayError(PayoutServiceError):
    """
    Raised when a payout provider call fails.

    ``outcome_unknown`` is set when the request may have reached the provider
    (timeouts, dropped connections, 5xx responses). Callers must not treat
    such a transfer as failed until it has been looked up again.
    """

    def __init__(self, message: str, outcome_unknown: bool = False) -> None:
        super().__init__(message)
        self.outcome_unknown = outcome_unknown


@dataclass(frozen=True)
class TransferResult:
    reference: str
    raw_response: Dict[str, Any] = field(default_factory=dict)


class PayoutProvider:
    """Money movement to vendors' connected accounts."""

    def __init__(self, secret_key: Optional[str] = None) -> None:
        resolved_key = secret_key or self._get_setting("STRIPE_SECRET_KEY")
        base_url = self._get_setting("STRIPE_API_BASE", required=False) or DEFAULT_BASE_URL

        self.account_country = self._get_setting("STRIPE_ACCOUNT_COUNTRY", required=False) or "US"
        self.default_refresh_url = self._get_setting("PAYOUT_ONBOARDING_REFRESH_URL", required=False)
        self.default_return_url = self._get_setting("PAYOUT_ONBOARDING_RETURN_URL", required=False)

        self.sdk = StripeConnectSDK(secret_key=resolved_key, base_url=base_url)

    # -----------------------------
    # Transfers
    # -----------------------------
    def create_transfer(
        self,
        destination: str,
        amount_minor: int,
        currency: str,
        idempotency_key: str,
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        if not destination:
            raise PayoutServiceError("destination account is required")
        if int(amount_minor) <= 0:
            raise PayoutServiceError("amount must be greater than 0")

        response = self._call_gateway(
            self.sdk.create_transfer,
            destination=destination,
            amount=int(amount_minor),
            currency=currency,
            idempotency_key=idempotency_key,
            description=description,
            metadata=metadata,
        )
        reference = response.get("id")
        if not reference:
            raise PayoutGatewayError("Provider response did not include a transfer id", outcome_unknown=True)
        return TransferResult(reference=reference, raw_response=response)

    def find_transfer(self, idempotency_key: str) -> Optional[TransferResult]:
        response = self._call_gateway(self.sdk.list_transfers, transfer_group=idempotency_key, limit=1)
        rows = response.get("data") or []
        if not rows:
            return None
        return TransferResult(reference=rows[0].get("id", ""), raw_response=rows[0])

    # -----------------------------
    # Onboarding
    # -----------------------------
    def create_connected_account(self, vendor) -> str:
        if vendor.payout_account_id:
            return vendor.payout_account_id

        response = self._call_gateway(
            self.sdk.create_account,
            email=vendor.email,
            country=self.account_country,
        )
        account_id = response.get("id")
        if not account_id:
            raise PayoutGatewayError("Provider response did not include an account id")

        vendor.payout_account_id = account_id
        vendor.save(update_fields=["payout_account_id", "updated_at"])
        logger.info("Created connected account %s for vendor=%s", account_id, vendor.id)
        return account_id

    def create_onboarding_link(
        self,
        vendor,
        refresh_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> Dict[str, str]:
        account_id = self.create_connected_account(vendor)
        response = self._call_gateway(
            self.sdk.create_account_link,
            account=account_id,
            refresh_url=self._required_url(refresh_url or self.default_refresh_url, "refresh_url"),
            return_url=self._required_url(return_url or self.default_return_url, "return_url"),
        )
        url = response.get("url")
        if not url:
            raise PayoutGatewayError("Provider response did not include an onboarding url")
        return {"account_id": account_id, "url": url}

    # -----------------------------
    # Helpers
    # -----------------------------
    def _get_setting(self, key: str, required: bool = True) -> str:
        value = getattr(settings, key, None) or os.getenv(key)
        if required and not value:
            raise PayoutConfigurationError(
                f"Missing payout configuration: {key}. Set it in Django settings or environment variables."
            )
        return value or ""

    @staticmethod
    def _required_url(value: Optional[str], field_name: str) -> str:
        if not value:
            raise PayoutConfigurationError(
                f"{field_name} is required. Provide it in the request or configure it in settings."
            )
        return value

    @staticmethod
    def _call_gateway(func, **kwargs):
        try:
            return func(**kwargs)
        except PayoutServiceError:
            raise
        except StripeAPIError as exc:
            outcome_unknown = exc.status_code is None or exc.status_code >= 500
            raise PayoutGatewayError(str(exc) or "Payout provider request failed", outcome_unknown) from exc
        except requests.RequestException as exc:
            message = str(exc).strip() or "Payout provider request failed"
            raise PayoutGatewayError(message, outcome_unknown=True) from exc
        except Exception as exc:
            message = str(exc).strip()
            if not message:
                message = "Payout provider request failed"
            raise PayoutGatewayError(message) from exc
