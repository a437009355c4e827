from typing import Any, Dict, Optional

import requests


DEFAULT_BASE_URL = "https://api.stripe.com/v1"


class StripeAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class StripeConnectSDK:
    """Thin form-encoded client for the Stripe Connect endpoints used for vendor payouts."""

    def __init__(self, secret_key: str, base_url: str = DEFAULT_BASE_URL, timeout: int = 30) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        response = requests.request(
            method,
            f"{self.base_url}/{endpoint}",
            data=data,
            params=params,
            headers=headers,
            timeout=self.timeout,
        )
        if not response.ok:
            try:
                payload = response.json()
            except ValueError as exc:
                raise StripeAPIError(response.text, status_code=response.status_code) from exc
            error = payload.get("error") or {}
            raise StripeAPIError(
                error.get("message") or str(payload),
                status_code=response.status_code,
                code=error.get("code"),
            )
        return response.json()

    def create_transfer(
        self,
        destination: str,
        amount: int,
        currency: str,
        idempotency_key: str,
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        # transfer_group doubles as the lookup key when reconciling
        data: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "destination": destination,
            "transfer_group": idempotency_key,
        }
        if description:
            data["description"] = description
        for key, value in (metadata or {}).items():
            data[f"metadata[{key}]"] = value
        return self._request("POST", "transfers", data=data, idempotency_key=idempotency_key)

    def list_transfers(
        self,
        transfer_group: Optional[str] = None,
        destination: Optional[str] = None,
        limit: int = 10,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": limit}
        if transfer_group:
            params["transfer_group"] = transfer_group
        if destination:
            params["destination"] = destination
        return self._request("GET", "transfers", params=params)

    def create_account(self, email: str, country: str) -> Dict[str, Any]:
        data = {
            "type": "express",
            "email": email,
            "country": country,
            "capabilities[transfers][requested]": "true",
        }
        return self._request("POST", "accounts", data=data)

    def create_account_link(self, account: str, refresh_url: str, return_url: str) -> Dict[str, Any]:
        data = {
            "account": account,
            "refresh_url": refresh_url,
            "return_url": return_url,
            "type": "account_onboarding",
        }
        return self._request("POST", "account_links", data=data)
