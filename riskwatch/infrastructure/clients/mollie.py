"""Mollie payments API HTTP client"""

import httpx
from decimal import Decimal
from typing import Any, Dict, Optional
from riskwatch.domain.models import ProviderPayment
from riskwatch.domain.exceptions import ProviderAPIError
from riskwatch.config import settings
from riskwatch.infrastructure.observability.metrics import provider_latency_histogram, provider_failure_counter


class MollieClient:
    """Client for the provider's v2 payments API"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.mollie_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.mollie_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self.transport,
        )

    async def create_payment(
        self,
        amount: str,
        currency: str,
        description: str,
        redirect_url: str,
        webhook_url: str,
        method: str,
        metadata: Dict[str, Any],
    ) -> ProviderPayment:
        """
        Create a payment at the provider.

        Args:
            amount: Fixed two-decimal string, e.g. "29.99"

        Raises:
            ProviderAPIError: On timeout, HTTP errors, or invalid response
        """
        body = {
            "amount": {"currency": currency, "value": amount},
            "description": description,
            "redirectUrl": redirect_url,
            "webhookUrl": webhook_url,
            "method": method,
            "metadata": metadata,
        }
        return await self._request("create", "POST", "/v2/payments", json=body)

    async def get_payment(self, payment_id: str) -> ProviderPayment:
        """
        Fetch a payment's current status from the provider.

        Raises:
            ProviderAPIError: On timeout, HTTP errors, or invalid response
        """
        return await self._request("get", "GET", f"/v2/payments/{payment_id}")

    async def _request(self, operation: str, method: str, path: str, json: Optional[dict] = None) -> ProviderPayment:
        async with self._client() as client:
            try:
                with provider_latency_histogram.labels(operation=operation).time():
                    response = await client.request(method, path, json=json)
                response.raise_for_status()
                return parse_payment(response.json())

            except httpx.TimeoutException as e:
                provider_failure_counter.labels(operation=operation).inc()
                raise ProviderAPIError(f"Payment provider timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                provider_failure_counter.labels(operation=operation).inc()
                raise ProviderAPIError(f"Payment provider error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                provider_failure_counter.labels(operation=operation).inc()
                raise ProviderAPIError(f"Payment provider unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                provider_failure_counter.labels(operation=operation).inc()
                raise ProviderAPIError(f"Invalid payment data from provider: {e}") from e


def parse_payment(data: Dict[str, Any]) -> ProviderPayment:
    """Build a ProviderPayment from a provider payment resource"""
    amount = data.get("amount") or {}
    checkout = (data.get("_links") or {}).get("checkout") or {}
    return ProviderPayment(
        payment_id=data["id"],
        status=data["status"],
        checkout_url=checkout.get("href"),
        amount=Decimal(amount["value"]) if "value" in amount else None,
        currency=amount.get("currency"),
        metadata=data.get("metadata") or {},
    )
