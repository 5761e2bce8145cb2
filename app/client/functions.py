"""Client for invoking hosted serverless functions with the user's session."""

from typing import Any

import httpx

from app.config import settings
from app.core.errors import Unauthorized, UpstreamFailure, error_message
from app.models.invoice import AuthSession
from app.utils.logger import get_logger

log = get_logger("functions")

MINT_PAYMENT_TOKEN = "mint-payment-token"
INVOICE_MARK_PAID = "invoice-mark-paid"
SEND_INVOICE = "send-invoice"


class FunctionsClient:
    """POSTs JSON bodies to ``{base_url}/functions/v1/<name>`` with a bearer token."""

    def __init__(
        self,
        session: AuthSession | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key
        self.timeout = timeout or settings.http_timeout

    def _headers(self) -> dict[str, str]:
        if self.session is None or not self.session.access_token:
            raise Unauthorized("Not authenticated")
        headers = {
            "Authorization": f"Bearer {self.session.access_token}",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    async def invoke(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Call a function and return its JSON body; failures raise UpstreamFailure."""
        headers = self._headers()
        url = f"{self.base_url}/functions/v1/{name}"
        log.debug(f"Invoking {name}")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(url, json=body, headers=headers, timeout=self.timeout)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                try:
                    payload = e.response.json()
                except ValueError:
                    payload = e.response.text[:500]
                message = error_message(payload, f"{name} failed with status {e.response.status_code}")
                log.error(f"Function {name} failed: {message}")
                raise UpstreamFailure(message) from e
            except httpx.RequestError as e:
                log.error(f"Function {name} request failed: {e}")
                raise UpstreamFailure(f"{name} request failed: {e}") from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            log.error(f"Function {name} returned a non-JSON body: {response.text[:200]!r}")
            raise UpstreamFailure(f"{name} returned an unreadable response") from e
        return data if isinstance(data, dict) else {"data": data}

    async def mint_payment_token(self, invoice_id: str) -> dict[str, Any]:
        return await self.invoke(MINT_PAYMENT_TOKEN, {"invoiceId": invoice_id})

    async def mark_paid(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self.invoke(INVOICE_MARK_PAID, body)

    async def send_invoice(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self.invoke(SEND_INVOICE, body)
