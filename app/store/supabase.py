"""HTTP adapter for the hosted backend: REST tables and the auth user endpoint."""

from typing import Any

import httpx

from app.config import settings
from app.core.errors import UpstreamFailure
from app.models.invoice import AuthUser
from app.store.abstractions import IAuthProvider, IInvoiceStore, Row
from app.utils.logger import logger


def _error_detail(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    detail = f"Status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        text = response.text[:500]
        return f"{detail}: {text}" if text else detail
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("msg") or str(body)
        return f"{detail}: {message}"
    return f"{detail}: {body}"


class SupabaseStore(IInvoiceStore):
    """Invoice store backed by the hosted REST interface."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_service_role_key or settings.supabase_anon_key
        # The service role key doubles as the bearer when acting on the server side
        self.access_token = access_token or self.api_key
        self.timeout = timeout or settings.http_timeout

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str],
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        url = f"{self.base_url}/rest/v1/{table}"
        logger.debug(f"{method} {url} params={params}")
        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(prefer),
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                detail = _error_detail(e.response)
                logger.error(f"Store request to {table} failed: {detail}")
                raise UpstreamFailure(f"Store request failed: {detail}") from e
            except httpx.RequestError as e:
                logger.error(f"Store request to {table} failed: {e}")
                raise UpstreamFailure(f"Store request failed: {e}") from e
        return response.json() if response.content else None

    @staticmethod
    def _single(rows: Any, table: str) -> Row:
        if isinstance(rows, list):
            if not rows:
                raise UpstreamFailure(f"No {table} row returned")
            return rows[0]
        return rows

    async def get_invoice(self, invoice_id: str) -> Row | None:
        rows = await self._request(
            "GET", "invoices", {"id": f"eq.{invoice_id}", "select": "*", "limit": "1"}
        )
        return rows[0] if rows else None

    async def update_invoice(self, invoice_id: str, fields: Row) -> Row:
        rows = await self._request(
            "PATCH",
            "invoices",
            {"id": f"eq.{invoice_id}"},
            json=fields,
            prefer="return=representation",
        )
        return self._single(rows, "invoices")

    async def list_payments(self, invoice_id: str) -> list[Row]:
        rows = await self._request(
            "GET",
            "payments",
            {"invoice_id": f"eq.{invoice_id}", "select": "*", "order": "payment_date.desc"},
        )
        return rows or []

    async def insert_payment(self, row: Row) -> Row:
        rows = await self._request(
            "POST", "payments", {}, json=row, prefer="return=representation"
        )
        return self._single(rows, "payments")

    async def list_audit_logs(self, invoice_id: str) -> list[Row]:
        rows = await self._request(
            "GET",
            "invoice_audit_logs",
            {"invoice_id": f"eq.{invoice_id}", "select": "*", "order": "created_at.desc"},
        )
        return rows or []

    async def insert_audit_log(self, row: Row) -> Row:
        rows = await self._request(
            "POST", "invoice_audit_logs", {}, json=row, prefer="return=representation"
        )
        return self._single(rows, "invoice_audit_logs")


class SupabaseAuth(IAuthProvider):
    """Resolves access tokens through the hosted auth user endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_service_role_key or settings.supabase_anon_key
        self.timeout = timeout or settings.http_timeout

    async def get_user(self, access_token: str) -> AuthUser | None:
        headers = {"Authorization": f"Bearer {access_token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.base_url}/auth/v1/user", headers=headers, timeout=self.timeout
                )
            except httpx.RequestError as e:
                logger.error(f"Auth request failed: {e}")
                raise UpstreamFailure(f"Auth request failed: {e}") from e

        if response.status_code in (401, 403, 404):
            return None
        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"Auth request failed: {detail}")
            raise UpstreamFailure(f"Auth request failed: {detail}")

        body = response.json()
        if not isinstance(body, dict) or not body.get("id"):
            return None
        metadata = body.get("user_metadata") or {}
        return AuthUser(
            id=str(body["id"]),
            email=body.get("email"),
            display_name=metadata.get("display_name"),
        )
