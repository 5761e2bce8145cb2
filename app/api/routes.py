"""API routes: payment-link minting and manual payment recording."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import InvoicingError
from app.core.security import format_expiry
from app.services.payment_service import PaymentService
from app.services.token_minter import TokenMinterService
from app.store.abstractions import IAuthProvider, IInvoiceStore
from app.store.supabase import SupabaseAuth, SupabaseStore
from app.utils.logger import logger

router = APIRouter(tags=["payments"])


class MintTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: Optional[str] = Field(default=None, alias="invoiceId")


class MarkPaidRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: Optional[str] = Field(default=None, alias="invoiceId")
    amount: Any = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    payment_date: Optional[str] = Field(default=None, alias="paymentDate")
    reference: Optional[str] = None
    note: Optional[str] = None


# ---------------------------------------------------------------------------
# Lazy-initialised collaborators (avoids import-time side-effects)
# ---------------------------------------------------------------------------

_store: IInvoiceStore | None = None
_auth: IAuthProvider | None = None


def get_store() -> IInvoiceStore:
    global _store
    if _store is None:
        _store = SupabaseStore()
    return _store


def get_auth() -> IAuthProvider:
    global _auth
    if _auth is None:
        _auth = SupabaseAuth()
    return _auth


def get_token_minter(
        store: IInvoiceStore = Depends(get_store),
        auth: IAuthProvider = Depends(get_auth),
) -> TokenMinterService:
    return TokenMinterService(store, auth)


def get_payment_service(
        store: IInvoiceStore = Depends(get_store),
        auth: IAuthProvider = Depends(get_auth),
) -> PaymentService:
    return PaymentService(store, auth)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/mint-payment-token", status_code=status.HTTP_200_OK)
async def mint_payment_token(
        request: Request,
        body: Optional[MintTokenRequest] = Body(default=None),
        authorization: Optional[str] = Header(default=None),
        minter: TokenMinterService = Depends(get_token_minter),
):
    """Mint a time-bound payment link for an invoice."""
    try:
        link = await minter.mint(
            authorization,
            body.invoice_id if body else None,
            origin=request.headers.get("origin"),
        )
    except Exception as exc:
        return error_response(exc)

    return {"url": link.url, "expiresAt": format_expiry(link.expires_at)}


@router.post("/invoice-mark-paid", status_code=status.HTTP_200_OK)
async def invoice_mark_paid(
        body: Optional[MarkPaidRequest] = Body(default=None),
        authorization: Optional[str] = Header(default=None),
        payments: PaymentService = Depends(get_payment_service),
):
    """Record a manual payment against an invoice."""
    body = body or MarkPaidRequest()
    try:
        invoice = await payments.record_manual_payment(
            authorization,
            body.invoice_id,
            body.amount,
            payment_method=body.payment_method,
            payment_date=body.payment_date,
            reference=body.reference,
            note=body.note,
        )
    except Exception as exc:
        return error_response(exc)

    return {
        "invoiceId": invoice.id,
        "paidAmount": float(invoice.paid_amount),
        "status": invoice.status.value,
        "remainingAmount": float(invoice.remaining_amount),
    }


# ---------------------------------------------------------------------------
# Shared private helpers
# ---------------------------------------------------------------------------

def error_response(exc: Exception) -> JSONResponse:
    """Every function failure is reported as 400 with an ``error`` message."""
    if isinstance(exc, InvoicingError):
        logger.warning(f"{type(exc).__name__}: {exc}")
    else:
        logger.error(f"Unexpected error: {exc}", exc_info=True)
    message = str(exc) or "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )
