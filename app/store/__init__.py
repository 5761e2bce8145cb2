"""Store layer - interfaces, row mapping and the hosted backend adapter."""

from app.store.abstractions import IAuthProvider, IInvoiceStore
from app.store.supabase import SupabaseAuth, SupabaseStore

__all__ = [
    "IInvoiceStore",
    "IAuthProvider",
    "SupabaseStore",
    "SupabaseAuth",
]
