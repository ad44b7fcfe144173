"""Record store adapters."""

from kitgate.adapters.store.base import AbstractCodeRepository, UsageLogPage
from kitgate.adapters.store.supabase_rest import SupabaseRestRepository

__all__ = [
    "AbstractCodeRepository",
    "SupabaseRestRepository",
    "UsageLogPage",
]
