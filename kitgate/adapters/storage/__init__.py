"""Blob store adapters."""

from kitgate.adapters.storage.base import AbstractBlobStore
from kitgate.adapters.storage.supabase_storage import SupabaseBlobStore

__all__ = [
    "AbstractBlobStore",
    "SupabaseBlobStore",
]
