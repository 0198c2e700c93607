"""Blob storage backends."""

from ingestflow.providers.blob.local_blob_store import LocalBlobStore
from ingestflow.providers.blob.supabase_blob_store import SupabaseBlobStore

__all__ = ["LocalBlobStore", "SupabaseBlobStore"]
