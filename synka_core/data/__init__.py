from .remote import (
    RemoteDataService,
    RetryPolicy,
    NoRetry,
    ExponentialBackoff,
    call_remote,
)
from .supabase_client import SupabaseDataService, create_supabase_client

__all__ = [
    "RemoteDataService",
    "RetryPolicy",
    "NoRetry",
    "ExponentialBackoff",
    "call_remote",
    "SupabaseDataService",
    "create_supabase_client",
]
