"""
Database module for the Sales Dashboard.

Provides Supabase integration for the hosted CRM tables.
"""

from .supabase_client import (
    SupabaseClient,
    SupabaseRecordStore,
    DatabaseConfig,
    DatabaseError,
    ValidationError,
    NetworkError,
    get_client
)

__all__ = [
    "SupabaseClient",
    "SupabaseRecordStore",
    "DatabaseConfig",
    "DatabaseError",
    "ValidationError",
    "NetworkError",
    "get_client"
]
