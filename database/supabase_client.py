"""
Supabase Database Client for the Sales Dashboard

Hosted storage for the CRM tables:
- leads
- customers
- contracts

The import pipeline only needs create(); list operations back the
dashboard metrics in analytics.py.

Remote failures are translated into two exception types:
- ValidationError: the service rejected the record (schema, constraint)
- NetworkError: the request never got a usable answer
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from crm import Contract, Customer, EntityType, Lead

logger = logging.getLogger(__name__)


# ==========================================
# EXCEPTIONS
# ==========================================


class DatabaseError(RuntimeError):
    """
    Base class for data service failures.

    Attributes:
        message: Human-readable error description
        code: Service error code (if available)
        details: Extra detail from the service (if available)
    """

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"(code={self.code})")
        return " ".join(parts)


class ValidationError(DatabaseError):
    """Raised when the service rejects a record."""
    pass


class NetworkError(DatabaseError):
    """Raised on transport or service availability failures."""
    pass


# ==========================================
# CONFIGURATION
# ==========================================


@dataclass
class DatabaseConfig:
    """Supabase connection configuration."""
    url: str
    key: str  # anon/public key for client-side, service key for server-side

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Load config from environment variables."""
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")

        if not url or not key:
            raise ValueError(
                "Missing Supabase credentials. Set SUPABASE_URL and SUPABASE_KEY environment variables."
            )

        return cls(url=url, key=key)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseClient:
    """
    Supabase client for CRM record operations.

    Every call goes through _execute so callers only ever see
    DatabaseError subclasses.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """
        Initialize Supabase client.

        Args:
            config: Database configuration. If None, loads from environment.
        """
        if config is None:
            config = DatabaseConfig.from_env()

        self.client: Client = create_client(config.url, config.key)
        logger.debug("SupabaseClient initialized for %s", config.url)

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning("%s rejected: %s", action, message)
            raise ValidationError(
                message,
                code=getattr(e, "code", None),
                details=getattr(e, "details", None),
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s failed: %s", action, e)
            raise NetworkError(f"{action} failed: {e}") from e

    # ==========================================
    # GENERIC OPERATIONS
    # ==========================================

    def create_record(self, table: str, data: Dict[str, Any]) -> Dict:
        """
        Insert one row, stamping created_at/updated_at.

        Returns:
            Created row including its server-assigned id

        Raises:
            ValidationError: If the service rejects the row
            NetworkError: If the request fails in transit
        """
        now = _now()
        payload = {**data, "created_at": now, "updated_at": now}

        result = self._execute(
            self.client.table(table).insert(payload), f"Insert into {table}"
        )
        if not result.data:
            raise ValidationError(f"Insert into {table} returned no data")
        return result.data[0]

    def list_records(
        self,
        table: str,
        limit: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Dict]:
        """List rows, newest first, with optional status filtering."""
        query = self.client.table(table).select("*").order("created_at", desc=True)

        if status:
            query = query.eq("status", status)
        if limit:
            query = query.limit(limit)

        result = self._execute(query, f"List {table}")
        return result.data or []

    # ==========================================
    # ENTITY OPERATIONS
    # ==========================================

    def create_entity(self, entity_type: EntityType, record) -> Dict:
        """Insert a CRM record into its entity table."""
        data = record.to_record()
        if entity_type is EntityType.CUSTOMERS:
            data.setdefault("last_contact", _now())
        return self.create_record(entity_type.value, data)

    def create_lead(self, lead: Lead) -> Dict:
        return self.create_entity(EntityType.LEADS, lead)

    def create_customer(self, customer: Customer) -> Dict:
        return self.create_entity(EntityType.CUSTOMERS, customer)

    def create_contract(self, contract: Contract) -> Dict:
        return self.create_entity(EntityType.CONTRACTS, contract)

    def list_leads(self, limit: Optional[int] = None, status: Optional[str] = None) -> List[Dict]:
        return self.list_records(EntityType.LEADS.value, limit=limit, status=status)

    def list_customers(self, limit: Optional[int] = None, status: Optional[str] = None) -> List[Dict]:
        return self.list_records(EntityType.CUSTOMERS.value, limit=limit, status=status)

    def list_contracts(self, limit: Optional[int] = None, status: Optional[str] = None) -> List[Dict]:
        return self.list_records(EntityType.CONTRACTS.value, limit=limit, status=status)


class SupabaseRecordStore:
    """Create-only view of one entity table, as used by the import pipeline."""

    def __init__(self, client: SupabaseClient, entity_type: EntityType):
        self.client = client
        self.entity_type = entity_type

    def create(self, record) -> str:
        row = self.client.create_entity(self.entity_type, record)
        return str(row.get("id", ""))


# Singleton instance for convenience
_client: Optional[SupabaseClient] = None


def get_client() -> SupabaseClient:
    """Get or create singleton Supabase client."""
    global _client
    if _client is None:
        _client = SupabaseClient()
    return _client
