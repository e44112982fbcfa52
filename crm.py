"""
Sales CRM Records

The record shapes accepted by the hosted data service for each importable
entity: leads, customers and contracts.

Records are built client-side without any server-assigned fields
(id, created_at, updated_at, user_id) - the persistence layer owns those.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, Optional, Any


class EntityType(Enum):
    """Importable entity types. Values double as remote table names."""
    LEADS = "leads"
    CUSTOMERS = "customers"
    CONTRACTS = "contracts"

    @classmethod
    def parse(cls, value: "str | EntityType") -> "EntityType":
        """
        Resolve an entity type from user input.

        Raises:
            ValueError: If the name is not a known entity type
        """
        if isinstance(value, cls):
            return value

        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member

        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown entity type: {value!r} (expected one of: {choices})")


class LeadStatus(Enum):
    """Pipeline stages a lead moves through."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed-won"
    CLOSED_LOST = "closed-lost"


class CustomerStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECT = "prospect"


class ContractStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class _Record:
    """Shared payload conversion for CRM record dataclasses."""

    def to_record(self) -> Dict[str, Any]:
        """
        Build the insert payload for the remote table.

        Enum members are flattened to their string values and unset
        optional numbers are dropped so the service applies its own default.
        """
        payload: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            payload[f.name] = value
        return payload


@dataclass
class Lead(_Record):
    """A potential deal that has not converted yet."""
    name: str
    email: str
    phone: str = ""
    company: str = ""
    source: str = "Import"
    status: LeadStatus = LeadStatus.NEW
    value: Optional[float] = None
    probability: Optional[float] = None
    notes: str = ""


@dataclass
class Customer(_Record):
    """A converted account."""
    name: str
    email: str
    phone: str = ""
    company: str = ""
    address: str = ""
    industry: str = ""
    total_value: float = 0.0
    status: CustomerStatus = CustomerStatus.PROSPECT
    notes: str = ""


@dataclass
class Contract(_Record):
    """
    A contract draft.

    customer_id stays empty on import; contracts are linked to a
    customer record manually afterwards.
    """
    title: str
    customer_name: str
    value: float
    customer_email: str = ""
    content: str = ""
    expiry_date: str = ""
    status: ContractStatus = ContractStatus.DRAFT
    customer_id: str = ""
