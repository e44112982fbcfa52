"""
Field specifications for each importable entity type.

Column order here is the canonical column order used by the generated
CSV templates. The mapper is driven entirely by these tables, so adding
an entity type only means adding an EntitySchema below.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from crm import (
    Contract,
    ContractStatus,
    Customer,
    CustomerStatus,
    EntityType,
    Lead,
    LeadStatus,
)


class FieldKind(Enum):
    STRING = "string"
    NUMBER = "number"
    ENUM = "enum"
    DATE = "date"
    FIXED = "fixed"  # never read from the file, always the declared default


@dataclass(frozen=True)
class FieldSpec:
    """
    Declaration of one target field.

    Attributes:
        name: Column header and target attribute name
        required: Whether an empty/missing value rejects the row
        kind: How the raw string is coerced
        default: Value used when an optional field is empty or unparsable
        choices: Allowed values for ENUM fields
        minimum: Inclusive lower bound for NUMBER fields
        maximum: Inclusive upper bound for NUMBER fields
    """
    name: str
    required: bool = False
    kind: FieldKind = FieldKind.STRING
    default: Any = None
    choices: Tuple[Any, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def in_template(self) -> bool:
        return self.kind is not FieldKind.FIXED

    def empty_value(self) -> Any:
        """Default when the field has no value, falling back to the kind's zero value."""
        if self.default is not None:
            return self.default
        if self.kind is FieldKind.STRING or self.kind is FieldKind.DATE:
            return ""
        # Optional numbers without a declared default stay unset
        return None


@dataclass(frozen=True)
class EntitySchema:
    """Ordered field specs plus the record class they build."""
    entity_type: EntityType
    fields: Tuple[FieldSpec, ...]
    record_cls: Type

    def required_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.required]

    def column_names(self) -> List[str]:
        """Template header columns, in canonical order."""
        return [f.name for f in self.fields if f.in_template]


def _status_field(status_cls: Type[Enum], default: Enum) -> FieldSpec:
    return FieldSpec(
        name="status",
        kind=FieldKind.ENUM,
        default=default,
        choices=tuple(status_cls),
    )


LEAD_SCHEMA = EntitySchema(
    entity_type=EntityType.LEADS,
    record_cls=Lead,
    fields=(
        FieldSpec("name", required=True),
        FieldSpec("email", required=True),
        FieldSpec("phone"),
        FieldSpec("company"),
        FieldSpec("source", default="Import"),
        _status_field(LeadStatus, LeadStatus.NEW),
        FieldSpec("value", kind=FieldKind.NUMBER),
        FieldSpec("probability", kind=FieldKind.NUMBER, minimum=0, maximum=100),
        FieldSpec("notes"),
    ),
)

CUSTOMER_SCHEMA = EntitySchema(
    entity_type=EntityType.CUSTOMERS,
    record_cls=Customer,
    fields=(
        FieldSpec("name", required=True),
        FieldSpec("email", required=True),
        FieldSpec("phone"),
        FieldSpec("company"),
        FieldSpec("address"),
        FieldSpec("industry"),
        FieldSpec("total_value", kind=FieldKind.NUMBER, default=0.0),
        _status_field(CustomerStatus, CustomerStatus.PROSPECT),
        FieldSpec("notes"),
    ),
)

CONTRACT_SCHEMA = EntitySchema(
    entity_type=EntityType.CONTRACTS,
    record_cls=Contract,
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("customer_name", required=True),
        FieldSpec("customer_email"),
        FieldSpec("value", required=True, kind=FieldKind.NUMBER),
        FieldSpec("content"),
        FieldSpec("expiry_date", kind=FieldKind.DATE),
        FieldSpec("status", kind=FieldKind.FIXED, default=ContractStatus.DRAFT),
    ),
)

SCHEMAS: Dict[EntityType, EntitySchema] = {
    schema.entity_type: schema
    for schema in (LEAD_SCHEMA, CUSTOMER_SCHEMA, CONTRACT_SCHEMA)
}


def get_schema(entity_type) -> EntitySchema:
    """Look up the schema for an entity type (enum member or name)."""
    return SCHEMAS[EntityType.parse(entity_type)]
