"""
Row mapping and validation.

Applies an entity schema to one parsed row and produces the typed CRM
record, or a RowValidationError describing why the row was rejected.
A rejected row never affects any other row.
"""

import logging
import math
import re
from enum import Enum
from typing import Any, Dict, Optional

from .parser import RawRow
from .schemas import EntitySchema, FieldKind, FieldSpec, get_schema

logger = logging.getLogger(__name__)


class RowValidationError(Exception):
    """
    Raised when a row cannot be mapped to a record.

    Attributes:
        row_number: 1-based file row (header is row 1)
        field: Name of the offending field
        reason: Message without the row prefix
    """

    def __init__(self, row_number: int, field: str, reason: str):
        super().__init__(f"Row {row_number}: {reason}")
        self.row_number = row_number
        self.field = field
        self.reason = reason


class _Unparsable(Exception):
    pass


# Commas are only accepted as thousands separators: 1,234 or $12,500.50
_GROUPED_NUMBER = re.compile(r"^(-|\$)?\d{1,3}(,\d{3})+(\.\d+)?$")


def parse_number(raw: str) -> float:
    """
    Parse a numeric cell. Accepts currency symbols and thousands separators.

    Raises:
        ValueError: If the text is not a finite number
    """
    cleaned = raw.strip()
    if "," in cleaned:
        if not _GROUPED_NUMBER.match(cleaned):
            raise ValueError(f"misplaced thousands separator: {raw!r}")
        cleaned = cleaned.replace(",", "")
    if cleaned.startswith("$"):
        cleaned = cleaned[1:]

    number = float(cleaned)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {raw!r}")
    return number


class RecordMapper:
    """
    Maps RawRows onto records for one entity type.

    Usage:
        mapper = RecordMapper.for_entity("leads")
        lead = mapper.map_row(row)
    """

    def __init__(self, schema: EntitySchema):
        self.schema = schema

    @classmethod
    def for_entity(cls, entity_type) -> "RecordMapper":
        return cls(get_schema(entity_type))

    def map_row(self, row: RawRow):
        """
        Build a record from a row.

        Returns:
            An instance of the schema's record class

        Raises:
            RowValidationError: If a required field is missing or invalid
        """
        values: Dict[str, Any] = {}
        for field_spec in self.schema.fields:
            values[field_spec.name] = self._map_field(field_spec, row)

        return self.schema.record_cls(**values)

    def _map_field(self, field_spec: FieldSpec, row: RawRow) -> Any:
        if field_spec.kind is FieldKind.FIXED:
            return field_spec.default

        raw = row.get(field_spec.name).strip()

        if not raw:
            if field_spec.required:
                raise RowValidationError(
                    row.row_number, field_spec.name, f"Missing required field '{field_spec.name}'"
                )
            return field_spec.empty_value()

        try:
            return self._coerce(field_spec, raw)
        except _Unparsable as e:
            if field_spec.required:
                raise RowValidationError(row.row_number, field_spec.name, str(e)) from e

            logger.warning(
                "Row %d: %s; using default %r", row.row_number, e, field_spec.empty_value()
            )
            return field_spec.empty_value()

    def _coerce(self, field_spec: FieldSpec, raw: str) -> Any:
        if field_spec.kind is FieldKind.NUMBER:
            return self._coerce_number(field_spec, raw)
        if field_spec.kind is FieldKind.ENUM:
            return self._coerce_enum(field_spec, raw)
        # STRING and DATE pass through as trimmed text
        return raw

    @staticmethod
    def _coerce_number(field_spec: FieldSpec, raw: str) -> float:
        try:
            number = parse_number(raw)
        except ValueError as e:
            raise _Unparsable(f"Invalid number for '{field_spec.name}': {raw!r}") from e

        if field_spec.minimum is not None and number < field_spec.minimum:
            raise _Unparsable(f"'{field_spec.name}' must be at least {field_spec.minimum:g}, got {raw!r}")
        if field_spec.maximum is not None and number > field_spec.maximum:
            raise _Unparsable(f"'{field_spec.name}' must be at most {field_spec.maximum:g}, got {raw!r}")

        return number

    @staticmethod
    def _coerce_enum(field_spec: FieldSpec, raw: str) -> Optional[Enum]:
        wanted = raw.lower()
        for choice in field_spec.choices:
            value = choice.value if isinstance(choice, Enum) else choice
            if str(value).lower() == wanted:
                return choice

        allowed = ", ".join(
            str(c.value if isinstance(c, Enum) else c) for c in field_spec.choices
        )
        raise _Unparsable(f"Invalid {field_spec.name} {raw!r} (allowed: {allowed})")
