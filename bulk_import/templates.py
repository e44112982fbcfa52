"""
Example CSV files for each entity type.

Templates teach the expected column names; their example rows are fixed
and import cleanly as-is.
"""

import logging
from pathlib import Path
from typing import Dict, Union

from crm import EntityType

from .schemas import get_schema

logger = logging.getLogger(__name__)

_EXAMPLE_ROWS: Dict[EntityType, str] = {
    EntityType.LEADS: (
        "John Smith,john@example.com,555-0123,TechCorp,Website,new,25000,75,Interested in our premium package\n"
        "Sarah Johnson,sarah@company.com,555-0124,ABC Inc,Referral,qualified,15000,60,Follow up next week"
    ),
    EntityType.CUSTOMERS: (
        "Mike Wilson,mike@business.com,555-0125,Business Solutions,123 Main St,Technology,50000,active,Long-term client\n"
        "Lisa Brown,lisa@startup.com,555-0126,StartupCo,456 Oak Ave,Software,25000,prospect,Potential for growth"
    ),
    EntityType.CONTRACTS: (
        'Service Agreement,John Smith,john@example.com,25000,"This agreement covers...",2024-12-31\n'
        'Software License,Sarah Johnson,sarah@company.com,15000,"Software licensing terms...",2024-11-30'
    ),
}

TEMPLATES: Dict[EntityType, str] = {
    entity_type: ",".join(get_schema(entity_type).column_names()) + "\n" + rows
    for entity_type, rows in _EXAMPLE_ROWS.items()
}


def generate_template(entity_type) -> str:
    """Return the CSV template text for an entity type."""
    return TEMPLATES[EntityType.parse(entity_type)]


def template_filename(entity_type) -> str:
    return f"{EntityType.parse(entity_type).value}_template.csv"


def write_template(entity_type, directory: Union[str, Path] = ".") -> Path:
    """
    Write the template for an entity type into a directory.

    Returns:
        Path of the written file
    """
    path = Path(directory) / template_filename(entity_type)
    path.write_text(generate_template(entity_type), encoding="utf-8")
    logger.info("Wrote %s template to %s", EntityType.parse(entity_type).value, path)
    return path
