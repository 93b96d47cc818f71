"""
Dataset lookup and field-specific value formatting.

Adapted from the value normalization used when filling form fields: a
lookup never fails (missing keys resolve to an empty string) and only
date-of-birth values are reformatted.
"""

from __future__ import annotations

import re

from .models import DataSource, Datasets

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

DATE_OF_BIRTH_KEY = "dateOfBirth"


def format_date_of_birth(value: str) -> str:
    """Convert YYYY-MM-DD to MM/DD/YYYY; anything else passes through."""
    if not value:
        return ""
    match = _ISO_DATE.match(value)
    if match:
        year, month, day = match.groups()
        return f"{month}/{day}/{year}"
    return value


def resolve_value(source: DataSource, data_key: str, datasets: Datasets) -> str:
    value = datasets.record(source).get(data_key)
    if value is None:
        value = ""
    elif not isinstance(value, str):
        value = str(value)
    if data_key == DATE_OF_BIRTH_KEY:
        value = format_date_of_birth(value)
    return value
