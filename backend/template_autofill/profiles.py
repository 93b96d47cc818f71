"""
Authority profile adapter.

The profile that owns a template is stored by the host application. The
engine consumes it as a flat record: it names the template source and
carries the authority fields, including the last name that selects the
offset correction.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

TEMPLATE_URL_KEYS = ("templateUrl", "template_url", "gizmoFormUrl")


@dataclass
class AuthorityProfile:
    """Authority record plus the template it owns."""

    template_url: Optional[str]
    record: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "AuthorityProfile":
        template_url = None
        for key in TEMPLATE_URL_KEYS:
            if record.get(key):
                template_url = str(record[key])
                break
        flat = {
            str(key): "" if value is None else str(value)
            for key, value in record.items()
            if key not in TEMPLATE_URL_KEYS and not isinstance(value, (dict, list))
        }
        return cls(template_url=template_url, record=flat)


def default_meta(today: Optional[dt.date] = None) -> Dict[str, str]:
    """Generation metadata; the date uses US month/day/year without padding."""
    today = today or dt.date.today()
    return {"generatedDate": f"{today.month}/{today.day}/{today.year}"}
