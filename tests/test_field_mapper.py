from __future__ import annotations

import pytest

from template_autofill.field_mapper import (
    FIELD_NAME_MAP,
    PLACEHOLDER_MAP,
    default_field_mapper,
    normalize_field_name,
)
from template_autofill.models import DataSource


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("First Name", "firstname"),
        ("first_name", "firstname"),
        ("Date-of-Birth:", "dateofbirth"),
        ("Doctor NPI #", "doctornpi"),
        ("", ""),
    ],
)
def test_normalize_field_name(raw: str, expected: str) -> None:
    assert normalize_field_name(raw) == expected


def test_field_name_variants_resolve_to_same_key() -> None:
    mapper = default_field_mapper()

    for name in ("DOB", "Date of Birth", "date_of_birth", "dateOfBirth"):
        entry = mapper.lookup_field_name(name)
        assert entry is not None
        assert entry.source is DataSource.SUBJECT
        assert entry.data_key == "dateOfBirth"


def test_doctor_fields_resolve_to_authority() -> None:
    mapper = default_field_mapper()

    entry = mapper.lookup_field_name("Doctor Last Name")

    assert entry is not None
    assert entry.source is DataSource.AUTHORITY
    assert entry.data_key == "lastName"


def test_token_lookup_is_literal() -> None:
    mapper = default_field_mapper()

    assert mapper.lookup_token("{dateOfBirth}").data_key == "dateOfBirth"
    assert mapper.lookup_token("{date}").source is DataSource.META
    assert mapper.lookup_token("{DateOfBirth}") is None
    assert mapper.lookup_token("{totallyUnknownField}") is None


def test_tables_agree_on_shared_fields() -> None:
    for token, target in PLACEHOLDER_MAP.items():
        normalized = normalize_field_name(token)
        if normalized in FIELD_NAME_MAP:
            assert FIELD_NAME_MAP[normalized] == target, token

