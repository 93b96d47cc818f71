"""
Field Name Mapper

Maps the names a template author gave to form fields, and the literal
`{token}` placeholders typed into inert templates, onto the dataset key
that should fill them.

Both tables describe the same logical fields: "date of birth" is reachable
as an interactive field called `DOB`, `Date_of_Birth` or `dateOfBirth`, and
as the `{dateOfBirth}` placeholder.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .models import DataSource, FieldMappingEntry

logger = logging.getLogger(__name__)

_S = DataSource.SUBJECT
_A = DataSource.AUTHORITY
_M = DataSource.META

# Normalized interactive field name -> (source, dataset key)
FIELD_NAME_MAP: Dict[str, Tuple[DataSource, str]] = {
    "firstname": (_S, "firstName"),
    "middlename": (_S, "middleName"),
    "lastname": (_S, "lastName"),
    "suffix": (_S, "suffix"),
    "dateofbirth": (_S, "dateOfBirth"),
    "dob": (_S, "dateOfBirth"),
    "address": (_S, "address"),
    "apt": (_S, "apt"),
    "city": (_S, "city"),
    "state": (_S, "state"),
    "zipcode": (_S, "zipCode"),
    "zip": (_S, "zipCode"),
    "phone": (_S, "phone"),
    "email": (_S, "email"),
    "medicalcondition": (_S, "medicalCondition"),
    "date": (_M, "generatedDate"),
    "doctorfirstname": (_A, "firstName"),
    "doctormiddlename": (_A, "middleName"),
    "doctorlastname": (_A, "lastName"),
    "doctorphone": (_A, "phone"),
    "doctoraddress": (_A, "address"),
    "doctorcity": (_A, "city"),
    "doctorstate": (_A, "state"),
    "doctorzipcode": (_A, "zipCode"),
    "doctorlicensenumber": (_A, "licenseNumber"),
    "doctornpinumber": (_A, "npiNumber"),
}

# Literal placeholder token -> (source, dataset key)
PLACEHOLDER_MAP: Dict[str, Tuple[DataSource, str]] = {
    "{firstName}": (_S, "firstName"),
    "{middleName}": (_S, "middleName"),
    "{lastName}": (_S, "lastName"),
    "{suffix}": (_S, "suffix"),
    "{dateOfBirth}": (_S, "dateOfBirth"),
    "{address}": (_S, "address"),
    "{apt}": (_S, "apt"),
    "{city}": (_S, "city"),
    "{state}": (_S, "state"),
    "{zipCode}": (_S, "zipCode"),
    "{zip}": (_S, "zipCode"),
    "{phone}": (_S, "phone"),
    "{email}": (_S, "email"),
    "{medicalCondition}": (_S, "medicalCondition"),
    "{idNumber}": (_S, "idNumber"),
    "{idExpirationDate}": (_S, "idExpirationDate"),
    "{date}": (_M, "generatedDate"),
    "{doctorFirstName}": (_A, "firstName"),
    "{doctorMiddleName}": (_A, "middleName"),
    "{doctorLastName}": (_A, "lastName"),
    "{doctorPhone}": (_A, "phone"),
    "{doctorAddress}": (_A, "address"),
    "{doctorCity}": (_A, "city"),
    "{doctorState}": (_A, "state"),
    "{doctorZipCode}": (_A, "zipCode"),
    "{doctorLicenseNumber}": (_A, "licenseNumber"),
    "{doctorNpiNumber}": (_A, "npiNumber"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_field_name(name: str) -> str:
    """Lowercase and strip every non-alphanumeric character."""
    if not name:
        return ""
    return _NON_ALNUM.sub("", name.lower())


class FieldNameMapper:
    """Immutable lookup over the interactive-name and placeholder tables."""

    def __init__(
        self,
        field_names: Mapping[str, Tuple[DataSource, str]],
        tokens: Mapping[str, Tuple[DataSource, str]],
    ):
        self._field_names = MappingProxyType(
            {
                normalize_field_name(name): FieldMappingEntry(normalize_field_name(name), source, key)
                for name, (source, key) in field_names.items()
            }
        )
        self._tokens = MappingProxyType(
            {
                token: FieldMappingEntry(token, source, key)
                for token, (source, key) in tokens.items()
            }
        )

    def lookup_field_name(self, name: str) -> Optional[FieldMappingEntry]:
        """Resolve a raw interactive field name (any casing/punctuation)."""
        return self._field_names.get(normalize_field_name(name))

    def lookup_token(self, token: str) -> Optional[FieldMappingEntry]:
        """Resolve a literal placeholder such as `{firstName}`."""
        return self._tokens.get(token)


def default_field_mapper() -> FieldNameMapper:
    return FieldNameMapper(FIELD_NAME_MAP, PLACEHOLDER_MAP)
