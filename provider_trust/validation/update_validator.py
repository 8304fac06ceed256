"""
Provider update validation for ProviderTrust.

Pre-write checks that keep registration data and profile edits consistent:
legacy key rewriting, format checks for contact and location fields, and
required-field checks for full documents.
"""

import logging
import re
from typing import Any, Dict, List, Mapping

import phonenumbers
from pydantic import BaseModel, Field

from ..models import ProviderProfile

logger = logging.getLogger(__name__)

LEGACY_FIELD_MAPPING: Dict[str, str] = {
    "galleryImages": "gallery",
    "serviceCategories": "services",
    "nameFr": "facilityNameFr",
    "nameAr": "facilityNameAr",
}

REQUIRED_PROFILE_FIELDS = (
    "id",
    "name",
    "type",
    "email",
    "phone",
    "address",
    "city",
    "lat",
    "lng",
)

LIST_FIELDS = ("gallery", "services", "insurances", "specialties", "languages")

# Keys whose cleared value is an empty list
EMPTY_LIST_FIELDS = frozenset(
    info.alias or attr
    for attr, info in ProviderProfile.model_fields.items()
    if info.default_factory is list
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_LENGTH = 8
DEFAULT_PHONE_REGION = "DZ"


class ValidationReport(BaseModel):
    """Errors block the write; warnings are only logged."""

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def canonical_field_name(field_name: str) -> str:
    """Map a legacy key to its canonical name."""
    return LEGACY_FIELD_MAPPING.get(field_name, field_name)


def clean_provider_update(update: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rewrite legacy keys and normalize cleared values.

    A None value clears the field and is kept, so clearing a sensitive
    field is classified like any other edit. List fields are cleared to [].

    Args:
        update: Raw update payload

    Returns:
        Cleaned update, key order preserved
    """
    cleaned: Dict[str, Any] = {}
    for key, value in update.items():
        key = canonical_field_name(key)
        if value is None and key in EMPTY_LIST_FIELDS:
            value = []
        cleaned[key] = value
    return cleaned


def is_valid_phone(phone: str, region: str = DEFAULT_PHONE_REGION) -> bool:
    """Check a phone number with libphonenumber, local numbers read in region."""
    try:
        return phonenumbers.is_valid_number(phonenumbers.parse(phone, region))
    except phonenumbers.NumberParseException:
        return False


def _check_formats(data: Mapping[str, Any], report: ValidationReport):
    email = data.get("email")
    if email is not None and not EMAIL_PATTERN.match(str(email)):
        report.errors.append("Invalid email format")

    phone = data.get("phone")
    if phone is not None:
        if len(str(phone)) < MIN_PHONE_LENGTH:
            report.errors.append(f"Phone number too short (min {MIN_PHONE_LENGTH} characters)")
        elif not is_valid_phone(str(phone)):
            report.warnings.append(f"Phone number {phone} does not look like a valid number")

    for key, bound in (("lat", 90), ("lng", 180)):
        value = data.get(key)
        if value is None:
            continue
        try:
            coordinate = float(value)
        except (TypeError, ValueError):
            report.errors.append(f"{key} must be a number")
            continue
        if not -bound <= coordinate <= bound:
            report.errors.append(f"{key} must be between -{bound} and {bound}")


def validate_provider_update(update: Mapping[str, Any]) -> ValidationReport:
    """
    Validate an update payload before it is written.

    Args:
        update: Raw update payload

    Returns:
        Validation report
    """
    report = ValidationReport()

    for key in update:
        if key in LEGACY_FIELD_MAPPING:
            report.warnings.append(
                f'Deprecated field "{key}" used, use "{LEGACY_FIELD_MAPPING[key]}" instead'
            )

    for key, value in update.items():
        field = canonical_field_name(key)
        if field in REQUIRED_PROFILE_FIELDS and value in (None, ""):
            report.errors.append(f"Cannot clear required field: {field}")

    for key in LIST_FIELDS:
        if key in update and update[key] is not None and not isinstance(update[key], list):
            report.warnings.append(f'Field "{key}" should be a list')

    _check_formats(update, report)

    for warning in report.warnings:
        logger.warning(warning)
    return report


def validate_provider_profile(profile: ProviderProfile) -> ValidationReport:
    """
    Validate a complete profile, e.g. at registration.

    Args:
        profile: Provider profile

    Returns:
        Validation report
    """
    report = ValidationReport()
    document = profile.to_document()

    for key in REQUIRED_PROFILE_FIELDS:
        if document.get(key) in (None, ""):
            report.errors.append(f"Missing required field: {key}")

    if profile.name and len(profile.name) < 2:
        report.errors.append("Name too short (min 2 characters)")
    if profile.address and len(profile.address) < 5:
        report.errors.append("Address too short (min 5 characters)")

    _check_formats(document, report)
    return report
