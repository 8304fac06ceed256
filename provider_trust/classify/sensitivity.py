"""
Field sensitivity classification for ProviderTrust.

Declares which provider profile fields require re-verification when they
change. Classification depends only on the field key, never on the old or
new value. Revocation itself lives in provider_trust.verification.
"""

import enum
import logging
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping

from ..errors import UnclassifiedFieldError

logger = logging.getLogger(__name__)


class FieldSensitivity(str, enum.Enum):
    """Sensitivity classes of a profile field."""

    SENSITIVE = "sensitive"
    NON_SENSITIVE = "non-sensitive"


# Identity, legal registration, physical location, official contact
SENSITIVE_PROVIDER_FIELDS = (
    "name",
    "facilityNameFr",
    "facilityNameAr",
    "type",
    "providerType",
    "legalRegistrationNumber",
    "registrationAuthority",
    "address",
    "city",
    "area",
    "postalCode",
    "lat",
    "lng",
    "phone",
    "email",
    "contactPersonName",
    "contactPersonRole",
    "legalRepresentative",
    "verificationDocuments",
)

# Descriptive content, editable without impacting verification
NON_SENSITIVE_PROVIDER_FIELDS = (
    "description",
    "services",
    "specialties",
    "specialty",
    "schedule",
    "accessibilityFeatures",
    "accessible",
    "homeVisitAvailable",
    "emergency",
    "gallery",
    "image",
    "socialLinks",
    "website",
    "insuranceAccepted",
    "insurances",
    "consultationFee",
    "languages",
    "departments",
    "keywords",
    "equipment",
    "imagingTypes",
    "bloodTypes",
    "stockStatus",
    "urgentNeed",
    "productCategories",
    "offersRental",
    "offersDelivery",
)


def _build_table() -> Mapping[str, FieldSensitivity]:
    overlap = set(SENSITIVE_PROVIDER_FIELDS) & set(NON_SENSITIVE_PROVIDER_FIELDS)
    if overlap:
        raise ValueError(f"Fields classified twice: {sorted(overlap)}")
    table = {field: FieldSensitivity.SENSITIVE for field in SENSITIVE_PROVIDER_FIELDS}
    table.update({field: FieldSensitivity.NON_SENSITIVE for field in NON_SENSITIVE_PROVIDER_FIELDS})
    return MappingProxyType(table)


FIELD_SENSITIVITY: Mapping[str, FieldSensitivity] = _build_table()


def classify_field(field_name: str) -> FieldSensitivity:
    """
    Look up the sensitivity class of a field.

    Args:
        field_name: Profile field key

    Returns:
        Sensitivity class

    Raises:
        UnclassifiedFieldError: If the field is in neither enumeration
    """
    try:
        return FIELD_SENSITIVITY[field_name]
    except KeyError:
        raise UnclassifiedFieldError([field_name]) from None


def is_sensitive(field_name: str) -> bool:
    """Return True if changing the field invalidates verification."""
    return classify_field(field_name) is FieldSensitivity.SENSITIVE


def classify_update(update: Mapping[str, Any]) -> List[str]:
    """
    Find the sensitive fields of a proposed profile update.

    Every key is checked before anything is returned, so an update with an
    unknown key fails as a whole.

    Args:
        update: Mapping of field key to new value

    Returns:
        Sensitive keys, in the update's key order

    Raises:
        UnclassifiedFieldError: If any key is in neither enumeration
    """
    unknown = [key for key in update if key not in FIELD_SENSITIVITY]
    if unknown:
        logger.error(f"Update carries unclassified fields: {unknown}")
        raise UnclassifiedFieldError(unknown)
    return [key for key in update if FIELD_SENSITIVITY[key] is FieldSensitivity.SENSITIVE]


def find_unclassified_fields(field_names: Iterable[str]) -> List[str]:
    """Return the keys in field_names that are in neither enumeration."""
    return [name for name in field_names if name not in FIELD_SENSITIVITY]


def check_exhaustive(field_names: Iterable[str]) -> None:
    """
    Fail fast if any known profile field is unclassified.

    Args:
        field_names: Every field key a profile update may carry

    Raises:
        UnclassifiedFieldError: If a field is missing from the table
    """
    missing = find_unclassified_fields(field_names)
    if missing:
        raise UnclassifiedFieldError(missing)
    logger.debug(f"All {len(FIELD_SENSITIVITY)} profile fields are classified")
