"""
Human-readable labels for sensitive profile fields.

Presentation data only; the classifier never reads it.
"""

from typing import Dict, Iterable, List

SENSITIVE_FIELD_LABELS: Dict[str, str] = {
    "name": "Facility name",
    "facilityNameFr": "Name (French)",
    "facilityNameAr": "Name (Arabic)",
    "type": "Facility type",
    "providerType": "Provider type",
    "legalRegistrationNumber": "Legal registration number",
    "registrationAuthority": "Registration authority",
    "address": "Address",
    "city": "City",
    "area": "District",
    "postalCode": "Postal code",
    "lat": "GPS location",
    "lng": "GPS location",
    "phone": "Phone",
    "email": "Official email",
    "contactPersonName": "Contact name",
    "contactPersonRole": "Contact role",
    "legalRepresentative": "Legal representative",
    "verificationDocuments": "Verification documents",
}


def field_labels(fields: Iterable[str]) -> List[str]:
    """
    Map field keys to labels, merging keys that share a label.

    Args:
        fields: Field keys in display order

    Returns:
        Distinct labels in first-seen order; unknown keys are kept as-is
    """
    labels: List[str] = []
    for field in fields:
        label = SENSITIVE_FIELD_LABELS.get(field, field)
        if label not in labels:
            labels.append(label)
    return labels
