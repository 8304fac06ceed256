"""
Data model for ProviderTrust.

Pydantic models for provider profiles, verification status changes and
document verification results. Attribute names are snake_case; the stored
and wire representation uses the camelCase keys the directory front end
reads, produced through the alias generator.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

REVOKED_REASON_PREFIX = "Modified:"

# Keys maintained by the verification workflow, never accepted in a profile edit
SYSTEM_FIELDS = frozenset({
    "id",
    "userId",
    "verificationStatus",
    "revokedFields",
    "revokedAt",
    "createdAt",
    "updatedAt",
})


class VerificationStatus(str, Enum):
    """Verification states of a provider listing."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    REVOKED = "revoked"


def format_revoked_reason(fields: List[str]) -> str:
    """
    Render the display form of a revocation reason.

    Args:
        fields: Sensitive field keys that caused the revocation

    Returns:
        String of the form "Modified: field1, field2"
    """
    return f"{REVOKED_REASON_PREFIX} {', '.join(fields)}"


def parse_revoked_reason(reason: Optional[str]) -> List[str]:
    """
    Recover field keys from a stored revocation reason string.

    Args:
        reason: Reason string, possibly written by an older client

    Returns:
        List of field keys, empty if the reason is not a modification reason
    """
    if not reason or not reason.startswith(REVOKED_REASON_PREFIX):
        return []
    body = reason[len(REVOKED_REASON_PREFIX):]
    return [part.strip() for part in re.split(r",", body) if part.strip()]


class TrustModel(BaseModel):
    """Base model: camelCase aliases, construction by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProviderProfile(TrustModel):
    """
    One directory listing.

    Identity, legal, location and official contact attributes are sensitive;
    descriptive content is not. See provider_trust.classify.sensitivity.
    """

    id: str
    user_id: Optional[str] = None

    # Identity & legal
    name: str = ""
    facility_name_fr: Optional[str] = None
    facility_name_ar: Optional[str] = None
    type: Optional[str] = None
    provider_type: Optional[str] = None
    legal_registration_number: Optional[str] = None
    registration_authority: Optional[str] = None

    # Location
    address: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    postal_code: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    # Official contact & representatives
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_role: Optional[str] = None
    legal_representative: Optional[str] = None
    verification_documents: List[Any] = Field(default_factory=list)

    # Profile content
    description: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    specialties: List[str] = Field(default_factory=list)
    specialty: Optional[str] = None
    schedule: Optional[Dict[str, Any]] = None
    accessibility_features: List[str] = Field(default_factory=list)
    accessible: Optional[bool] = None
    home_visit_available: Optional[bool] = None
    emergency: Optional[bool] = None
    gallery: List[str] = Field(default_factory=list)
    image: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    website: Optional[str] = None
    insurance_accepted: Optional[bool] = None
    insurances: List[str] = Field(default_factory=list)
    consultation_fee: Optional[Any] = None
    languages: List[str] = Field(default_factory=list)
    departments: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    imaging_types: List[str] = Field(default_factory=list)
    blood_types: List[str] = Field(default_factory=list)
    stock_status: Optional[str] = None
    urgent_need: Optional[bool] = None
    product_categories: List[str] = Field(default_factory=list)
    offers_rental: Optional[bool] = None
    offers_delivery: Optional[bool] = None

    # Verification state
    verification_status: VerificationStatus = VerificationStatus.PENDING
    revoked_fields: List[str] = Field(default_factory=list)
    revoked_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_reason(cls, data: Any) -> Any:
        # Older documents only carry the display string
        if isinstance(data, dict) and not data.get("revokedFields") and not data.get("revoked_fields"):
            fields = parse_revoked_reason(data.get("revokedReason"))
            if fields:
                data = {**data, "revokedFields": fields}
        return data

    @computed_field(alias="isPublic")
    @property
    def is_public(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED

    @computed_field(alias="revokedReason")
    @property
    def revoked_reason(self) -> Optional[str]:
        if not self.revoked_fields:
            return None
        return format_revoked_reason(self.revoked_fields)

    @classmethod
    def content_field_names(cls) -> List[str]:
        """Wire keys of every attribute a profile edit may carry."""
        names = []
        for attr, info in cls.model_fields.items():
            key = info.alias or attr
            if key not in SYSTEM_FIELDS:
                names.append(key)
        return names

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored camelCase document shape."""
        return self.model_dump(by_alias=True, mode="json")


class FieldVerification(TrustModel):
    """Match detail for one expected field."""

    found: bool
    similarity: float
    expected_value: str
    matched_word: Optional[str] = None


class VerificationResult(TrustModel):
    """Outcome of scoring one uploaded document."""

    success: bool
    overall_score: float
    fields: Dict[str, FieldVerification] = Field(default_factory=dict)
    raw_text: str = ""
    cleaned_text: str = ""
    processed_at: datetime
    processing_time_ms: float = 0.0

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the persisted shape consumed by the UI layer."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class StatusChange(TrustModel):
    """A verification status transition to be written with a profile edit."""

    from_status: VerificationStatus
    to_status: VerificationStatus
    revoked_fields: List[str] = Field(default_factory=list)
    revoked_at: Optional[datetime] = None

    @property
    def reason(self) -> Optional[str]:
        if not self.revoked_fields:
            return None
        return format_revoked_reason(self.revoked_fields)

    def as_fields(self) -> Dict[str, Any]:
        """Document keys this transition writes."""
        return {
            "verificationStatus": self.to_status.value,
            "revokedFields": list(self.revoked_fields),
            "revokedAt": self.revoked_at.isoformat() if self.revoked_at else None,
        }


class ProfileUpdateOutcome(TrustModel):
    """What happened to a profile as a result of one edit."""

    profile: ProviderProfile
    sensitive_fields: List[str] = Field(default_factory=list)
    status_change: Optional[StatusChange] = None

    @property
    def revoked(self) -> bool:
        return (
            self.status_change is not None
            and self.status_change.to_status == VerificationStatus.REVOKED
        )
