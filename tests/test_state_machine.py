"""
Unit tests for the verification status state machine.
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from provider_trust.errors import InvalidTransitionError
from provider_trust.models import ProviderProfile, VerificationStatus, parse_revoked_reason
from provider_trust.verification.state_machine import (
    VerificationEvent,
    next_status,
    plan_profile_edit,
    plan_transition,
)


class TestTransitions:
    """Test cases for allowed and forbidden transitions."""

    def test_allowed_transitions(self):
        """Test every edge of the lifecycle."""
        assert next_status(VerificationStatus.PENDING, VerificationEvent.APPROVE) == VerificationStatus.VERIFIED
        assert next_status(VerificationStatus.PENDING, VerificationEvent.REJECT) == VerificationStatus.REJECTED
        assert next_status(VerificationStatus.VERIFIED, VerificationEvent.SENSITIVE_EDIT) == VerificationStatus.REVOKED
        assert next_status(VerificationStatus.REVOKED, VerificationEvent.SUBMIT) == VerificationStatus.PENDING
        assert next_status(VerificationStatus.REJECTED, VerificationEvent.SUBMIT) == VerificationStatus.PENDING

    def test_revoked_cannot_be_approved_directly(self):
        """Test a revoked profile must be resubmitted first."""
        with pytest.raises(InvalidTransitionError):
            next_status(VerificationStatus.REVOKED, VerificationEvent.APPROVE)

    def test_forbidden_transitions(self):
        """Test events outside the lifecycle are refused."""
        forbidden = [
            (VerificationStatus.VERIFIED, VerificationEvent.APPROVE),
            (VerificationStatus.VERIFIED, VerificationEvent.SUBMIT),
            (VerificationStatus.PENDING, VerificationEvent.SENSITIVE_EDIT),
            (VerificationStatus.REJECTED, VerificationEvent.APPROVE),
            (VerificationStatus.REVOKED, VerificationEvent.SENSITIVE_EDIT),
        ]
        for status, event in forbidden:
            with pytest.raises(InvalidTransitionError):
                next_status(status, event)


class TestPlanTransition:
    """Test cases for status change planning."""

    def test_revocation_records_fields(self):
        """Test revocation carries fields, reason and timestamp."""
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        change = plan_transition(VerificationStatus.VERIFIED, VerificationEvent.SENSITIVE_EDIT,
                                 revoked_fields=["address", "phone"], now=now)

        assert change.to_status == VerificationStatus.REVOKED
        assert change.revoked_fields == ["address", "phone"]
        assert change.revoked_at == now
        assert change.reason == "Modified: address, phone"
        assert parse_revoked_reason(change.reason) == ["address", "phone"]

    def test_revocation_requires_fields(self):
        """Test a revocation cannot be anonymous."""
        with pytest.raises(ValueError):
            plan_transition(VerificationStatus.VERIFIED, VerificationEvent.SENSITIVE_EDIT)

    def test_submit_clears_revocation(self):
        """Test other transitions clear revocation data."""
        change = plan_transition(VerificationStatus.REVOKED, VerificationEvent.SUBMIT)
        assert change.as_fields() == {
            "verificationStatus": "pending",
            "revokedFields": [],
            "revokedAt": None,
        }


class TestPlanProfileEdit:
    """Test cases for edit-driven revocation."""

    def setup_method(self):
        """Setup test fixtures."""
        self.profile = ProviderProfile(id="prov-1", name="Clinique Atlas",
                                       verification_status=VerificationStatus.VERIFIED)

    def test_sensitive_edit_revokes_verified(self):
        """Test a sensitive edit to a verified profile revokes it."""
        change = plan_profile_edit(self.profile, ["address"])
        assert change is not None
        assert change.from_status == VerificationStatus.VERIFIED
        assert change.to_status == VerificationStatus.REVOKED
        assert change.revoked_fields == ["address"]

    def test_non_sensitive_edit_keeps_status(self):
        """Test edits without sensitive fields change nothing."""
        assert plan_profile_edit(self.profile, []) is None

    def test_edit_to_unverified_profile_keeps_status(self):
        """Test pending, rejected and revoked profiles are not transitioned."""
        for status in (VerificationStatus.PENDING, VerificationStatus.REJECTED, VerificationStatus.REVOKED):
            profile = self.profile.model_copy(update={"verification_status": status})
            assert plan_profile_edit(profile, ["address"]) is None


class TestProfileModel:
    """Test cases for derived profile attributes."""

    def test_visibility_follows_status(self):
        """Test only verified profiles are public."""
        for status in VerificationStatus:
            profile = ProviderProfile(id="prov-1", verification_status=status)
            assert profile.is_public is (status == VerificationStatus.VERIFIED)

    def test_legacy_reason_upgraded(self):
        """Test documents that only carry a reason string are read."""
        profile = ProviderProfile.model_validate({
            "id": "prov-1",
            "verificationStatus": "revoked",
            "revokedReason": "Modified: address, phone",
        })
        assert profile.revoked_fields == ["address", "phone"]
        assert profile.revoked_reason == "Modified: address, phone"

    def test_document_shape(self):
        """Test the stored document uses camelCase keys."""
        document = ProviderProfile(id="prov-1", legal_registration_number="RC-1").to_document()
        assert document["legalRegistrationNumber"] == "RC-1"
        assert document["verificationStatus"] == "pending"
        assert document["isPublic"] is False
        assert document["revokedReason"] is None
