"""
Unit tests for provider update validation.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from provider_trust.models import ProviderProfile
from provider_trust.validation.update_validator import (
    canonical_field_name,
    clean_provider_update,
    is_valid_phone,
    validate_provider_profile,
    validate_provider_update,
)


class TestCleanProviderUpdate:
    """Test cases for update cleaning."""

    def test_legacy_keys_rewritten(self):
        """Test legacy keys map to canonical names."""
        assert canonical_field_name("galleryImages") == "gallery"
        assert canonical_field_name("nameAr") == "facilityNameAr"
        assert canonical_field_name("address") == "address"

    def test_clean_update(self):
        """Test cleared values are kept and order preserved."""
        cleaned = clean_provider_update({
            "galleryImages": ["a.jpg"],
            "description": None,
            "phone": "+212522000000",
        })
        assert cleaned == {"gallery": ["a.jpg"], "description": None, "phone": "+212522000000"}
        assert list(cleaned) == ["gallery", "description", "phone"]

    def test_cleared_list_fields(self):
        """Test clearing a list field stores an empty list."""
        assert clean_provider_update({"services": None, "galleryImages": None}) == {
            "services": [],
            "gallery": [],
        }
        assert clean_provider_update({"legalRegistrationNumber": None}) == {
            "legalRegistrationNumber": None,
        }


class TestValidateProviderUpdate:
    """Test cases for update validation."""

    def test_valid_update(self):
        """Test a well-formed update."""
        report = validate_provider_update({"email": "info@atlas.ma", "lat": 33.5, "lng": -7.6})
        assert report.valid
        assert report.errors == []

    def test_format_errors(self):
        """Test contact and coordinate checks."""
        report = validate_provider_update({"email": "info@", "phone": "0522", "lat": 91, "lng": "east"})
        assert not report.valid
        assert "Invalid email format" in report.errors
        assert "Phone number too short (min 8 characters)" in report.errors
        assert "lat must be between -90 and 90" in report.errors
        assert "lng must be a number" in report.errors

    def test_required_fields_cannot_be_cleared(self):
        """Test clearing a required field is an error."""
        report = validate_provider_update({"address": None, "city": "", "legalRegistrationNumber": None})
        assert not report.valid
        assert report.errors == [
            "Cannot clear required field: address",
            "Cannot clear required field: city",
        ]

    def test_phone_validity_warns(self):
        """Test numbers that are long enough but invalid only warn."""
        assert is_valid_phone("+33 1 42 68 53 00")
        assert not is_valid_phone("+999 1234 5678")

        report = validate_provider_update({"phone": "+999 1234 5678"})
        assert report.valid
        assert len(report.warnings) == 1

    def test_warnings_do_not_block(self):
        """Test legacy keys and non-list values only warn."""
        report = validate_provider_update({"serviceCategories": ["x"], "languages": "fr"})
        assert report.valid
        assert len(report.warnings) == 2


class TestValidateProviderProfile:
    """Test cases for full profile validation."""

    def test_missing_required_fields(self):
        """Test required fields are reported."""
        report = validate_provider_profile(ProviderProfile(id="prov-1", name="Clinique Atlas"))
        assert not report.valid
        for field in ("type", "email", "phone", "address", "city", "lat", "lng"):
            assert f"Missing required field: {field}" in report.errors

    def test_short_values(self):
        """Test minimum lengths."""
        profile = ProviderProfile(id="prov-1", name="A", type="clinic", email="a@b.ma",
                                  phone="+212522000000", address="Rue", city="Fes", lat=34.0, lng=-5.0)
        report = validate_provider_profile(profile)
        assert "Name too short (min 2 characters)" in report.errors
        assert "Address too short (min 5 characters)" in report.errors
