"""
Provider verification service for ProviderTrust.

Ties the sensitivity classifier, the status state machine, the profile
store and the audit log together. A sensitive edit to a verified profile
is written in the same store update as its revocation; there is no code
path that applies the edit and revokes afterwards.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..audit.audit_logger import AuditAction, AuditLogger
from ..classify.sensitivity import classify_update
from ..errors import InvalidTransitionError, InvalidUpdateError
from ..match.scorer import VerificationScorer
from ..models import ProfileUpdateOutcome, ProviderProfile, VerificationResult, VerificationStatus
from ..storage.profile_store import ProfileStore
from ..validation.update_validator import (
    clean_provider_update,
    validate_provider_profile,
    validate_provider_update,
)
from .state_machine import VerificationEvent, plan_profile_edit, plan_transition

logger = logging.getLogger(__name__)


class VerificationService:
    """
    Applies profile edits and verification decisions.

    Persistence failures propagate to the caller with nothing committed.
    Audit and notification failures are logged and ignored.
    """

    def __init__(self, store: ProfileStore, audit_logger: Optional[AuditLogger] = None,
                 scorer: Optional[VerificationScorer] = None,
                 require_passing_score: bool = False):
        """
        Initialize verification service.

        Args:
            store: Profile store with atomic updates
            audit_logger: Audit trail, optional
            scorer: Document scorer, defaults to one with default thresholds
            require_passing_score: Refuse approvals backed by a failing result
        """
        self.store = store
        self.audit_logger = audit_logger
        self.scorer = scorer or VerificationScorer()
        self.require_passing_score = require_passing_score

        logger.info("Initialized VerificationService")

    def _audit(self, action: AuditAction, target_id: str,
               details: Optional[Dict[str, Any]] = None,
               reason: Optional[str] = None, actor: Optional[str] = None):
        if self.audit_logger is None:
            return
        try:
            self.audit_logger.record(action, target_id, details=details, reason=reason, actor=actor)
        except Exception as e:
            logger.warning(f"Audit logging failed for {action} on {target_id}: {e}")

    def _notify_revoked(self, profile: ProviderProfile):
        if self.audit_logger is None:
            return
        try:
            self.audit_logger.notify_verification_revoked(
                profile.id, profile.name, profile.revoked_fields
            )
        except Exception as e:
            logger.warning(f"Revocation notification failed for {profile.id}: {e}")

    def register(self, profile: ProviderProfile) -> ProviderProfile:
        """
        Store a newly registered profile in pending status.

        Args:
            profile: Complete provider profile

        Returns:
            Stored profile

        Raises:
            InvalidUpdateError: If required fields are missing or malformed
        """
        report = validate_provider_profile(profile)
        if not report.valid:
            raise InvalidUpdateError(report.errors)

        profile = profile.model_copy(update={
            "verification_status": VerificationStatus.PENDING,
            "revoked_fields": [],
            "revoked_at": None,
        })
        return self.store.create_profile(profile)

    def update_profile(self, profile_id: str, update: Mapping[str, Any],
                       actor: Optional[str] = None) -> ProfileUpdateOutcome:
        """
        Apply a profile edit, revoking verification if it is sensitive.

        Args:
            profile_id: Provider id
            update: Mapping of field key to new value
            actor: User who made the edit

        Returns:
            Outcome with the committed profile and any status change

        Raises:
            InvalidUpdateError: If the update fails validation
            UnclassifiedFieldError: If the update carries an unknown field
            PersistenceError: If the store write fails; nothing is committed
        """
        report = validate_provider_update(update)
        if not report.valid:
            raise InvalidUpdateError(report.errors)

        diff = clean_provider_update(update)
        sensitive_fields = classify_update(diff)

        current = self.store.get_profile(profile_id)
        status_change = plan_profile_edit(current, sensitive_fields)

        updated = self.store.apply_update(
            profile_id, diff, status_change, expected_status=current.verification_status
        )

        if status_change is not None:
            logger.info(f"Provider {profile_id} revoked: {updated.revoked_reason}")
            self._audit(
                AuditAction.VERIFICATION_REVOKED, profile_id,
                details={"modifiedFields": sensitive_fields},
                reason=updated.revoked_reason, actor=actor,
            )
            self._notify_revoked(updated)
        else:
            self._audit(
                AuditAction.PROVIDER_EDITED, profile_id,
                details={"fields": list(diff), "sensitiveFields": sensitive_fields},
                actor=actor,
            )

        return ProfileUpdateOutcome(
            profile=updated,
            sensitive_fields=sensitive_fields,
            status_change=status_change,
        )

    def approve(self, profile_id: str, verification_result: Optional[VerificationResult] = None,
                actor: Optional[str] = None) -> ProviderProfile:
        """
        Approve a pending profile, making it public.

        Args:
            profile_id: Provider id
            verification_result: Document score backing the decision
            actor: Admin who approved

        Returns:
            Committed profile
        """
        current = self.store.get_profile(profile_id)
        if (self.require_passing_score
                and (verification_result is None or not verification_result.success)):
            raise InvalidTransitionError(
                current.verification_status.value, "approve without a passing document score"
            )

        change = plan_transition(current.verification_status, VerificationEvent.APPROVE)
        updated = self.store.apply_update(profile_id, {}, change)

        details = None
        if verification_result is not None:
            details = {
                "overallScore": verification_result.overall_score,
                "success": verification_result.success,
            }
        self._audit(AuditAction.PROVIDER_APPROVED, profile_id, details=details, actor=actor)
        return updated

    def reject(self, profile_id: str, reason: Optional[str] = None,
               actor: Optional[str] = None) -> ProviderProfile:
        """
        Reject a pending profile.

        Args:
            profile_id: Provider id
            reason: Review notes
            actor: Admin who rejected

        Returns:
            Committed profile
        """
        current = self.store.get_profile(profile_id)
        change = plan_transition(current.verification_status, VerificationEvent.REJECT)
        updated = self.store.apply_update(profile_id, {}, change)

        self._audit(AuditAction.PROVIDER_REJECTED, profile_id, reason=reason, actor=actor)
        return updated

    def submit_for_verification(self, profile_id: str, documents: Optional[list] = None,
                                actor: Optional[str] = None) -> ProviderProfile:
        """
        Send a revoked or rejected profile back to the review queue.

        New documents, if any, are written with the status change.

        Args:
            profile_id: Provider id
            documents: Replacement verification documents
            actor: User who submitted

        Returns:
            Committed profile
        """
        current = self.store.get_profile(profile_id)
        change = plan_transition(current.verification_status, VerificationEvent.SUBMIT)
        diff = {"verificationDocuments": documents} if documents is not None else {}
        updated = self.store.apply_update(profile_id, diff, change)

        self._audit(
            AuditAction.VERIFICATION_SUBMITTED, profile_id,
            details={"previousStatus": current.verification_status.value}, actor=actor,
        )
        if self.audit_logger is not None:
            try:
                self.audit_logger.notify_verification_submitted(profile_id, updated.name)
            except Exception as e:
                logger.warning(f"Submission notification failed for {profile_id}: {e}")
        return updated

    def score_document(self, profile_id: str, raw_text: Optional[str],
                       expected_fields: Optional[Mapping[str, Any]] = None,
                       actor: Optional[str] = None) -> VerificationResult:
        """
        Score extracted document text for a provider's verification request.

        The result informs a manual decision; it does not change status.

        Args:
            profile_id: Provider id
            raw_text: Text extracted from the uploaded document
            expected_fields: Mapping of field key to claimed value; derived
                from the stored profile when omitted
            actor: User who uploaded the document

        Returns:
            Verification result
        """
        if expected_fields is None:
            expected_fields = expected_fields_for(self.store.get_profile(profile_id))
        result = self.scorer.verify(raw_text, expected_fields)
        self._audit(
            AuditAction.DOCUMENT_SCORED, profile_id,
            details={
                "overallScore": result.overall_score,
                "success": result.success,
                "fields": {key: detail.found for key, detail in result.fields.items()},
            },
            actor=actor,
        )
        return result


def expected_fields_for(profile: ProviderProfile) -> Dict[str, Optional[str]]:
    """
    Expected document values derived from a profile's claimed identity.

    Args:
        profile: Provider profile

    Returns:
        Mapping suitable for VerificationScorer.verify
    """
    return {
        "facilityName": profile.name,
        "registrationNumber": profile.legal_registration_number,
        "fullName": profile.legal_representative,
    }
