"""
Verification status state machine for ProviderTrust.

pending  --approve-->        verified
pending  --reject-->         rejected
verified --sensitive_edit--> revoked
revoked  --submit-->         pending
rejected --submit-->         pending

A revoked profile only returns to pending through an explicit new
submission. Public visibility is derived from the status, so every
transition away from verified hides the listing in the same write.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..errors import InvalidTransitionError
from ..models import ProviderProfile, StatusChange, VerificationStatus

logger = logging.getLogger(__name__)


class VerificationEvent(str, Enum):
    """Events that move a profile between verification states."""

    APPROVE = "approve"
    REJECT = "reject"
    SENSITIVE_EDIT = "sensitive_edit"
    SUBMIT = "submit"


TRANSITIONS: Dict[Tuple[VerificationStatus, VerificationEvent], VerificationStatus] = {
    (VerificationStatus.PENDING, VerificationEvent.APPROVE): VerificationStatus.VERIFIED,
    (VerificationStatus.PENDING, VerificationEvent.REJECT): VerificationStatus.REJECTED,
    (VerificationStatus.VERIFIED, VerificationEvent.SENSITIVE_EDIT): VerificationStatus.REVOKED,
    (VerificationStatus.REVOKED, VerificationEvent.SUBMIT): VerificationStatus.PENDING,
    (VerificationStatus.REJECTED, VerificationEvent.SUBMIT): VerificationStatus.PENDING,
}


def next_status(current: VerificationStatus, event: VerificationEvent) -> VerificationStatus:
    """
    Resolve the target status of an event.

    Args:
        current: Current verification status
        event: Event to apply

    Returns:
        Target status

    Raises:
        InvalidTransitionError: If the event is not allowed from current
    """
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(current.value, event.value) from None


def plan_transition(current: VerificationStatus, event: VerificationEvent,
                    revoked_fields: Optional[List[str]] = None,
                    now: Optional[datetime] = None) -> StatusChange:
    """
    Build the status change an event produces.

    Revocation records the offending fields and a timestamp; every other
    transition clears them.

    Args:
        current: Current verification status
        event: Event to apply
        revoked_fields: Sensitive fields, required for SENSITIVE_EDIT
        now: Transition time, defaults to the current UTC time

    Returns:
        Status change to persist
    """
    target = next_status(current, event)

    if target == VerificationStatus.REVOKED:
        if not revoked_fields:
            raise ValueError("A revocation must name at least one modified field")
        return StatusChange(
            from_status=current,
            to_status=target,
            revoked_fields=list(revoked_fields),
            revoked_at=now or datetime.now(timezone.utc),
        )

    return StatusChange(from_status=current, to_status=target)


def plan_profile_edit(profile: ProviderProfile,
                      sensitive_fields: List[str]) -> Optional[StatusChange]:
    """
    Decide whether an edit revokes verification.

    Only a verified profile is revoked; an edit to a profile that is not
    publicly listed leaves its status alone.

    Args:
        profile: Profile as read before the edit
        sensitive_fields: Sensitive keys of the edit, in update order

    Returns:
        Revocation to write with the edit, or None
    """
    if profile.verification_status != VerificationStatus.VERIFIED or not sensitive_fields:
        return None

    logger.info(f"Edit to verified provider {profile.id} touches sensitive fields "
                f"{sensitive_fields}, revoking verification")
    return plan_transition(
        profile.verification_status,
        VerificationEvent.SENSITIVE_EDIT,
        revoked_fields=sensitive_fields,
    )
