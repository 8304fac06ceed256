"""
Exception hierarchy for ProviderTrust.
"""


class ProviderTrustError(Exception):
    """Base class for all ProviderTrust errors."""


class UnclassifiedFieldError(ProviderTrustError):
    """A profile field is missing from both sensitivity enumerations."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Unclassified profile field(s): {', '.join(self.fields)}")


class InvalidTransitionError(ProviderTrustError):
    """A verification event is not allowed from the current status."""

    def __init__(self, current_status, event: str):
        self.current_status = current_status
        self.event = event
        super().__init__(f"Cannot apply '{event}' to a profile in status '{current_status}'")


class InvalidUpdateError(ProviderTrustError):
    """A profile update failed pre-write validation."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class PersistenceError(ProviderTrustError):
    """The profile store could not apply an update atomically."""


class ProfileNotFoundError(PersistenceError):
    """No profile is stored under the requested id."""

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Provider profile {profile_id} not found")


class ExtractionError(ProviderTrustError):
    """Text could not be extracted from a document."""


class StaleProfileError(PersistenceError):
    """The stored status changed after the caller read the profile."""

    def __init__(self, profile_id: str, expected, actual):
        self.profile_id = profile_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Provider {profile_id} is {getattr(actual, 'value', actual)}, "
            f"expected {getattr(expected, 'value', expected)}"
        )
