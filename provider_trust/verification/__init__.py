"""
Verification workflow for ProviderTrust.

Status state machine and the profile update service that revokes
verification atomically with sensitive edits.
"""
