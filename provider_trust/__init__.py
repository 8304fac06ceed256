"""
ProviderTrust - Provider Verification and Trust-State Engine

Decides which provider profile edits invalidate a verified badge, revokes
verification atomically with such edits, and scores uploaded registration
documents against the identity a provider claims.
"""

__version__ = "1.0.0"
__author__ = "ProviderTrust Team"
