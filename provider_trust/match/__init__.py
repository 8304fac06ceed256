"""
Matching engine for ProviderTrust.

Scores text extracted from registration documents against the identity
and registration values a provider claims.
"""
