"""
Profile storage for ProviderTrust.
"""
