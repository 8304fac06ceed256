"""
Document text extraction adapters for ProviderTrust.
"""
