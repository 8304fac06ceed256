"""
Command line entry points for ProviderTrust.
"""
