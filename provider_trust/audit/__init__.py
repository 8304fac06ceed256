"""
Audit trail and admin notifications for ProviderTrust.
"""
