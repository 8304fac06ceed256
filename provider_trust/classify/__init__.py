"""
Sensitivity classification for ProviderTrust.

Static rule table deciding which profile field edits invalidate verification.
"""
