"""
Normalization modules for ProviderTrust.

Cleans OCR output and loads the scoring, storage and audit configuration.
"""
