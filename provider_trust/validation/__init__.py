"""
Pre-write validation of provider profile updates.
"""
