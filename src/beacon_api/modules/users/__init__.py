"""
Users module - accounts and pending signups.
"""
