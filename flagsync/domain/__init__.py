"""
flagsync.domain — Canonical data models and errors.

Nothing in here should import from other flagsync sub-packages (only
stdlib / third-party Pydantic).
"""
