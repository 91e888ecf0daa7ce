"""Encrypted credential store for calbridge.

Holds the Google Calendar OAuth token encrypted in PostgreSQL, together with
the marker that flags it invalid after an authentication failure.
"""

from calbridge.credentials.store import CredentialStore, get_credential_store

__all__ = ["CredentialStore", "get_credential_store"]
