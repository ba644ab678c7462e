"""Enums for model fields."""

from enum import Enum


class AuthProvider(str, Enum):
    """OAuth providers a user can sign in with."""

    GOOGLE = "google"

    @classmethod
    def from_name(cls, name: str) -> "AuthProvider | None":
        """Look up a provider by its URL name, or None if unsupported."""
        try:
            return cls(name.lower())
        except ValueError:
            return None
