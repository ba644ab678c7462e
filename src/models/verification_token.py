"""Verification token model for magic-link sign-in."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String

from src.database import Base


class VerificationToken(Base):
    """One-time sign-in token.

    Only the SHA-256 digest of the emailed token is stored.
    """

    __tablename__ = "verification_tokens"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(255), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    @property
    def is_expired(self) -> bool:
        """Check if the token can no longer be used."""
        expires_at = self.expires_at
        # SQLite drops tzinfo on the way back
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= datetime.now(UTC)
