"""User model."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model for authentication.

    ``email`` is always stored lowercase. ``password_hash`` is only set by
    credentials registration; magic-link and OAuth accounts leave it empty.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    email_verified = Column(DateTime(timezone=True), nullable=True)
    image = Column(String(1024), nullable=True)

    # Relationships
    accounts = relationship("Account", back_populates="user", cascade="all, delete-orphan")

    @property
    def has_password(self) -> bool:
        """Check if the user can sign in with credentials."""
        return bool(self.password_hash)
