"""SQLAlchemy models."""

from src.models.account import Account
from src.models.user import User
from src.models.verification_token import VerificationToken

__all__ = [
    "User",
    "Account",
    "VerificationToken",
]
