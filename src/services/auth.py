"""Authentication service for registration, sign-in and session tokens."""

import hashlib
import logging
import secrets
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.account import Account
from src.models.user import User
from src.models.verification_token import VerificationToken
from src.schemas.auth import ActionResult, UserRegister

logger = logging.getLogger(__name__)

settings = get_settings()

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)

INVALID_FIELDS = "Invalid fields."
EMAIL_TAKEN = "An account with this email already exists."
EMAIL_TAKEN_PASSWORDLESS = (
    "An account with this email already exists. Try signing in with Google or magic link."
)
ACCOUNT_CREATED = "Account created! You can now sign in."
INVALID_CREDENTIALS = "Invalid email or password."


def normalize_email(email: str) -> str:
    """Normalize an email address for storage and lookup."""
    return email.strip().lower()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, email: str) -> str:
    """Create a JWT access token."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


def resolve_callback_url(target: str | None) -> str:
    """Return the post-sign-in destination.

    Only same-site absolute paths are honoured; anything else (including
    protocol-relative ``//host`` URLs) falls back to the default callback.
    """
    if not target or not target.startswith("/") or target.startswith("//"):
        return settings.default_callback_url
    if "\\" in target:
        return settings.default_callback_url
    return target


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by email and password.

    Accounts without a password (OAuth or magic-link only) never match.
    """
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_user(db: Session, email: str, password: str, name: str | None = None) -> User:
    """Create a new user with a credentials password."""
    hashed_password = get_password_hash(password)
    user = User(email=normalize_email(email), password_hash=hashed_password, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def register(db: Session, values: Any) -> ActionResult:
    """Register a credentials account.

    Input is validated before the database is touched. An existing account
    for the email produces one of two messages depending on whether it
    already has a password.
    """
    if not isinstance(values, Mapping):
        return ActionResult(error=INVALID_FIELDS)

    try:
        data = UserRegister.model_validate(dict(values))
    except ValidationError:
        return ActionResult(error=INVALID_FIELDS)

    email = normalize_email(data.email)

    existing_user = get_user_by_email(db, email)
    if existing_user:
        if existing_user.password_hash:
            return ActionResult(error=EMAIL_TAKEN)
        return ActionResult(error=EMAIL_TAKEN_PASSWORDLESS)

    try:
        user = create_user(db, email, data.password, data.name)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        logger.warning(f"Concurrent registration rejected for {email}")
        return ActionResult(error=EMAIL_TAKEN)

    logger.info(f"Registered user {user.id}")
    return ActionResult(success=ACCOUNT_CREATED)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def request_magic_link(db: Session, email: str) -> str:
    """Issue a one-time sign-in token for an email.

    Any earlier tokens for the same email are revoked. Returns the raw
    token; only its digest is stored.
    """
    identifier = normalize_email(email)
    db.query(VerificationToken).filter(VerificationToken.identifier == identifier).delete(
        synchronize_session=False
    )

    token = secrets.token_urlsafe(32)
    expires_at = datetime.now(UTC) + timedelta(minutes=settings.magic_link_expiration_minutes)
    db.add(
        VerificationToken(
            identifier=identifier,
            token_hash=_hash_token(token),
            expires_at=expires_at,
        )
    )
    db.commit()
    return token


def consume_magic_link(db: Session, email: str, token: str) -> User | None:
    """Redeem a magic-link token and return the signed-in user.

    The token is deleted whether it was valid or expired. The first
    successful sign-in for an unknown email creates the user.
    """
    identifier = normalize_email(email)
    record = (
        db.query(VerificationToken)
        .filter(
            VerificationToken.identifier == identifier,
            VerificationToken.token_hash == _hash_token(token),
        )
        .first()
    )
    if record is None:
        return None

    # Spend the token before touching the user so it stays single use
    expired = record.is_expired
    db.delete(record)
    db.commit()
    if expired:
        logger.info(f"Expired magic link used for {identifier}")
        return None

    now = datetime.now(UTC)
    user = get_user_by_email(db, identifier)
    if user is None:
        user = User(email=identifier, email_verified=now)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent first sign-in created the user; sign in that row
            db.rollback()
            logger.warning(f"Concurrent magic-link sign-up for {identifier}")
            user = db.query(User).filter(User.email == identifier).one()
        else:
            logger.info(f"Created user from magic link for {identifier}")

    if user.email_verified is None:
        user.email_verified = now
        db.commit()

    db.refresh(user)
    return user


def _find_account(db: Session, provider: str, subject: str) -> Account | None:
    return (
        db.query(Account)
        .filter(Account.provider == provider, Account.provider_account_id == subject)
        .first()
    )


def _is_verified(claim: Any) -> bool:
    # Some providers send the claim as a string
    return claim is True or claim == "true"


def _link_account(
    db: Session, user: User, provider: str, subject: str, userinfo: Mapping[str, Any]
) -> User:
    if user.email_verified is None:
        user.email_verified = datetime.now(UTC)
    if not user.image and userinfo.get("picture"):
        user.image = userinfo.get("picture")
    user.accounts.append(Account(provider=provider, provider_account_id=subject))
    try:
        db.commit()
    except IntegrityError:
        # The same identity was linked by a concurrent callback
        db.rollback()
        account = _find_account(db, provider, subject)
        if account is None:
            raise
        return account.user

    logger.info(f"Linked {provider} identity to user {user.id}")
    db.refresh(user)
    return user


def resolve_oauth_user(db: Session, provider: str, userinfo: Mapping[str, Any]) -> User | None:
    """Find or create the user behind an OAuth identity.

    An identity already linked signs in its user. Otherwise an existing
    user with the same email is linked only when the provider vouches for
    the email; an unverified match returns None. Unknown emails get a new
    password-less user.
    """
    subject = str(userinfo.get("sub") or "")
    raw_email = userinfo.get("email")
    if not subject or not raw_email:
        return None

    account = _find_account(db, provider, subject)
    if account:
        return account.user

    email = normalize_email(raw_email)
    verified = _is_verified(userinfo.get("email_verified"))

    user = get_user_by_email(db, email)
    if user is None:
        name = userinfo.get("name")
        user = User(
            email=email,
            name=name[:255] if name else None,
            image=userinfo.get("picture"),
            email_verified=datetime.now(UTC) if verified else None,
        )
        user.accounts.append(Account(provider=provider, provider_account_id=subject))
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent first sign-in won; fall through to linking its row
            db.rollback()
            logger.warning(f"Concurrent {provider} sign-up for {email}")
            account = _find_account(db, provider, subject)
            if account:
                return account.user
            user = db.query(User).filter(User.email == email).one()
        else:
            logger.info(f"Created user from {provider} sign-in for {email}")
            db.refresh(user)
            return user

    if not verified:
        logger.warning(f"Refusing to link unverified {provider} identity to user {user.id}")
        return None
    return _link_account(db, user, provider, subject, userinfo)
