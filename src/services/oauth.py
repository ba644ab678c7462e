"""OAuth client registry backed by Authlib.

Authlib keeps state, nonce and the PKCE verifier in the signed session
cookie between the login redirect and the callback.
"""

import logging

from authlib.integrations.starlette_client import OAuth

from src.config import get_settings
from src.models.enums import AuthProvider

logger = logging.getLogger(__name__)

settings = get_settings()

oauth = OAuth()

if settings.google_client_id:
    oauth.register(
        name=AuthProvider.GOOGLE.value,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Google OAuth provider registered")


def get_redirect_uri(provider: AuthProvider) -> str:
    """Get the callback URL registered with the provider."""
    if provider is AuthProvider.GOOGLE:
        return settings.google_redirect_uri
    raise ValueError(f"No redirect URI configured for {provider.value}")


def get_oauth_client(provider: AuthProvider):
    """Get the registered client for a provider, or None if not configured."""
    return oauth.create_client(provider.value)
