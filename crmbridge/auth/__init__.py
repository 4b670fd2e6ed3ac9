"""Bearer token acquisition."""

from crmbridge.auth.token_provider import OAuthTokenProvider, TokenProvider

__all__ = ["OAuthTokenProvider", "TokenProvider"]
