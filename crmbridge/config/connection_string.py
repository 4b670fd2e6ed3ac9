"""
Connection string parsing.

Connection strings are semicolon-delimited key=value pairs:

    AuthType=OAuth;Url=https://contoso.crm.dynamics.com;
    ClientId=...;ClientSecret=...;LoginPrompt=Never

Keys are matched case-insensitively. Unknown keys and empty segments are
ignored. Only the first '=' separates key from value, so secrets may
contain '='.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crmbridge.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Public client id used by the resource-owner-password flow when the
# connection string does not name one.
DEFAULT_PUBLIC_CLIENT_ID = "51f81489-12ee-4a9e-aaae-a2591f45987d"

_KEY_ALIASES = {
    "url": "url",
    "clientid": "client_id",
    "clientsecret": "client_secret",
    "username": "username",
    "userid": "username",
    "password": "password",
    "authtype": "auth_type",
    "loginprompt": "login_prompt",
    "tenantid": "tenant_id",
}


@dataclass(frozen=True, slots=True)
class ConnectionString:
    """Parsed connection string."""

    url: str = ""
    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""
    auth_type: str = "OAuth"
    login_prompt: str = "Never"
    tenant_id: str = ""

    @classmethod
    def parse(cls, text: str | None) -> ConnectionString:
        """
        Parse a connection string.

        Never raises: absent keys keep their defaults. Use validate()
        to check that the result is usable.
        """
        values: dict[str, str] = {}
        for segment in (text or "").split(";"):
            key, sep, value = segment.partition("=")
            if not sep:
                continue
            attr = _KEY_ALIASES.get(key.strip().lower())
            if attr is None:
                continue
            values[attr] = value.strip()
        return cls(**values)

    @property
    def is_client_credentials(self) -> bool:
        """True when client id and secret are both present."""
        return bool(self.client_id) and bool(self.client_secret)

    @property
    def is_username_password(self) -> bool:
        """True when username and password are present and client credentials are not."""
        return (
            bool(self.username)
            and bool(self.password)
            and not self.is_client_credentials
        )

    @property
    def flow(self) -> str | None:
        """Name of the OAuth flow these credentials select, if any."""
        if self.is_client_credentials:
            return "client_credentials"
        if self.is_username_password:
            return "password"
        return None

    @property
    def public_client_id(self) -> str:
        """Client id for the password flow."""
        return self.client_id or DEFAULT_PUBLIC_CLIENT_ID

    def validate(self) -> None:
        """
        Check that a URL and a recognized auth flow are present.

        Raises:
            ConfigurationError: Describing the first missing piece
        """
        if not self.url:
            raise ConfigurationError("Connection string is missing 'Url'")
        if self.flow is None:
            raise ConfigurationError(
                "Connection string must contain ClientId and ClientSecret, "
                "or Username and Password"
            )

    def __repr__(self) -> str:
        return (
            f"ConnectionString(url={self.url!r}, auth_type={self.auth_type!r}, "
            f"flow={self.flow!r})"
        )
