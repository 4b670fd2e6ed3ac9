"""
Exceptions for crmbridge.

Every failure the bridge can report derives from CrmBridgeError so the
public operation boundary (EndpointRegistry) can turn them into uniform
failure results.

Taxonomy:
    ConfigurationError     - bad base URL, credentials, or settings
    TokenAcquisitionError  - OAuth token endpoint failed or answered garbage
    IntrospectionError     - metadata fetch failed (transport or HTTP status)
    SchemaFormatError      - metadata response could not be deserialized
    ValidationError        - caller arguments failed a precondition
    RemoteCallError        - a synthesized operation's HTTP call failed
    NotInitializedError    - no endpoint is registered yet
"""

from __future__ import annotations


class CrmBridgeError(Exception):
    """Base exception for crmbridge errors."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def message(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        parts = [self.args[0]]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class ConfigurationError(CrmBridgeError):
    """Raised when endpoint or credential configuration is invalid."""

    pass


class TokenAcquisitionError(CrmBridgeError):
    """Raised when a bearer token cannot be obtained."""

    pass


class IntrospectionError(CrmBridgeError):
    """Raised when a metadata request fails."""

    pass


class SchemaFormatError(CrmBridgeError):
    """Raised when a metadata response has an unexpected shape."""

    pass


class ValidationError(CrmBridgeError):
    """Raised when caller-supplied arguments fail a precondition."""

    pass


class RemoteCallError(CrmBridgeError):
    """Raised when a synthesized operation's HTTP call fails."""

    pass


class NotInitializedError(CrmBridgeError):
    """Raised when an operation needs an endpoint but none is registered."""

    def __init__(self, message: str = "Registry not initialized: no endpoints registered"):
        super().__init__(message)
