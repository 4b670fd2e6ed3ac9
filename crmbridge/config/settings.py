"""
Settings for crmbridge.

Security:
    The connection string may embed a client secret or password, so it is
    held as SecretStr. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, SecretStr, field_validator

from crmbridge.errors import ConfigurationError

ENV_PREFIX = "CRMBRIDGE_"


class BridgeSettings(BaseModel):
    """Runtime settings, normally read from CRMBRIDGE_* environment variables."""

    # Service
    service_name: str = Field("crmbridge", description="Service identifier")
    environment: str = Field("development", description="Deployment environment")
    debug: bool = Field(False, description="Enable debug mode")
    log_level: str = Field("INFO", description="Root logging level")

    # Remote platform
    connection_string: SecretStr | None = Field(
        None, description="Connection string used to initialize the default endpoint"
    )
    api_version: str = Field("v9.2", description="Web API version segment")
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    record_types: list[str] = Field(
        default_factory=list,
        description="Restrict introspection to these record types (empty = all)",
    )

    # OAuth
    authority_host: str = Field(
        "https://login.microsoftonline.com", description="OAuth authority host"
    )
    tenant_id: str = Field("common", description="Tenant used when the connection string has none")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("authority_host")
    @classmethod
    def _strip_authority(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> BridgeSettings:
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: If a numeric value cannot be parsed
        """
        env = os.environ if environ is None else environ

        def get(key: str, default: str = "") -> str:
            return env.get(f"{ENV_PREFIX}{key}", default)

        raw_timeout = get("REQUEST_TIMEOUT", "30")
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise ConfigurationError(
                f"{ENV_PREFIX}REQUEST_TIMEOUT must be a number, got {raw_timeout!r}"
            ) from e
        if timeout <= 0:
            raise ConfigurationError(f"{ENV_PREFIX}REQUEST_TIMEOUT must be positive")

        connection_string = get("CONNECTION_STRING")
        record_types = [
            name.strip() for name in get("RECORD_TYPES").split(",") if name.strip()
        ]

        return cls(
            service_name=get("SERVICE_NAME", "crmbridge"),
            environment=get("ENVIRONMENT", "development"),
            debug=get("DEBUG", "false").lower() == "true",
            log_level=get("LOG_LEVEL", "INFO"),
            connection_string=SecretStr(connection_string) if connection_string else None,
            api_version=get("API_VERSION", "v9.2"),
            request_timeout=timeout,
            record_types=record_types,
            authority_host=get("AUTHORITY_HOST", "https://login.microsoftonline.com"),
            tenant_id=get("TENANT_ID", "common") or "common",
        )
