"""Configuration for crmbridge: settings and connection strings."""

from crmbridge.config.connection_string import ConnectionString
from crmbridge.config.settings import BridgeSettings

__all__ = ["BridgeSettings", "ConnectionString"]
