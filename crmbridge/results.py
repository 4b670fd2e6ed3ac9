"""
Uniform results for public operations.

Every EndpointRegistry operation returns a BridgeResult instead of
raising: a success flag, a human-readable message, and operation data.

Usage:
    result = await registry.execute_operation("read_account", {"id": "..."})

    if result.success:
        print(result.data["result"])
    else:
        print(f"Failed: {result.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from crmbridge.errors import CrmBridgeError


@dataclass(frozen=True, slots=True)
class BridgeResult:
    """
    Outcome of one public operation.

    Failures carry the error class name and, for remote failures, the
    HTTP status and response body so callers can log the root cause.
    """

    success: bool
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    error_type: str | None = None
    status_code: int | None = None
    response_body: str | None = None

    @classmethod
    def ok(cls, message: str = "", **data: Any) -> BridgeResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, **data: Any) -> BridgeResult:
        return cls(success=False, message=message, data=data)

    @classmethod
    def from_error(cls, error: Exception, **data: Any) -> BridgeResult:
        """Build a failure from an exception."""
        if isinstance(error, CrmBridgeError):
            return cls(
                success=False,
                message=str(error),
                data=data,
                error_type=type(error).__name__,
                status_code=error.status_code,
                response_body=error.response_body,
            )
        return cls(
            success=False,
            message=f"Unexpected error: {error}",
            data=data,
            error_type=type(error).__name__,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a JSON-ready dict."""
        result: dict[str, Any] = {"success": self.success}
        if self.message:
            result["message"] = self.message
        result.update(self.data)
        if self.error_type is not None:
            result["error_type"] = self.error_type
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.response_body:
            result["response_body"] = self.response_body[:2000]
        return result
