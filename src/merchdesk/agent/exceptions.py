"""Exception hierarchy for the MerchDesk customer-service agent.

Exception Hierarchy:
    MerchDeskError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── CompletionServiceError (fatal for the current message)
    ├── ToolError
    │   ├── UnknownToolError (integration error - model named an unregistered tool)
    │   └── ToolExecutionError (handler failed - recoverable)
    ├── StoreError (memory / human-control persistence failed)
    └── EscalationError (notifier could not deliver)

Each layer decides whether an error is swallowed or propagated; see the
orchestrator and the memory/control gates for the policies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from .domain.entities import ErrorType


class MerchDeskError(Exception):
    """Base exception for all agent errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether the conversation can continue after this error
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.utcnow()
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================


class ConfigurationError(MerchDeskError):
    """Raised when configuration or wiring is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Completion Service Errors
# ============================================


class CompletionServiceError(MerchDeskError):
    """The model completion service failed.

    Never retried inside the loop; the caller receives it and no partial
    reply is sent.
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.FATAL,
        provider: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        super().__init__(
            message,
            code="COMPLETION_SERVICE_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.error_type = error_type


# ============================================
# Tool Errors
# ============================================


class ToolError(MerchDeskError):
    """Base class for tool dispatch errors."""

    def __init__(self, message: str, tool_name: str, **kwargs):
        details = kwargs.pop("details", {})
        details["tool_name"] = tool_name
        super().__init__(message, details=details, **kwargs)
        self.tool_name = tool_name


class UnknownToolError(ToolError):
    """The model proposed a tool that has no registered handler."""

    def __init__(self, tool_name: str, **kwargs):
        super().__init__(
            f"No handler registered for tool: {tool_name}",
            tool_name=tool_name,
            code="UNKNOWN_TOOL",
            recoverable=False,
            **kwargs,
        )


class ToolExecutionError(ToolError):
    """A tool handler raised while executing."""

    def __init__(self, message: str, tool_name: str, **kwargs):
        super().__init__(
            message,
            tool_name=tool_name,
            code="TOOL_EXECUTION_ERROR",
            recoverable=True,
            **kwargs,
        )


# ============================================
# Persistence / Notification Errors
# ============================================


class StoreError(MerchDeskError):
    """A memory or human-control store operation failed."""

    def __init__(self, message: str, store: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if store:
            details["store"] = store
        super().__init__(
            message,
            code="STORE_ERROR",
            details=details,
            recoverable=True,
            **kwargs,
        )


class EscalationError(MerchDeskError):
    """The escalation notifier could not deliver a notification."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        if status is not None:
            details["status"] = status
        super().__init__(
            message,
            code="ESCALATION_ERROR",
            details=details,
            recoverable=True,
            **kwargs,
        )
