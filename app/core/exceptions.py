"""Custom exception classes for the console.

Each exception carries:
  error_code:    machine-readable code for client-side error handling
  message:       human-readable description
  details:       optional structured context (action names, key ids, etc.)
  recovery_hint: actionable guidance for the operator (shown in error responses)
  status_code:   HTTP status used by the API error handler
"""

from typing import Any, Dict, Optional


class ConsoleError(Exception):
    """Base exception for console errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "CONSOLE_ERROR"
        self.details = details or {}
        self.recovery_hint = recovery_hint or (
            "An unexpected error occurred. Please retry your request."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "recovery_hint": self.recovery_hint,
        }


class ValidationError(ConsoleError):
    """Raised when operator input is missing or malformed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            details=details,
            recovery_hint=recovery_hint or (
                f"The value provided for '{field}' is invalid. Correct it and retry."
                if field else "Correct the request and retry."
            ),
        )
        self.field = field


class AuthenticationError(ConsoleError):
    """Raised for failed logins and missing or expired sessions."""

    status_code = 401

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code="AUTHENTICATION_ERROR",
            details=details,
            recovery_hint=recovery_hint or "Log in again with a valid username and password.",
        )


class NotFoundError(ConsoleError):
    """Raised when a stored record does not exist for the current user."""

    status_code = 404

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code="NOT_FOUND",
            details=details,
            recovery_hint=f"Check that the {resource or 'resource'} exists and belongs to you.",
        )
        self.resource = resource


class AWSOperationError(ConsoleError):
    """Raised when a call (or a retried sequence of calls) to AWS fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code="AWS_OPERATION_ERROR",
            details=details,
            recovery_hint=recovery_hint or (
                "AWS rejected the request or did not answer in time. "
                "Check the selected key's permissions, the region and the proxy, then retry."
            ),
        )
        self.action = action


class ProxyCheckError(ConsoleError):
    """Raised when the proxy egress check cannot determine the exit address."""

    status_code = 502

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code="PROXY_CHECK_ERROR",
            details=details,
            recovery_hint="Verify the proxy URL and that the proxy accepts outbound HTTPS.",
        )
