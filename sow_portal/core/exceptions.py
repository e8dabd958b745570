"""Custom exceptions for the SOW portal backend."""

from typing import Any

# Exception type → safe user-facing message mapping
_SAFE_MESSAGES: dict[str, str] = {
    "NotFoundError": "The requested resource was not found.",
    "AuthenticationError": "Authentication failed. Please check your PIN and try again.",
    "ConflictError": "This SOW has already been processed.",
    "CRMConfigurationError": "The CRM integration is not configured.",
    "OperationTimeoutError": "The CRM took too long to respond. Please try again.",
    "ExternalServiceError": "An external service is temporarily unavailable.",
    "ValueError": "The provided value is invalid.",
}

_DEFAULT_MESSAGE = "An error occurred. Please try again."


def sanitize_error(e: Exception) -> str:
    """Map an exception to a safe, user-facing error message.

    HubSpot error bodies can include portal IDs and schema details, so
    only a generic message per exception family is ever returned.

    Args:
        e: The exception to sanitize.

    Returns:
        A safe, generic error message string.
    """
    # Walk the MRO to find the most specific matching type
    for cls in type(e).__mro__:
        safe_msg = _SAFE_MESSAGES.get(cls.__name__)
        if safe_msg:
            return safe_msg

    return _DEFAULT_MESSAGE


class SOWPortalException(Exception):
    """Base exception for all portal-specific errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize portal exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(SOWPortalException):
    """Resource not found error (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        """Initialize not found error.

        Args:
            resource: Name of the resource that was not found.
            resource_id: Optional ID of the resource.
        """
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class AuthenticationError(SOWPortalException):
    """Token/PIN authentication failed (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            message=message,
            code="AUTHENTICATION_ERROR",
            status_code=401,
        )


class ConflictError(SOWPortalException):
    """Resource conflict error (409)."""

    def __init__(self, message: str, resource: str | None = None) -> None:
        details = {}
        if resource:
            details["resource"] = resource
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            details=details,
        )


class ExternalServiceError(SOWPortalException):
    """External service error (502)."""

    def __init__(self, service: str, message: str | None = None) -> None:
        """Initialize external service error.

        Args:
            service: Name of the external service.
            message: Optional error message.
        """
        error_message = message or f"Error communicating with {service}"
        super().__init__(
            message=error_message,
            code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
            details={"service": service},
        )


class CRMConfigurationError(SOWPortalException):
    """HubSpot credentials are missing (503)."""

    def __init__(self, message: str = "HUBSPOT_ACCESS_TOKEN is required") -> None:
        super().__init__(
            message=message,
            code="CRM_CONFIGURATION_ERROR",
            status_code=503,
        )


class HubSpotAPIError(ExternalServiceError):
    """Raised when a HubSpot call returns a failed result.

    ``property_name`` is populated when HubSpot identifies the schema field
    an error refers to; the self-healing classifier reads it.
    """

    def __init__(
        self,
        message: str,
        http_status: int = 0,
        category: str | None = None,
        error_code: str | None = None,
        property_name: str | None = None,
        body: Any = None,
    ) -> None:
        """Initialize HubSpot API error.

        Args:
            message: Error message including the HubSpot response text.
            http_status: HTTP status from HubSpot (0 for transport failures).
            category: HubSpot error ``category`` (e.g. VALIDATION_ERROR).
            error_code: Most specific HubSpot error code found in the body.
            property_name: Schema field named by HubSpot, if any.
            body: Parsed response body.
        """
        super().__init__("hubspot", message)
        self.http_status = http_status
        self.category = category
        self.error_code = error_code
        self.property_name = property_name
        self.body = body
        self.details.update(
            {
                "http_status": http_status,
                "category": category,
                "error_code": error_code,
                "property_name": property_name,
            }
        )


class OperationTimeoutError(SOWPortalException):
    """A provisioning pass or wrapped CRM operation exceeded its ceiling (504)."""

    def __init__(self, label: str, timeout_seconds: float) -> None:
        super().__init__(
            message=f"{label} timed out after {timeout_seconds}s",
            code="OPERATION_TIMEOUT",
            status_code=504,
            details={"operation": label, "timeout_seconds": timeout_seconds},
        )
        self.label = label
        self.timeout_seconds = timeout_seconds
