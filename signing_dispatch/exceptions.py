"""Custom exception hierarchy for signing-dispatch.

Routing never raises for a supply problem: "no eligible vendor" is an
ordinary ``unmatched`` RoutingDecision. Exceptions are reserved for data
problems (malformed orders or vendor records) and configuration problems
(bad weights, unreadable eligibility matrix).

Exception Hierarchy:
    SigningDispatchError (base)
    ├── ConfigurationError
    ├── ValidationError
    │   ├── InvalidOrderError
    │   └── InvalidVendorError
    └── AssignmentError
"""
from __future__ import annotations

from typing import Optional, Dict, Any


class SigningDispatchError(Exception):
    """Base exception for all signing-dispatch errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(SigningDispatchError):
    """Raised when there's a configuration problem.

    Examples:
        - Score weights that do not sum to 1.0
        - Missing or unparsable state eligibility file
        - Invalid log level
    """
    pass


class ValidationError(SigningDispatchError):
    """Raised when input validation fails.

    Attributes:
        field: Name of the offending field, when known
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code, details)


class InvalidOrderError(ValidationError):
    """Raised when a signing order cannot be routed as supplied.

    Examples:
        - Missing or blank property state
        - Missing or unknown signing type
        - Mobile signing without a signing location
    """
    pass


class InvalidVendorError(ValidationError):
    """Raised when a vendor roster entry is malformed.

    Attributes:
        vendor_id: Identifier of the offending vendor, when known
    """

    def __init__(
        self,
        message: str,
        vendor_id: Optional[str] = None,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.vendor_id = vendor_id
        details = details or {}
        if vendor_id:
            details["vendor_id"] = vendor_id
        super().__init__(message, field, code, details)


class AssignmentError(SigningDispatchError):
    """Raised when an assignment store rejects an operation outright.

    A lost race for an order is not an error; the store reports it by
    returning False from ``claim``.
    """
    pass


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Convert any exception to an API error response.

    Args:
        error: The exception to convert

    Returns:
        Dictionary suitable for API error response
    """
    if isinstance(error, SigningDispatchError):
        return error.to_dict()

    return {
        "error": "InternalError",
        "message": str(error),
        "details": {},
    }
