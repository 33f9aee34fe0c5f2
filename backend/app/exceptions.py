"""
X Tracking API — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) translate them into
       structured JSON error responses with the right HTTP status code.
Who:   Raised by the auth gate, the validation evaluator and the services.

Exception Hierarchy:
    AccountsApiError (base)
    ├── ValidationError              → 400 Bad Request (carries every violation)
    ├── ConflictError                → 400 Bad Request (duplicate email/name)
    ├── AuthenticationRequiredError  → 401 Unauthorized
    ├── InvalidCredentialsError      → 401 Unauthorized
    ├── AuthorizationDeniedError     → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── RateLimitExceededError       → 429 Too Many Requests (answered by the
    │                                  rate-limit middleware, before routing)
    └── DatabaseError                → 500 Internal Server Error

Auth and validation errors are raised inside the routing layer and never
reach a handler. Anything a handler raises propagates unchanged to the
global handlers.
"""

from typing import Any, Dict, List, Optional


class AccountsApiError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(AccountsApiError):
    """
    Raised when request input fails one or more field rules.

    `violations` holds every failed rule as {"field", "message", "location"},
    not just the first one, so a client can fix the whole form at once.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        violations: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        self.violations = list(violations or [])
        if field and not self.violations:
            self.violations.append({"field": field, "message": message, "location": "body"})
        ctx["errors"] = self.violations
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(AccountsApiError):
    """
    Raised when a create/update would duplicate a unique value
    (a user's email, a category's name).

    HTTP: 400 Bad Request, the status the existing clients expect.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationRequiredError(AccountsApiError):
    """Caller did not present a verifiable credential (missing, bad or expired token)."""

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(AccountsApiError):
    """Login email/password pair (or the current password on change) did not match."""

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationDeniedError(AccountsApiError):
    """
    Authenticated caller lacks every role the route accepts.

    HTTP: 403 Forbidden (distinct from 401 — identity is known, access is not granted)
    """

    def __init__(
        self,
        role: Optional[str] = None,
        allowed_roles: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"User role '{role}' is not authorized to access this route"
        ctx = context or {}
        ctx["allowed_roles"] = sorted(allowed_roles or [])
        super().__init__(message=message, context=ctx)
        self.role = role


class NotFoundError(AccountsApiError):
    """
    Raised when a requested resource does not exist.

    Also raised for identifiers that are not well-formed, since those can
    never name an existing row.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} not found with id of {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(AccountsApiError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(AccountsApiError):
    """Client exceeded the per-IP limit on the credential endpoints."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many attempts. Please wait {retry_after} seconds before trying again."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
