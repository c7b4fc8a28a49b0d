"""
QuickGen Backend: Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a user-facing message and an optional context
       dict (logged, never returned). Global handlers registered in main.py
       turn them into `{"success": false, "message": ...}` responses.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    QuickGenError (base)
    ├── GateRejectedError             → 200 (success: false, by API convention)
    │   ├── PlanUpgradeRequiredError  → premium-only feature on a free plan
    │   ├── UsageLimitReachedError    → free-tier counter at the ceiling
    │   ├── FileTooLargeError         → upload exceeds its size limit
    │   └── UnsupportedFileError      → wrong file type or unreadable content
    ├── AuthenticationError           → 401 Unauthorized
    ├── VendorError                   → 429 / vendor status / 500
    └── DatabaseError                 → 500 Internal Server Error

VendorError is the one typed failure value produced at the vendor-call
boundary. Its `kind` is decided once, by classify_vendor_exception() in
services/call_executor.py, and matched on everywhere else.
"""

import enum
from typing import Any, Dict, Optional


class QuickGenError(Exception):
    """
    Base exception for all QuickGen application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Gate rejections (HTTP 200, success: false)
# ══════════════════════════════════════════════════════════════════════════


class GateRejectedError(QuickGenError):
    """
    Raised when a request is refused before any vendor call is made.

    HTTP:    200 with `success: false`. The frontend treats these as normal
             outcomes (show an upgrade prompt, ask for a smaller file).
    """


class PlanUpgradeRequiredError(GateRejectedError):
    """A premium-only operation was requested on the free plan."""

    def __init__(
        self,
        message: str = "This feature is only available for premium subscriptions",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UsageLimitReachedError(GateRejectedError):
    """A free-plan caller has used up the metered operations."""

    def __init__(
        self,
        free_usage: int,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"free_usage": free_usage, "limit": limit})
        super().__init__(message="Limit reached. Upgrade to continue.", context=ctx)
        self.free_usage = free_usage
        self.limit = limit


class FileTooLargeError(GateRejectedError):
    """
    An uploaded file is over its size limit.

    The size is checked against the declared upload size, so this is raised
    before any of the file content is read.
    """

    def __init__(
        self,
        message: str,
        size: int,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"size": size, "limit": limit})
        super().__init__(message=message, context=ctx)
        self.size = size
        self.limit = limit


class UnsupportedFileError(GateRejectedError):
    """Uploaded file has the wrong type or its content cannot be read."""

    def __init__(
        self,
        message: str = "The uploaded file is not supported.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


# ══════════════════════════════════════════════════════════════════════════
# Identity
# ══════════════════════════════════════════════════════════════════════════


class AuthenticationError(QuickGenError):
    """
    The caller could not be identified.

    When:    The user-id header is missing, or the identity service does not
             know the user.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Vendor failures
# ══════════════════════════════════════════════════════════════════════════


class FailureKind(str, enum.Enum):
    """Classification of a failed vendor call."""

    RATE_LIMITED = "rate_limited"  # HTTP 429, retried with backoff
    UPSTREAM = "upstream"          # any other vendor-side error
    TRANSPORT = "transport"        # network / connection / timeout


class VendorError(QuickGenError):
    """
    A call to a third-party API failed.

    Fields:
        kind:             FailureKind decided once at the call boundary
        http_status:      Status reported by the vendor, when there is one
        message:          Vendor's own message (may be empty)
        fallback_message: Operation-specific text used when message is empty

    HTTP mapping (see main.py):
        RATE_LIMITED → 429 with a generic retry-later message
        UPSTREAM     → vendor status code, else 500
        TRANSPORT    → 500
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str = "",
        http_status: Optional[int] = None,
        fallback_message: str = "Request failed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"kind": kind.value, "http_status": http_status})
        super().__init__(message=message, context=ctx)
        self.kind = kind
        self.http_status = http_status
        self.fallback_message = fallback_message

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is FailureKind.RATE_LIMITED

    @property
    def public_message(self) -> str:
        """Vendor message when present, else the operation's fallback."""
        return self.message or self.fallback_message

    def __repr__(self) -> str:
        return (
            f"VendorError(kind={self.kind.value!r}, http_status={self.http_status!r}, "
            f"message={self.message!r})"
        )


# ══════════════════════════════════════════════════════════════════════════
# Persistence
# ══════════════════════════════════════════════════════════════════════════


class DatabaseError(QuickGenError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The client always gets a generic message; the SQL details stay in logs.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
