"""
QuickGen Backend: Resilient Call Executor
=========================================

What:  Runs one outbound request against a rate-limited vendor and hides
       short bursts of HTTP 429 behind bounded exponential backoff.
How:   tenacity.AsyncRetrying around a single awaitable factory. Only
       failures classified as RATE_LIMITED are retried; everything else is
       re-raised on the first attempt.
Who:   GeminiService (text operations). Image operations call their vendors
       directly but share classify_vendor_exception().

Backoff schedule (backoff_base=2, backoff_unit=1s):
    attempt 1 fails with 429 → sleep 1s
    attempt 2 fails with 429 → sleep 2s
    attempt 3 fails with 429 → RATE_LIMITED propagates (no sleep)

Sleeping:
    The sleep is an asyncio sleep awaited by the request's own task. Other
    requests keep running while it waits, and cancelling the task cancels
    the sleep.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from cloudinary import exceptions as cloudinary_exceptions
from google.api_core import exceptions as google_exceptions
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from quickgen.config import settings
from quickgen.exceptions import FailureKind, VendorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FALLBACK = "Request failed. Please try again."

# Cloudinary raises status-less exception classes; the status they stand for
_CLOUDINARY_STATUS = (
    (cloudinary_exceptions.RateLimited, 429),
    (cloudinary_exceptions.BadRequest, 400),
    (cloudinary_exceptions.AuthorizationRequired, 401),
    (cloudinary_exceptions.NotAllowed, 403),
    (cloudinary_exceptions.NotFound, 404),
    (cloudinary_exceptions.AlreadyExists, 409),
)


# ══════════════════════════════════════════════════════════════════════════
# Failure classification
# ══════════════════════════════════════════════════════════════════════════


def _response_message(response: httpx.Response) -> str:
    """Best-effort error text from a vendor's JSON (or plain) error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()[:500]

    if isinstance(payload, dict):
        if isinstance(payload.get("error"), str):
            return payload["error"]
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return errors[0].get("long_message") or errors[0].get("message") or ""
        if isinstance(payload.get("message"), str):
            return payload["message"]
    return ""


def _is_transport_failure(exc: BaseException) -> bool:
    return isinstance(
        exc,
        (
            httpx.TransportError,
            google_exceptions.DeadlineExceeded,
            ConnectionError,
            TimeoutError,
        ),
    )


def classify_vendor_exception(
    exc: BaseException,
    fallback_message: str = DEFAULT_FALLBACK,
) -> VendorError:
    """
    Turn any exception raised by a vendor SDK or HTTP client into a VendorError.

    This is the only place that looks inside vendor exception shapes:
        google.api_core GoogleAPICallError → .code / .message
        httpx.HTTPStatusError              → response status / error body
        cloudinary.exceptions.*            → status implied by the class
        transport-level errors             → TRANSPORT, no status

    Returns:
        The classified error. An existing VendorError is returned unchanged.
    """
    if isinstance(exc, VendorError):
        return exc

    context = {"error_type": type(exc).__name__, "detail": str(exc)[:500]}

    if _is_transport_failure(exc):
        return VendorError(
            FailureKind.TRANSPORT,
            fallback_message=fallback_message,
            context=context,
        )

    status: Optional[int] = None
    message = str(exc)

    if isinstance(exc, google_exceptions.GoogleAPICallError):
        status = exc.code
        message = exc.message or ""
    elif isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = _response_message(exc.response)
    elif isinstance(exc, cloudinary_exceptions.Error):
        for error_class, error_status in _CLOUDINARY_STATUS:
            if isinstance(exc, error_class):
                status = error_status
                break

    kind = FailureKind.RATE_LIMITED if status == 429 else FailureKind.UPSTREAM
    return VendorError(
        kind,
        message=message,
        http_status=status,
        fallback_message=fallback_message,
        context=context,
    )


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, VendorError) and exc.is_rate_limited


# ══════════════════════════════════════════════════════════════════════════
# Executor
# ══════════════════════════════════════════════════════════════════════════


class ResilientCallExecutor:
    """
    Retries rate-limited vendor calls with exponential backoff.

    Args:
        max_attempts:  Total attempts including the first (default from settings: 3)
        backoff_base:  Exponent base; wait before retry n is base ** (n - 1) units
        backoff_unit:  Seconds per unit (1.0 in production)
        sleep:         Awaitable sleep function (asyncio.sleep)
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[int] = None,
        backoff_unit: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.backoff_base = backoff_base or settings.retry_backoff_base
        self.backoff_unit = backoff_unit
        self._sleep = sleep

    def backoff_schedule(self, max_attempts: Optional[int] = None) -> list:
        """Waits (seconds) that a call failing every attempt with 429 would sleep."""
        attempts = max_attempts or self.max_attempts
        return [self.backoff_unit * self.backoff_base ** n for n in range(attempts - 1)]

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        *,
        fallback_message: str = DEFAULT_FALLBACK,
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Run `call` until it succeeds, fails with a non-429 error, or runs
        out of attempts.

        Args:
            call:             Zero-argument factory returning a fresh awaitable
                              per attempt
            fallback_message: Message used when the vendor gives none
            max_attempts:     Per-call override of the attempt budget

        Returns:
            Whatever `call` returns (the raw vendor response).

        Raises:
            VendorError: RATE_LIMITED after the last attempt, or UPSTREAM /
                TRANSPORT immediately.
        """
        attempts = max_attempts or self.max_attempts
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_rate_limited),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.backoff_unit, exp_base=self.backoff_base),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            return await retrying(self._attempt, call, fallback_message)
        except VendorError as exc:
            if exc.is_rate_limited:
                logger.error("Vendor still rate limiting after %d attempts", attempts)
            else:
                logger.warning("Vendor call failed (%s, status=%s)", exc.kind.value, exc.http_status)
            raise

    @staticmethod
    async def _attempt(call: Callable[[], Awaitable[T]], fallback_message: str) -> T:
        try:
            return await call()
        except VendorError:
            raise
        except Exception as exc:
            raise classify_vendor_exception(exc, fallback_message) from exc
