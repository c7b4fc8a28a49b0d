"""
QuickGen Backend: Call Executor Unit Tests
==========================================

What:  Retry behaviour of ResilientCallExecutor and the vendor failure
       classifier.
How:   Calls are AsyncMocks with scripted side effects; the executor gets a
       recording sleep so no test waits in real time (except the one that
       checks the delay really happens).

What we test:
    ✅ 429, 429, success → two sleeps (1s, 2s) then the success value
    ✅ 429 on every attempt → RATE_LIMITED after exactly 3 calls
    ✅ non-429 failures are not retried
    ✅ classifier: google, httpx, cloudinary and transport shapes
"""

import asyncio
import time
from unittest.mock import AsyncMock

import httpx
import pytest
from cloudinary import exceptions as cloudinary_exceptions
from google.api_core import exceptions as google_exceptions

from quickgen.exceptions import FailureKind, VendorError
from quickgen.services.call_executor import ResilientCallExecutor, classify_vendor_exception


def rate_limited() -> VendorError:
    return VendorError(FailureKind.RATE_LIMITED, message="slow down", http_status=429)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def executor(sleep):
    return ResilientCallExecutor(max_attempts=3, backoff_base=2, sleep=sleep)


class TestRetryPolicy:
    """Only rate-limited failures are retried."""

    @pytest.mark.asyncio
    async def test_recovers_after_two_rate_limits(self, executor, sleep):
        call = AsyncMock(side_effect=[rate_limited(), rate_limited(), "ok"])

        result = await executor.execute(call)

        assert result == "ok"
        assert call.await_count == 3
        assert sleep.calls == [1, 2]

    @pytest.mark.asyncio
    async def test_exhausted_rate_limit_propagates(self, executor, sleep):
        call = AsyncMock(side_effect=[rate_limited(), rate_limited(), rate_limited()])

        with pytest.raises(VendorError) as exc_info:
            await executor.execute(call)

        assert exc_info.value.kind is FailureKind.RATE_LIMITED
        assert call.await_count == 3
        # no sleep after the final attempt
        assert sleep.calls == [1, 2]

    @pytest.mark.asyncio
    async def test_first_attempt_success_never_sleeps(self, executor, sleep):
        call = AsyncMock(return_value={"text": "hello"})

        assert await executor.execute(call) == {"text": "hello"}
        assert call.await_count == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_upstream_failure_is_not_retried(self, executor, sleep):
        call = AsyncMock(
            side_effect=VendorError(FailureKind.UPSTREAM, message="bad prompt", http_status=400)
        )

        with pytest.raises(VendorError) as exc_info:
            await executor.execute(call)

        assert exc_info.value.kind is FailureKind.UPSTREAM
        assert exc_info.value.http_status == 400
        assert call.await_count == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_raw_sdk_exceptions_are_classified_before_retrying(self, executor, sleep):
        call = AsyncMock(
            side_effect=[google_exceptions.ResourceExhausted("quota"), "done"]
        )

        assert await executor.execute(call) == "done"
        assert call.await_count == 2
        assert sleep.calls == [1]

    @pytest.mark.asyncio
    async def test_transport_failure_is_not_retried(self, executor):
        call = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(VendorError) as exc_info:
            await executor.execute(call, fallback_message="Failed to generate article.")

        assert exc_info.value.kind is FailureKind.TRANSPORT
        assert exc_info.value.public_message == "Failed to generate article."
        assert call.await_count == 1

    @pytest.mark.asyncio
    async def test_per_call_attempt_override(self, executor, sleep):
        call = AsyncMock(side_effect=[rate_limited()] * 5)

        with pytest.raises(VendorError):
            await executor.execute(call, max_attempts=5)

        assert call.await_count == 5
        assert sleep.calls == [1, 2, 4, 8]

    def test_backoff_schedule(self, executor):
        assert executor.backoff_schedule() == [1, 2]
        assert executor.backoff_schedule(4) == [1, 2, 4]

    @pytest.mark.asyncio
    async def test_waits_in_real_time(self):
        """With the real asyncio.sleep the backoff actually elapses."""
        executor = ResilientCallExecutor(max_attempts=3, backoff_base=2, backoff_unit=0.05)
        call = AsyncMock(side_effect=[rate_limited(), rate_limited(), "ok"])

        started = time.perf_counter()
        assert await executor.execute(call) == "ok"
        elapsed = time.perf_counter() - started
        # 0.05 + 0.10; doubled waits (0.10 + 0.20) fall outside the window
        assert 0.14 <= elapsed < 0.25

    @pytest.mark.asyncio
    async def test_backoff_does_not_block_other_tasks(self):
        executor = ResilientCallExecutor(max_attempts=2, backoff_base=2, backoff_unit=0.1)
        call = AsyncMock(side_effect=[rate_limited(), "slow"])
        ticks = []
        finished = []

        async def retried_call():
            result = await executor.execute(call)
            finished.append(time.perf_counter())
            return result

        async def ticker():
            for _ in range(3):
                ticks.append(time.perf_counter())
                await asyncio.sleep(0.01)

        result, _ = await asyncio.gather(retried_call(), ticker())

        assert result == "slow"
        assert len(ticks) == 3
        assert ticks[-1] < finished[0]


class TestClassifyVendorException:
    """Every vendor exception shape lands on exactly one FailureKind."""

    def test_google_resource_exhausted_is_rate_limited(self):
        err = classify_vendor_exception(google_exceptions.ResourceExhausted("quota exceeded"))
        assert err.kind is FailureKind.RATE_LIMITED
        assert err.http_status == 429

    def test_google_invalid_argument_keeps_status_and_message(self):
        err = classify_vendor_exception(google_exceptions.InvalidArgument("prompt too long"))
        assert err.kind is FailureKind.UPSTREAM
        assert err.http_status == 400
        assert err.public_message == "prompt too long"

    def test_google_deadline_is_transport(self):
        err = classify_vendor_exception(google_exceptions.DeadlineExceeded("timeout"))
        assert err.kind is FailureKind.TRANSPORT
        assert err.http_status is None

    def test_httpx_status_error_reads_json_body(self):
        request = httpx.Request("POST", "https://clipdrop-api.co/text-to-image/v1")
        response = httpx.Response(402, json={"error": "Out of credits"}, request=request)
        exc = httpx.HTTPStatusError("402", request=request, response=response)

        err = classify_vendor_exception(exc, "Failed to generate image.")

        assert err.kind is FailureKind.UPSTREAM
        assert err.http_status == 402
        assert err.public_message == "Out of credits"

    def test_httpx_429_is_rate_limited(self):
        request = httpx.Request("GET", "https://api.clerk.com/v1/users/u1")
        response = httpx.Response(429, text="", request=request)
        exc = httpx.HTTPStatusError("429", request=request, response=response)

        assert classify_vendor_exception(exc).is_rate_limited

    def test_clerk_error_list_message(self):
        request = httpx.Request("PATCH", "https://api.clerk.com/v1/users/u1/metadata")
        response = httpx.Response(
            422,
            json={"errors": [{"message": "invalid", "long_message": "metadata is invalid"}]},
            request=request,
        )
        exc = httpx.HTTPStatusError("422", request=request, response=response)

        assert classify_vendor_exception(exc).public_message == "metadata is invalid"

    def test_cloudinary_rate_limited(self):
        err = classify_vendor_exception(cloudinary_exceptions.RateLimited("too many uploads"))
        assert err.kind is FailureKind.RATE_LIMITED

    def test_cloudinary_general_error_has_no_status(self):
        err = classify_vendor_exception(cloudinary_exceptions.GeneralError("boom"))
        assert err.kind is FailureKind.UPSTREAM
        assert err.http_status is None
        assert err.public_message == "boom"

    def test_empty_message_uses_fallback(self):
        err = classify_vendor_exception(RuntimeError(""), "Failed to review resume.")
        assert err.public_message == "Failed to review resume."

    def test_vendor_error_passes_through(self):
        original = rate_limited()
        assert classify_vendor_exception(original) is original
