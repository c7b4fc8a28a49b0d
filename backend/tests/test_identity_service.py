"""
QuickGen Backend: Identity Service Tests (httpx.MockTransport)
==============================================================

What:  Plan and counter parsing from Clerk user payloads, and the quota
       update request.
How:   httpx.MockTransport answers in place of the Clerk API.
"""

import json

import httpx
import pytest

from quickgen.exceptions import AuthenticationError, FailureKind, VendorError
from quickgen.schemas.creation import Plan
from quickgen.services.identity_service import ClerkIdentityService


def service_with(handler) -> ClerkIdentityService:
    return ClerkIdentityService(
        secret_key="sk_test",
        base_url="https://clerk.test/v1",
        transport=httpx.MockTransport(handler),
    )


class TestGetUserContext:
    @pytest.mark.asyncio
    async def test_free_user_with_counter(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/users/user_1"
            assert request.headers["Authorization"] == "Bearer sk_test"
            return httpx.Response(
                200,
                json={"id": "user_1", "public_metadata": {}, "private_metadata": {"free_usage": 7}},
            )

        user = await service_with(handler).get_user_context("user_1")

        assert user.plan is Plan.FREE
        assert user.free_usage == 7

    @pytest.mark.asyncio
    async def test_missing_counter_is_zero(self):
        def handler(request):
            return httpx.Response(200, json={"id": "user_1"})

        assert (await service_with(handler).get_user_context("user_1")).free_usage == 0

    @pytest.mark.asyncio
    async def test_premium_counter_is_ignored(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "public_metadata": {"plan": "premium"},
                    "private_metadata": {"free_usage": 42},
                },
            )

        user = await service_with(handler).get_user_context("user_1")

        assert user.is_premium
        assert user.free_usage == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        def handler(request):
            return httpx.Response(404, json={"errors": [{"message": "not found"}]})

        with pytest.raises(AuthenticationError):
            await service_with(handler).get_user_context("user_missing")

    @pytest.mark.asyncio
    async def test_clerk_rate_limit_is_classified(self):
        def handler(request):
            return httpx.Response(429, json={"errors": [{"message": "Too many requests"}]})

        with pytest.raises(VendorError) as exc_info:
            await service_with(handler).get_user_context("user_1")

        assert exc_info.value.kind is FailureKind.RATE_LIMITED


class TestConsumeFreeUsage:
    @pytest.mark.asyncio
    async def test_writes_observed_plus_one(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"id": "user_1"})

        new_usage = await service_with(handler).consume_free_usage("user_1", 9)

        assert new_usage == 10
        assert seen == [
            ("PATCH", "/v1/users/user_1/metadata", {"private_metadata": {"free_usage": 10}})
        ]

    @pytest.mark.asyncio
    async def test_network_failure_is_transport(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(VendorError) as exc_info:
            await service_with(handler).consume_free_usage("user_1", 3)

        assert exc_info.value.kind is FailureKind.TRANSPORT
