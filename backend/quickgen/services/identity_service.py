"""
QuickGen Backend: Identity Service (Clerk)
==========================================

What:  Reads plan tier and free-usage counter for a user, and records one
       consumed free-tier unit.
How:   Clerk Backend REST API over httpx.
           plan        ← public_metadata.plan  ("premium", anything else = free)
           free_usage  ← private_metadata.free_usage (missing = 0)
Who:   get_current_user() dependency (read) and CreationService (write).

Quota consumption is a separate command issued after the Creation Record
is committed. It writes observed_usage + 1 as an absolute value, so
repeating the same command does not double count.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from quickgen.config import settings
from quickgen.exceptions import AuthenticationError
from quickgen.schemas.creation import Plan, UserContext
from quickgen.services.call_executor import classify_vendor_exception

logger = logging.getLogger(__name__)


class ClerkIdentityService:
    """
    Minimal Clerk Backend API client.

    Args:
        secret_key: Clerk secret key (defaults to settings)
        base_url:   API root, e.g. https://api.clerk.com/v1
        transport:  Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.clerk_secret_key
        self.base_url = (base_url or settings.clerk_api_url).rstrip("/")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=httpx.Timeout(settings.vendor_timeout, connect=10.0),
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                if response.status_code == 404:
                    raise AuthenticationError(
                        message="Unknown user",
                        context={"path": path},
                    )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            raise classify_vendor_exception(
                e, "Could not reach the account service. Please try again."
            ) from e

    async def get_user_context(self, user_id: str) -> UserContext:
        """
        Fetch the caller's plan and free-usage counter.

        Premium users report free_usage=0; their counter is never read.
        """
        user = await self._request("GET", f"/users/{user_id}")

        public_metadata = user.get("public_metadata") or {}
        private_metadata = user.get("private_metadata") or {}

        plan = Plan.PREMIUM if public_metadata.get("plan") == Plan.PREMIUM.value else Plan.FREE
        free_usage = 0
        if plan is Plan.FREE:
            try:
                free_usage = max(int(private_metadata.get("free_usage") or 0), 0)
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed free_usage for user %s", user_id)

        return UserContext(user_id=user_id, plan=plan, free_usage=free_usage)

    async def consume_free_usage(self, user_id: str, observed_usage: int) -> int:
        """
        Record one consumed free-tier unit.

        Args:
            user_id:        Clerk user id
            observed_usage: Counter value the request was authorized with

        Returns:
            The new counter value (observed_usage + 1).
        """
        new_usage = observed_usage + 1
        await self._request(
            "PATCH",
            f"/users/{user_id}/metadata",
            json={"private_metadata": {"free_usage": new_usage}},
        )
        logger.info("free_usage for %s: %d -> %d", user_id, observed_usage, new_usage)
        return new_usage


identity_service = ClerkIdentityService()
