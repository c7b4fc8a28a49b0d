"""
QuickGen Backend: Request Dependencies
======================================

What:  Resolves the calling user for the /api/ai and /api/user routes.
How:   A trusted gateway verifies the session and forwards the user id in a
       header (USER_ID_HEADER, default X-User-Id). The identity service
       supplies plan and free-usage for that id.
"""

import logging

from fastapi import Request

from quickgen.config import settings
from quickgen.exceptions import AuthenticationError
from quickgen.schemas.creation import UserContext
from quickgen.services.identity_service import identity_service

logger = logging.getLogger(__name__)


def get_user_id(request: Request) -> str:
    user_id = (request.headers.get(settings.user_id_header) or "").strip()
    if not user_id:
        raise AuthenticationError(context={"header": settings.user_id_header})
    return user_id


async def get_current_user(request: Request) -> UserContext:
    """Identity, plan and observed free usage of the caller."""
    user = await identity_service.get_user_context(get_user_id(request))
    logger.debug(
        "Resolved %s: plan=%s free_usage=%d", user.user_id, user.plan.value, user.free_usage
    )
    return user
