"""
QuickGen Backend: User Creation Routes
======================================

GET /api/user/get-user-creations       the caller's records, newest first
GET /api/user/get-published-creations  the public feed, newest first
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quickgen.database import get_db_session
from quickgen.dependencies import get_user_id
from quickgen.schemas.creation import CreationItem, CreationListResponse, FailureResponse
from quickgen.services.creation_service import creation_service

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get(
    "/get-user-creations",
    response_model=CreationListResponse,
    responses={401: {"description": "Caller not identified", "model": FailureResponse}},
)
async def get_user_creations(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CreationListResponse:
    creations = await creation_service.list_user_creations(db, user_id)
    return CreationListResponse(
        creations=[CreationItem.model_validate(creation) for creation in creations]
    )


@router.get(
    "/get-published-creations",
    response_model=CreationListResponse,
    responses={401: {"description": "Caller not identified", "model": FailureResponse}},
)
async def get_published_creations(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CreationListResponse:
    creations = await creation_service.list_published_creations(db)
    return CreationListResponse(
        creations=[CreationItem.model_validate(creation) for creation in creations]
    )
