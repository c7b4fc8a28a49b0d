"""
QuickGen Backend: AI Operation Routes
=====================================

What:  The six gated operations under /api/ai.
How:   JSON bodies are validated by the request schemas; uploads arrive as
       multipart and are wrapped in UploadedFile so size can be checked
       before reading. Every handler returns {"success": true, "content"}.

Responses (via the global exception handlers):
    200  success, or success=false for plan / quota / file rejections
    400  malformed request body
    401  caller not identified
    429  vendor still rate limiting after retries
    4xx/5xx  other vendor failures (vendor status, else 500)
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from quickgen.database import get_db_session
from quickgen.dependencies import get_current_user
from quickgen.schemas.creation import (
    ArticleRequest,
    BlogTitleRequest,
    FailureResponse,
    ImageRequest,
    ObjectName,
    OperationResponse,
    UserContext,
)
from quickgen.services.creation_service import creation_service
from quickgen.services.file_service import UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

_ERRORS = {
    400: {"description": "Malformed request", "model": FailureResponse},
    401: {"description": "Caller not identified", "model": FailureResponse},
    429: {"description": "Vendor rate limit persisted", "model": FailureResponse},
    500: {"description": "Vendor or server failure", "model": FailureResponse},
}


@router.post(
    "/generate-article",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Generate an article from a prompt",
)
async def generate_article(
    body: ArticleRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    content = await creation_service.generate_article(db, user, body.prompt, body.length)
    return OperationResponse(content=content)


@router.post(
    "/generate-blog-title",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Suggest blog titles for a keyword",
)
async def generate_blog_title(
    body: BlogTitleRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    content = await creation_service.generate_blog_title(db, user, body.prompt)
    return OperationResponse(content=content)


@router.post(
    "/generate-image",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Generate an image from a prompt (premium)",
)
async def generate_image(
    body: ImageRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    content = await creation_service.generate_image(db, user, body.prompt, body.publish)
    return OperationResponse(content=content)


@router.post(
    "/remove-image-background",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Remove the background of an uploaded image (premium)",
)
async def remove_image_background(
    image: UploadFile = File(..., description="PNG, JPG, JPEG or WEBP image"),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    try:
        content = await creation_service.remove_background(
            db, user, UploadedFile.from_upload(image)
        )
    finally:
        await image.close()
    return OperationResponse(content=content)


@router.post(
    "/remove-image-object",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Remove a named object from an uploaded image (premium)",
)
async def remove_image_object(
    image: UploadFile = File(..., description="PNG, JPG, JPEG or WEBP image"),
    object_name: ObjectName = Form(..., alias="object"),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    try:
        content = await creation_service.remove_object(
            db, user, UploadedFile.from_upload(image), object_name
        )
    finally:
        await image.close()
    return OperationResponse(content=content)


@router.post(
    "/resume-review",
    response_model=OperationResponse,
    responses=_ERRORS,
    summary="Review an uploaded PDF resume (premium)",
)
async def resume_review(
    resume: UploadFile = File(..., description="PDF resume, at most 5MB"),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OperationResponse:
    logger.info("Resume upload: %s (%s bytes)", resume.filename, resume.size)
    try:
        content = await creation_service.review_resume(db, user, UploadedFile.from_upload(resume))
    finally:
        await resume.close()
    return OperationResponse(content=content)
