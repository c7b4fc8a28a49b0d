"""
QuickGen Backend: Creation Service (Gated Operation Orchestrator)
=================================================================

What:  Runs every AI operation through the same gate → execute → persist →
       count pipeline, and serves the creation listings.
How:   Composes the quota policy, FileService, an LLMService, ImageService
       and the identity service. Each public operation describes only what
       is specific to it; _run() owns the ordering.
Who:   Called by the /api/ai and /api/user route handlers.

Pipeline (one request):
    ┌───────────┐   ┌──────────────┐   ┌──────────┐   ┌──────────┐   ┌─────────┐
    │ Authorize │──▶│ Preconditions│──▶│  Vendor  │──▶│  Commit  │──▶│  Quota  │
    │ (policy)  │   │ (file checks)│   │  call(s) │   │ Creation │   │  +1     │
    └───────────┘   └──────────────┘   └──────────┘   └──────────┘   └─────────┘
         │                 │                 │              │
         ▼                 ▼                 ▼              ▼
     Rejected          Rejected           Failed         Failed
  (no vendor call)  (no vendor call)   (no record)    (no quota change)

Ordering guarantees:
    - A rejected request makes no vendor call, writes no record and
      leaves the counter alone.
    - The record is committed before the counter moves, so a counted unit
      always has a record behind it.
    - A quota update failure after the commit leaves the record in place
      and the counter one short; the failure still reaches the caller.
"""

import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quickgen.config import settings
from quickgen.exceptions import DatabaseError, GateRejectedError
from quickgen.models.creation import Creation
from quickgen.schemas.creation import UserContext
from quickgen.services.file_service import FileService, UploadedFile, file_service
from quickgen.services.gemini_service import gemini_service
from quickgen.services.identity_service import ClerkIdentityService, identity_service
from quickgen.services.image_service import ImageService, image_service
from quickgen.services.llm_base import GenerationRequest, LLMService
from quickgen.services.operation import OperationRun, Stage
from quickgen.services.quota import Operation, authorize, consumes_quota

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOG_TITLE_MAX_TOKENS = 100
RESUME_REVIEW_MAX_TOKENS = 1000

RESUME_REVIEW_PROMPT = (
    "Review the following resume and provide constructive feedback on its "
    "strengths, weaknesses, and areas for improvement. Resume Content:\n\n"
)


async def _nothing() -> None:
    return None


class CreationService:
    """
    Business logic for the six gated operations and the creation listings.

    Collaborators default to the module singletons; tests inject mocks.
    """

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        images: Optional[ImageService] = None,
        files: Optional[FileService] = None,
        identity: Optional[ClerkIdentityService] = None,
    ):
        self.llm = llm or gemini_service
        self.images = images or image_service
        self.files = files or file_service
        self.identity = identity or identity_service

    # ── Pipeline ──────────────────────────────────────────────────────────

    async def _run(
        self,
        db: AsyncSession,
        user: UserContext,
        operation: Operation,
        prompt: str,
        execute: Callable[[T], Awaitable[str]],
        prepare: Callable[[], Awaitable[T]] = _nothing,
        publish: bool = False,
    ) -> str:
        """
        Drive one gated operation to completion.

        Args:
            db:        Session the Creation Record is committed on
            user:      Caller identity, plan and observed free usage
            operation: Which operation is running (selects the policy)
            prompt:    Prompt stored on the Creation Record
            execute:   Vendor work; receives prepare()'s result, returns content
            prepare:   Preconditions that need no vendor (file checks, parsing)
            publish:   Stored on the record (generated images only)

        Returns:
            The content that was persisted.

        Raises:
            GateRejectedError: plan, quota or file precondition refused
            VendorError:       vendor or quota update failure
            DatabaseError:     the record could not be committed
        """
        run = OperationRun(operation.value, user.user_id)

        try:
            policy = authorize(user, operation)
            run.advance(Stage.AUTHORIZED)
            prepared = await prepare()
        except GateRejectedError as e:
            run.advance(Stage.REJECTED)
            logger.info(
                "%s rejected for %s: %s", operation.value, user.user_id, e.message
            )
            raise

        run.advance(Stage.EXECUTING)
        try:
            content = await execute(prepared)
        except Exception:
            run.advance(Stage.FAILED)
            raise

        creation = Creation(
            user_id=user.user_id,
            prompt=prompt,
            content=content,
            type=policy.creation_type.value,
            publish=publish,
        )
        try:
            db.add(creation)
            await db.commit()
        except SQLAlchemyError as e:
            run.advance(Stage.FAILED)
            await db.rollback()
            logger.error(
                "Could not store %s for %s: %s", operation.value, user.user_id, str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Could not save your creation. Please try again.",
                context={"operation": operation.value, "error_type": type(e).__name__},
            )
        run.advance(Stage.PERSISTED)

        if consumes_quota(user, operation):
            try:
                await self.identity.consume_free_usage(user.user_id, user.free_usage)
            except Exception:
                run.advance(Stage.FAILED)
                logger.error(
                    "Creation %s stored but free_usage for %s was not updated",
                    creation.id,
                    user.user_id,
                )
                raise
            run.advance(Stage.QUOTA_UPDATED)

        run.advance(Stage.RESPONDED)
        logger.info(
            "%s completed for %s in %.0fms (creation %s)",
            operation.value,
            user.user_id,
            run.elapsed_ms(),
            creation.id,
        )
        return content

    # ── Text operations ───────────────────────────────────────────────────

    async def generate_article(
        self, db: AsyncSession, user: UserContext, prompt: str, length: int
    ) -> str:
        """Article from a prompt; `length` bounds the generated tokens."""
        request = GenerationRequest(
            prompt=prompt,
            max_output_tokens=length,
            temperature=settings.gemini_temperature,
        )
        return await self._run(
            db,
            user,
            Operation.ARTICLE,
            prompt,
            lambda _: self.llm.generate(request, "Failed to generate article. Please try again."),
        )

    async def generate_blog_title(self, db: AsyncSession, user: UserContext, prompt: str) -> str:
        request = GenerationRequest(
            prompt=prompt,
            max_output_tokens=BLOG_TITLE_MAX_TOKENS,
            temperature=settings.gemini_temperature,
        )
        return await self._run(
            db,
            user,
            Operation.BLOG_TITLE,
            prompt,
            lambda _: self.llm.generate(request, "Failed to generate blog titles. Please try again."),
        )

    async def review_resume(self, db: AsyncSession, user: UserContext, upload: UploadedFile) -> str:
        """
        Feedback on an uploaded PDF resume.

        The size limit is checked before the file is read; the stored prompt
        is a fixed description, not the resume text.
        """

        async def review(resume_text: str) -> str:
            request = GenerationRequest(
                prompt=RESUME_REVIEW_PROMPT + resume_text,
                max_output_tokens=RESUME_REVIEW_MAX_TOKENS,
                temperature=settings.gemini_temperature,
            )
            return await self.llm.generate(request, "Failed to review resume. Please try again.")

        return await self._run(
            db,
            user,
            Operation.RESUME_REVIEW,
            "Review the uploaded resume",
            review,
            prepare=lambda: self.files.extract_resume_text(upload),
        )

    # ── Image operations ──────────────────────────────────────────────────

    async def generate_image(
        self, db: AsyncSession, user: UserContext, prompt: str, publish: bool = False
    ) -> str:
        return await self._run(
            db,
            user,
            Operation.IMAGE,
            prompt,
            lambda _: self.images.generate_image(prompt),
            publish=publish,
        )

    async def remove_background(self, db: AsyncSession, user: UserContext, upload: UploadedFile) -> str:
        return await self._run(
            db,
            user,
            Operation.REMOVE_BACKGROUND,
            "Remove background from image",
            self.images.remove_background,
            prepare=lambda: self.files.read_image(upload),
        )

    async def remove_object(
        self, db: AsyncSession, user: UserContext, upload: UploadedFile, object_name: str
    ) -> str:
        return await self._run(
            db,
            user,
            Operation.REMOVE_OBJECT,
            f"Removed {object_name} from image",
            lambda content: self.images.remove_object(content, object_name),
            prepare=lambda: self.files.read_image(upload),
        )

    # ── Listings ──────────────────────────────────────────────────────────

    async def list_user_creations(self, db: AsyncSession, user_id: str) -> List[Creation]:
        """
        The caller's creations, newest first.

        Query plan:
            SELECT * FROM creations WHERE user_id = :uid ORDER BY created_at DESC
            → idx_creations_user_created
        """
        try:
            result = await db.execute(
                select(Creation)
                .where(Creation.user_id == user_id)
                .order_by(desc(Creation.created_at), desc(Creation.id))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing creations for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve your creations. Please try again.",
                context={"user_id": user_id},
            )

    async def list_published_creations(self, db: AsyncSession) -> List[Creation]:
        """Every published creation, newest first (the community feed)."""
        try:
            result = await db.execute(
                select(Creation)
                .where(Creation.publish.is_(True))
                .order_by(desc(Creation.created_at), desc(Creation.id))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing published creations: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve published creations. Please try again.")


creation_service = CreationService()
