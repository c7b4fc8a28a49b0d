"""
QuickGen Backend: Pydantic Request/Response Schemas
===================================================

What:  The API contract between frontend and backend.
How:   FastAPI validates request bodies against these models and serializes
       responses through them (and builds the OpenAPI docs from both).

Envelope:
    Success → {"success": true, "content": "..."}
    Failure → {"success": false, "message": "..."}
"""

import enum
from datetime import datetime
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Caller identity
# ══════════════════════════════════════════════════════════════════════════


class Plan(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


class UserContext(BaseModel):
    """
    What:  Who is calling and what they are entitled to.
    Who:   Built by the identity service for every AI request.

    free_usage is only meaningful on the free plan; premium callers are never
    counted.
    """
    user_id: str = Field(min_length=1)
    plan: Plan = Plan.FREE
    free_usage: int = Field(default=0, ge=0)

    @property
    def is_premium(self) -> bool:
        return self.plan is Plan.PREMIUM


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class _PromptRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=8000, description="Text prompt")

    @field_validator("prompt")
    @classmethod
    def strip_prompt(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Prompt must not be blank")
        return stripped


class ArticleRequest(_PromptRequest):
    """Body of POST /api/ai/generate-article."""
    length: int = Field(
        ge=1,
        le=8192,
        description="Upper bound on generated tokens",
    )


class BlogTitleRequest(_PromptRequest):
    """Body of POST /api/ai/generate-blog-title."""


class ImageRequest(_PromptRequest):
    """Body of POST /api/ai/generate-image."""
    publish: bool = Field(
        default=False,
        description="Show the generated image in the public creations feed",
    )


# Form field of POST /api/ai/remove-image-object; stripped before the length check
ObjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class OperationResponse(BaseModel):
    """Successful AI operation: generated text or a hosted image URL."""
    success: bool = True
    content: str = Field(description="Generated text or URL of the stored image")


class FailureResponse(BaseModel):
    """
    Any failed request.

    Gate rejections (upgrade required, limit reached, file too large) are
    returned with HTTP 200; vendor and server failures carry their status.
    """
    success: bool = False
    message: str = Field(description="Human-readable reason")


class CreationItem(BaseModel):
    """One row of the creations table as exposed to clients."""
    id: int
    user_id: str
    prompt: str
    content: str
    type: str
    publish: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CreationListResponse(BaseModel):
    success: bool = True
    creations: List[CreationItem]


class HealthResponse(BaseModel):
    """
    What:  Service status for load balancers and monitoring.

    vendors reports which credentials are configured; it does not call out.
    """
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    vendors: Dict[str, str] = Field(description="configured or missing, per vendor")
    uptime_seconds: float
    detail: Optional[str] = None
