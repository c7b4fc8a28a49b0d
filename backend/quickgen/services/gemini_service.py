"""
QuickGen Backend: Google Gemini Text Generation
===============================================

What:  LLMService implementation backed by the Gemini API.
How:   One generate_content_async() call per attempt, driven by the
       ResilientCallExecutor so 429 responses are retried with backoff.
Who:   CreationService for articles, blog titles and resume reviews.

Error path:
    SDK raises → executor classifies (google.api_core → VendorError)
    → RATE_LIMITED retried, others propagate
    → the SDK's own transport retry is disabled per call (request_options)
    → empty candidate list is reported as UPSTREAM 502
"""

import logging
import time
import uuid
from typing import Any, Optional

import google.generativeai as genai

from quickgen.config import settings
from quickgen.exceptions import FailureKind, VendorError
from quickgen.services.call_executor import ResilientCallExecutor
from quickgen.services.llm_base import GenerationRequest, LLMService

logger = logging.getLogger(__name__)


def first_completion_text(response: Any) -> str:
    """
    Text of the first candidate in a Gemini response.

    Raises:
        VendorError(UPSTREAM, 502) when the model returned no candidates
        (e.g. the prompt was blocked).
    """
    candidates = list(getattr(response, "candidates", None) or [])
    if not candidates:
        raise VendorError(
            FailureKind.UPSTREAM,
            message="The model returned no completion for this prompt.",
            http_status=502,
        )
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(part.text for part in parts if getattr(part, "text", None))


class GeminiService(LLMService):
    """
    Gemini-backed text generation.

    The SDK is configured once with the API key; a GenerativeModel is built
    per request so each request can name its own model.
    """

    def __init__(self, executor: Optional[ResilientCallExecutor] = None):
        if settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)

        self.default_model = settings.gemini_model
        self.executor = executor or ResilientCallExecutor()

        logger.info(
            "GeminiService initialized with model=%s, max_attempts=%d",
            self.default_model,
            self.executor.max_attempts,
        )

    async def generate(
        self,
        request: GenerationRequest,
        fallback_message: str = "Request failed. Please try again.",
    ) -> str:
        """
        Generate text for `request.prompt`.

        Flow:
            1. Build the model and generation config
            2. Executor runs the call (retrying only 429s)
            3. Extract the first candidate's text
        """
        request_id = str(uuid.uuid4())[:8]
        model = genai.GenerativeModel(request.model or self.default_model)
        generation_config = genai.GenerationConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
        )

        start_time = time.perf_counter()
        logger.info(
            "[%s] Gemini request: model=%s max_tokens=%d prompt_chars=%d",
            request_id,
            model.model_name,
            request.max_output_tokens,
            len(request.prompt),
        )

        # retry=None turns off the SDK transport retry on UNAVAILABLE; the
        # executor is the only retry layer.
        request_options = {"retry": None, "timeout": settings.vendor_timeout}

        response = await self.executor.execute(
            lambda: model.generate_content_async(
                request.prompt,
                generation_config=generation_config,
                request_options=request_options,
            ),
            fallback_message=fallback_message,
        )
        text = first_completion_text(response)

        logger.info(
            "[%s] Gemini completed in %.0fms, %d chars",
            request_id,
            (time.perf_counter() - start_time) * 1000,
            len(text),
        )
        return text


gemini_service = GeminiService()
