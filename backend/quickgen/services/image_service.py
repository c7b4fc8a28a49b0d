"""
QuickGen Backend: Image Vendors (ClipDrop + Cloudinary)
=======================================================

What:  Text-to-image generation, background removal and object removal.
How:   ClipDrop renders prompts to PNG over HTTP (httpx). Cloudinary hosts
       every image and applies the AI effects. The Cloudinary SDK is
       synchronous, so its calls run in Starlette's worker threadpool.
Who:   CreationService for the premium image operations.

These are direct vendor calls: no retry. Any failure is classified once
by classify_vendor_exception() and propagates as VendorError.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils
import httpx
from starlette.concurrency import run_in_threadpool

from quickgen.config import settings
from quickgen.services.call_executor import classify_vendor_exception

logger = logging.getLogger(__name__)

BACKGROUND_REMOVAL: List[Dict[str, str]] = [
    {"effect": "background_removal", "background_removal": "remove_the_background"},
]


def object_removal(object_name: str) -> List[Dict[str, str]]:
    """Cloudinary generative-remove transformation for one object label."""
    return [{"effect": f"gen_remove:{object_name}"}]


class ImageService:
    """
    Wraps ClipDrop and Cloudinary behind three coroutine methods that each
    return a hosted image URL.

    Args:
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        if settings.cloudinary_configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(settings.vendor_timeout, connect=10.0),
            transport=self._transport,
        )

    # ── Vendor primitives ─────────────────────────────────────────────────

    async def render_prompt(self, prompt: str, fallback_message: str) -> bytes:
        """POST the prompt to ClipDrop and return the PNG bytes."""
        try:
            async with self._client() as client:
                response = await client.post(
                    settings.clipdrop_api_url,
                    headers={"x-api-key": settings.clipdrop_api_key},
                    files={"prompt": (None, prompt)},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise classify_vendor_exception(e, fallback_message) from e

        logger.info("ClipDrop rendered %d bytes", len(response.content))
        return response.content

    async def upload(
        self,
        file: Any,
        fallback_message: str,
        transformation: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """Upload to Cloudinary (in a worker thread) and return its result dict."""
        options: Dict[str, Any] = {"resource_type": "image"}
        if transformation:
            options["transformation"] = transformation
        try:
            return await run_in_threadpool(cloudinary.uploader.upload, file, **options)
        except Exception as e:
            raise classify_vendor_exception(e, fallback_message) from e

    # ── Operations ────────────────────────────────────────────────────────

    async def generate_image(self, prompt: str) -> str:
        fallback = "Failed to generate image. Please try again."
        png = await self.render_prompt(prompt, fallback)
        data_uri = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
        result = await self.upload(data_uri, fallback)
        return result["secure_url"]

    async def remove_background(self, content: bytes) -> str:
        result = await self.upload(
            content,
            "Failed to remove image background. Please try again.",
            transformation=BACKGROUND_REMOVAL,
        )
        return result["secure_url"]

    async def remove_object(self, content: bytes, object_name: str) -> str:
        result = await self.upload(content, "Failed to remove object from image. Please try again.")
        url, _ = cloudinary.utils.cloudinary_url(
            result["public_id"],
            transformation=object_removal(object_name),
            resource_type="image",
            secure=True,
        )
        return url


image_service = ImageService()
