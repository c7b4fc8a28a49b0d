"""
QuickGen Backend: Uploaded File Service
=======================================

What:  Validates uploaded images and resumes, and extracts resume text.
How:   Size is checked against the declared upload size first, so oversized
       files are rejected without reading a byte. Type is checked by
       extension. PDF parsing runs in a worker thread via pypdf.
Who:   CreationService for background removal, object removal and resume
       review.

Validation order (cheapest first):
    1. Declared size  → FileTooLargeError (no read)
    2. Extension      → UnsupportedFileError (no read)
    3. Read bytes     → re-check size when it was not declared
    4. Parse (PDF)    → UnsupportedFileError when unreadable or empty
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, FrozenSet, Optional

from fastapi import UploadFile
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from starlette.concurrency import run_in_threadpool

from quickgen.config import settings
from quickgen.exceptions import FileTooLargeError, UnsupportedFileError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({".png", ".jpg", ".jpeg", ".webp"})
RESUME_EXTENSIONS: FrozenSet[str] = frozenset({".pdf"})


@dataclass
class UploadedFile:
    """
    A multipart upload as seen by the services layer.

    `size` is the size declared by the transport (None when unknown). The
    content is only pulled through `reader` when read() is called, so size
    checks can happen first.
    """
    filename: str
    size: Optional[int]
    content_type: Optional[str]
    reader: Callable[[], Awaitable[bytes]]

    async def read(self) -> bytes:
        return await self.reader()

    @classmethod
    def from_upload(cls, upload: UploadFile) -> "UploadedFile":
        return cls(
            filename=upload.filename or "upload",
            size=upload.size,
            content_type=upload.content_type,
            reader=upload.read,
        )


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.0f}MB"


class FileService:
    """
    Upload validation and content extraction.

    Limits come from settings unless overridden (tests pass their own).
    """

    def __init__(
        self,
        resume_max_bytes: Optional[int] = None,
        image_max_bytes: Optional[int] = None,
    ):
        self.resume_max_bytes = resume_max_bytes or settings.resume_max_bytes
        self.image_max_bytes = image_max_bytes or settings.max_image_size

    # ── Individual checks ─────────────────────────────────────────────────

    @staticmethod
    def validate_extension(filename: str, allowed: FrozenSet[str], field: str) -> str:
        """
        Checks the file extension against an allow-list.

        Returns:  Normalized extension (lowercase with dot).
        Raises:   UnsupportedFileError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in allowed:
            raise UnsupportedFileError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(allowed))}"
                ),
                field=field,
                context={"extension": ext, "allowed": sorted(allowed)},
            )
        return ext

    @staticmethod
    def ensure_within_limit(size: Optional[int], limit: int, message: str) -> None:
        """Raises FileTooLargeError when size is known and above limit."""
        if size is not None and size > limit:
            raise FileTooLargeError(message=message, size=size, limit=limit)

    async def _read_bounded(self, upload: UploadedFile, limit: int, message: str) -> bytes:
        content = await upload.read()
        self.ensure_within_limit(len(content), limit, message)
        return content

    # ── Images ────────────────────────────────────────────────────────────

    async def read_image(self, upload: UploadedFile) -> bytes:
        """Validated image bytes for Cloudinary."""
        message = f"Image file size exceeds allowed size ({_format_mb(self.image_max_bytes)})."
        self.ensure_within_limit(upload.size, self.image_max_bytes, message)
        self.validate_extension(upload.filename, IMAGE_EXTENSIONS, field="image")
        content = await self._read_bounded(upload, self.image_max_bytes, message)
        if not content:
            raise UnsupportedFileError(message="The uploaded image is empty.", field="image")
        return content

    # ── Resumes ───────────────────────────────────────────────────────────

    def check_resume(self, upload: UploadedFile) -> None:
        """
        Resume preconditions that do not need the content.

        A file of exactly resume_max_bytes passes; one byte more is rejected.
        """
        self.ensure_within_limit(
            upload.size,
            self.resume_max_bytes,
            f"Resume file size exceeds allowed size ({_format_mb(self.resume_max_bytes)}).",
        )
        self.validate_extension(upload.filename, RESUME_EXTENSIONS, field="resume")

    async def extract_resume_text(self, upload: UploadedFile) -> str:
        """
        Read the resume and return its text.

        Raises:
            FileTooLargeError:    over the limit (checked before reading)
            UnsupportedFileError: not a PDF, unreadable, or no text layer
        """
        self.check_resume(upload)
        content = await self._read_bounded(
            upload,
            self.resume_max_bytes,
            f"Resume file size exceeds allowed size ({_format_mb(self.resume_max_bytes)}).",
        )
        text = await run_in_threadpool(self.extract_pdf_text, content)
        if not text.strip():
            raise UnsupportedFileError(
                message="No readable text was found in the uploaded resume.",
                field="resume",
            )
        logger.info("Extracted %d chars from resume %s", len(text), upload.filename)
        return text

    @staticmethod
    def extract_pdf_text(content: bytes) -> str:
        """Text of every page, joined by newlines. Blocking; run in a thread."""
        try:
            reader = PdfReader(io.BytesIO(content))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as e:
            logger.warning("Could not parse PDF: %s", str(e))
            raise UnsupportedFileError(
                message="The uploaded resume could not be read as a PDF.",
                field="resume",
                context={"error": str(e)},
            )
        return "\n".join(pages)


file_service = FileService()
