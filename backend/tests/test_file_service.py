"""
QuickGen Backend: File Service Unit Tests
=========================================

What:  Size and type gates for uploads, and resume text extraction.

What we test:
    ✅ declared size over the limit → rejected before any read
    ✅ exactly at the limit → accepted
    ✅ undeclared size → measured after reading
    ✅ extension allow-lists (case-insensitive)
    ✅ blank or broken PDFs → UnsupportedFileError
"""

import io
from unittest.mock import patch

import pytest
from pypdf import PdfWriter

from quickgen.exceptions import FileTooLargeError, UnsupportedFileError
from quickgen.services.file_service import IMAGE_EXTENSIONS, RESUME_EXTENSIONS, FileService

LIMIT = 5 * 1024 * 1024


@pytest.fixture
def files():
    return FileService(resume_max_bytes=LIMIT, image_max_bytes=10 * 1024 * 1024)


def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestExtensions:
    @pytest.mark.parametrize("name", ["a.png", "b.jpg", "c.JPEG", "d.webp"])
    def test_images_allowed(self, name):
        FileService.validate_extension(name, IMAGE_EXTENSIONS, field="image")

    @pytest.mark.parametrize("name", ["a.gif", "b.pdf", "noext", "run.exe"])
    def test_images_rejected(self, name):
        with pytest.raises(UnsupportedFileError) as exc_info:
            FileService.validate_extension(name, IMAGE_EXTENSIONS, field="image")
        assert exc_info.value.field == "image"

    def test_resume_must_be_pdf(self):
        assert FileService.validate_extension("CV.PDF", RESUME_EXTENSIONS, field="resume") == ".pdf"
        with pytest.raises(UnsupportedFileError):
            FileService.validate_extension("cv.docx", RESUME_EXTENSIONS, field="resume")


class TestResumeSizeGate:
    def test_one_byte_over_is_rejected(self, files, make_upload):
        upload = make_upload("cv.pdf", b"", size=5_242_881)

        with pytest.raises(FileTooLargeError) as exc_info:
            files.check_resume(upload)

        assert exc_info.value.message == "Resume file size exceeds allowed size (5MB)."
        assert exc_info.value.size == 5_242_881
        assert exc_info.value.limit == LIMIT

    def test_exactly_at_limit_passes(self, files, make_upload):
        files.check_resume(make_upload("cv.pdf", b"", size=5_242_880))

    @pytest.mark.asyncio
    async def test_oversized_resume_is_never_read(self, files, make_upload):
        upload = make_upload("cv.pdf", b"", size=LIMIT + 1)

        with pytest.raises(FileTooLargeError):
            await files.extract_resume_text(upload)

        upload.reader.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_undeclared_size_is_measured_after_read(self, files, make_upload):
        upload = make_upload("cv.pdf", b"x" * (LIMIT + 1), declare_size=False)

        with pytest.raises(FileTooLargeError):
            await files.extract_resume_text(upload)

        upload.reader.assert_awaited_once()


class TestResumeText:
    @pytest.mark.asyncio
    async def test_extracts_text(self, files, make_upload):
        upload = make_upload("cv.pdf", b"%PDF-1.4")

        with patch.object(FileService, "extract_pdf_text", return_value="Jane Doe\nPython"):
            assert await files.extract_resume_text(upload) == "Jane Doe\nPython"

    @pytest.mark.asyncio
    async def test_blank_pdf_has_no_text(self, files, make_upload):
        upload = make_upload("cv.pdf", blank_pdf())

        with pytest.raises(UnsupportedFileError) as exc_info:
            await files.extract_resume_text(upload)

        assert "No readable text" in exc_info.value.message

    def test_broken_pdf(self):
        with pytest.raises(UnsupportedFileError):
            FileService.extract_pdf_text(b"this is not a pdf")


class TestImages:
    @pytest.mark.asyncio
    async def test_reads_valid_image(self, files, make_upload):
        assert await files.read_image(make_upload("a.png", b"\x89PNG")) == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_empty_image_rejected(self, files, make_upload):
        with pytest.raises(UnsupportedFileError):
            await files.read_image(make_upload("a.png", b""))

    @pytest.mark.asyncio
    async def test_large_image_rejected_before_read(self, files, make_upload):
        upload = make_upload("a.png", b"", size=10 * 1024 * 1024 + 1)

        with pytest.raises(FileTooLargeError) as exc_info:
            await files.read_image(upload)

        assert "10MB" in exc_info.value.message
        upload.reader.assert_not_awaited()
