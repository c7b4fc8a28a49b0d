"""
QuickGen Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the test suite.
How:   Environment overrides are applied before quickgen is imported, so
       the settings singleton never sees production credentials.

Fixtures:
    mock_db_session    AsyncMock standing in for AsyncSession
    free_user          UserContext on the free plan (usage 0)
    premium_user       UserContext on the premium plan
    make_upload        Builds UploadedFile objects with a tracked reader
    test_client        httpx AsyncClient bound to the ASGI app
"""

import os
import tempfile

# Override settings for testing BEFORE any quickgen imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="quickgen_test_"), "test.db"
)
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["CLIPDROP_API_KEY"] = "test-clipdrop-key"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-cloudinary-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-cloudinary-secret"
os.environ["CLERK_SECRET_KEY"] = "sk_test_not_real"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from quickgen.schemas.creation import Plan, UserContext  # noqa: E402
from quickgen.services.file_service import UploadedFile  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [...]
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def free_user():
    return UserContext(user_id="user_free", plan=Plan.FREE, free_usage=0)


@pytest.fixture
def premium_user():
    return UserContext(user_id="user_premium", plan=Plan.PREMIUM, free_usage=0)


@pytest.fixture
def make_upload():
    """
    Factory for UploadedFile test doubles.

    The reader is an AsyncMock so tests can assert whether the content was
    ever read.
    """

    def _make(
        filename: str = "resume.pdf",
        content: bytes = b"%PDF-1.4",
        size: Optional[int] = None,
        declare_size: bool = True,
    ) -> UploadedFile:
        declared = size if size is not None else len(content)
        return UploadedFile(
            filename=filename,
            size=declared if declare_size else None,
            content_type=None,
            reader=AsyncMock(return_value=content),
        )

    return _make


@pytest_asyncio.fixture
async def test_client():
    """
    HTTP client for endpoint tests; no server is started.

    Dependency overrides registered by a test are cleared afterwards.
    """
    from quickgen.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
