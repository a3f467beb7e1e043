import os
import tempfile

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="photowalk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.sqlite3')}"
os.environ["STATIC_DIR"] = os.path.join(_TMP_DIR, "static")


@pytest.fixture(autouse=True, scope="session")
def setup_test_db():
    import asyncio

    # No credentials: every gateway starts on its fallback path
    from photowalk.config import settings
    settings.api_key = ""
    settings.openai_api_key = ""
    settings.mapbox_access_token = ""
    settings.cloudinary_cloud_name = ""
    settings.cloudinary_api_key = ""
    settings.cloudinary_api_secret = ""
    settings.batch_upload_pause_seconds = 0

    from photowalk.database import create_tables

    asyncio.run(create_tables())


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    from photowalk.main import app

    yield
    app.dependency_overrides.clear()
