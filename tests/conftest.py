import os
import sys

import pytest

# Ensure repo root on sys.path for imports like `pathshala...`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
TESTS = os.path.dirname(__file__)
if TESTS not in sys.path:
    sys.path.insert(0, TESTS)

from fastapi.testclient import TestClient  # noqa: E402

from fakestore import FakeIdentityProvider, FakeStorageClient, FakeStore  # noqa: E402
from pathshala.core.config import Settings  # noqa: E402
from pathshala.main import create_app  # noqa: E402
from pathshala.storage.upload import StorageUploader  # noqa: E402

ADMIN_EMAIL = "admin@admin.com"
STUDENT_EMAIL = "rahim@example.com"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    s = Settings()
    s.admin_email = ADMIN_EMAIL
    s.session_ttl_hours = 24
    s.binding_poll_seconds = 0
    s.step_retries = 2
    s.query_timeout = 1.0
    s.timezone = "Asia/Dhaka"
    return s


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def identity():
    provider = FakeIdentityProvider()
    provider.add(ADMIN_EMAIL, "admin-pass", "admin-1")
    provider.add(STUDENT_EMAIL, "student-pass", "student-1")
    return provider


@pytest.fixture
def storage_client():
    return FakeStorageClient()


@pytest.fixture
def uploader(storage_client):
    async def factory():
        return storage_client

    return StorageUploader(factory, bucket="uploads", timeout=5)


@pytest.fixture
def client(settings, store, identity, uploader):
    app = create_app(settings, store=store, identity=identity, uploader=uploader)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(identity):
    return {"Authorization": f"Bearer {identity.token_for(ADMIN_EMAIL)}"}


@pytest.fixture
def student_headers(identity):
    return {"Authorization": f"Bearer {identity.token_for(STUDENT_EMAIL)}"}


@pytest.fixture
async def registry(store):
    from pathshala.db.binding import BindingRegistry

    reg = BindingRegistry(store)
    yield reg
    await reg.close()
