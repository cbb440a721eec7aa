import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from photo_ingest.core.config import Settings, get_settings
from photo_ingest.services import storage as storage_service
from photo_ingest.services.storage import ObjectPage, ObjectStore, StoredObject


class DummyStore(ObjectStore):
    """In-memory store that records every call made against it."""

    scheme = "dummy"

    def __init__(self) -> None:
        self.objects: list[StoredObject] = []
        self.puts: list[dict] = []
        self.presigns: list[tuple[str, str, int]] = []
        self.lists: list[dict] = []
        self.put_error: Exception | None = None
        self.presign_error: Exception | None = None
        self.list_error: Exception | None = None
        self.page_size: int | None = None

    @property
    def call_count(self) -> int:
        return len(self.puts) + len(self.presigns) + len(self.lists)

    async def put(self, key, data, content_type, metadata):  # type: ignore[override]
        self.puts.append(
            {"key": key, "data": data, "content_type": content_type, "metadata": metadata}
        )
        if self.put_error:
            raise self.put_error

    def presign_read(self, key, content_type, ttl_seconds):  # type: ignore[override]
        self.presigns.append((key, content_type, ttl_seconds))
        if self.presign_error:
            raise self.presign_error
        return f"https://example.com/get/{key}?ttl={ttl_seconds}"

    async def list(self, prefix=None, cursor=None, limit=None):  # type: ignore[override]
        self.lists.append({"prefix": prefix, "cursor": cursor, "limit": limit})
        if self.list_error:
            raise self.list_error
        items = [obj for obj in self.objects if not prefix or obj.key.startswith(prefix)]
        start = int(cursor) if cursor else 0
        size = limit or self.page_size or len(items) or 1
        page = items[start : start + size]
        next_cursor = str(start + size) if start + size < len(items) else None
        return ObjectPage(items=page, next_cursor=next_cursor)


def make_settings(**overrides) -> Settings:
    values = {"bucket_name": "test-bucket", "region": "us-east-1"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(scope="session", autouse=True)
def configure_environment():
    os.environ.pop("BUCKET_NAME", None)
    os.environ.pop("API_KEY", None)
    os.environ["STORAGE_BACKEND"] = "s3"
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["LOG_LEVEL"] = "DEBUG"
    get_settings.cache_clear()
    storage_service.reset_object_store()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> DummyStore:
    return DummyStore()


@pytest.fixture
def app_factory(store):
    from photo_ingest.main import create_app

    def _build(settings: Settings | None = None, app_store: ObjectStore | None = None):
        return create_app(settings or make_settings(), app_store or store)

    return _build


@pytest.fixture
def app_instance(app_factory, settings):
    return app_factory(settings)


@pytest_asyncio.fixture
async def client(app_instance):
    transport = ASGITransport(app=app_instance)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
