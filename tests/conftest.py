"""Shared test fixtures for all tests."""
import os
import io
import csv
import tempfile

# Test settings must be in place before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="catalog-test-logs-")

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from PIL import Image

from catalog.core.config import settings
from catalog.core.database import Base, build_engine, get_db
from catalog.main import app
from catalog.api.v1.products import get_image_resolver
from catalog.schemas.product import ProductCreate
from catalog.services.catalog import ProductCatalog
from catalog.services.images import ImageResolver
from catalog.services.normalizer import CSV_FIELDS


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, content: bytes = b"", headers: dict = None):
        self.status_code = status_code
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeHTTPSession:
    """Serves canned responses per URL; unknown URLs fail to connect."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url: str, response):
        self.routes[url] = response

    def get(self, url, timeout=None):
        self.calls.append(url)
        response = self.routes.get(url)
        if response is None:
            raise requests.ConnectionError(f"Failed to establish a new connection: {url}")
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory SQLite database for each test."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def catalog(test_db):
    return ProductCatalog(test_db)


@pytest.fixture
def fake_http():
    return FakeHTTPSession()


@pytest.fixture
def image_resolver(fake_http):
    return ImageResolver(session=fake_http, default_mime="image/jpeg")


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Upload directory used for temporary import files."""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture(scope="function")
def client(test_db, image_resolver, upload_dir):
    """Create a test client with dependency overrides."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_resolver] = lambda: image_resolver
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes():
    """A tiny valid PNG image."""
    buf = io.BytesIO()
    Image.new("RGB", (2, 2), color="red").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_csv():
    """Build CSV upload bytes from a list of row dicts."""
    def _make(rows, fields=CSV_FIELDS):
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=fields, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
        return buf.getvalue().encode("utf-8")
    return _make


@pytest.fixture
def sample_products(catalog):
    """Create sample products for testing."""
    products = [
        ProductCreate(name="Whole Milk 1L", unit="bottle", category="Dairy", brand="Pinar", stock=5),
        ProductCreate(name="Dark Chocolate", unit="bar", category="Snacks", brand="Ulker", stock=0),
        ProductCreate(name="Strained Yogurt", unit="cup", category="Dairy", brand="Sutas", stock=12),
    ]
    return [catalog.insert(p) for p in products]


@pytest.fixture
def fake_response():
    """Factory for canned HTTP responses."""
    return FakeResponse
