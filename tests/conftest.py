"""Shared fixtures: settings and services rooted in a temp directory."""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage

from app import create_app
from blobstore import BlobStore
from config import Settings
from database import MetadataStore, make_engine


def image_bytes(size=(400, 200), fmt="PNG", mode="RGB", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    PILImage.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        images_dir=tmp_path / "images",
        thumbs_dir=tmp_path / "thumbs",
        database_url=f"sqlite:///{tmp_path / 'gallery.db'}",
        templates_dir=tmp_path / "templates",
        static_dir=tmp_path / "static",
        log_level="WARNING",
        log_dir=None,
    )


@pytest.fixture
def blobs(settings):
    store = BlobStore(settings.images_dir, settings.thumbs_dir)
    store.ensure_dirs()
    return store


@pytest.fixture
def store(settings):
    metadata = MetadataStore(make_engine(settings.database_url))
    metadata.init_db()
    return metadata


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def encode_image():
    """Return the ``image_bytes`` helper for tests that need raw bytes."""
    return image_bytes


@pytest.fixture
def make_image(blobs):
    """Write a generated image into the images directory."""
    def _make(name: str, **kwargs):
        path = blobs.images_dir / name
        path.write_bytes(image_bytes(**kwargs))
        return path
    return _make
