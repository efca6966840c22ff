"""
Photo Gallery – upload photos, browse them, get thumbnails on demand (FastAPI + SQLite)

Quick start
-----------
1) python -m venv .venv && source .venv/bin/activate  # or .venv\\Scripts\\activate on Windows
2) pip install -e .
3) python app.py  # auto-writes templates/static, DB and blob directories
4) Open http://localhost:8080

Notes
-----
• Originals are stored under ./images/ as <uuid><ext>; metadata lives in ./gallery.db.
• Thumbnails are cached under ./thumbs/ as <W>x<H>_<original name>. Replacing an
  original in place does not refresh its thumbnails; purge them with
  ThumbnailCache.purge().
• Settings come from GALLERY_* environment variables or a .env file (see config.py).
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

from blobstore import BlobStore
from config import Settings
from database import MetadataStore, make_engine
from errors import GalleryError, gallery_error_handler, validation_error_handler
from gallery import GalleryService
from ingest import IngestionService
from logging_config import configure_logging, log_requests
from routes import (
    api_images,
    fmt_datetime,
    health,
    index,
    original,
    thumb_file,
    thumbnail,
    upload,
)
from templates_static import ensure_assets
from thumbnails import ThumbnailCache


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app with explicitly constructed services on ``app.state``."""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name)

    # Ensure templates and static files exist
    ensure_assets(settings.templates_dir, settings.static_dir)
    templates = Environment(
        loader=FileSystemLoader(str(settings.templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    templates.filters["datetime"] = fmt_datetime

    blobs = BlobStore(settings.images_dir, settings.thumbs_dir)
    blobs.ensure_dirs()

    store = MetadataStore(make_engine(settings.database_url))
    store.init_db()

    app.state.settings = settings
    app.state.templates = templates
    app.state.blobs = blobs
    app.state.store = store
    app.state.thumbnails = ThumbnailCache(blobs, settings.max_thumb_dimension)
    app.state.gallery = GalleryService(store, settings.max_per)
    app.state.ingest = IngestionService(
        blobs, store, settings.max_upload_size, settings.default_extension
    )

    @app.middleware("http")
    async def limit_upload_size(request: Request, call_next):
        """Reject oversized upload bodies before they are parsed."""
        if request.method == "POST" and request.url.path == "/upload":
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > settings.max_upload_size:
                return PlainTextResponse(
                    f"file too big (max {settings.max_upload_size // 1024 // 1024} MiB)",
                    status_code=400,
                )
        return await call_next(request)

    # registered last so it wraps everything
    app.middleware("http")(log_requests)

    app.add_exception_handler(GalleryError, gallery_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Mount static files
    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    # Routes
    app.get("/", response_class=HTMLResponse)(index)
    app.post("/upload")(upload)
    app.get("/thumb/{size}/{filename}")(thumbnail)
    app.get("/api/images")(api_images)
    app.get("/images/{filename}")(original)
    app.get("/thumbs/{filename}")(thumb_file)
    app.get("/health")(health)

    logger.info(
        f"{settings.app_name} ready (images={settings.images_dir}, thumbs={settings.thumbs_dir})"
    )
    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    print(f"→ Open http://{settings.host}:{settings.port}")
    uvicorn.run("app:create_app", factory=True, host=settings.host, port=settings.port)
