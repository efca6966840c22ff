"""FastAPI routes for the photo gallery."""
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from fastapi import File, Form, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from errors import BadRequest
from freshness import serve_with_caching
from gallery import GalleryPage
from models import ImageRecord
from thumbnails import parse_size
from utils import MAX_SQL_INT, atoi_default


def fmt_datetime(value):
    """Format epoch seconds or a datetime for templates."""
    try:
        if isinstance(value, (int, float)):
            value = datetime.fromtimestamp(value, tz=timezone.utc)
        return value.strftime("%Y-%m-%d %H:%M:%S")
    except (AttributeError, OverflowError, OSError, ValueError):
        return str(value)


def render(request: Request, name: str, view: GalleryPage, **ctx) -> HTMLResponse:
    """Render template with the gallery view model."""
    template = request.app.state.templates.get_template(name)
    default_per = request.app.state.settings.default_per

    # helpers
    def pager_url(page: int) -> str:
        params = {}
        if view.album:
            params["album"] = view.album
        if view.per != default_per:
            params["per"] = view.per
        params["page"] = page
        return f"/?{urlencode(params)}"

    ctx.setdefault("title", request.app.state.settings.app_name)
    ctx.setdefault("pager_url", pager_url)
    ctx.setdefault("thumb_size", request.app.state.settings.gallery_thumb_size)
    return HTMLResponse(template.render(view=view, **ctx))


def _page_from_query(request: Request, page: Optional[str], per: Optional[str], album: Optional[str]) -> GalleryPage:
    # invalid or non-positive values fall back to defaults
    settings = request.app.state.settings
    page_no = atoi_default(page, 1)
    per_page = min(atoi_default(per, settings.default_per), settings.max_per)
    if (page_no - 1) * per_page > MAX_SQL_INT:
        page_no = 1
    return request.app.state.gallery.build_page(
        page_no,
        per_page,
        (album or "").strip() or None,
    )


def image_json(img: ImageRecord, thumb_size: str) -> dict:
    return {
        "id": img.id,
        "filename": img.filename,
        "title": img.title or "",
        "album": img.album or "",
        "created_at": img.created.isoformat(),
        "url": f"/images/{img.filename}",
        "thumbnail_url": f"/thumb/{thumb_size}/{img.filename}",
    }


def index(
    request: Request,
    page: Optional[str] = Query(None),
    per: Optional[str] = Query(None),
    album: Optional[str] = Query(None),
):
    """Paginated HTML gallery."""
    view = _page_from_query(request, page, per, album)
    return render(request, "gallery.html", view)


def api_images(
    request: Request,
    page: Optional[str] = Query(None),
    per: Optional[str] = Query(None),
    album: Optional[str] = Query(None),
):
    """Paginated JSON listing."""
    view = _page_from_query(request, page, per, album)
    thumb_size = request.app.state.settings.gallery_thumb_size
    return {
        "page": view.page,
        "per": view.per,
        "total": view.total,
        "images": [image_json(img, thumb_size) for img in view.images],
    }


def upload(
    request: Request,
    image: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    album: Optional[str] = Form(None),
):
    """Store an uploaded image and go back to the gallery."""
    if image is None or (not image.filename and not image.size):
        raise BadRequest("image required")
    request.app.state.ingest.ingest(image.file, image.filename, title=title, album=album)
    return RedirectResponse("/", 303)


def thumbnail(request: Request, size: str, filename: str):
    """Fetch-or-create a ``WxH`` thumbnail and serve it with caching headers."""
    settings = request.app.state.settings
    width, height = parse_size(size, settings.max_thumb_dimension)
    path = request.app.state.thumbnails.get_or_create(filename, width, height)
    return serve_with_caching(request, path, settings.cache_max_age)


def original(request: Request, filename: str):
    """Serve an original upload."""
    path = request.app.state.blobs.image_path(filename)
    return serve_with_caching(request, path, request.app.state.settings.cache_max_age)


def thumb_file(request: Request, filename: str):
    """Serve an already generated rendition."""
    path = request.app.state.blobs.thumb_path(filename)
    return serve_with_caching(request, path, request.app.state.settings.cache_max_age)


def health(request: Request):
    return {"status": "healthy", "service": request.app.state.settings.app_name}
