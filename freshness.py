"""Conditional-GET file responses (weak ETag + Last-Modified)."""
import os
import stat as stat_module
from datetime import timezone
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from typing import Mapping, Optional

from fastapi import Request
from fastapi.responses import FileResponse, Response

from errors import NotFound

DEFAULT_MAX_AGE = 24 * 60 * 60


def weak_etag(st: os.stat_result) -> str:
    return f'W/"{st.st_size}-{int(st.st_mtime)}"'


def _opaque(tag: str) -> str:
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def etag_matches(if_none_match: str, etag: str) -> bool:
    """Weak comparison of ``etag`` against an If-None-Match list."""
    wanted = _opaque(etag)
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*" or _opaque(candidate) == wanted:
            return True
    return False


def not_modified_since(if_modified_since: str, mtime: float) -> bool:
    """True when ``mtime`` is earlier than the header time plus one second."""
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError, IndexError):
        return False
    if since is None:
        return False
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return mtime < since.timestamp() + 1


def is_not_modified(st: os.stat_result, headers: Mapping[str, str]) -> bool:
    if_none_match = headers.get("if-none-match")
    if if_none_match and etag_matches(if_none_match, weak_etag(st)):
        return True
    if_modified_since = headers.get("if-modified-since")
    if if_modified_since and not_modified_since(if_modified_since, st.st_mtime):
        return True
    return False


def cache_headers(st: os.stat_result, max_age: int = DEFAULT_MAX_AGE) -> dict:
    return {
        "Cache-Control": f"public, max-age={max_age}",
        "Last-Modified": formatdate(st.st_mtime, usegmt=True),
        "ETag": weak_etag(st),
    }


def serve_with_caching(
    request: Request, path: Path, max_age: Optional[int] = None
) -> Response:
    """Serve ``path`` with caching headers, answering 304 when the client is fresh."""
    try:
        st = os.stat(path)
    except OSError:
        raise NotFound("Not found")
    if not stat_module.S_ISREG(st.st_mode):
        raise NotFound("Not found")

    headers = cache_headers(st, DEFAULT_MAX_AGE if max_age is None else max_age)
    if is_not_modified(st, request.headers):
        return Response(status_code=304, headers=headers)
    return FileResponse(path, headers=headers, stat_result=st)
