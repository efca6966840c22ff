"""On-demand thumbnail cache.

The derived filename ``{width}x{height}_{source}`` is the cache key and the
thumbs directory is the cache index: a file at that path is a valid rendition.
Renditions are never checked against the source's mtime, so replacing an
original in place keeps serving stale thumbnails until ``purge`` is called.
"""
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from PIL import Image as PILImage, ImageOps

from blobstore import BlobStore
from errors import BadRequest, InternalError, NotFound
from utils import base_name

SIZE_RE = re.compile(r"(\d+)x(\d+)")
JPEG_QUALITY = 88
NAME_MAX = 255


def parse_size(size: str, max_dimension: int = 0) -> tuple[int, int]:
    """Parse ``"WxH"`` into positive ints; anything else is a BadRequest."""
    m = SIZE_RE.fullmatch(size or "")
    if not m:
        raise BadRequest("invalid size")
    width, height = int(m.group(1)), int(m.group(2))
    if width <= 0 or height <= 0:
        raise BadRequest("invalid size numbers")
    if max_dimension and (width > max_dimension or height > max_dimension):
        raise BadRequest(f"size exceeds {max_dimension}px")
    return width, height


@dataclass(frozen=True)
class ThumbnailKey:
    source_filename: str
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise BadRequest("invalid size numbers")
        object.__setattr__(self, "source_filename", base_name(self.source_filename))

    @property
    def filename(self) -> str:
        return f"{self.width}x{self.height}_{self.source_filename}"


def _output_format(target: Path, source_format):
    fmt = PILImage.registered_extensions().get(target.suffix.lower())
    return fmt or source_format or "JPEG"


def render_thumbnail(source: Path, key: ThumbnailKey, out) -> None:
    """Decode ``source``, fit it into the key's box and encode into ``out``.

    ``Image.thumbnail`` only ever shrinks and keeps the aspect ratio.
    """
    with PILImage.open(source) as im:
        source_format = im.format
        im = ImageOps.exif_transpose(im)
        im.thumbnail((key.width, key.height), PILImage.Resampling.LANCZOS)
        fmt = _output_format(Path(key.filename), source_format)
        params = {}
        if fmt == "JPEG":
            if im.mode not in ("RGB", "L"):
                im = im.convert("RGB")
            params["quality"] = JPEG_QUALITY
        im.save(out, format=fmt, **params)


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


class ThumbnailCache:
    """Get-or-create renditions, with per-key single-flight generation."""

    def __init__(self, blobs: BlobStore, max_dimension: int = 0):
        self.blobs = blobs
        self.max_dimension = max_dimension
        self._guard = threading.Lock()
        self._inflight: dict[str, list] = {}  # derived name -> [lock, refcount]

    def _acquire(self, name: str) -> threading.Lock:
        with self._guard:
            entry = self._inflight.setdefault(name, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        return entry[0]

    def _release(self, name: str, lock: threading.Lock) -> None:
        lock.release()
        with self._guard:
            entry = self._inflight[name]
            entry[1] -= 1
            if entry[1] == 0:
                del self._inflight[name]

    def get_or_create(self, source_filename: str, width: int, height: int) -> Path:
        if self.max_dimension and (width > self.max_dimension or height > self.max_dimension):
            raise BadRequest(f"size exceeds {self.max_dimension}px")
        key = ThumbnailKey(source_filename, width, height)
        if len(key.filename.encode("utf-8")) > NAME_MAX:
            raise NotFound("Not found")
        thumb_path = self.blobs.thumb_path(key.filename)
        if _is_file(thumb_path):
            logger.debug(f"thumbnail hit {key.filename}")
            return thumb_path

        source = self.blobs.image_path(key.source_filename)
        if not _is_file(source):
            raise NotFound("Not found")

        lock = self._acquire(key.filename)
        try:
            # another request may have finished it while we waited
            if _is_file(thumb_path):
                return thumb_path
            self._generate(source, key, thumb_path)
        finally:
            self._release(key.filename, lock)
        return thumb_path

    def _generate(self, source: Path, key: ThumbnailKey, thumb_path: Path) -> None:
        start = time.time()
        try:
            with self.blobs.atomic_writer(thumb_path) as out:
                render_thumbnail(source, key, out)
        except (OSError, ValueError, KeyError, PILImage.DecompressionBombError) as e:
            logger.error(f"thumbnail {key.filename} failed: {e}")
            raise InternalError("thumbnail generation failed") from e
        logger.info(f"generated {key.filename} in {(time.time() - start) * 1000:.1f}ms")

    def purge(self, source_filename: str) -> int:
        """Delete every rendition of ``source_filename``; returns the count."""
        removed = 0
        for p in self.blobs.thumbs_for(base_name(source_filename)):
            p.unlink(missing_ok=True)
            removed += 1
        if removed:
            logger.info(f"purged {removed} thumbnail(s) of {source_filename}")
        return removed
