"""Filesystem blob store for originals and renditions."""
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from errors import BadRequest
from utils import resolve_under_root

COPY_CHUNK = 256 * 1024


class UploadTooLarge(BadRequest):
    """Upload exceeded the configured size limit."""


class BlobStore:
    """Two flat directories keyed by filename: originals and thumbnails."""

    def __init__(self, images_dir: Path, thumbs_dir: Path):
        self.images_dir = Path(images_dir)
        self.thumbs_dir = Path(thumbs_dir)

    def ensure_dirs(self) -> None:
        for d in (self.images_dir, self.thumbs_dir):
            d.mkdir(parents=True, exist_ok=True)

    def image_path(self, filename: str) -> Path:
        return resolve_under_root(self.images_dir, filename)

    def thumb_path(self, filename: str) -> Path:
        return resolve_under_root(self.thumbs_dir, filename)

    @contextmanager
    def atomic_writer(self, target: Path) -> Iterator[BinaryIO]:
        """Yield a temp file next to ``target``; rename onto it on success.

        Readers never observe a partially written file at ``target``. On any
        exception the temp file is removed and the exception propagates.
        """
        fd, tmp_name = tempfile.mkstemp(
            dir=str(target.parent), prefix=".tmp-", suffix=".part"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                yield fh
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def save_image(self, stream: BinaryIO, filename: str, limit: Optional[int] = None) -> Path:
        """Copy ``stream`` into the images directory as ``filename``."""
        target = self.image_path(filename)
        with self.atomic_writer(target) as out:
            if limit is None:
                shutil.copyfileobj(stream, out, COPY_CHUNK)
            else:
                written = 0
                while True:
                    chunk = stream.read(COPY_CHUNK)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise UploadTooLarge(
                            f"file too big (max {limit // 1024 // 1024} MiB)"
                        )
                    out.write(chunk)
        return target

    def thumbs_for(self, source_filename: str) -> list[Path]:
        """Renditions derived from ``source_filename`` (``WxH_<name>``)."""
        suffix = f"_{source_filename}"
        found = []
        for p in self.thumbs_dir.iterdir():
            if not p.name.endswith(suffix):
                continue
            prefix = p.name[: -len(suffix)]
            w, sep, h = prefix.partition("x")
            if sep and w.isdigit() and h.isdigit():
                found.append(p)
        return found
