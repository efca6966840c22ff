"""Upload ingestion: store the blob, then the metadata row."""
import os
from typing import BinaryIO, Optional

from loguru import logger

from blobstore import BlobStore
from database import MetadataStore
from errors import StoreError
from models import ImageRecord, new_id, now_epoch
from utils import base_name


def extension_for(filename_hint: Optional[str], default: str) -> str:
    """Lower-cased extension of the hint's base name, or ``default``."""
    ext = os.path.splitext(base_name(filename_hint or ""))[1].lower()
    if ext in ("", "."):
        return default
    return ext


class IngestionService:
    def __init__(
        self,
        blobs: BlobStore,
        store: MetadataStore,
        max_upload_size: int,
        default_extension: str = ".jpg",
    ):
        self.blobs = blobs
        self.store = store
        self.max_upload_size = max_upload_size
        self.default_extension = default_extension

    def ingest(
        self,
        stream: BinaryIO,
        filename_hint: Optional[str],
        title: Optional[str] = None,
        album: Optional[str] = None,
    ) -> ImageRecord:
        """Store an upload under a fresh ``{uuid}{ext}`` name and record it.

        A metadata failure after the blob is written is logged only; the blob
        stays orphaned and the caller still gets the record.
        """
        image_id = new_id()
        filename = f"{image_id}{extension_for(filename_hint, self.default_extension)}"
        self.blobs.save_image(stream, filename, limit=self.max_upload_size)

        record = ImageRecord(
            id=image_id,
            filename=filename,
            title=(title or "").strip(),
            album=(album or "").strip(),
            created_at=now_epoch(),
        )
        try:
            self.store.add(record)
        except StoreError:
            logger.exception(f"db insert failed for {filename}; blob left orphaned")
        else:
            logger.info(f"ingested {filename} (album={record.album!r})")
        return record
