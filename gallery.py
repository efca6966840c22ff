"""Paginated gallery listing."""
from dataclasses import dataclass, field
from typing import Optional

from database import MetadataStore
from errors import BadRequest
from models import ImageRecord
from utils import MAX_SQL_INT


@dataclass
class GalleryPage:
    """View model handed to the gallery template and the JSON API."""
    images: list[ImageRecord] = field(default_factory=list)
    page: int = 1
    per: int = 12
    total: int = 0
    album: str = ""

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.per))

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page * self.per < self.total


class GalleryService:
    def __init__(self, store: MetadataStore, max_per: int = 100):
        self.store = store
        self.max_per = max_per

    def list_images(
        self, page: int, per: int, album: Optional[str] = None
    ) -> tuple[list[ImageRecord], int]:
        """Records newest first for ``page`` plus the total under the same filter."""
        if page < 1 or per < 1:
            raise BadRequest("invalid pagination")
        per = min(per, self.max_per)
        offset = (page - 1) * per
        if offset > MAX_SQL_INT:
            raise BadRequest("page out of range")
        images = self.store.list_images(offset, per, album or None)
        total = self.store.count_images(album or None)
        return images, total

    def build_page(self, page: int, per: int, album: Optional[str] = None) -> GalleryPage:
        per = min(per, self.max_per)
        images, total = self.list_images(page, per, album)
        return GalleryPage(images=images, page=page, per=per, total=total, album=album or "")
