"""Database models for the gallery."""
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def new_id() -> str:
    return str(uuid.uuid4())


def now_epoch() -> int:
    return int(time.time())


class ImageRecord(SQLModel, table=True):
    """An uploaded original; ``filename`` is its blob name in the images dir."""
    __tablename__ = "images"

    id: str = Field(default_factory=new_id, primary_key=True)
    filename: str
    title: Optional[str] = ""
    album: Optional[str] = Field(default="", index=True)
    created_at: int = Field(default_factory=now_epoch, index=True, description="Epoch seconds")

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)
