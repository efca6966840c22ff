"""Metadata store: SQLModel engine and image queries."""
from contextlib import contextmanager
from typing import Optional

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from sqlmodel import Session, SQLModel, create_engine, select

from errors import StoreError
from models import ImageRecord


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across worker threads."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


class MetadataStore:
    """Image records, queried newest first with an optional album filter."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def get_session(self):
        """Get a database session; SQLAlchemy errors become StoreError."""
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"metadata store error: {e}")
            raise StoreError("db error") from e

    def init_db(self) -> None:
        """Initialize database tables."""
        SQLModel.metadata.create_all(self.engine)

    def add(self, record: ImageRecord) -> ImageRecord:
        with self.get_session() as s:
            s.add(record)
            s.commit()
        return record

    def get(self, image_id: str) -> Optional[ImageRecord]:
        with self.get_session() as s:
            return s.get(ImageRecord, image_id)

    @staticmethod
    def _filtered(stmt, album: Optional[str]):
        if album:
            stmt = stmt.where(ImageRecord.album == album)
        return stmt

    def list_images(self, offset: int, limit: int, album: Optional[str] = None) -> list[ImageRecord]:
        stmt = self._filtered(select(ImageRecord), album).order_by(
            ImageRecord.created_at.desc(), ImageRecord.id
        )
        with self.get_session() as s:
            return list(s.exec(stmt.offset(offset).limit(limit)).all())

    def count_images(self, album: Optional[str] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(ImageRecord), album)
        with self.get_session() as s:
            return s.exec(stmt).one()
