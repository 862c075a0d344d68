"""Media record model."""

from sqlalchemy import Column, String, Text, Integer, BigInteger, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from ..database import Base


class MediaRecord(Base):
    """An ingested media file.

    There is no foreign key to ``folders``: a record belongs to a folder when
    ``url`` or ``path`` contains the components ``<owner login>/<folder name>``.
    """

    __tablename__ = "media"
    __table_args__ = (
        Index("ix_media_owner_id", "owner_id"),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False, default="")

    # e.g. "https://cdn.example.com:1443/vod/alice/summer_clips/intro.mp4"
    url = Column(Text, nullable=True)
    # e.g. "/home/streaming/alice/summer_clips/intro.mp4"
    path = Column(Text, nullable=True)

    size_bytes = Column(BigInteger, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
