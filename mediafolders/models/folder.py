"""Folder model."""

import uuid

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from ..database import Base

FOLDER_STATUS_ACTIVE = "active"
FOLDER_STATUS_REMOVED = "removed"


def generate_folder_id() -> str:
    """Opaque folder id, never derived from the folder name."""
    return f"fld-{uuid.uuid4().hex}"


class Folder(Base):
    """Catalog row for one logical folder on a remote target.

    The remote directory is authoritative; this row is bookkeeping that can
    lag behind it.
    """

    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("owner_id", "sanitized_name", "remote_target_id", name="uq_folders_owner_name_target"),
        Index("ix_folders_owner_status", "owner_id", "status"),
    )

    # Primary key, immutable across renames
    id = Column(String(50), primary_key=True, default=generate_folder_id)

    owner_id = Column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False)
    remote_target_id = Column(Integer, nullable=False)

    display_name = Column(String(255), nullable=False)
    sanitized_name = Column(String(255), nullable=False)
    remote_path = Column(Text, nullable=False)

    # Derived estimate, refreshed by the info operation
    space_used_mb = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=FOLDER_STATUS_ACTIVE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == FOLDER_STATUS_ACTIVE
