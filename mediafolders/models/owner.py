"""Owner and RemoteTarget models.

An owner is the tenant whose folders live under ``<base_path>/<login>`` on
exactly one remote target.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class RemoteTarget(Base):
    """A remote host/account that physically stores owners' files."""

    __tablename__ = "remote_targets"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False, default=22)
    username = Column(String(100), nullable=False, default="streaming")
    key_file = Column(String(500), nullable=True)

    # NULL = settings.remote_base_path
    base_path = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Owner(Base):
    """Tenant owning a set of folders and media records."""

    __tablename__ = "owners"

    id = Column(Integer, primary_key=True)
    login = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)

    # Streaming profile, drives the owner's remote directory structure
    bitrate = Column(Integer, nullable=False, default=2500)
    viewer_limit = Column(Integer, nullable=False, default=100)
    recording_enabled = Column(Boolean, nullable=False, default=True)

    # NULL = settings.default_remote_target_id
    remote_target_id = Column(Integer, ForeignKey("remote_targets.id"), nullable=True)

    # NULL = settings.default_quota_mb
    quota_mb = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    remote_target = relationship("RemoteTarget")

    @property
    def remote_login(self) -> str:
        """Directory name of the owner's tree on the remote target."""
        if self.login:
            return self.login
        if self.email and "@" in self.email:
            return self.email.split("@")[0]
        return f"user_{self.id}"
