"""Repository for media records, queried by the folder they reference."""

from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.media import MediaRecord
from ..services.usage import bytes_to_mb


class MediaRepository:
    """Data access layer for media records.

    The catalog has no folder foreign key, so folder membership is a text
    match. SQL narrows candidates with an escaped ``LIKE``; the final decision
    is made on whole path components in Python.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_referencing(self, owner_id: int, login: str, folder_name: str) -> List[MediaRecord]:
        """All of *owner_id*'s records located in ``login/folder_name``."""
        # Imported here: path_rewriter imports this module.
        from ..services.path_rewriter import references_folder

        needle = f"{login}/{folder_name}"
        candidates = (
            self.db.query(MediaRecord)
            .filter(MediaRecord.owner_id == owner_id)
            .filter(or_(
                MediaRecord.url.contains(needle, autoescape=True),
                MediaRecord.path.contains(needle, autoescape=True),
            ))
            .order_by(MediaRecord.id)
            .all()
        )
        return [
            record for record in candidates
            if references_folder(record.url, login, folder_name)
            or references_folder(record.path, login, folder_name)
        ]

    def count_referencing(self, owner_id: int, login: str, folder_name: str) -> int:
        return len(self.list_referencing(owner_id, login, folder_name))

    def sum_megabytes(self, owner_id: int, login: str, folder_name: str) -> int:
        """Catalog usage: each record's size rounded up to whole MB, summed."""
        return sum(
            bytes_to_mb(record.size_bytes or 0)
            for record in self.list_referencing(owner_id, login, folder_name)
        )

    def delete_referencing(self, owner_id: int, login: str, folder_name: str) -> int:
        """Purge the folder's records. Returns rows deleted."""
        records = self.list_referencing(owner_id, login, folder_name)
        for record in records:
            self.db.delete(record)
        if records:
            self.db.commit()
        return len(records)

    def count_for_owner(self, owner_id: int) -> int:
        return self.db.query(MediaRecord).filter(MediaRecord.owner_id == owner_id).count()
