"""Rewriting of media references when a folder is renamed.

A media record references a folder through the consecutive path components
``<login>/<folder>`` in its ``url`` or ``path``. Matching is done on whole
components, so renaming ``clips`` never touches ``.../alice/clips2/...`` or
``.../bob/clips/...``.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy.orm import Session

from ..repositories.media_repository import MediaRepository

logger = logging.getLogger(__name__)


def _split_location(value: str):
    """Split *value* into (prefix, path, suffix) so only the path is rewritten."""
    parts = urlsplit(value)
    if parts.scheme and parts.netloc:
        prefix = urlunsplit((parts.scheme, parts.netloc, "", "", ""))
        suffix = urlunsplit(("", "", "", parts.query, parts.fragment))
        return prefix, parts.path, suffix
    return "", value, ""


def references_folder(value: Optional[str], login: str, folder: str) -> bool:
    """True if *value* contains ``login/folder`` as consecutive path components."""
    if not value:
        return False
    _, path, _ = _split_location(value)
    segments = path.split("/")
    return any(
        segments[i] == login and segments[i + 1] == folder
        for i in range(len(segments) - 1)
    )


def rewrite_reference(value: Optional[str], login: str, old: str, new: str) -> Optional[str]:
    """Replace every ``login/old`` component pair in *value* with ``login/new``."""
    if not value:
        return value
    prefix, path, suffix = _split_location(value)
    segments = path.split("/")
    changed = False
    for i in range(len(segments) - 1):
        if segments[i] == login and segments[i + 1] == old:
            segments[i + 1] = new
            changed = True
    if not changed:
        return value
    return prefix + "/".join(segments) + suffix


class PathRewriter:
    """Apply folder renames to the owner's media records."""

    def __init__(self, db: Session, media_repo: Optional[MediaRepository] = None):
        self.db = db
        self.media_repo = media_repo or MediaRepository(db)

    def rewrite(self, owner_id: int, login: str, old: str, new: str) -> int:
        """Rewrite references of *owner_id* from folder *old* to *new*.

        Returns the number of records changed. Other owners' records are never
        loaded.
        """
        if old == new:
            return 0

        records = self.media_repo.list_referencing(owner_id, login, old)
        for record in records:
            record.url = rewrite_reference(record.url, login, old, new)
            record.path = rewrite_reference(record.path, login, old, new)

        if records:
            self.db.commit()
        logger.info(
            "Media references rewritten",
            extra={"owner_id": owner_id, "old_folder": old, "new_folder": new, "rows": len(records)},
        )
        return len(records)
