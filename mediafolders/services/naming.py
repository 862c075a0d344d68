"""Folder name normalization.

``sanitize_folder_name`` is total and idempotent: any text maps to a
lowercase token of ``[a-z0-9_]`` that is safe as a single path component.
"""

import re
import unicodedata

# Filesystem NAME_MAX on ext4/xfs.
MAX_FOLDER_NAME_LENGTH = 255

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_]")
_UNDERSCORES = re.compile(r"_+")


def sanitize_folder_name(raw: str) -> str:
    """Return the canonical, filesystem-legal form of *raw*.

    >>> sanitize_folder_name("Summer Clips!")
    'summer_clips'
    """
    if not raw:
        return ""
    text = unicodedata.normalize("NFKD", raw)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower()
    text = _WHITESPACE.sub("_", text)
    text = _DISALLOWED.sub("", text)
    text = _UNDERSCORES.sub("_", text).strip("_")
    return text[:MAX_FOLDER_NAME_LENGTH].rstrip("_")


def was_sanitized(raw: str, sanitized: str) -> bool:
    """True when sanitization changed more than letter case."""
    return sanitized != raw.lower()
