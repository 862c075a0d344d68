"""Space-used accounting from the catalog and the remote store.

The two sources disagree by nature: the catalog only knows ingested media,
the remote directory also holds files that were never ingested. The
reported figure is the larger of the two.
"""

import math
from dataclasses import dataclass
from typing import Optional

BYTES_PER_MB = 1024 * 1024


def bytes_to_mb(size_bytes: int) -> int:
    """Whole megabytes, rounded up."""
    if size_bytes <= 0:
        return 0
    return math.ceil(size_bytes / BYTES_PER_MB)


@dataclass(frozen=True)
class UsageReport:
    catalog_mb: int
    remote_mb: int
    reported_mb: int
    percent_of_quota: int
    quota_mb: int


def compute_usage(catalog_mb: int, remote_bytes: Optional[int], quota_mb: int) -> UsageReport:
    """Reconcile catalog and remote usage for one folder.

    Args:
        catalog_mb: Sum of ingested media sizes, in MB.
        remote_bytes: Remote directory size, or ``None`` when the remote
            could not be queried.
        quota_mb: Owner quota in MB.
    """
    remote_mb = bytes_to_mb(remote_bytes) if remote_bytes is not None else 0
    reported_mb = max(catalog_mb, remote_mb)
    percent = round(reported_mb / quota_mb * 100) if quota_mb > 0 else 0
    return UsageReport(
        catalog_mb=catalog_mb,
        remote_mb=remote_mb,
        reported_mb=reported_mb,
        percent_of_quota=percent,
        quota_mb=quota_mb,
    )
