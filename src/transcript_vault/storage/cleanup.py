"""
Orphan blob sweep.

An upload whose metadata insert fails leaves its blob behind, and so can an
interrupted delete. This module finds blobs under the key prefix that no
metadata row references and removes those older than a retention window.
It runs outside the storage engine, e.g. from the CLI or a scheduler.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from transcript_vault import dates
from transcript_vault.errors import StorageError
from transcript_vault.logger import get_default_logger
from transcript_vault.storage.blob import BlobObject, BlobStore
from transcript_vault.storage.index import MetadataIndex


logger = get_default_logger()


DEFAULT_ORPHAN_MIN_AGE_DAYS = 30


@dataclass
class SweepReport:
    """Outcome of an orphan sweep."""
    scanned: int = 0
    orphans: List[BlobObject] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def orphan_count(self) -> int:
        return len(self.orphans)

    def summary(self) -> str:
        action = "would delete" if self.dry_run else "deleted"
        return (
            f"Scanned {self.scanned} blob(s), found {self.orphan_count} orphan(s), "
            f"{action} {len(self.orphans) if self.dry_run else len(self.deleted)}, "
            f"failed {len(self.failed)}"
        )


def find_orphan_blobs(
    blob_store: BlobStore,
    index: MetadataIndex,
    prefix: str = "",
    min_age_days: int = DEFAULT_ORPHAN_MIN_AGE_DAYS,
    now: Optional[str] = None,
) -> List[BlobObject]:
    """
    List unreferenced blobs at least `min_age_days` old.

    Args:
        blob_store: Blob store to scan
        index: Metadata index holding the referenced keys
        prefix: Only consider keys starting with this prefix
        min_age_days: Minimum age in whole days (0 includes fresh blobs)
        now: Reference time in database form (default: current time)

    Returns:
        Orphaned blobs sorted by key
    """
    if min_age_days < 0:
        raise ValueError(f"min_age_days must be non-negative, got {min_age_days}")

    reference = now or dates.now()
    referenced = index.blob_keys()

    orphans = []
    for blob in blob_store.list(prefix):
        if blob.key in referenced:
            continue
        if dates.days_between(blob.uploaded_at, reference) < min_age_days:
            continue
        orphans.append(blob)

    return orphans


def sweep_orphan_blobs(
    blob_store: BlobStore,
    index: MetadataIndex,
    prefix: str = "",
    min_age_days: int = DEFAULT_ORPHAN_MIN_AGE_DAYS,
    dry_run: bool = False,
    now: Optional[str] = None,
) -> SweepReport:
    """
    Delete unreferenced blobs older than the retention window.

    Failures to delete individual blobs are recorded in the report rather
    than aborting the sweep.
    """
    report = SweepReport(dry_run=dry_run)
    report.scanned = len(blob_store.list(prefix))
    report.orphans = find_orphan_blobs(blob_store, index, prefix, min_age_days, now)

    if dry_run:
        logger.info(f"Dry run: {report.orphan_count} orphan blob(s) under {prefix!r}")
        return report

    for blob in report.orphans:
        try:
            blob_store.delete(blob.key)
        except StorageError as e:
            logger.error(f"Failed to delete orphan blob {blob.key}: {e.message}")
            report.failed.append(blob.key)
            continue
        report.deleted.append(blob.key)

    logger.info(report.summary())
    return report
