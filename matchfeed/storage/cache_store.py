"""In-memory store of the latest published snapshot per kind.

Writers replace the whole mapping under a lock (copy-on-write); readers take
a reference to the current mapping without locking. A reader therefore sees
either the previous or the new snapshot of a kind, never a mixture, and never
waits for a build.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Mapping, Optional

from ..core.exceptions import CacheNotReady
from ..models.match import Snapshot, SnapshotKind

logger = logging.getLogger(__name__)


class CacheStore:
    """Latest snapshot per kind; absent until the first publish of that kind."""

    def __init__(self):
        self._snapshots: Mapping[SnapshotKind, Snapshot] = {}
        self._published_at: Mapping[SnapshotKind, datetime] = {}
        self._write_lock = threading.Lock()

    def publish(self, snapshot: Snapshot):
        """Make ``snapshot`` the current one for its kind."""
        with self._write_lock:
            snapshots = dict(self._snapshots)
            snapshots[snapshot.kind] = snapshot
            published_at = dict(self._published_at)
            published_at[snapshot.kind] = datetime.now()
            self._snapshots = snapshots
            self._published_at = published_at

        logger.info(
            f"Published {snapshot.kind.value} snapshot: {len(snapshot.blocks)} block(s), "
            f"{snapshot.match_count} match(es)"
        )

    def read(self, kind: SnapshotKind) -> Snapshot:
        """
        Return the current snapshot of ``kind``.

        Raises:
            CacheNotReady: If nothing of that kind has been published
        """
        snapshot = self._snapshots.get(kind)
        if snapshot is None:
            raise CacheNotReady(kind.value)
        return snapshot

    def peek(self, kind: SnapshotKind) -> Optional[Snapshot]:
        """Like ``read`` but returns None while the kind is cold."""
        return self._snapshots.get(kind)

    def is_ready(self, kind: SnapshotKind) -> bool:
        return kind in self._snapshots

    def published_at(self, kind: SnapshotKind) -> Optional[datetime]:
        return self._published_at.get(kind)

    def describe(self) -> Dict[str, Optional[dict]]:
        """Per-kind build and publish times, for health reporting."""
        summary = {}
        for kind in SnapshotKind:
            snapshot = self.peek(kind)
            if snapshot is None:
                summary[kind.value] = None
                continue
            published_at = self.published_at(kind)
            summary[kind.value] = {
                'built_at': snapshot.built_at.isoformat(),
                'published_at': published_at.isoformat() if published_at else None,
                'competitions': len(snapshot.blocks),
                'matches': snapshot.match_count,
            }
        return summary
