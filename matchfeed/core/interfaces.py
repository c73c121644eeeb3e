"""Protocol definitions for matchfeed components.

Protocols instead of abstract base classes: the crawler and scheduler accept
anything with the right shape, which keeps them testable with plain fakes.

Protocols defined:
- ExtractorProtocol: turns (session, url) into a raw page fragment
- SnapshotSourceProtocol: read access to published snapshots
- SnapshotSinkProtocol: publication of freshly built snapshots
"""

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class ExtractorProtocol(Protocol):
    """Protocol for page extractors.

    Example implementations:
        - FixturesExtractor
        - TodayExtractor
        - LiveBoardExtractor
        - ResultExtractor
    """

    def extract(self, session: Any, url: str) -> Any:
        """Extract one page.

        Args:
            session: Live browser session
            url: Page to load

        Returns:
            RawFragment

        Raises:
            SessionNotReady: If ``session`` is not alive
            ExtractionFailed: On any navigation or extraction failure
        """
        ...


@runtime_checkable
class SnapshotSourceProtocol(Protocol):
    """Read side of the cache."""

    def read(self, kind: Any) -> Any:
        """Return the current snapshot of ``kind``.

        Raises:
            CacheNotReady: If none has been published yet
        """
        ...

    def peek(self, kind: Any) -> Optional[Any]:
        """Return the current snapshot of ``kind``, or None."""
        ...

    def describe(self) -> Dict[str, Optional[dict]]:
        """Per-kind build/publish summary, None for kinds not yet published."""
        ...


@runtime_checkable
class SnapshotSinkProtocol(Protocol):
    """Write side of the cache."""

    def publish(self, snapshot: Any) -> None:
        """Atomically replace the snapshot of ``snapshot.kind``."""
        ...
