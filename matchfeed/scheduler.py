"""Background refresh scheduler.

Drives one cycle per snapshot kind on a fixed cadence: the "today" snapshot
every tick, the full snapshot on the first tick and every
``full_refresh_every`` ticks after that. A cycle always owns a fresh browser
session and always releases it, whatever the outcome.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from config import MatchFeedConfig

from .core.exceptions import BrowserError, SnapshotBuildError
from .core.interfaces import SnapshotSinkProtocol
from .models.match import SnapshotKind
from .scrapers.betexplorer.browser import SessionManager
from .scrapers.betexplorer.snapshot_builder import SnapshotBuilder
from .sources import SourceDescriptor, today_sources
from .utils.alerting import AlertManager, get_alert_manager

logger = logging.getLogger(__name__)


@dataclass
class SchedulerStatus:
    """Point-in-time view of the scheduler, for health reporting."""

    running: bool = False
    ticks: int = 0
    last_success: Dict[str, datetime] = field(default_factory=dict)
    last_failure: Dict[str, datetime] = field(default_factory=dict)
    last_error: Optional[str] = None
    last_metrics: Dict[str, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'running': self.running,
            'ticks': self.ticks,
            'last_success': {k: v.isoformat() for k, v in self.last_success.items()},
            'last_failure': {k: v.isoformat() for k, v in self.last_failure.items()},
            'last_error': self.last_error,
            'last_metrics': self.last_metrics,
        }


class RefreshScheduler:
    """Runs refresh cycles and publishes their snapshots."""

    def __init__(
        self,
        config: MatchFeedConfig,
        session_manager: SessionManager,
        builder: SnapshotBuilder,
        cache: SnapshotSinkProtocol,
        sources: Sequence[SourceDescriptor],
        alert_manager: Optional[AlertManager] = None,
    ):
        """
        Initialize scheduler.

        Args:
            config: Configuration (cadence in ``config.scheduler``)
            session_manager: Owner of the browser session
            builder: Builds snapshots from a session and sources
            cache: Where built snapshots are published
            sources: Competition sources of the full snapshot
            alert_manager: Alert manager (defaults to the global one)
        """
        self.config = config
        self.session_manager = session_manager
        self.builder = builder
        self.cache = cache
        self.sources: List[SourceDescriptor] = list(sources)
        self._alert_manager = alert_manager

        self._status = SchedulerStatus()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def alert_manager(self) -> AlertManager:
        return self._alert_manager or get_alert_manager()

    def sources_for(self, kind: SnapshotKind) -> List[SourceDescriptor]:
        if kind is SnapshotKind.TODAY:
            return today_sources()
        return self.sources

    def run_cycle(self, kind: SnapshotKind) -> bool:
        """
        Acquire a session, build, publish, release.

        Any failure skips the cycle: the previously published snapshot of
        ``kind`` stays in place.

        Returns:
            True if a snapshot was published
        """
        with self._cycle_lock:
            started = time.monotonic()
            logger.info(f"Starting {kind.value} refresh cycle")

            try:
                session = self.session_manager.acquire()
            except BrowserError as e:
                self._record_failure(kind, e)
                return False

            try:
                snapshot = self.builder.build(session, self.sources_for(kind), kind)
                self.cache.publish(snapshot)
            except SnapshotBuildError as e:
                self._record_failure(kind, e)
                return False
            except Exception as e:
                logger.exception(f"Unexpected error in {kind.value} cycle: {e}")
                self._record_failure(kind, e)
                return False
            finally:
                self.session_manager.release()
                self._record_metrics(kind)

            self._status.last_success[kind.value] = datetime.now()
            logger.info(f"{kind.value} refresh cycle finished in {time.monotonic() - started:.1f}s")
            return True

    def _record_metrics(self, kind: SnapshotKind):
        metrics = self.builder.last_metrics
        if metrics is not None and metrics.kind == kind.value:
            self._status.last_metrics[kind.value] = metrics.to_dict()

    def _record_failure(self, kind: SnapshotKind, error: Exception):
        message = f"{error.__class__.__name__}: {error}"
        logger.error(f"{kind.value} refresh cycle skipped: {message}")
        self._status.last_failure[kind.value] = datetime.now()
        self._status.last_error = message
        self.alert_manager.alert_cycle_failure(kind=kind.value, error=message)

    def tick(self) -> Dict[SnapshotKind, bool]:
        """
        Run one fast-cadence step.

        Returns:
            Whether each cycle that ran published
        """
        results = {SnapshotKind.TODAY: self.run_cycle(SnapshotKind.TODAY)}
        if self._stop_event.is_set():
            logger.info("Stop requested, skipping the rest of this tick")
        elif self._status.ticks % self.config.scheduler.full_refresh_every == 0:
            results[SnapshotKind.FULL] = self.run_cycle(SnapshotKind.FULL)
        self._status.ticks += 1
        return results

    def start(self):
        """Run ticks on a daemon thread until ``stop()``."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="matchfeed-scheduler", daemon=True)
        self._status.running = True
        self._thread.start()
        logger.info(
            f"Scheduler started (interval {self.config.scheduler.interval_seconds}s, "
            f"full refresh every {self.config.scheduler.full_refresh_every} tick(s))"
        )

    def _run(self):
        interval = self.config.scheduler.interval_seconds
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception as e:
                logger.exception(f"Scheduler tick failed: {e}")
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, interval - elapsed))

    def stop(self, timeout: Optional[float] = None):
        """
        Stop after the current tick and release any session.

        If the running cycle does not finish within ``timeout``, its browser
        session is force-closed so the remaining extractions fail fast, and
        the thread is given ``timeout`` once more to wind down.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Cycle still running after stop timeout, force-closing browser session")
                self.session_manager.release()
                self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread still running after browser session was closed")
                return
        self._thread = None
        self._status.running = False
        self.session_manager.release()
        logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> SchedulerStatus:
        """Copy of the current status."""
        current = self._status
        return SchedulerStatus(
            running=self.is_running,
            ticks=current.ticks,
            last_success=dict(current.last_success),
            last_failure=dict(current.last_failure),
            last_error=current.last_error,
            last_metrics=dict(current.last_metrics),
        )
