"""Flask read-side over the snapshot cache.

Handlers only read published snapshots. They never trigger scraping and
never wait on a refresh cycle.
"""

import logging
from typing import Optional, Sequence

from flask import Flask, jsonify, request

from ..core.exceptions import CacheNotReady
from ..core.interfaces import SnapshotSourceProtocol
from ..models.match import Snapshot, SnapshotKind
from ..sources import SourceDescriptor, SourceKind
from ..utils.text import slugify
from .errors import (
    ApiError,
    cache_not_ready,
    competition_not_found,
    handle_api_error,
    region_not_found,
)
from .filters import NO_LONGER_ACTIVE, MatchFilter, find_by_link

logger = logging.getLogger(__name__)


def create_app(
    cache: SnapshotSourceProtocol,
    scheduler=None,
    sources: Optional[Sequence[SourceDescriptor]] = None,
) -> Flask:
    """
    Build the API application.

    Args:
        cache: Snapshot cache to serve from
        scheduler: Optional RefreshScheduler, reported by ``/health``
        sources: Configured competition sources. A region named by any of
            them is known even when none of its competitions made it into
            the current snapshot.

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    app.register_error_handler(ApiError, handle_api_error)

    configured_regions = frozenset(
        slugify(source.region) for source in sources or () if source.kind is SourceKind.FIXTURES
    )

    def current(kind: SnapshotKind) -> Snapshot:
        try:
            return cache.read(kind)
        except CacheNotReady:
            raise cache_not_ready() from None

    def listing(kind: SnapshotKind):
        snapshot = current(kind)
        match_filter = MatchFilter.from_args(request.args)

        link = request.args.get('link')
        if link is not None:
            record = find_by_link(snapshot.blocks, link)
            return jsonify(record.to_dict() if record is not None else NO_LONGER_ACTIVE)

        return jsonify({
            'kind': snapshot.kind.value,
            'builtAt': snapshot.built_at.isoformat(),
            'competitions': match_filter.apply_all(snapshot.blocks),
        })

    @app.route('/matches')
    def all_matches():
        return listing(SnapshotKind.FULL)

    @app.route('/matches/today')
    def today_matches():
        return listing(SnapshotKind.TODAY)

    @app.route('/matches/<region>/<competition>')
    def competition_matches(region: str, competition: str):
        snapshot = current(SnapshotKind.FULL)
        match_filter = MatchFilter.from_args(request.args)

        block = next((b for b in snapshot.blocks if b.matches_names(region, competition)), None)
        if block is None:
            region_slug = slugify(region)
            known = region_slug in configured_regions or any(
                slugify(b.region) == region_slug for b in snapshot.blocks
            )
            if not known:
                raise region_not_found(region)
            raise competition_not_found(region, competition)

        link = request.args.get('link')
        if link is not None:
            record = find_by_link([block], link)
            return jsonify(record.to_dict() if record is not None else NO_LONGER_ACTIVE)

        return jsonify(match_filter.apply(block))

    @app.route('/health')
    def health():
        snapshots = cache.describe()
        ready = all(value is not None for value in snapshots.values())
        body = {
            'status': 'ok' if ready else 'warming_up',
            'snapshots': snapshots,
            'scheduler': scheduler.status().to_dict() if scheduler is not None else None,
        }
        return jsonify(body)

    return app


def run_server(app: Flask, host: str, port: int, debug: bool = False):
    """Serve ``app`` with Flask's threaded server until interrupted."""
    logger.info(f"Starting API on {host}:{port}")
    app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)


__all__ = ['create_app', 'run_server']
