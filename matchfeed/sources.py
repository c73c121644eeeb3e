"""Source descriptors and the external source list.

A source is one crawlable unit: a competition's fixtures page, the aggregate
"today" view, or the live board.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

import yaml

from config import SourceConfig

from .core.exceptions import ConfigurationError
from .utils.text import slugify

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Which page layout (and therefore which extractor) a source uses."""
    FIXTURES = "fixtures"
    TODAY = "today"
    LIVE = "live"


@dataclass(frozen=True)
class SourceDescriptor:
    """Value object naming one source."""
    region: str
    competition: str
    kind: SourceKind = SourceKind.FIXTURES
    url: Optional[str] = None

    def __post_init__(self):
        if self.kind is SourceKind.FIXTURES and not (self.region and self.competition):
            raise ValueError("Fixtures sources need both region and competition")

    @property
    def label(self) -> str:
        if self.kind is SourceKind.FIXTURES:
            return f"{self.region}/{self.competition}"
        return self.kind.value

    def resolve_url(self, source_config: SourceConfig) -> str:
        """Explicit URL if given, otherwise the URL template for this kind."""
        if self.url:
            return self.url
        base = source_config.base_url.rstrip('/')
        sport = source_config.sport
        if self.kind is SourceKind.TODAY:
            return f"{base}/{source_config.today_path.format(sport=sport)}"
        if self.kind is SourceKind.LIVE:
            return f"{base}/{source_config.live_path.format(sport=sport)}"
        return fixtures_url(base, sport, self.region, self.competition)


def fixtures_url(base_url: str, sport: str, region: str, competition: str) -> str:
    """Build ``<base>/<sport>/<region-slug>/<competition-slug>/fixtures/``."""
    return f"{base_url.rstrip('/')}/{sport}/{slugify(region)}/{slugify(competition)}/fixtures/"


def today_sources() -> List[SourceDescriptor]:
    """Sources of the "today" snapshot: the aggregate view, then the live board."""
    return [
        SourceDescriptor(region="", competition="", kind=SourceKind.TODAY),
        SourceDescriptor(region="", competition="", kind=SourceKind.LIVE),
    ]


def load_sources(path: str) -> List[SourceDescriptor]:
    """Load the competition list from a YAML file.

    Args:
        path: YAML file with a top-level ``sources`` list of
            ``{region, competition[, url]}`` mappings

    Returns:
        Descriptors in file order

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    source_path = Path(path)
    if not source_path.exists():
        raise ConfigurationError(f"Source list not found: {path}")

    try:
        with open(source_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in source list {path}: {e}") from e

    entries = data.get('sources') if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(f"Source list {path} must define a 'sources' list")

    descriptors = []
    seen = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Source #{index} in {path} is not a mapping")
        region = str(entry.get('region') or '').strip()
        competition = str(entry.get('competition') or '').strip()
        try:
            descriptor = SourceDescriptor(
                region=region,
                competition=competition,
                url=entry.get('url') or None,
            )
        except ValueError as e:
            raise ConfigurationError(f"Source #{index} in {path}: {e}") from e

        key = (slugify(region), slugify(competition))
        if key in seen:
            logger.warning(f"Duplicate source {descriptor.label} in {path}, skipping")
            continue
        seen.add(key)
        descriptors.append(descriptor)

    logger.info(f"Loaded {len(descriptors)} source(s) from {path}")
    return descriptors
