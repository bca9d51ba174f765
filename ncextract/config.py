"""Extraction options shared by the single-file and multi-file entry points."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

DEFAULT_PATTERN = '*.nc'
DEFAULT_ID_COLUMN = 'id'


@dataclass(frozen=True)
class ExtractionOptions:
    """
    Options controlling one extraction.

    `boundary` maps dimension names to inclusive (min, max) pairs; time
    dimensions take dates. Point mode is enabled by giving both
    `lon_points` and `lat_points`.
    """

    keep_raw_time: bool = True
    include_metadata: bool = True
    boundary: Optional[Mapping[str, Tuple[Any, Any]]] = None
    lon_points: Optional[Sequence[float]] = None
    lat_points: Optional[Sequence[float]] = None
    id_points: Optional[Sequence[Any]] = None
    show_requested_points: bool = True
    great_circle_dist: bool = True
    # Multi-file only
    id_column: str = DEFAULT_ID_COLUMN
    skip_failed: bool = False
    pattern: str = DEFAULT_PATTERN

    def extract_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments understood by the single-file extractor."""
        kwargs = asdict(self)
        for key in ('id_column', 'skip_failed', 'pattern'):
            kwargs.pop(key)
        return kwargs
