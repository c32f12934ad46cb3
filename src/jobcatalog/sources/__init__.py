"""Source layer — Strategy pattern for source-native payload mapping.

Importing this package triggers mapper registration via the
``@SourceMapperRegistry.register`` decorator on each concrete mapper.
"""

# Import concrete mappers to trigger registration
from jobcatalog.sources import adzuna as _adzuna  # noqa: F401
from jobcatalog.sources import france_travail as _france_travail  # noqa: F401
from jobcatalog.sources import remotive as _remotive  # noqa: F401
from jobcatalog.sources.base import MappedBatch, RawPosting, SourceMapper, map_payloads
from jobcatalog.sources.registry import SourceMapperRegistry

__all__ = ["MappedBatch", "RawPosting", "SourceMapper", "SourceMapperRegistry", "map_payloads"]
