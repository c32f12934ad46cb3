"""Source mapper registry — decorator-based loader for source-native payload mappers."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from jobcatalog.sources.base import SourceMapper


class SourceMapperRegistry:
    """Maps source name strings to mapper classes.

    Usage::

        @SourceMapperRegistry.register
        class AdzunaMapper(SourceMapper):
            @property
            def source_name(self) -> str:
                return "adzuna"
            ...
    """

    _registry: ClassVar[dict[str, type[SourceMapper]]] = {}

    @classmethod
    def register(cls, mapper_class: type[SourceMapper]) -> type[SourceMapper]:
        """Class decorator — registers a mapper by its ``source_name``."""
        instance = mapper_class.__new__(mapper_class)
        cls._registry[instance.source_name] = mapper_class
        return mapper_class

    @classmethod
    def get(cls, source_name: str) -> SourceMapper:
        """Return a new instance of the mapper registered under *source_name*."""
        if source_name not in cls._registry:
            msg = f"No source mapper registered for: '{source_name}'"
            raise ValueError(msg)
        return cls._registry[source_name]()

    @classmethod
    def list_registered(cls) -> list[str]:
        return list(cls._registry.keys())
