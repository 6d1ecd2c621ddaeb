"""Collector registry - maps source kinds to collector classes."""

import logging
from pathlib import Path
from typing import Optional, Type, Union

from ..errors import ConfigError, ConfigErrorKind
from .base import Collector, SourceConfig, SourceKind
from .loader import load_source_config, load_source_config_file

logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    Registry for collector plugins.

    Collectors register themselves here and are instantiated by source kind.
    """

    _sources: dict[SourceKind, Type[Collector]] = {}

    @classmethod
    def register(cls, source_kind: SourceKind, collector_class: Type[Collector]):
        """Register a collector class."""
        cls._sources[source_kind] = collector_class
        logger.debug(f"Registered collector: {source_kind.value}")

    @classmethod
    def get(cls, source_kind: SourceKind) -> Optional[Type[Collector]]:
        """Get a collector class by source kind."""
        return cls._sources.get(source_kind)

    @classmethod
    def create(cls, name: str, config: SourceConfig, **kwargs) -> Collector:
        """Create a collector from a validated config.

        Raises:
            ConfigError: if no collector is registered for the config's kind
        """
        collector_class = cls._sources.get(config.kind)
        if collector_class is None:
            raise ConfigError(
                ConfigErrorKind.UNSUPPORTED_SOURCE_KIND,
                f"No collector registered for {config.kind.value}",
            )
        return collector_class(name, config, **kwargs)

    @classmethod
    def list_types(cls) -> list[str]:
        """List all registered source kinds."""
        return [kind.value for kind in cls._sources]

    @classmethod
    def is_registered(cls, source_kind: SourceKind) -> bool:
        """Check if a source kind is registered."""
        return source_kind in cls._sources


def register_source(source_kind: SourceKind):
    """
    Decorator to register a collector class.

    Usage:
        @register_source(SourceKind.REST)
        class RestCollector(Collector):
            ...
    """
    def decorator(cls: Type[Collector]):
        cls.source_kind = source_kind
        SourceRegistry.register(source_kind, cls)
        return cls
    return decorator


def get_source(source_kind: SourceKind) -> Optional[Type[Collector]]:
    """Get a collector class by source kind."""
    return SourceRegistry.get(source_kind)


def list_sources() -> list[str]:
    """List all registered source kinds."""
    return SourceRegistry.list_types()


def create_collector(
    name: str,
    raw: Union[bytes, str],
    kind: Union[str, SourceKind],
    **kwargs,
) -> Collector:
    """Validate raw JSON collector config and build the matching collector."""
    return SourceRegistry.create(name, load_source_config(raw, kind), **kwargs)


def create_collector_from_file(
    name: str,
    path: Union[str, Path],
    kind: Union[str, SourceKind],
    **kwargs,
) -> Collector:
    """Read a JSON collector config file and build the matching collector."""
    return SourceRegistry.create(name, load_source_config_file(path, kind), **kwargs)


# Register built-in collectors when this module is imported
def _register_builtin_sources():
    """Import and register all built-in collectors."""
    from . import rest, generic, prometheus  # noqa: F401


_register_builtin_sources()
