"""Configuration management for Metrics Agent."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError, ConfigErrorKind
from .sources import SourceConfig, SourceKind
from .sources.loader import load_source_config_file, parse_source_config, parse_source_kind

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_timeout(value: Any, origin: str) -> float:
    try:
        if isinstance(value, bool):
            raise TypeError(value)
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(ConfigErrorKind.MALFORMED, f"{origin} must be a number, got {value!r}") from None
    if not timeout > 0:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"{origin} must be positive, got {value!r}")
    return timeout


def _parse_max_workers(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"max_workers must be a positive integer, got {value!r}")
    return value


def _parse_log_level(value: Any, origin: str) -> str:
    if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"{origin} must be one of {', '.join(LOG_LEVELS)}, got {value!r}",
        )
    return value.upper()


@dataclass
class CollectorEntry:
    """One collector listed in the agent config file."""

    name: str
    kind: SourceKind
    config_path: Optional[Path] = None
    inline: Optional[dict[str, Any]] = None
    enabled: bool = True

    def load(self) -> SourceConfig:
        """Load and validate this collector's source config."""
        if self.inline is not None:
            return parse_source_config(self.inline, self.kind)
        if self.config_path is not None:
            return load_source_config_file(self.config_path, self.kind)
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"Collector '{self.name}' needs either 'config' or 'inline'",
        )


@dataclass
class AgentConfig:
    """Main agent configuration."""

    collectors: list[CollectorEntry] = field(default_factory=list)

    # Agent settings
    timeout: float = 30.0  # seconds, per fetch
    max_workers: int = 1  # collectors polled in parallel
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, path: str | Path) -> "AgentConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(ConfigErrorKind.MALFORMED, f"Invalid YAML in {path}: {e}") from e
        return cls.from_dict(data or {}, base_dir=path.parent)

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "AgentConfig":
        """Create config from dictionary.

        Relative collector config paths are resolved against ``base_dir``.
        """
        if not isinstance(data, dict):
            raise ConfigError(ConfigErrorKind.MALFORMED, "Agent config must be a mapping")

        config = cls()
        names: set[str] = set()

        for entry in data.get("collectors") or []:
            if not isinstance(entry, dict):
                raise ConfigError(ConfigErrorKind.MALFORMED, f"Collector entry must be a mapping: {entry!r}")

            kind = parse_source_kind(entry.get("kind", SourceKind.REST.value))
            config_path = entry.get("config")
            if config_path is not None:
                config_path = Path(config_path)
                if base_dir is not None and not config_path.is_absolute():
                    config_path = base_dir / config_path

            name = str(entry.get("name", kind.value))
            if name in names:
                raise ConfigError(
                    ConfigErrorKind.MALFORMED,
                    f"Duplicate collector name '{name}', give each collector a unique name",
                )
            names.add(name)

            config.collectors.append(CollectorEntry(
                name=name,
                kind=kind,
                config_path=config_path,
                inline=entry.get("inline"),
                enabled=entry.get("enabled", True),
            ))

        if "timeout" in data:
            config.timeout = _parse_timeout(data["timeout"], "timeout")
        if "max_workers" in data:
            config.max_workers = _parse_max_workers(data["max_workers"])
        if "log_level" in data:
            config.log_level = _parse_log_level(data["log_level"], "log_level")

        config.apply_env()
        return config

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Create config from environment variables.

        METRICS_AGENT_SOURCE names a JSON collector file and
        METRICS_AGENT_SOURCE_KIND its kind (default REST).
        """
        config = cls()

        source = os.environ.get("METRICS_AGENT_SOURCE")
        if source:
            kind = parse_source_kind(os.environ.get("METRICS_AGENT_SOURCE_KIND", SourceKind.REST.value))
            config.collectors.append(CollectorEntry(
                name=Path(source).stem,
                kind=kind,
                config_path=Path(source),
            ))

        config.apply_env()
        return config

    def apply_env(self):
        """Override settings from environment variables."""
        if os.environ.get("METRICS_AGENT_LOG_LEVEL"):
            self.log_level = _parse_log_level(os.environ["METRICS_AGENT_LOG_LEVEL"], "METRICS_AGENT_LOG_LEVEL")
        if os.environ.get("METRICS_AGENT_TIMEOUT"):
            self.timeout = _parse_timeout(os.environ["METRICS_AGENT_TIMEOUT"], "METRICS_AGENT_TIMEOUT")


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """Load configuration from file or environment."""
    # Try config file first
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(ConfigErrorKind.MALFORMED, f"Config file not found: {config_path}")
        return AgentConfig.from_file(config_path)

    # Try default locations
    default_paths = [
        Path("metrics-agent.yaml"),
        Path("metrics-agent.yml"),
        Path.home() / ".metrics-agent" / "agent.yaml",
        Path("/etc/metrics-agent/agent.yaml"),
    ]

    for path in default_paths:
        if path.exists():
            return AgentConfig.from_file(path)

    # Fall back to environment
    return AgentConfig.from_env()
