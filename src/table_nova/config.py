"""
Configuration for Table Nova.

Provides:
- Namespace bases (instances, predicates, runs) and the output prefix map
- Store backend selection and data directory
- Default file options for inputs that supply none
- YAML load/save, environment overrides, validation
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from table_nova.models import XSD_NS, FileOptions

logger = logging.getLogger(__name__)

ENV_CONFIG = "TABLENOVA_CONFIG"
ENV_DATA_DIR = "TABLENOVA_DATA_DIR"
ENV_LOG_LEVEL = "TABLENOVA_LOG_LEVEL"

DEFAULT_INSTANCE_IRI = "https://example.org/TableNova/id/"
DEFAULT_PREDICATE_IRI = "https://example.org/TableNova/ns#"
DEFAULT_RUN_IRI = "https://example.org/TableNova/run/"

STORE_BACKENDS = ("parquet", "memory")


class ConfigValidationError(Exception):
    """Configuration validation error."""
    pass


def default_prefixes() -> Dict[str, str]:
    return {
        "tablenova": DEFAULT_PREDICATE_IRI,
        "tnid": DEFAULT_INSTANCE_IRI,
        "xsd": XSD_NS,
    }


@dataclass
class NamespaceConfig:
    """IRI bases and prefixes used to mint and render identifiers."""
    base_instance_iri: str = DEFAULT_INSTANCE_IRI
    base_predicate_iri: str = DEFAULT_PREDICATE_IRI
    base_run_iri: str = DEFAULT_RUN_IRI
    prefixes: Dict[str, str] = field(default_factory=default_prefixes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_instance_iri": self.base_instance_iri,
            "base_predicate_iri": self.base_predicate_iri,
            "base_run_iri": self.base_run_iri,
            "prefixes": dict(self.prefixes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NamespaceConfig":
        return cls(
            base_instance_iri=data.get("base_instance_iri", DEFAULT_INSTANCE_IRI),
            base_predicate_iri=data.get("base_predicate_iri", DEFAULT_PREDICATE_IRI),
            base_run_iri=data.get("base_run_iri", DEFAULT_RUN_IRI),
            prefixes=dict(data.get("prefixes") or default_prefixes()),
        )


@dataclass
class TableNovaConfig:
    """Complete application configuration."""
    namespaces: NamespaceConfig = field(default_factory=NamespaceConfig)
    data_dir: str = "./data/runs"
    store_backend: str = "parquet"
    log_level: str = "INFO"
    default_file_options: FileOptions = field(default_factory=FileOptions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespaces": self.namespaces.to_dict(),
            "data_dir": self.data_dir,
            "store_backend": self.store_backend,
            "log_level": self.log_level,
            "default_file_options": self.default_file_options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableNovaConfig":
        try:
            config = cls(
                namespaces=NamespaceConfig.from_dict(data.get("namespaces") or {}),
                data_dir=str(data.get("data_dir", "./data/runs")),
                store_backend=str(data.get("store_backend", "parquet")),
                log_level=str(data.get("log_level", "INFO")).upper(),
                default_file_options=FileOptions.from_dict(data.get("default_file_options")),
            )
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            ConfigValidationError: On an empty namespace, unknown backend or log level
        """
        ns = self.namespaces
        for name in ("base_instance_iri", "base_predicate_iri", "base_run_iri"):
            if not getattr(ns, name):
                raise ConfigValidationError(f"namespaces.{name} cannot be empty")
        for prefix, iri in ns.prefixes.items():
            if not prefix or not iri:
                raise ConfigValidationError(f"Invalid prefix binding {prefix!r} -> {iri!r}")
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigValidationError(
                f"Invalid store_backend '{self.store_backend}'. Valid options: {STORE_BACKENDS}"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigValidationError(f"Invalid log_level '{self.log_level}'")

    def save(self, path: str | Path) -> None:
        """Save configuration as YAML."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    @classmethod
    def load(cls, path: Optional[str | Path]) -> "TableNovaConfig":
        """Load configuration from a YAML file; defaults when it does not exist."""
        if path is None or not Path(path).exists():
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{path}: top level must be a mapping")
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "TableNovaConfig":
        """Load from $TABLENOVA_CONFIG, then apply data dir / log level overrides."""
        config = cls.load(os.getenv(ENV_CONFIG))
        if os.getenv(ENV_DATA_DIR):
            config.data_dir = os.environ[ENV_DATA_DIR]
        if os.getenv(ENV_LOG_LEVEL):
            config.log_level = os.environ[ENV_LOG_LEVEL].upper()
        config.validate()
        return config


def configure_logging(level: str = "INFO") -> None:
    """Install a basic stderr handler for CLI and server use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
