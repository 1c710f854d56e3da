"""Configuration for indexing and code generation.

:class:`HelperConfig` holds every tunable value.  It can be built
directly, from a YAML file, or from command line arguments::

    # .hdlhelper.yaml
    strategy: fast
    parse_timeout: 2.5
    declaration_storage: wire
    declaration_ignore: [clk, rst_n, aclk, aresetn]
    ignore_dirs: [.git, build, sim_out]

Unknown keys are reported and ignored so that older tools keep
working with newer configuration files.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .filelist import HDL_EXTENSIONS
from .strategy import parser_registry

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".hdlhelper.yaml"


class ConfigError(ValueError):
    """Raised when a configuration file cannot be read or is malformed."""


@dataclass
class HelperConfig:
    """Settings for the project index, the watcher and the generators."""

    # ── Discovery ────────────────────────────────────────────────────────
    extensions: List[str] = field(default_factory=lambda: list(HDL_EXTENSIONS))
    filelist_pattern: str = "*.f"
    ignore_dirs: List[str] = field(
        default_factory=lambda: [".git", ".svn", "node_modules", "__pycache__"]
    )

    # ── Parsing ──────────────────────────────────────────────────────────
    strategy: str = "fast"
    parse_timeout: float = 5.0  # seconds per file
    debounce: float = 0.1  # seconds between a watch event and its dispatch

    # ── Generation ───────────────────────────────────────────────────────
    declaration_storage: str = "logic"
    declaration_ignore: List[str] = field(
        default_factory=lambda: ["clk", "rst_n", "rst", "clock", "reset"]
    )
    clock_pattern: str = r"clk|clock"
    reset_pattern: str = r"rst|reset"
    comment_column: int = 30

    # ── Factories ────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HelperConfig":
        """Build from a mapping, ignoring (and logging) unknown keys."""
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown configuration key: %s", key)
                continue
            values[key] = value
        try:
            config = cls(**values)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: str) -> "HelperConfig":
        """Load a YAML configuration file.

        Raises:
            ConfigError: If the file cannot be read or is not a mapping.
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except OSError as exc:
            raise ConfigError(f"cannot read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        logger.debug("Loaded configuration from %s", path)
        return cls.from_dict(data)

    @classmethod
    def load(cls, root: str, path: Optional[str] = None) -> "HelperConfig":
        """Load ``path`` if given, else ``<root>/.hdlhelper.yaml`` if present."""
        if path:
            return cls.from_yaml(path)
        candidate = os.path.join(root, CONFIG_FILENAME)
        if os.path.isfile(candidate):
            return cls.from_yaml(candidate)
        return cls()

    def with_cli_overrides(self, args: Any) -> "HelperConfig":
        """Return a copy with values from an ``argparse.Namespace`` applied."""
        overrides: Dict[str, Any] = {}
        strategy = getattr(args, "strategy", None)
        if strategy:
            overrides["strategy"] = strategy
        storage = getattr(args, "storage", None)
        if storage:
            overrides["declaration_storage"] = storage
        return replace(self, **overrides) if overrides else self

    def validate(self) -> None:
        """Check value types and ranges.

        Raises:
            ConfigError: On the first invalid value.
        """
        if not isinstance(self.extensions, list) or not all(
            isinstance(ext, str) and ext.startswith(".") for ext in self.extensions
        ):
            raise ConfigError("extensions must be a list of suffixes such as '.sv'")
        if not isinstance(self.declaration_ignore, list):
            raise ConfigError("declaration_ignore must be a list of names")
        if not isinstance(self.ignore_dirs, list):
            raise ConfigError("ignore_dirs must be a list of directory names")
        for name in ("parse_timeout", "debounce"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigError(f"{name} must be a non-negative number")
        if not isinstance(self.comment_column, int) or self.comment_column < 0:
            raise ConfigError("comment_column must be a non-negative integer")
        if self.strategy not in parser_registry:
            raise ConfigError(
                f"unknown strategy '{self.strategy}'; "
                f"available: {', '.join(parser_registry.keys())}"
            )
        for name in ("clock_pattern", "reset_pattern"):
            try:
                re.compile(getattr(self, name))
            except (re.error, TypeError) as exc:
                raise ConfigError(f"{name} is not a valid regular expression: {exc}") from exc
