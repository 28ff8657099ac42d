"""
Reading the devkube configuration document.

The configuration is one TOML file with a `[buildlog]` and a `[cluster]`
table. Both are optional; a table that is missing falls back to defaults.
Anything else at the top level is rejected so a misspelt table name does not
silently leave the defaults in force.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from ..validation import ValidationError

logger = logging.getLogger(__name__)

SECTIONS = ("buildlog", "cluster")


@dataclass
class ConfigDocument:
    """The sections of a configuration file and the directory it lives in."""

    path: Path
    buildlog: Dict[str, Any] = field(default_factory=dict)
    cluster: Dict[str, Any] = field(default_factory=dict)

    @property
    def base_dir(self) -> Path:
        """Directory relative paths in the document are resolved against."""
        return self.path.parent


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValidationError(
            f"[{name}] must be a table, got {type(value).__name__}",
            field_name=name,
            value=value,
        )
    return value


def load_config_document(config_path: Path) -> ConfigDocument:
    """
    Read and split a configuration file.

    Args:
        config_path: Path to the TOML file; `~` is expanded

    Returns:
        ConfigDocument whose path is absolute

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is not valid TOML or has unknown
            top-level entries
    """
    path = Path(config_path).expanduser().absolute()
    logger.info(f"Loading configuration from: {path}")

    if not path.is_file():
        raise FileNotFoundError(f"configuration file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValidationError(f"{path} is not valid TOML: {e}", value=str(path)) from e

    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        raise ValidationError(
            f"unknown configuration entries {', '.join(unknown)}; expected {' and '.join(SECTIONS)}",
            field_name=unknown[0],
        )

    return ConfigDocument(
        path=path,
        buildlog=_section(data, "buildlog"),
        cluster=_section(data, "cluster"),
    )
