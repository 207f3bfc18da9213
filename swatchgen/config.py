from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, ValidationError

from .openscad.runner import default_openscad_path
from .types import OutputFormat, SwatchLayout

DEFAULT_CONFIG_PATH = Path("swatch_config.yaml")


class ConfigError(RuntimeError):
    """Configuration file or merged settings are invalid."""


def _default_workers() -> int:
    return os.cpu_count() or 1


class GeneratorOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    inventory: Path = Path("inventory.txt")
    destination: Path = Path(".")
    output_format: OutputFormat = OutputFormat.STL
    openscad_path: str = Field(default_factory=default_openscad_path)
    force: bool = False
    organize: bool = True
    workers: PositiveInt = Field(default_factory=_default_workers)
    timeout: Optional[PositiveFloat] = None
    layout: SwatchLayout = Field(default_factory=SwatchLayout)


def load_config(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Read the YAML config. The default file is optional; an explicit path must exist."""
    explicit = path is not None
    cfg_path = Path(path) if explicit else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {cfg_path}")
        return {}
    try:
        cfg = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {cfg_path}: {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigError(f"{cfg_path}: top level must be a mapping")
    return cfg


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    raw = cfg.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return raw


def resolve_options(
    cfg: Dict[str, Any],
    overrides: Optional[Dict[str, Any]] = None,
    layout_overrides: Optional[Dict[str, Any]] = None,
) -> GeneratorOptions:
    """
    Merge settings in increasing precedence: built-in defaults, config file,
    environment (OPENSCAD_PATH, SWATCHGEN_WORKERS), explicit overrides.

    ``None`` values in the override dicts mean "not given" and are ignored.
    """
    merged: Dict[str, Any] = {}
    merged.update(_section(cfg, "paths"))
    merged.update(_section(cfg, "generate"))

    env_workers = os.getenv("SWATCHGEN_WORKERS", "").strip()
    if env_workers:
        merged["workers"] = env_workers
    env_openscad = os.getenv("OPENSCAD_PATH", "").strip()
    if env_openscad:
        merged["openscad_path"] = env_openscad

    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    layout: Dict[str, Any] = dict(_section(cfg, "layout"))
    layout.update({k: v for k, v in (layout_overrides or {}).items() if v is not None})
    merged["layout"] = layout

    try:
        return GeneratorOptions.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
