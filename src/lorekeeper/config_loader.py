# SPDX-License-Identifier: MIT
"""
YAML/JSON keeper config loader with OmegaConf interpolation and schema validation.

Features:
- load_config(path, overrides): Load YAML/JSON, apply dotlist overrides, resolve
  interpolations such as ``${oc.env:LOG_DIR}``, validate against KeeperConfigSchema
- load_config_dict(mapping, overrides): Same pipeline for an in-memory mapping
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pydantic import ValidationError

from .config import KeeperConfig
from .errors import ConfigurationError
from .schema import KeeperConfigSchema

SECTION = "lorekeeper"


def _read(path_obj: Path) -> Any:
    with open(path_obj, "r", encoding="utf-8") as f:
        if path_obj.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f) or {}
        if path_obj.suffix == ".json":
            return json.load(f)
    raise ConfigurationError(f"Unsupported config format: {path_obj.suffix}")


def load_config_dict(
    data: Mapping[str, Any], overrides: Optional[List[str]] = None
) -> KeeperConfig:
    """
    Build a validated KeeperConfig from a mapping.

    Args:
        data: Keeper keys, either at the top level or under a ``lorekeeper`` section.
        overrides: Dotlist overrides, e.g. ``["max_size=1MiB", "schedule=hourly"]``.

    Raises:
        ConfigurationError: If interpolation, schema validation or the config itself fails.
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError("Keeper config must be a mapping")
    if SECTION in data and isinstance(data[SECTION], Mapping):
        data = data[SECTION]
    try:
        cfg = OmegaConf.create(dict(data))
        if overrides:
            cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
        resolved: Dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    except OmegaConfBaseException as e:
        raise ConfigurationError(f"Invalid keeper configuration: {e}") from e
    try:
        schema = KeeperConfigSchema(**resolved)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid keeper configuration: {e}") from e
    return schema.to_config().validate()


def load_config(path: str | Path, overrides: Optional[List[str]] = None) -> KeeperConfig:
    """
    Load a YAML or JSON keeper configuration file and validate it.

    Args:
        path: Path to a .yaml/.yml or .json file.
        overrides: Optional dotlist overrides applied on top of the file.

    Returns:
        KeeperConfig: The validated, normalized configuration.

    Raises:
        ConfigurationError: If the file is missing, unsupported or invalid.
    """
    path_obj = Path(path)
    if not path_obj.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        data = _read(path_obj)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e
    return load_config_dict(data, overrides)


__all__ = ["load_config", "load_config_dict"]
