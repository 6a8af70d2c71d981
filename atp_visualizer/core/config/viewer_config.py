from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ATP_VISUALIZER_CONFIG"


@dataclass(frozen=True)
class ViewerConfig:
    # Checked first in every workspace root.
    default_plan_name: str = ".atp.json"
    plan_glob: str = "**/*.atp.json"
    exclude_dirs: tuple[str, ...] = field(default=("node_modules", ".git"))
    max_matches: int = 5


DEFAULT_CONFIG = ViewerConfig()


class ViewerConfigError(ValueError):
    pass


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load viewer settings from a YAML file.

    Format:
      default_plan_name: ".atp.json"
      plan_glob: "**/*.atp.json"
      exclude_dirs: ["node_modules", ".git"]
      max_matches: 5

    Every key is optional. Returns the overrides found in the file.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ViewerConfigError("config file must be a mapping of setting -> value")

    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k in ("default_plan_name", "plan_glob"):
            if not isinstance(v, str) or not v.strip():
                raise ViewerConfigError(f"'{k}' must be a non-empty string")
            out[k] = v.strip()
        elif k == "exclude_dirs":
            if not isinstance(v, list) or not all(isinstance(x, str) and x.strip() for x in v):
                raise ViewerConfigError("'exclude_dirs' must be a list of non-empty strings")
            out[k] = tuple(x.strip() for x in v)
        elif k == "max_matches":
            # bool is an int subclass; reject it explicitly.
            if not isinstance(v, int) or isinstance(v, bool) or v < 1:
                raise ViewerConfigError("'max_matches' must be a positive integer")
            out[k] = v
        else:
            raise ViewerConfigError(f"unknown setting: {k}")
    return out


def merged_config(overrides: dict[str, Any] | None = None) -> ViewerConfig:
    if not overrides:
        return DEFAULT_CONFIG
    return replace(DEFAULT_CONFIG, **overrides)


def load_and_merge(config_file: str | None) -> ViewerConfig:
    """Return the default config merged with ``config_file``.

    Falls back to ``$ATP_VISUALIZER_CONFIG`` when no file is given.
    """
    path = config_file or os.getenv(CONFIG_ENV_VAR)
    if not path:
        return merged_config()
    logger.debug("loading viewer config from %s", path)
    return merged_config(load_config_file(path))
