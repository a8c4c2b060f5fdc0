"""YAML configuration with environment overrides.

``DATABASE_URL`` and ``REDIS_URL`` take precedence over the file; missing
keys fall back to ``DEFAULTS``.
"""

from __future__ import annotations

import copy
import os

import yaml

CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yaml"
)

DEFAULTS = {
    "database": {"url": "sqlite:///data/devis.db"},
    "cache": {"redis_url": None, "ttl": 3600},
    "logging": {"level": "INFO"},
    "audit": {"raison_obligatoire": False},
    "admin": {"actions_autorisees": False},
    "energie": {"tension_batterie": 12, "heures_ensoleillement": 5},
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: str | None = None, environ=None) -> dict:
    """Read the YAML file at *path* (default: repository ``config.yaml``)."""
    environ = os.environ if environ is None else environ
    config = copy.deepcopy(DEFAULTS)
    path = path or CONFIG_PATH
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            _merge(config, yaml.safe_load(f) or {})
    if environ.get("DATABASE_URL"):
        config["database"]["url"] = environ["DATABASE_URL"]
    if environ.get("REDIS_URL"):
        config["cache"]["redis_url"] = environ["REDIS_URL"]
    return config
