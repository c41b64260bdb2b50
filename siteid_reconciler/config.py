"""
Load config from config.yaml with optional env overrides.
Single source of truth for the service list, dictionary name, policy host, and HTTP timeout.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .core.errors import ConfigError

# Defaults if no YAML or env
_DEFAULTS = {
    "fastly": {
        "api_url": "https://api.fastly.com",
        "service_ids": [
            "6cecXOA5eq1mdycR8IETIO",  # fe1
            "6wd67qj6gjWStoHWt9QqLM",  # fe2
            "7ASqNxevWrE186HznHoMeq",  # fe3
            "7LUFSHwH7rvhe3nX3PX61e",  # fe4
            "7WBIxgsYSoSNGi0NZEi4ge",  # GCDN-Canary
        ],
        "dictionary_name": "hostname_to_site_id",
    },
    "policy": {
        "host": "policy-docs.pantheon.io",
        "site_id_header": "x-goog-meta-pcontext-site-id",
    },
    "http": {"timeout_s": 15.0},
}


def _config_yaml_path() -> Path:
    """Config.yaml lives at repo root (parent of package dir) unless SITEID_CONFIG is set."""
    override = os.environ.get("SITEID_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml(path: Optional[Union[str, Path]] = None) -> dict:
    config_path = Path(path) if path is not None else _config_yaml_path()
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}
    with open(config_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _split_csv(value: str) -> List[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


def _env_overrides() -> dict:
    overrides: dict = {}
    api_url = os.environ.get("SITEID_FASTLY_API_URL")
    if api_url:
        overrides.setdefault("fastly", {})["api_url"] = api_url
    service_ids = os.environ.get("SITEID_SERVICE_IDS")
    if service_ids:
        overrides.setdefault("fastly", {})["service_ids"] = _split_csv(service_ids)
    host = os.environ.get("SITEID_POLICY_HOST")
    if host:
        overrides.setdefault("policy", {})["host"] = host
    return overrides


def get_config(path: Optional[Union[str, Path]] = None) -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    for section in _DEFAULTS:
        if not isinstance(merged.get(section), dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
    return merged


def fastly_api_key() -> str:
    """FASTLY_API_KEY from the environment; never read from YAML."""
    key = os.environ.get("FASTLY_API_KEY", "").strip()
    if not key:
        raise ConfigError("FASTLY_API_KEY is not set")
    return key


# Convenience accessors
def service_ids(cfg: Optional[dict] = None) -> List[str]:
    cfg = cfg or get_config()
    ids = cfg["fastly"]["service_ids"]
    if isinstance(ids, str):
        ids = _split_csv(ids)
    if not isinstance(ids, list):
        raise ConfigError("fastly.service_ids must be a list or a comma-separated string")
    return [str(s) for s in ids]


def dictionary_name(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config())["fastly"]["dictionary_name"])


def fastly_api_url(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config())["fastly"]["api_url"])


def policy_host(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config())["policy"]["host"])


def site_id_header(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config())["policy"]["site_id_header"])


def http_timeout_s(cfg: Optional[dict] = None) -> float:
    value = (cfg or get_config())["http"]["timeout_s"]
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"http.timeout_s must be a number, got {value!r}") from exc
