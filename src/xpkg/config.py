"""Runtime settings loaded from YAML and the environment.

Lookup order for the settings file: ``XPKG_CONFIG``, ``./xpkg.yml`` (or
``./xpkg.yaml``), then ``~/.config/xpkg/xpkg.yml``. Environment variables
override file values::

    remote_url: https://packages.example.com/api   # or a directory path
    remote_token: secret
    cache_dir: ~/.xpkg/cache
    share_dir: ~/.xpkg/share
    root_dir: .
    platform: Win32
    branch: default
    log_level: INFO
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .common.logging_utils import redact
from .constants import Constants

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "XPKG_REMOTE_URL": "remote_url",
    "XPKG_REMOTE_TOKEN": "remote_token",
    "XPKG_CACHE_DIR": "cache_dir",
    "XPKG_SHARE_DIR": "share_dir",
    "XPKG_ROOT_DIR": "root_dir",
    "XPKG_PLATFORM": "platform",
    "XPKG_BRANCH": "branch",
    Constants.ENV_LOG_LEVEL: "log_level",
}


@dataclass
class Settings:
    """Where the tiers live and what is being built."""
    remote_url: str = ""
    remote_token: str = ""
    cache_dir: str = str(Path("~/.xpkg/cache"))
    share_dir: str = ""
    root_dir: str = "."
    platform: str = Constants.DEFAULT_PLATFORM
    branch: str = Constants.DEFAULT_BRANCH
    log_level: str = "INFO"

    @property
    def remote_is_http(self) -> bool:
        return self.remote_url.lower().startswith(("http://", "https://"))

    def path(self, value: str) -> Optional[Path]:
        """Expand ``~`` and environment variables; None for an empty setting."""
        if not value:
            return None
        return Path(os.path.expandvars(os.path.expanduser(value)))

    def describe(self) -> Dict[str, str]:
        shown = {f.name: str(getattr(self, f.name)) for f in fields(self)}
        shown["remote_token"] = redact(self.remote_token)
        return shown


def candidate_files(cwd: Optional[Path] = None) -> List[Path]:
    cwd = cwd or Path.cwd()
    candidates: List[Path] = []
    explicit = os.environ.get(Constants.ENV_CONFIG)
    if explicit:
        candidates.append(Path(os.path.expanduser(explicit)))
    candidates.extend(cwd / name for name in Constants.CONFIG_FILENAMES)
    candidates.append(Path.home() / ".config" / "xpkg" / Constants.CONFIG_FILENAMES[0])
    return candidates


def _read_yaml(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        logger.warning("Cannot read settings file %s: %s", path, exc)
        return None
    except yaml.YAMLError as exc:
        logger.warning("Ignoring malformed settings file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: top level is not a mapping", path)
        return None
    return data


def _apply(settings: Settings, values: Mapping[str, Any], source: str) -> None:
    known = {f.name for f in fields(Settings)}
    for key, value in values.items():
        if key not in known:
            logger.debug("Ignoring unknown setting '%s' from %s", key, source)
            continue
        if value is None:
            continue
        setattr(settings, key, str(value))


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> Settings:
    """Build settings from the first readable file and the environment."""
    settings = Settings()
    candidates = [Path(path)] if path else candidate_files(cwd)
    for candidate in candidates:
        if not candidate.is_file():
            continue
        data = _read_yaml(candidate)
        if data is None:
            continue
        _apply(settings, data, str(candidate))
        logger.debug("Loaded settings from %s", candidate)
        break

    environ = os.environ if environ is None else environ
    overrides = {field_name: environ[var] for var, field_name in ENV_OVERRIDES.items() if environ.get(var)}
    _apply(settings, overrides, "environment")
    return settings
