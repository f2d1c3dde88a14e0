from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from common.errors import ConfigMissingError, FormatError, IoError
from .models import AppConfig


logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".jira_git_helper.json"

# Environment variable names
ENV_HOME = "JIRA_GIT_HOME"
ENV_PREFIX = "JIRA_GIT_"

REQUIRED_KEYS = ("jira_url", "username", "encrypted_password", "jira_id_prefix")


def _getenv(environ: Mapping[str, str], name: str) -> Optional[str]:
    val = environ.get(name)
    return val if val not in (None, "") else None


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Config file location: `$JIRA_GIT_HOME` if set, else the user's home."""
    env = os.environ if environ is None else environ
    home = _getenv(env, ENV_HOME)
    base = Path(home) if home else Path.home()
    return base / CONFIG_FILE_NAME


class ConfigStore:
    """
    JSON file persistence for `AppConfig`.

    - `load()` merges the file with `JIRA_GIT_<KEY>` environment overrides
      (env wins) and raises `ConfigMissingError` when a required key is absent
      from both.
    - `save()` writes atomically with owner-only permissions.
    - `reset()` deletes the file.

    The path and environment are injected so tests never touch the real home.
    """

    def __init__(self, path: os.PathLike[str] | str, *, environ: Optional[Mapping[str, str]] = None) -> None:
        self._path = Path(path)
        self._environ: Mapping[str, str] = os.environ if environ is None else environ

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConfigStore":
        return cls(default_config_path(environ), environ=environ)

    @property
    def path(self) -> Path:
        return self._path

    def read_raw(self) -> Dict[str, Any]:
        """Return the file contents as a dict; `{}` when the file does not exist."""
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                text = f.read()
        except OSError as exc:
            raise IoError(f"Failed to read config file {self._path}: {exc}") from exc
        try:
            raw = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise FormatError(f"Config file {self._path} is not valid JSON") from exc
        if not isinstance(raw, dict):
            raise FormatError(f"Config file {self._path} must contain a JSON object")
        return raw

    def _env_overrides(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for key in REQUIRED_KEYS:
            val = _getenv(self._environ, f"{ENV_PREFIX}{key.upper()}")
            if val is not None:
                out[key] = val
        return out

    def load(self) -> AppConfig:
        merged: Dict[str, Any] = {k: v for k, v in self.read_raw().items() if v not in (None, "")}
        overrides = self._env_overrides()
        if overrides:
            logger.debug("Applying environment overrides for: %s", ", ".join(sorted(overrides)))
        merged.update(overrides)

        missing = [k for k in REQUIRED_KEYS if not merged.get(k)]
        if missing:
            raise ConfigMissingError(missing)

        try:
            return AppConfig.model_validate({k: merged[k] for k in REQUIRED_KEYS})
        except ValidationError as ve:
            raise FormatError(f"Invalid configuration values: {ve}") from ve

    def save(self, config: AppConfig) -> None:
        payload = json.dumps(config.to_file_dict(), indent=2, sort_keys=True)
        dir_path = self._path.parent
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=dir_path, suffix=".tmp")
        except OSError as exc:
            raise IoError(f"Failed to write config file {self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload + "\n")
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise IoError(f"Failed to write config file {self._path}: {exc}") from exc
        logger.debug("Saved configuration to %s", self._path)

    def reset(self) -> bool:
        """Delete the config file. Returns True if a file was removed."""
        if not self._path.exists():
            return False
        try:
            self._path.unlink()
        except OSError as exc:
            raise IoError(f"Failed to remove config file {self._path}: {exc}") from exc
        logger.debug("Removed configuration file %s", self._path)
        return True


__all__ = [
    "ConfigStore",
    "default_config_path",
    "CONFIG_FILE_NAME",
    "ENV_HOME",
    "ENV_PREFIX",
]
