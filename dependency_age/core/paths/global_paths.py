from __future__ import annotations

from collections.abc import Callable
import os
from pathlib import Path
import sys
import tempfile

APP_DIR_NAME = "dependency-age"
DEFAULT_CACHE_FILENAME = ".dependency-age.cache"
LOCAL_CONFIG_FILENAME = "dependency-age.toml"


class GlobalPath:
    def __init__(self, resolver: Callable[[], Path]) -> None:
        self._resolver = resolver

    @property
    def path(self) -> Path:
        return self._resolver()


_DEFAULT_DEPENDENCY_AGE_HOME = Path.home() / ".dependency-age"


def _get_dependency_age_home() -> Path:
    if home := os.getenv("DEPENDENCY_AGE_HOME"):
        return Path(home).expanduser().resolve()
    return _DEFAULT_DEPENDENCY_AGE_HOME


def _get_system_cache_dir() -> Path:
    if sys.platform == "win32":
        if local_app_data := os.getenv("LOCALAPPDATA") or os.getenv("APPDATA"):
            return Path(local_app_data) / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_DIR_NAME
    if xdg_cache_home := os.getenv("XDG_CACHE_HOME"):
        return Path(xdg_cache_home) / APP_DIR_NAME
    try:
        return Path.home() / ".cache" / APP_DIR_NAME
    except RuntimeError:
        return Path(tempfile.gettempdir()) / APP_DIR_NAME


DEPENDENCY_AGE_HOME = GlobalPath(_get_dependency_age_home)
GLOBAL_CONFIG_FILE = GlobalPath(lambda: DEPENDENCY_AGE_HOME.path / "config.toml")
SYSTEM_CACHE_DIR = GlobalPath(_get_system_cache_dir)
SYSTEM_CACHE_FILE = GlobalPath(lambda: SYSTEM_CACHE_DIR.path / DEFAULT_CACHE_FILENAME)


def resolve_cache_file(custom_path: Path | str | None = None) -> Path:
    """Pick the cache file location.

    An explicit path always wins. Otherwise the project-local file is used when
    the working directory is writable, falling back to the per-user cache
    directory.
    """
    if custom_path is not None:
        return Path(custom_path).expanduser()

    cwd = Path.cwd()
    if os.access(cwd, os.W_OK):
        return cwd / DEFAULT_CACHE_FILENAME

    return SYSTEM_CACHE_FILE.path


def resolve_config_file() -> Path:
    local_config = Path.cwd() / LOCAL_CONFIG_FILENAME
    if local_config.is_file():
        return local_config
    return GLOBAL_CONFIG_FILE.path
