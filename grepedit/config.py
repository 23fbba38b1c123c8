"""
Configuration — loads settings from .grepedit.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "base_dir": ".",
    "grammar": "grep",
    "header_regex": "",
    "context_separators": "",
    "allow_readonly_files": False,
    "auto_save": True,
    "too_many_files": 200,
    "encoding": "utf-8",
    "protect_headers": True,
    "history": True,
    "history_dir": "",
    "log_dir": ".grepedit/logs",
}

# Config file search locations
_CONFIG_FILENAMES = [".grepedit.yaml", ".grepedit.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """grepedit configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``GREPEDIT_*``)
    3. .grepedit.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.BASE_DIR = _get("GREPEDIT_BASE_DIR", "base_dir", _DEFAULTS["base_dir"])

        # Result grammar: a preset name, optionally overridden by a custom
        # match pattern with named groups ``path`` and ``line``
        self.GRAMMAR = _get("GREPEDIT_GRAMMAR", "grammar", _DEFAULTS["grammar"])
        self.HEADER_REGEX = _get("GREPEDIT_HEADER_REGEX", "header_regex",
                                 _DEFAULTS["header_regex"])
        self.CONTEXT_SEPARATORS = _get("GREPEDIT_CONTEXT_SEPARATORS",
                                       "context_separators",
                                       _DEFAULTS["context_separators"])

        self.ALLOW_READONLY_FILES = _get_bool("GREPEDIT_ALLOW_READONLY",
                                              "allow_readonly_files",
                                              _DEFAULTS["allow_readonly_files"])
        self.AUTO_SAVE = _get_bool("GREPEDIT_AUTO_SAVE", "auto_save",
                                   _DEFAULTS["auto_save"])
        self.TOO_MANY_FILES = _get("GREPEDIT_TOO_MANY_FILES", "too_many_files",
                                   _DEFAULTS["too_many_files"], cast=int)
        self.ENCODING = _get("GREPEDIT_ENCODING", "encoding", _DEFAULTS["encoding"])
        self.PROTECT_HEADERS = _get_bool("GREPEDIT_PROTECT_HEADERS", "protect_headers",
                                         _DEFAULTS["protect_headers"])

        # Commit history log
        self.HISTORY = _get_bool("GREPEDIT_HISTORY", "history", _DEFAULTS["history"])
        self.HISTORY_DIR = _get("GREPEDIT_HISTORY_DIR", "history_dir",
                                _DEFAULTS["history_dir"])

        self.LOG_DIR = _get("GREPEDIT_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])

    def history_root(self) -> str | None:
        """Directory the commit history lives under, or None when disabled."""
        if not self.HISTORY:
            return None
        return self.HISTORY_DIR or os.getcwd()

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
