"""Configuration loader for wpbootstrap tool settings."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from wpbootstrap.errors import BootstrapError

STRING_KEYS = (
    "log_file",
    "data_dir",
    "socket",
    "mysql_system_user",
    "web_root",
    "web_user",
    "log_dir",
    "wp_cli",
    "download_url",
)
BOOL_KEYS = ("verbose", "allow_insecure_http")
INT_KEYS = ("max_attempts",)
NUMBER_KEYS = ("poll_interval", "shutdown_timeout")


class ConfigLoader:
    """Loads YAML tool settings that act as CLI defaults.

    Credentials never come from this file; they are read from the process
    environment only. Every value is type-checked on load.
    """

    SUPPORTED_KEYS = set(STRING_KEYS + BOOL_KEYS + INT_KEYS + NUMBER_KEYS)

    @staticmethod
    def _type_problem(key: str, value: Any) -> Optional[str]:
        if key in STRING_KEYS and not isinstance(value, str):
            return f"{key} must be a string"
        if key in BOOL_KEYS and not isinstance(value, bool):
            return f"{key} must be true or false"
        if key in INT_KEYS and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
            return f"{key} must be a positive integer"
        if key in NUMBER_KEYS and (
            isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0
        ):
            return f"{key} must be a non-negative number"
        return None

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.is_file():
            raise BootstrapError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise BootstrapError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise BootstrapError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed) - self.SUPPORTED_KEYS)
        if unknown:
            raise BootstrapError(f"Unknown configuration keys: {', '.join(unknown)}")

        problems: List[str] = []
        for key in sorted(parsed):
            problem = self._type_problem(key, parsed[key])
            if problem:
                problems.append(problem)
        if problems:
            raise BootstrapError(f"Invalid values in '{config_path}': {'; '.join(problems)}")

        return parsed
