import json
import logging
import os
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ENV_PREFIX = "GITZIP_"

DEFAULTS: Dict[str, Any] = {
    "unzipped_suffix": "_unzipped",
    "delete_old_file_when_gzipping": False,
    "use_legacy_gzip_naming_convention": False,
    "default_naming": "with",
    "default_output": "parent",
    "default_git_mode": "include_all",
    "compression_format": "zip",
    "compression_level": None,
    "gzip_extension_map": [
        {"inflated": "tar", "compressed": "tgz"},
        {"inflated": "svg", "compressed": "svgz"},
        {"inflated": "wmf", "compressed": "wmz"},
        {"inflated": "emf", "compressed": "emz"},
    ],
}

_CHOICES = {
    "default_naming": ("only", "with", "custom"),
    "default_output": ("current", "parent", "custom"),
    "default_git_mode": ("exclude_git", "respect_gitignore", "include_all"),
    "compression_format": ("zip", "zstd"),
}

_TRUE_VALUES = ("1", "true", "yes", "on")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


class Settings:
    """
    Manages loading and validation of settings from a JSON file (by default `gitzip.json`).
    Environment variables named `GITZIP_<KEY>` override individual keys.
    """

    def __init__(self, settings_file: str = "gitzip.json") -> None:
        """
        Loads settings from the specified file, then populates instance variables.
        A missing or invalid file is not fatal: defaults are used instead.

        :param settings_file: The path to the settings JSON. Defaults to "gitzip.json".
        """
        self.settings_file = settings_file
        self.raw: Dict[str, Any] = {}

        if not os.path.isfile(settings_file):
            logger.info("No settings file at '%s', using defaults.", settings_file)
        else:
            loaded = self._load_json(settings_file)
            if isinstance(loaded, dict):
                self.raw = loaded
                logger.info("Settings loaded from '%s'.", settings_file)
            elif loaded is not None:
                logger.error(
                    "Settings file '%s' must contain a JSON object, using defaults.",
                    settings_file,
                )

        values = dict(DEFAULTS)
        values.update({k: v for k, v in self.raw.items() if k in DEFAULTS})
        values.update(self._env_overrides())

        self.unzipped_suffix: str = str(values["unzipped_suffix"])
        self.delete_old_file_when_gzipping: bool = bool(
            values["delete_old_file_when_gzipping"]
        )
        self.use_legacy_gzip_naming_convention: bool = bool(
            values["use_legacy_gzip_naming_convention"]
        )
        self.default_naming: str = self._choice(values, "default_naming")
        self.default_output: str = self._choice(values, "default_output")
        self.default_git_mode: str = self._choice(values, "default_git_mode")
        self.compression_format: str = self._choice(values, "compression_format")
        self.compression_level: Optional[int] = self._level(values["compression_level"])
        self.gzip_extension_map: List[Dict[str, str]] = self._extension_map(
            values["gzip_extension_map"]
        )

    def _load_json(self, path: str) -> Any:
        """
        Loads JSON from the given file path.

        :param path: The path to the JSON file.
        :return: The parsed JSON (dictionary or list) if valid, otherwise None.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError, OSError) as e:
            logger.error("Error loading JSON file '%s': %s", path, e)
            return None

    def _env_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for key, default in DEFAULTS.items():
            value = os.environ.get(ENV_PREFIX + key.upper())
            if value is None:
                continue
            if isinstance(default, bool):
                overrides[key] = _parse_bool(value)
            elif key == "gzip_extension_map":
                try:
                    overrides[key] = json.loads(value)
                except json.JSONDecodeError as e:
                    logger.warning("Ignoring %s%s: %s", ENV_PREFIX, key.upper(), e)
            else:
                overrides[key] = value
        return overrides

    def _choice(self, values: Dict[str, Any], key: str) -> str:
        value = str(values[key]).lower()
        if value not in _CHOICES[key]:
            logger.warning(
                "Invalid value %r for %s, using %r.", values[key], key, DEFAULTS[key]
            )
            return DEFAULTS[key]
        return value

    def _level(self, value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid compression_level %r, using format default.", value)
            return None

    def _extension_map(self, value: Any) -> List[Dict[str, str]]:
        if not isinstance(value, list):
            logger.warning("gzip_extension_map must be a list, using defaults.")
            return list(DEFAULTS["gzip_extension_map"])
        return [
            {"inflated": str(m["inflated"]), "compressed": str(m["compressed"])}
            for m in value
            if isinstance(m, dict) and m.get("inflated") and m.get("compressed")
        ]
