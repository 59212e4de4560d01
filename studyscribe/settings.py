"""
Settings Manager for StudyScribe
Manages user-editable settings such as the Ollama endpoint and model.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from studyscribe.config import DEFAULT_OLLAMA_MODEL, OLLAMA_API_BASE, SETTINGS_FILE
from studyscribe.logging_config import debug_log

OLLAMA_URL_KEY = "ollama.url"
OLLAMA_MODEL_KEY = "ollama.model"


@dataclass(frozen=True)
class ModelSettings:
    """Model configuration handed to each generation job."""
    model: str
    endpoint: str


class SettingsManager:
    """
    Manages settings stored in settings.yaml.

    Keys are dotted paths ("ollama.url") mapped onto nested YAML sections.
    A missing or corrupted file falls back to defaults.
    """

    DEFAULTS = {
        "ollama": {
            "url": OLLAMA_API_BASE,
            "model": DEFAULT_OLLAMA_MODEL,
        }
    }

    def __init__(self, settings_file: Path = None):
        """
        Initialize the settings manager.

        Args:
            settings_file: Path to settings.yaml. Defaults to the app config dir.
        """
        self.settings_file = Path(settings_file or SETTINGS_FILE)
        self._settings = self._load_settings()

    def _load_settings(self) -> dict[str, Any]:
        """
        Load settings from the YAML file.

        Returns:
            dict: Settings, or the default structure if the file is missing or unreadable
        """
        defaults = {section: dict(values) for section, values in self.DEFAULTS.items()}

        if not self.settings_file.exists():
            return defaults

        try:
            with open(self.settings_file, encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            debug_log(f"[SETTINGS] Could not read {self.settings_file}: {e}. Using defaults.")
            return defaults

        if not isinstance(loaded, dict):
            debug_log(f"[SETTINGS] Ignoring malformed settings file {self.settings_file}")
            return defaults

        for section, values in loaded.items():
            if isinstance(values, dict):
                defaults.setdefault(section, {}).update(values)
        return defaults

    def _save_settings(self) -> None:
        """Save settings to the YAML file."""
        try:
            self.settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._settings, f, default_flow_style=False)
        except OSError as e:
            # Log error but don't crash
            debug_log(f"[SETTINGS] Could not save settings: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting by dotted key.

        Args:
            key: Dotted key such as "ollama.model"
            default: Value returned when the key is absent

        Returns:
            The stored value or default
        """
        node: Any = self._settings
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a setting by dotted key and persist it."""
        parts = key.split(".")
        node = self._settings
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
        self._save_settings()

    def get_all(self) -> dict[str, Any]:
        """Return a flat copy of all settings keyed by dotted path."""
        flat = {}
        for section, values in self._settings.items():
            if isinstance(values, dict):
                for name, value in values.items():
                    flat[f"{section}.{name}"] = value
            else:
                flat[section] = values
        return flat

    def get_model_settings(self) -> ModelSettings:
        """Return the model and endpoint to use for the next generation job."""
        return ModelSettings(
            model=self.get(OLLAMA_MODEL_KEY) or DEFAULT_OLLAMA_MODEL,
            endpoint=self.get(OLLAMA_URL_KEY) or OLLAMA_API_BASE,
        )
