"""
Local Preferences

The one piece of state that never leaves the device: the UI theme.
Stored as a small JSON document at AppSettings.preferences_path.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from daybook.config import get_settings


logger = structlog.get_logger(__name__)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    BLACK = "black"


class Preferences(BaseModel):
    theme: Theme = Theme.LIGHT


class ThemePreference:
    """
    Reads and writes the theme preference file.

    A missing or unreadable file means the default (light) theme.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        if path is None:
            path = get_settings().app.preferences_file
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Theme:
        if not self._path.exists():
            return Theme.LIGHT
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Preferences.model_validate(data).theme
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("preferences_unreadable", path=str(self._path), error=str(e))
            return Theme.LIGHT

    def save(self, theme: Union[Theme, str]) -> Theme:
        """
        Persist the theme.

        Raises:
            ValueError: If the theme isn't one of light, dark, black
            OSError: If the file can't be written
        """
        preferences = Preferences(theme=Theme(theme))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(preferences.model_dump_json(), encoding="utf-8")
        return preferences.theme
