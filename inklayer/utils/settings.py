"""
Editor settings loaded from the user's config directory.
"""
import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .resource_loader import get_config_dir

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"


@dataclass(frozen=True)
class EditorSettings:
    """Defaults for new elements and tuning for the engine."""

    eraser_radius: float = 10.0
    stroke_width: float = 2.0
    color: str = "#ff0000"
    font_family: str = "Helvetica"
    font_size: float = 16.0
    highlight_opacity: float = 0.3
    history_size: int = 100
    selection_color: str = "#0066ff"


def load_settings(path: Optional[str] = None) -> EditorSettings:
    """
    Load settings from JSON, falling back to defaults.

    Args:
        path: Settings file, defaults to ``settings.json`` in the config dir

    Returns:
        Settings with unknown keys ignored
    """
    settings_path = Path(path) if path else get_config_dir() / SETTINGS_FILE
    if not settings_path.exists():
        return EditorSettings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings must be a JSON object")
    except (OSError, ValueError) as e:
        logger.warning("Ignoring settings file %s: %s", settings_path, e)
        return EditorSettings()

    known = {f.name for f in dataclasses.fields(EditorSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.debug("Unknown settings ignored: %s", ", ".join(unknown))
    return EditorSettings(**{k: v for k, v in data.items() if k in known})


def save_settings(settings: EditorSettings, path: Optional[str] = None) -> None:
    """Write settings as JSON."""
    settings_path = Path(path) if path else get_config_dir() / SETTINGS_FILE
    with open(settings_path, "w", encoding="utf-8") as f:
        json.dump(dataclasses.asdict(settings), f, indent=2)
