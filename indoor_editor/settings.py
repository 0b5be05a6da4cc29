"""
Editor settings persisted as JSON in ~/.config/indoor_editor/settings.json.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"


@dataclass
class EditorSettings:
    """Configuration of the editor and its server connection.

    Attributes:
        api_base_url: Floor-plan server root
        api_token: Bearer token sent with every request, if any
        request_timeout: Seconds before an HTTP request is abandoned
        close_ring_threshold: Per-axis distance (degrees) that closes a ring
        node_pick_threshold: Distance (degrees) at which a click hits a node
        server_symmetric_connections: One add-connection call lists the
            edge on both nodes
        map_center: (lng, lat) shown at the scene origin
        scene_scale: Scene units per degree
        log_level: Root logger level name
    """
    api_base_url: str = "http://localhost:5090"
    api_token: Optional[str] = None
    request_timeout: float = 10.0
    close_ring_threshold: float = 0.0001
    node_pick_threshold: float = 0.0001
    server_symmetric_connections: bool = True
    map_center: Tuple[float, float] = (50.142335, 26.313387)
    scene_scale: float = 1_000_000.0
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['map_center'] = list(self.map_center)
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'EditorSettings':
        """Merge known keys of ``data`` over the defaults; unknown keys are ignored."""
        known = {f.name for f in fields(EditorSettings)}
        values = {k: v for k, v in data.items() if k in known}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        if 'map_center' in values:
            values['map_center'] = tuple(values['map_center'])
        return EditorSettings(**values)


def get_config_dir() -> Path:
    """
    Get the directory holding the settings file.

    Returns:
        Path to ~/.config/indoor_editor/ (not created)
    """
    return Path.home() / ".config" / "indoor_editor"


def load_settings(path: Optional[Path] = None) -> EditorSettings:
    """
    Load settings, falling back to defaults.

    Args:
        path: Settings file; defaults to the config directory's settings.json

    Returns:
        EditorSettings. A missing or unreadable file yields the defaults.
    """
    file_path = Path(path) if path is not None else get_config_dir() / SETTINGS_FILENAME
    if not file_path.exists():
        return EditorSettings()

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        return EditorSettings.from_dict(data)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Could not read settings from %s: %s", file_path, e)
        return EditorSettings()


def save_settings(settings: EditorSettings, path: Optional[Path] = None) -> Path:
    """
    Save settings as pretty-printed JSON.

    Returns:
        Path to the written file
    """
    file_path = Path(path) if path is not None else get_config_dir() / SETTINGS_FILENAME
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
    return file_path
