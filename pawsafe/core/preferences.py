"""
User preferences kept on the device.

Stored as a small JSON file next to the device id, so choices made in the
app survive restarts.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)

PROXIMITY_ALERTS_KEY = "proximityAlertsEnabled"


def load_preferences(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read saved preferences.

    Args:
        path: Preferences file

    Returns:
        Saved preferences; empty when the file is missing or unreadable
    """
    prefs_path = Path(path)
    if not prefs_path.exists():
        return {}

    try:
        data = json.loads(prefs_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable preferences at {prefs_path}: {e}")
        return {}

    return data if isinstance(data, dict) else {}


def save_preference(path: Union[str, Path], key: str, value: Any) -> None:
    """Set one preference, keeping the others."""
    prefs_path = Path(path)
    data = load_preferences(prefs_path)
    data[key] = value

    prefs_path.parent.mkdir(parents=True, exist_ok=True)
    prefs_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.debug(f"Saved preference {key}={value!r}")


def get_proximity_alerts_enabled(path: Union[str, Path], default: bool = True) -> bool:
    """Saved proximity alerts toggle, or ``default`` if never set."""
    value = load_preferences(path).get(PROXIMITY_ALERTS_KEY)
    return value if isinstance(value, bool) else default


def set_proximity_alerts_enabled(path: Union[str, Path], enabled: bool) -> None:
    save_preference(path, PROXIMITY_ALERTS_KEY, bool(enabled))
