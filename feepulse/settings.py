"""User settings: defaults, validated merge and atomic persistence"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from feepulse.alerts import default_alert_config
from feepulse.log import DEFAULT_DATA_DIR
from feepulse.sources import DATA_SOURCES

logger = logging.getLogger(__name__)

SETTINGS_FILE = 'settings.json'
THEMES = ('system', 'light', 'dark')

MIN_REFRESH_INTERVAL = 10
MIN_HISTORY_CAPACITY = 2


def get_default_settings() -> Dict[str, Any]:
    """Get default application settings"""
    return {
        'theme': 'system',
        'notifications': True,
        'refresh_interval': 60,
        'cache_freshness': 300,
        'history_capacity': 72,
        'csv_log_path': None,
        'data_source': DATA_SOURCES[0].name,
        'alert_config': default_alert_config(),
        'ui_config': {
            'window_width': 1100, 'window_height': 720,
            'minimize_to_tray': True,
        },
    }


def _validate(key: str, value: Any, current: Any) -> Any:
    """Return the value to store for key, raising ValueError/TypeError if invalid"""
    if key == 'refresh_interval':
        return max(MIN_REFRESH_INTERVAL, int(value))
    if key == 'history_capacity':
        return max(MIN_HISTORY_CAPACITY, int(value))
    if key == 'cache_freshness':
        return max(0, int(value))
    if key == 'theme':
        if value not in THEMES:
            raise ValueError(f"unknown theme {value!r}")
        return value
    if key == 'data_source':
        if value not in [source.name for source in DATA_SOURCES]:
            raise ValueError(f"unknown data source {value!r}")
        return value
    if key == 'csv_log_path':
        if value is not None and not isinstance(value, str):
            raise TypeError(f"expected a path string, got {value!r}")
        return value or None
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise TypeError(f"expected true/false, got {value!r}")
        return value
    if isinstance(current, (int, float)):
        if isinstance(value, bool):
            raise TypeError(f"expected a number, got {value!r}")
        return type(current)(value)
    return value


def merge_settings(default: Dict[str, Any], saved: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge saved settings into defaults, keeping defaults for invalid values"""
    for key, value in saved.items():
        if key not in default:
            continue
        if isinstance(value, dict) and isinstance(default[key], dict):
            merge_settings(default[key], value)
        elif isinstance(default[key], dict):
            logger.warning(f"Invalid setting value for {key}: {value}")
        else:
            try:
                default[key] = _validate(key, value, default[key])
            except (ValueError, TypeError):
                logger.warning(f"Invalid setting value for {key}: {value}")
    return default


def settings_path(data_dir: Optional[Path] = None) -> Path:
    return Path(data_dir or DEFAULT_DATA_DIR) / SETTINGS_FILE


def ensure_data_dir(data_dir: Optional[Path] = None) -> bool:
    """Create the data directory, warning once if that is not possible"""
    data_dir = Path(data_dir or DEFAULT_DATA_DIR)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.warning(f"Could not create data directory {data_dir}: {e}")
        return False


def load_settings(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load settings from disk merged over the defaults"""
    settings = get_default_settings()
    path = Path(path) if path else settings_path()

    if not path.exists():
        logger.info("No existing settings found, using defaults")
        return settings

    try:
        with open(path, 'r', encoding='utf-8') as f:
            saved = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Settings file corrupted, using defaults: {e}")
        return settings
    except OSError as e:
        logger.warning(f"Could not load settings: {e}")
        return settings

    if not isinstance(saved, dict):
        logger.warning("Settings file does not hold a JSON object, using defaults")
        return settings

    merge_settings(settings, saved)
    logger.info("Settings loaded successfully")
    return settings


def save_settings(settings: Dict[str, Any], path: Union[str, Path, None] = None) -> bool:
    """Save settings with an atomic write"""
    path = Path(path) if path else settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(settings, f, indent=2, ensure_ascii=False)
        temp_path.replace(path)
        logger.debug("Settings saved successfully")
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error saving settings: {e}")
        return False
