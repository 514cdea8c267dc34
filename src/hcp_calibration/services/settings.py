"""Persistent key/value settings for the calibration tool.

Settings file location, in priority order:
1. Path passed explicitly to ``SettingsStore``
2. HCP_CALIBRATION_SETTINGS environment variable
3. ~/.hcp_calibration/settings.json
"""

import json
import os
from pathlib import Path
from typing import Optional, Union

from ..models import MAX_RADIUS_PX, MIN_RADIUS_PX, CalibrationArgs

CONFIG_DIR = Path.home() / ".hcp_calibration"
CONFIG_FILE = CONFIG_DIR / "settings.json"
SETTINGS_ENV_VAR = "HCP_CALIBRATION_SETTINGS"

LOWER_KEY = "/module/calibrate_hcp/lower"
UPPER_KEY = "/module/calibrate_hcp/upper"
LATTICE_KEY = "/module/calibrate_hcp/lattice"
RADIUS_KEY = "/module/calibrate_hcp/radius"

DEFAULT_LOWER = 0.0
DEFAULT_UPPER = 0.0
DEFAULT_LATTICE = 1e-9
DEFAULT_RADIUS = 3


def default_settings_path() -> Path:
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path.strip())
    return CONFIG_FILE


class SettingsStore:
    """Flat JSON object of scalar settings, loaded lazily."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else default_settings_path()
        self._values: Optional[dict] = None

    def _load(self) -> dict:
        if self._values is None:
            self._values = {}
            if self.path.exists():
                try:
                    with open(self.path, 'r', encoding='utf-8') as f:
                        data = json.load(f)
                    if isinstance(data, dict):
                        self._values = data
                except (json.JSONDecodeError, IOError):
                    self._values = {}
        return self._values

    def contains(self, key: str) -> bool:
        return key in self._load()

    def get_double(self, key: str, default: float) -> float:
        value = self._load().get(key)
        # bool is an int subclass; reject it explicitly
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return default

    def get_int(self, key: str, default: int) -> int:
        value = self._load().get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return default

    def set_double(self, key: str, value: float):
        self._load()[key] = float(value)

    def set_int(self, key: str, value: int):
        self._load()[key] = int(value)

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._load(), f, indent=2)


def load_args(settings: SettingsStore) -> CalibrationArgs:
    """Session arguments from stored settings, falling back to defaults."""
    radius = settings.get_int(RADIUS_KEY, DEFAULT_RADIUS)
    return CalibrationArgs(
        lower=settings.get_double(LOWER_KEY, DEFAULT_LOWER),
        upper=settings.get_double(UPPER_KEY, DEFAULT_UPPER),
        lattice=settings.get_double(LATTICE_KEY, DEFAULT_LATTICE),
        radius=min(max(radius, MIN_RADIUS_PX), MAX_RADIUS_PX),
    )


def save_args(settings: SettingsStore, args: CalibrationArgs):
    """Write the persisted subset of the session arguments."""
    settings.set_double(LOWER_KEY, args.lower)
    settings.set_double(UPPER_KEY, args.upper)
    settings.set_double(LATTICE_KEY, args.lattice)
    settings.set_int(RADIUS_KEY, args.radius)
    settings.save()
