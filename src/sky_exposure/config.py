"""Calculation settings and config-file loading.

Holds the engine's policy parameters (noise tolerance, minimum target
signal, planned total integration, Anstey formula variant) and reads a
JSON config file that can preset both the camera and those parameters.

Config file layout (every key optional):

    {
      "camera": "QSI 583",
      "sensor": {"read_noise": 7.5, "noise_model": "linear"},
      "engine": {"readout_noise_tolerance_pct": 5, "anstey_variant": "quadratic"}
    }

"camera" selects a preset; "sensor" values override it.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

from sky_exposure.presets import find_preset
from sky_exposure.sensor import SensorModel

# =============================================================================
# Constants
# =============================================================================

# Acceptable read noise contribution relative to sky noise, percent
DEFAULT_READOUT_NOISE_TOLERANCE_PCT = 5.0

# Smallest target signal (ADU) considered resolvable above quantization
DEFAULT_MINIMUM_TARGET_ADU = 15.0

# Planned total integration across all sub-exposures, seconds
DEFAULT_TOTAL_EXPOSURE_SECONDS = 3600.0


class AnsteyVariant(str, Enum):
    """Closed form used for the quantization-limited exposure."""

    QUADRATIC = "quadratic"  # root of the read-noise/sky quadratic
    SQRT_TOTAL = "sqrt_total"  # min signal * sqrt(total) / (2 * noise rate)


@dataclass(frozen=True)
class EngineConfig:
    """Policy parameters for an exposure calculation.

    Attributes:
        readout_noise_tolerance_pct: Read noise allowed on top of sky
            noise, percent in [0, 100].
        minimum_target_adu: Minimum resolvable target signal in ADU.
        total_exposure_seconds: Planned total integration time.
        anstey_variant: Quantization-limited formula to use.
    """

    readout_noise_tolerance_pct: float = DEFAULT_READOUT_NOISE_TOLERANCE_PCT
    minimum_target_adu: float = DEFAULT_MINIMUM_TARGET_ADU
    total_exposure_seconds: float = DEFAULT_TOTAL_EXPOSURE_SECONDS
    anstey_variant: AnsteyVariant = AnsteyVariant.QUADRATIC

    def problems(self) -> list[str]:
        """List parameters outside their meaningful range.

        These do not block a calculation; the affected estimate comes out
        undefined instead.
        """
        found: list[str] = []
        pct = self.readout_noise_tolerance_pct
        if not (math.isfinite(pct) and 0 < pct <= 100):
            found.append("readout noise tolerance must be in (0, 100] percent")
        if not (math.isfinite(self.minimum_target_adu) and self.minimum_target_adu > 0):
            found.append("minimum target ADU must be greater than 0")
        total = self.total_exposure_seconds
        if not (math.isfinite(total) and total > 0):
            found.append("total exposure must be greater than 0")
        return found


@dataclass(frozen=True)
class CalculatorConfig:
    """Camera and engine settings loaded together."""

    sensor: SensorModel = field(default_factory=SensorModel)
    engine: EngineConfig = field(default_factory=EngineConfig)


def _apply(target: Any, values: Mapping[str, Any], section: str) -> Any:
    """Replace dataclass fields from a mapping, coercing enum values.

    Raises:
        ValueError: On unknown keys or values the field cannot take.
    """
    known = {f.name: f for f in fields(target)}
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ValueError(f"Unknown {section} setting(s): {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, raw in values.items():
        current = getattr(target, key)
        try:
            if isinstance(current, Enum):
                changes[key] = type(current)(raw)
            elif isinstance(current, str):
                changes[key] = str(raw)
            elif isinstance(current, int):
                changes[key] = int(raw)
            else:
                changes[key] = float(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid {section}.{key}: {raw!r}") from e
    return replace(target, **changes)


def sensor_from_mapping(data: Mapping[str, Any]) -> SensorModel:
    """Build a SensorModel from a config mapping.

    Args:
        data: Mapping with optional "camera" (preset name) and "sensor"
            (field overrides) keys.

    Returns:
        The configured SensorModel.

    Raises:
        KeyError: If the camera preset is unknown.
        ValueError: If a sensor value is invalid.
    """
    sensor = SensorModel()
    if data.get("camera"):
        sensor = SensorModel.from_preset(find_preset(str(data["camera"])))
    result: SensorModel = _apply(sensor, data.get("sensor") or {}, "sensor")
    return result


def engine_config_from_mapping(data: Mapping[str, Any]) -> EngineConfig:
    """Build an EngineConfig from the "engine" section of a config mapping."""
    result: EngineConfig = _apply(EngineConfig(), data.get("engine") or {}, "engine")
    return result


def load_config(path: Path | str) -> CalculatorConfig:
    """Load camera and engine settings from a JSON file.

    Args:
        path: JSON config file.

    Returns:
        CalculatorConfig with defaults for anything the file omits.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object or holds bad values.
        KeyError: If it names an unknown camera preset.

    Example:
        >>> config = load_config("qsi583.json")
        >>> config.sensor.name
        'QSI 583'
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Could not parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    return CalculatorConfig(
        sensor=sensor_from_mapping(data),
        engine=engine_config_from_mapping(data),
    )
