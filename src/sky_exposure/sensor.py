"""Camera sensor model and ADU/electron conversions.

A SensorModel describes the electronic characteristics of a camera at one
readout setting: gain (electrons per ADU), read noise, dark current noise
and digitizer bit depth. All operations are pure.

Example:
    from sky_exposure.sensor import NoiseModel, SensorModel

    sensor = SensorModel(gain=0.5, read_noise=8.0, bits_per_channel=16)
    electrons = sensor.adu_to_electrons(sensor.normalized_to_adu(0.25))
    sensor.total_noise_electrons(60.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sky_exposure.presets import CameraPreset


class NoiseModel(str, Enum):
    """How dark current and read noise are combined for an exposure."""

    QUADRATURE = "quadrature"  # sqrt(dark^2 * t + read^2)
    LINEAR = "linear"  # dark * t, read noise treated as negligible


@dataclass(frozen=True)
class SensorModel:
    """Electronic characteristics of a camera.

    Attributes:
        gain: Electrons per ADU count. 0 means unconfigured.
        read_noise: Read noise in electrons RMS.
        dark_current_noise: Dark current noise rate in electrons/second.
        bits_per_channel: Digitizer bit depth.
        noise_model: Active dark/read noise combination policy.
        name: Camera name, "Custom" for hand-entered values.
    """

    gain: float = 0.0
    read_noise: float = 0.0
    dark_current_noise: float = 0.0
    bits_per_channel: int = 16
    noise_model: NoiseModel = NoiseModel.QUADRATURE
    name: str = "Custom"

    @classmethod
    def from_preset(
        cls,
        preset: CameraPreset,
        noise_model: NoiseModel = NoiseModel.QUADRATURE,
    ) -> SensorModel:
        """Build a sensor model from a named camera preset.

        Args:
            preset: Entry from the camera preset table.
            noise_model: Noise combination policy for the new model.

        Returns:
            SensorModel carrying the preset's values and name.

        Example:
            >>> from sky_exposure.presets import find_preset
            >>> SensorModel.from_preset(find_preset("QSI 583")).gain
            0.5
        """
        return cls(
            gain=preset.gain,
            read_noise=preset.read_noise,
            dark_current_noise=preset.dark_current_noise,
            bits_per_channel=preset.bits_per_channel,
            noise_model=noise_model,
            name=preset.name,
        )

    def with_noise_model(self, noise_model: NoiseModel) -> SensorModel:
        """Return a copy using a different noise combination policy."""
        return replace(self, noise_model=noise_model)

    def problems(self) -> list[str]:
        """List the reasons this model cannot be used for a calculation.

        Returns:
            Human-readable problem strings; empty when the model is usable.
        """
        found: list[str] = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int | float):
                continue
            if not math.isfinite(value) or value < 0:
                found.append(f"{f.name} must be finite and non-negative")
        if self.gain == 0:
            found.append("gain must be greater than 0")
        if self.bits_per_channel <= 0:
            found.append("bits_per_channel must be greater than 0")
        return found

    def is_configured(self) -> bool:
        """True when gain and bit depth are set and all values are sane."""
        return not self.problems()

    def max_count(self) -> int:
        """Largest ADU value the digitizer can produce (2^bits - 1)."""
        return 2**self.bits_per_channel - 1

    def normalized_to_adu(self, value: float) -> float:
        """Scale a [0, 1] normalized pixel value to ADU.

        Out-of-range input is not clamped.
        """
        return value * self.max_count()

    def adu_to_electrons(self, adu: float) -> float:
        """Convert ADU counts to electrons."""
        return adu * self.gain

    def electrons_to_adu(self, electrons: float) -> float | None:
        """Convert electrons to ADU counts.

        Returns:
            ADU value, or None when gain is 0 and the conversion is undefined.
        """
        if self.gain == 0:
            return None
        return electrons / self.gain

    def total_noise_electrons(self, seconds: float) -> float:
        """Camera noise in electrons for an exposure of the given length.

        QUADRATURE combines dark current and read noise in quadrature;
        LINEAR keeps only the accumulated dark current noise.

        Args:
            seconds: Exposure length in seconds.

        Returns:
            Noise in electrons.

        Example:
            >>> sensor = SensorModel(read_noise=3.0, dark_current_noise=2.0)
            >>> sensor.total_noise_electrons(4.0)
            5.0
        """
        if self.noise_model is NoiseModel.LINEAR:
            return self.dark_current_noise * seconds
        return math.sqrt(self.dark_current_noise**2 * seconds + self.read_noise**2)
