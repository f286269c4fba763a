"""Named camera presets.

Published gain, read noise, dark current noise and bit depth for common
astronomy CCDs and DSLRs. The table is plain input data used to populate a
SensorModel; "Custom" leaves every value for the user to fill in.

Sources:
    Canon camera stats: http://www.astrosurf.com/buil/50d/test.htm
    Astro camera stats: http://starizona.com/acb/ccd/advtheoryexp.aspx
"""

from __future__ import annotations

from typing import NamedTuple


class CameraPreset(NamedTuple):
    """One camera/readout configuration from the preset table."""

    name: str
    gain: float  # e-/ADU
    read_noise: float  # e- RMS
    dark_current_noise: float  # e-/s
    bits_per_channel: int


CUSTOM = "Custom"

CAMERA_PRESETS: tuple[CameraPreset, ...] = (
    CameraPreset("Custom", 0.0, 0.0, 0.0, 16),
    CameraPreset("Apogee Alta U16M", 1.5, 10.0, 0.0, 16),
    CameraPreset("Apogee AP1E", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP2E", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP32ME", 3.0, 10.0, 0.0, 16),
    CameraPreset("Apogee AP260E", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP4", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP6E", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP7", 3.0, 12.0, 0.0, 16),
    CameraPreset("Apogee AP8", 3.0, 12.0, 0.0, 16),
    CameraPreset("Apogee AP9E", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP10", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP16", 3.0, 15.0, 0.0, 16),
    CameraPreset("Apogee AP47", 3.0, 7.0, 0.0, 16),
    CameraPreset("Canon 350D @ ISO 400", 2.67, 8.0, 0.0, 12),
    CameraPreset("Canon 350D @ ISO 800", 1.33, 8.0, 0.0, 12),
    CameraPreset("Canon 400D @ ISO 400", 2.74, 7.0, 0.0, 12),
    CameraPreset("Canon 400D @ ISO 800", 1.37, 7.0, 0.0, 12),
    CameraPreset("Canon 10D @ ISO 400", 2.41, 14.9, 0.0, 12),
    CameraPreset("Canon 10D @ ISO 800", 1.20, 14.9, 0.0, 12),
    CameraPreset("Canon 20D @ ISO 400", 3.14, 7.5, 0.0, 12),
    CameraPreset("Canon 20D @ ISO 800", 1.57, 7.5, 0.0, 12),
    CameraPreset("Canon 40D @ ISO 400", 0.84, 6.8, 0.0, 14),
    CameraPreset("Canon 40D @ ISO 800", 0.42, 5.3, 0.0, 14),
    CameraPreset("Canon 50D @ ISO 400", 0.57, 4.9, 0.0, 14),
    CameraPreset("Canon 50D @ ISO 800", 0.29, 3.4, 0.0, 14),
    CameraPreset("Canon 5D @ ISO 400", 3.99, 8.2, 0.0, 12),
    CameraPreset("Canon 5D @ ISO 800", 1.99, 5.1, 0.0, 12),
    CameraPreset("Canon 5DMkII @ ISO 400", 1.01, 7.3, 0.0, 14),
    CameraPreset("Canon 5DMkII @ ISO 800", 0.50, 4.2, 0.0, 14),
    CameraPreset("FLI IMG512S", 3.0, 7.0, 0.0, 16),
    CameraPreset("FLI IMG1024S", 3.0, 7.0, 0.0, 16),
    CameraPreset("FLI IMG261E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG401E", 1.5, 15.0, 0.0, 16),
    CameraPreset("FLI IMG1001E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG1302E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG1401E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG1602E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG3200E", 3.0, 10.0, 0.0, 16),
    CameraPreset("FLI IMG4202", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG4300E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG6303E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG16801E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI IMG42-40", 2.0, 7.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM1-1", 3.0, 7.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM2-2", 2.0, 7.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM7E", 1.5, 15.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM8E", 1.5, 15.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM9E", 3.0, 15.0, 0.0, 16),
    CameraPreset("FLI MaxCam CM10E/ME", 3.0, 10.0, 0.0, 16),
    CameraPreset("FLI M8300", 0.4, 7.59, 0.0, 16),
    CameraPreset("QHY8", 3.0, 10.0, 0.0, 16),
    CameraPreset("QHY8PRO", 3.0, 10.0, 0.0, 16),
    CameraPreset("QHY9", 0.5, 10.0, 0.0, 16),
    CameraPreset("QSI 504", 2.6, 15.0, 0.0, 16),
    CameraPreset("QSI 516", 2.6, 15.0, 0.0, 16),
    CameraPreset("QSI 532", 1.3, 7.0, 0.0, 16),
    CameraPreset("QSI 520", 0.8, 8.0, 0.0, 16),
    CameraPreset("QSI 540", 0.8, 8.0, 0.0, 16),
    CameraPreset("QSI 583", 0.5, 8.0, 0.0, 16),
    CameraPreset("SBIG ST-237A", 2.3, 17.0, 0.0, 16),
    CameraPreset("SBIG ST-7XE/XME", 2.6, 15.0, 0.0, 16),
    CameraPreset("SBIG ST-8XE/XME", 2.5, 15.0, 0.0, 16),
    CameraPreset("SBIG ST-9XE", 2.2, 15.0, 0.0, 16),
    CameraPreset("SBIG ST-10XE/XME", 1.3, 7.0, 0.0, 16),
    CameraPreset("SBIG ST-2000XM/XCM", 0.6, 7.6, 0.0, 16),
    CameraPreset("SBIG ST-4000XCM", 0.6, 7.9, 0.0, 16),
    CameraPreset("SBIG ST-1001E", 2.0, 15.0, 0.0, 16),
    CameraPreset("SBIG STL-4020M/CM", 0.6, 7.8, 0.0, 16),
    CameraPreset("SBIG STL-1301E/LE", 1.6, 18.0, 0.0, 16),
    CameraPreset("SBIG STL-1001E", 2.0, 15.0, 0.0, 16),
    CameraPreset("SBIG STL-11000M/CM", 0.8, 13.0, 0.0, 16),
    CameraPreset("SBIG STL-6303E/LE", 2.4, 13.0, 0.0, 16),
    CameraPreset("SBIG ST-402ME", 2.6, 15.0, 0.0, 16),
    CameraPreset("SBIG ST-8300", 0.37, 9.3, 0.0, 16),
    CameraPreset("Starlight Xpress HX516", 1.0, 11.0, 0.0, 16),
    CameraPreset("Starlight Xpress HX916", 2.0, 12.0, 0.0, 16),
    CameraPreset("Starlight Xpress MX516", 1.0, 11.0, 0.0, 16),
    CameraPreset("Starlight Xpress MX716", 1.3, 10.0, 0.0, 16),
    CameraPreset("Starlight Xpress MX916", 2.0, 11.0, 0.0, 16),
    CameraPreset("Starlight Xpress MX5C", 1.0, 11.0, 0.0, 16),
    CameraPreset("Starlight Xpress MX7C", 1.3, 10.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-H9/H9C", 0.45, 7.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-M5/M5C", 1.0, 11.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-M7/M7C", 1.3, 10.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-M8C", 0.2, 7.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-M9", 2.0, 12.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-M25C", 0.4, 7.0, 0.0, 16),
    CameraPreset("Starlight Xpress SXVF-H35/36", 0.9, 12.0, 0.0, 16),
)

_BY_NAME = {preset.name.casefold(): preset for preset in CAMERA_PRESETS}


def preset_names() -> list[str]:
    """Names of all presets in table order."""
    return [preset.name for preset in CAMERA_PRESETS]


def find_preset(name: str) -> CameraPreset:
    """Look up a preset by name, ignoring case and surrounding whitespace.

    Args:
        name: Camera name as listed in CAMERA_PRESETS.

    Returns:
        The matching CameraPreset.

    Raises:
        KeyError: If no preset has that name.

    Example:
        >>> find_preset("sbig st-8300").gain
        0.37
    """
    try:
        return _BY_NAME[name.strip().casefold()]
    except KeyError:
        raise KeyError(f"Unknown camera preset: {name!r}") from None
