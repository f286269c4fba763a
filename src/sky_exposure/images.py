"""Image sources for samples.

Concrete ImageSource implementations backed by numpy arrays, plus loaders
for the two file formats a sample usually comes from:

- FITS files written by capture software (astropy.io.fits), which carry
  PEDESTAL / EXPOSURE / XBINNING header keywords.
- Telescope session files (ASDF), where frames are stored per camera
  under ``cameras/<camera>/frames`` next to their capture ``settings``.

Example:
    from sky_exposure.images import load_fits
    from sky_exposure.sample import Sample

    background = Sample.attach(load_fits("m31_L_001.fits"))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import asdf
import numpy as np
from astropy.io import fits
from numpy.typing import NDArray

from sky_exposure.observability import get_logger
from sky_exposure.sample import BINNING_KEY, EXPOSURE_KEY, PEDESTAL_KEY

logger = get_logger(__name__)

# Session frame settings are recorded in microseconds
MICROSECONDS_PER_SECOND = 1_000_000


def full_scale_for(data: NDArray[Any]) -> float:
    """Full-scale pixel value implied by an array's dtype.

    Integer data is normalized against the dtype maximum (65535 for
    uint16); floating point data is assumed to be normalized already.
    """
    if np.issubdtype(data.dtype, np.integer):
        return float(np.iinfo(data.dtype).max)
    return 1.0


@dataclass(frozen=True, eq=False)
class ArrayImage:
    """An in-memory image with header keywords.

    Attributes:
        data: Pixel array, any shape. Color images are reduced over all
            channels.
        keywords: Header keywords.
        full_scale: Pixel value that maps to 1.0. None derives it from the
            dtype (see full_scale_for).
        name: Label used in logs (usually the file name).
    """

    data: NDArray[Any]
    keywords: Mapping[str, Any] = field(default_factory=dict)
    full_scale: float | None = None
    name: str = ""

    def median(self) -> float:
        """Median of the finite pixels divided by full scale.

        Returns:
            Normalized median, 0.0 for an image without finite pixels.
        """
        values = np.asarray(self.data, dtype=np.float64)
        values = values[np.isfinite(values)]
        if values.size == 0:
            logger.warning("Image has no finite pixels", image=self.name)
            return 0.0

        scale = self.full_scale if self.full_scale else full_scale_for(self.data)
        return float(np.median(values)) / scale


def load_fits(path: Path | str, hdu: int | None = None) -> ArrayImage:
    """Load a FITS image and its header.

    Args:
        path: FITS file path.
        hdu: Index of the HDU to read. None picks the first HDU holding
            image data (compressed files keep it in an extension).

    Returns:
        ArrayImage with the header cards as keywords.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the selected HDU holds no image data.

    Example:
        >>> image = load_fits("m31_L_001.fits")
        >>> image.keywords["EXPOSURE"]
        120.0
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"FITS file not found: {path}")

    with fits.open(path) as hdul:
        if hdu is None:
            candidates = [h for h in hdul if h.data is not None]
            if not candidates:
                raise ValueError(f"No image data in {path}")
            selected = candidates[0]
        else:
            selected = hdul[hdu]
            if selected.data is None:
                raise ValueError(f"HDU {hdu} of {path} holds no image data")

        # Copy out of the memory map before the file closes
        data = np.array(selected.data)
        keywords = {key: value for key, value in selected.header.items() if key}

    logger.info(
        "Loaded FITS image",
        path=str(path),
        shape=list(data.shape),
        dtype=str(data.dtype),
    )
    return ArrayImage(data=data, keywords=keywords, name=path.name)


def session_keywords(settings: Mapping[str, Any]) -> dict[str, Any]:
    """Translate session capture settings into header keywords.

    ``exposure_us`` becomes EXPOSURE in seconds, ``bins`` (or ``binning``)
    becomes XBINNING and ``pedestal`` becomes PEDESTAL. Other settings are
    passed through upper-cased.

    Example:
        >>> session_keywords({"exposure_us": 60_000_000, "gain": 80})
        {'GAIN': 80, 'EXPOSURE': 60.0}
    """
    keywords: dict[str, Any] = {
        str(key).upper(): value
        for key, value in settings.items()
        if key not in ("exposure_us", "bins", "binning", "pedestal")
    }
    if "exposure_us" in settings:
        exposure_us = float(settings["exposure_us"])
        keywords[EXPOSURE_KEY] = exposure_us / MICROSECONDS_PER_SECOND
    for key in ("bins", "binning"):
        if key in settings:
            keywords[BINNING_KEY] = settings[key]
            break
    if "pedestal" in settings:
        keywords[PEDESTAL_KEY] = settings["pedestal"]
    return keywords


def load_session_frame(
    path: Path | str,
    camera: str = "main",
    index: int = -1,
) -> ArrayImage:
    """Load one frame from a telescope session ASDF file.

    Business context: captures made during an observation session are
    stored in a single ASDF file per session. Taking the background sample
    straight from that file avoids exporting a FITS first.

    Args:
        path: Session ASDF file.
        camera: Camera key under ``cameras`` ("main", "finder", ...).
        index: Frame index, negative values count from the end (default:
            last frame).

    Returns:
        ArrayImage whose keywords come from the camera's capture settings.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the camera or frame is not in the session.

    Example:
        >>> image = load_session_frame("observation_m31_20251231_210000.asdf")
        >>> image.keywords["EXPOSURE"]
        60.0
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Session file not found: {path}")

    with asdf.open(path) as af:
        cameras = af.tree.get("cameras") or {}
        if camera not in cameras:
            available = ", ".join(sorted(cameras)) or "none"
            raise ValueError(
                f"Camera {camera!r} not in session {path.name} (available: {available})"
            )

        entry = cameras[camera]
        frames = entry.get("frames") or []
        try:
            frame = frames[index]
        except IndexError:
            raise ValueError(
                f"Frame {index} out of range for camera {camera!r} "
                f"({len(frames)} frames)"
            ) from None

        # Materialize the lazily loaded block before the file closes
        data = np.array(frame)
        keywords = session_keywords(entry.get("settings") or {})

    logger.info(
        "Loaded session frame",
        path=str(path),
        camera=camera,
        index=index,
        shape=list(data.shape),
    )
    name = f"{path.name}[{camera}:{index}]"
    return ArrayImage(data=data, keywords=keywords, name=name)


def load_image(path: Path | str, camera: str = "main", index: int = -1) -> ArrayImage:
    """Load a sample image, choosing the reader by file extension.

    ``.asdf`` files are read as session files; everything else as FITS.
    """
    path = Path(path)
    if path.suffix.lower() == ".asdf":
        return load_session_frame(path, camera=camera, index=index)
    return load_fits(path)
