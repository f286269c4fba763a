"""Background and target samples.

A Sample is one representative pixel brightness (the image median,
normalized to full scale) together with the acquisition metadata needed to
turn it into electrons: pedestal, exposure length and binning.

Attaching an image is a two-step, pure operation:

    metadata = derive_metadata(image)      # reads keywords, computes median
    sample = Sample(image).with_metadata(metadata)

``Sample.attach(image)`` does both in one call.

Architecture:
    ImageSource (Protocol) <- ArrayImage (numpy, FITS, ASDF loaders)
                           <- test doubles
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

from sky_exposure.observability import get_logger
from sky_exposure.sensor import SensorModel

logger = get_logger(__name__)

# Header keywords and the defaults used when they are absent
PEDESTAL_KEY = "PEDESTAL"
EXPOSURE_KEY = "EXPOSURE"
EXPOSURE_FALLBACK_KEY = "EXPTIME"
BINNING_KEY = "XBINNING"

DEFAULT_PEDESTAL = 0.0
DEFAULT_EXPOSURE = 0.0
DEFAULT_BINNING = 1.0


@runtime_checkable
class ImageSource(Protocol):
    """Protocol for an image a sample can be taken from.

    Implementations expose the image's header keywords and reduce the
    pixel data to a single representative brightness.

    Example:
        >>> class FlatImage:
        ...     keywords = {"EXPOSURE": 60.0}
        ...     def median(self) -> float:
        ...         return 0.5
        >>> isinstance(FlatImage(), ImageSource)
        True
    """

    @property
    def keywords(self) -> Mapping[str, Any]:
        """Header keywords (PEDESTAL, EXPOSURE, XBINNING, ...)."""
        ...  # pragma: no cover

    def median(self) -> float:
        """Median pixel value normalized to [0, 1] of full scale."""
        ...  # pragma: no cover


@dataclass(frozen=True)
class SampleMetadata:
    """Acquisition metadata and cached median of a sample.

    Attributes:
        pedestal: ADU offset added to the pixel values.
        exposure_seconds: Exposure used to acquire the sample.
        binning: Pixel binning factor (1 = unbinned).
        median_normalized: Representative brightness in [0, 1].
    """

    pedestal: float = DEFAULT_PEDESTAL
    exposure_seconds: float = DEFAULT_EXPOSURE
    binning: float = DEFAULT_BINNING
    median_normalized: float = 0.0


def keyword_float(keywords: Mapping[str, Any], key: str, default: float) -> float:
    """Read a numeric header keyword, falling back to a default.

    Values that are missing or cannot be parsed as a float give the
    default; unparsable values are logged.

    Args:
        keywords: Header keyword mapping.
        key: Keyword name.
        default: Value used when the keyword is absent or unusable.

    Returns:
        The keyword value as float, or the default.

    Example:
        >>> keyword_float({"EXPOSURE": "'120'"}, "EXPOSURE", 0.0)
        120.0
    """
    if key not in keywords:
        return default
    raw = keywords[key]
    if isinstance(raw, str):
        raw = raw.strip().strip("'\"")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparsable keyword", keyword=key, value=raw)
        return default
    if not math.isfinite(value):
        logger.warning("Ignoring non-finite keyword", keyword=key, value=raw)
        return default
    return value


def derive_metadata(source: ImageSource) -> SampleMetadata:
    """Read acquisition metadata and compute the median of an image.

    PEDESTAL defaults to 0, EXPOSURE (or EXPTIME) to 0 and XBINNING to 1.
    This is the only place the (pixel-count proportional) median is
    computed.

    Args:
        source: Image to sample.

    Returns:
        SampleMetadata for the image.
    """
    keywords = source.keywords
    exposure = keyword_float(keywords, EXPOSURE_KEY, math.nan)
    if math.isnan(exposure):
        exposure = keyword_float(keywords, EXPOSURE_FALLBACK_KEY, DEFAULT_EXPOSURE)

    metadata = SampleMetadata(
        pedestal=keyword_float(keywords, PEDESTAL_KEY, DEFAULT_PEDESTAL),
        exposure_seconds=exposure,
        binning=keyword_float(keywords, BINNING_KEY, DEFAULT_BINNING),
        median_normalized=float(source.median()),
    )
    logger.debug(
        "Derived sample metadata",
        pedestal=metadata.pedestal,
        exposure_s=metadata.exposure_seconds,
        binning=metadata.binning,
        median=metadata.median_normalized,
    )
    return metadata


@dataclass(frozen=True)
class Sample:
    """A single brightness observation with its acquisition metadata.

    A sample without a source image is "unattached" and never valid.

    Example:
        >>> sample = Sample.attach(image)
        >>> sample.flux_electrons(sensor)
        65535.0
    """

    source: ImageSource | None = None
    metadata: SampleMetadata = field(default_factory=SampleMetadata)

    @classmethod
    def attach(cls, source: ImageSource) -> Sample:
        """Create a sample from an image, deriving all metadata from it."""
        return cls(source=source, metadata=derive_metadata(source))

    def with_metadata(self, metadata: SampleMetadata) -> Sample:
        """Return a copy carrying the given metadata."""
        return replace(self, metadata=metadata)

    def with_overrides(
        self,
        *,
        pedestal: float | None = None,
        exposure_seconds: float | None = None,
        binning: float | None = None,
    ) -> Sample:
        """Return a copy with hand-edited acquisition values.

        The cached median is kept; only the given fields change.
        """
        changes: dict[str, float] = {}
        if pedestal is not None:
            changes["pedestal"] = pedestal
        if exposure_seconds is not None:
            changes["exposure_seconds"] = exposure_seconds
        if binning is not None:
            changes["binning"] = binning
        return self.with_metadata(replace(self.metadata, **changes))

    @property
    def pedestal(self) -> float:
        return self.metadata.pedestal

    @property
    def exposure_seconds(self) -> float:
        return self.metadata.exposure_seconds

    @property
    def binning(self) -> float:
        return self.metadata.binning

    @property
    def median_normalized(self) -> float:
        return self.metadata.median_normalized

    def _non_finite_fields(self) -> list[str]:
        return [
            name
            for name in ("pedestal", "exposure_seconds", "binning", "median_normalized")
            if not math.isfinite(getattr(self.metadata, name))
        ]

    def problems(self) -> list[str]:
        """List the reasons this sample cannot be used.

        Returns:
            Human-readable problem strings; empty for a valid sample.
        """
        if self.source is None:
            return ["no image attached"]
        found = [f"{name} must be finite" for name in self._non_finite_fields()]
        if not self.exposure_seconds > 0:
            found.append("exposure must be greater than 0")
        if self.median_normalized == 0:
            found.append("median must not be 0")
        if not self.binning > 0:
            found.append("binning must be greater than 0")
        return found

    def is_valid(self) -> bool:
        """True when attached with exposure > 0, median != 0, finite metadata."""
        return (
            self.source is not None
            and self.exposure_seconds > 0
            and self.median_normalized != 0
            and not self._non_finite_fields()
        )

    def flux_electrons(self, sensor: SensorModel) -> float:
        """Electrons accumulated over the sample's exposure.

        Converts the median to ADU, removes the pedestal and converts to
        electrons. An unattached sample yields 0.

        Args:
            sensor: Camera used to take the sample.

        Returns:
            Total electrons (not a rate).
        """
        if self.source is None:
            return 0.0
        adu = sensor.normalized_to_adu(self.median_normalized) - self.pedestal
        return sensor.adu_to_electrons(adu)

    def flux_rate(self, sensor: SensorModel) -> float:
        """Electron accumulation rate in e-/s, 0 for an invalid sample."""
        if not self.is_valid():
            return 0.0
        return self.flux_electrons(sensor) / self.exposure_seconds
