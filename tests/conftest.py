"""Pytest configuration and fixtures for sky-exposure tests.

Provides a reference sensor and sample builders so engine tests can state
their inputs as plain numbers (median, exposure, pedestal, binning)
without touching image files.
"""

from collections.abc import Callable

import numpy as np
import pytest

from sky_exposure.images import ArrayImage
from sky_exposure.observability import reset_logging
from sky_exposure.sample import Sample, SampleMetadata
from sky_exposure.sensor import SensorModel

SampleFactory = Callable[..., Sample]


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop any handler a test installed so streams don't leak between tests."""
    yield
    reset_logging()


@pytest.fixture
def sensor() -> SensorModel:
    """16-bit camera with gain 2.0 e-/ADU and 10 e- read noise."""
    return SensorModel(gain=2.0, read_noise=10.0, bits_per_channel=16)


@pytest.fixture
def make_sample() -> SampleFactory:
    """Build an attached sample from explicit metadata.

    Example:
        >>> sample = make_sample(median=0.5, exposure=60.0)
    """

    def _make(
        median: float,
        exposure: float,
        pedestal: float = 0.0,
        binning: float = 1.0,
    ) -> Sample:
        image = ArrayImage(
            data=np.array([median], dtype=np.float64),
            full_scale=1.0,
            name="fixture",
        )
        return Sample(
            source=image,
            metadata=SampleMetadata(
                pedestal=pedestal,
                exposure_seconds=exposure,
                binning=binning,
                median_normalized=median,
            ),
        )

    return _make


@pytest.fixture
def background(make_sample: SampleFactory) -> Sample:
    """Half-scale sky sample from a 60 s exposure, no pedestal, unbinned."""
    return make_sample(median=0.5, exposure=60.0)
