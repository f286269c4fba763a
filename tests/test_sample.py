"""Tests for sky_exposure.sample: metadata derivation and flux."""

import io
import math
from collections.abc import Mapping
from typing import Any

import pytest

from sky_exposure.observability import configure_logging
from sky_exposure.sample import (
    ImageSource,
    Sample,
    SampleMetadata,
    derive_metadata,
    keyword_float,
)
from sky_exposure.sensor import SensorModel


class FlatImage:
    """Image double with a fixed median."""

    def __init__(self, median: float, keywords: Mapping[str, Any] | None = None):
        self._median = median
        self._keywords = dict(keywords or {})
        self.median_calls = 0

    @property
    def keywords(self) -> Mapping[str, Any]:
        return self._keywords

    def median(self) -> float:
        self.median_calls += 1
        return self._median


class TestImageSourceProtocol:
    """Tests for structural typing of image sources."""

    def test_double_satisfies_protocol(self) -> None:
        """Anything with keywords and median() is an ImageSource."""
        assert isinstance(FlatImage(0.5), ImageSource)

    def test_plain_object_does_not(self) -> None:
        """Objects without median() are rejected."""
        assert not isinstance(object(), ImageSource)


class TestKeywordFloat:
    """Tests for numeric header keyword parsing."""

    def test_missing_key_gives_default(self) -> None:
        """Absent keywords fall back."""
        assert keyword_float({}, "PEDESTAL", 0.0) == 0.0

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(120, 120.0), (120.5, 120.5), ("120", 120.0), ("'120'", 120.0), (" 2 ", 2.0)],
    )
    def test_parses_numbers_and_strings(self, raw: Any, expected: float) -> None:
        """Numbers and numeric strings (quoted or not) are accepted."""
        assert keyword_float({"EXPOSURE": raw}, "EXPOSURE", 0.0) == expected

    def test_unparsable_value_is_logged(self) -> None:
        """Garbage falls back to the default and leaves a warning."""
        stream = io.StringIO()
        configure_logging(level="WARNING", stream=stream, force=True)

        value = keyword_float({"XBINNING": "two"}, "XBINNING", 1.0)

        assert value == 1.0
        output = stream.getvalue()
        assert "Ignoring unparsable keyword" in output
        assert "keyword=XBINNING" in output

    def test_non_finite_value_gives_default(self) -> None:
        """NaN in a header is treated as missing."""
        assert keyword_float({"PEDESTAL": math.nan}, "PEDESTAL", 0.0) == 0.0


class TestDeriveMetadata:
    """Tests for derive_metadata()."""

    def test_reads_all_keywords(self) -> None:
        """PEDESTAL, EXPOSURE and XBINNING are read from the header."""
        image = FlatImage(
            0.25, {"PEDESTAL": 100, "EXPOSURE": 120.0, "XBINNING": 2}
        )
        metadata = derive_metadata(image)
        assert metadata == SampleMetadata(
            pedestal=100.0,
            exposure_seconds=120.0,
            binning=2.0,
            median_normalized=0.25,
        )

    def test_defaults_without_keywords(self) -> None:
        """Pedestal 0, exposure 0 and binning 1 when nothing is recorded."""
        metadata = derive_metadata(FlatImage(0.25))
        assert metadata.pedestal == 0.0
        assert metadata.exposure_seconds == 0.0
        assert metadata.binning == 1.0

    def test_exptime_fallback(self) -> None:
        """EXPTIME is used when EXPOSURE is missing."""
        metadata = derive_metadata(FlatImage(0.25, {"EXPTIME": 300.0}))
        assert metadata.exposure_seconds == 300.0

    def test_exposure_preferred_over_exptime(self) -> None:
        """EXPOSURE wins when both are present."""
        image = FlatImage(0.25, {"EXPOSURE": 60.0, "EXPTIME": 300.0})
        assert derive_metadata(image).exposure_seconds == 60.0

    def test_median_computed_once(self) -> None:
        """Attaching computes the median exactly once and caches it."""
        image = FlatImage(0.25, {"EXPOSURE": 60.0})
        sample = Sample.attach(image)
        sample.flux_rate(SensorModel(gain=1.0))
        sample.flux_rate(SensorModel(gain=2.0))
        assert image.median_calls == 1


class TestSampleValidity:
    """Tests for Sample.problems() and is_valid()."""

    def test_unattached(self) -> None:
        """A sample without an image is never valid."""
        sample = Sample()
        assert not sample.is_valid()
        assert sample.problems() == ["no image attached"]

    def test_valid(self) -> None:
        """Image, positive exposure and non-zero median."""
        sample = Sample.attach(FlatImage(0.5, {"EXPOSURE": 60.0}))
        assert sample.is_valid()
        assert sample.problems() == []

    def test_zero_exposure_and_median(self) -> None:
        """Both problems are listed."""
        sample = Sample.attach(FlatImage(0.0))
        assert not sample.is_valid()
        assert sample.problems() == [
            "exposure must be greater than 0",
            "median must not be 0",
        ]

    def test_non_positive_binning_is_a_problem(self) -> None:
        """Binning divides the read noise and must be positive."""
        sample = Sample.attach(FlatImage(0.5, {"EXPOSURE": 60.0, "XBINNING": 0}))
        assert "binning must be greater than 0" in sample.problems()

    def test_non_finite_overrides_are_problems(self) -> None:
        """Hand-edited NaN or inf values make the sample invalid."""
        sample = Sample.attach(FlatImage(0.5, {"EXPOSURE": 60.0})).with_overrides(
            pedestal=math.nan, exposure_seconds=math.inf
        )
        assert not sample.is_valid()
        assert sample.problems() == [
            "pedestal must be finite",
            "exposure_seconds must be finite",
        ]

    def test_non_finite_median_is_a_problem(self) -> None:
        """A NaN median from a custom image source is rejected."""
        sample = Sample.attach(FlatImage(math.nan, {"EXPOSURE": 60.0}))
        assert not sample.is_valid()
        assert sample.problems() == ["median_normalized must be finite"]
        assert sample.flux_rate(SensorModel(gain=1.0)) == 0.0


class TestOverrides:
    """Tests for with_overrides()."""

    def test_overrides_only_given_fields(self) -> None:
        """None leaves a field as derived."""
        sample = Sample.attach(FlatImage(0.5, {"EXPOSURE": 60.0, "PEDESTAL": 10}))
        edited = sample.with_overrides(exposure_seconds=30.0, pedestal=None)

        assert edited.exposure_seconds == 30.0
        assert edited.pedestal == 10.0
        assert edited.median_normalized == 0.5
        assert sample.exposure_seconds == 60.0

    def test_override_can_make_sample_valid(self) -> None:
        """A header without exposure can be fixed by hand."""
        sample = Sample.attach(FlatImage(0.5))
        assert not sample.is_valid()
        assert sample.with_overrides(exposure_seconds=60.0).is_valid()


class TestFlux:
    """Tests for flux_electrons() and flux_rate()."""

    def test_flux_electrons(self, sensor: SensorModel) -> None:
        """(median * maxCount - pedestal) * gain."""
        sample = Sample.attach(FlatImage(0.5, {"EXPOSURE": 60.0, "PEDESTAL": 767.5}))
        assert sample.flux_electrons(sensor) == pytest.approx((32767.5 - 767.5) * 2)

    def test_flux_rate(self, sensor: SensorModel, background: Sample) -> None:
        """Electrons divided by exposure."""
        assert background.flux_rate(sensor) == pytest.approx(1092.25)

    def test_unattached_flux_is_zero(self, sensor: SensorModel) -> None:
        """No image, no electrons."""
        assert Sample().flux_electrons(sensor) == 0.0
        assert Sample().flux_rate(sensor) == 0.0

    def test_invalid_rate_is_zero(self, sensor: SensorModel) -> None:
        """A zero-exposure sample has rate 0 rather than a division error."""
        sample = Sample.attach(FlatImage(0.5))
        assert sample.flux_rate(sensor) == 0.0
