"""Tests for sky_exposure.sensor: conversions and noise policies."""

import math

import pytest

from sky_exposure.presets import find_preset
from sky_exposure.sensor import NoiseModel, SensorModel


class TestMaxCount:
    """Tests for the digitizer range."""

    @pytest.mark.parametrize(
        ("bits", "expected"), [(16, 65535), (14, 16383), (12, 4095), (8, 255)]
    )
    def test_max_count_for_bit_depth(self, bits: int, expected: int) -> None:
        """max_count is 2^bits - 1."""
        assert SensorModel(bits_per_channel=bits).max_count() == expected


class TestConversions:
    """Tests for normalized/ADU/electron conversions."""

    @pytest.mark.parametrize("bits", [8, 12, 14, 16])
    def test_normalized_endpoints(self, bits: int) -> None:
        """0 maps to 0 ADU and 1 maps to full scale."""
        sensor = SensorModel(bits_per_channel=bits)
        assert sensor.normalized_to_adu(0) == 0
        assert sensor.normalized_to_adu(1) == sensor.max_count()

    def test_normalized_out_of_range_is_not_clamped(self) -> None:
        """Values outside [0, 1] pass through arithmetically."""
        sensor = SensorModel(bits_per_channel=12)
        assert sensor.normalized_to_adu(2.0) == 8190.0
        assert sensor.normalized_to_adu(-0.5) == -2047.5

    def test_adu_to_electrons_multiplies_by_gain(self, sensor: SensorModel) -> None:
        """Electrons are ADU times gain."""
        assert sensor.adu_to_electrons(100.0) == 200.0

    @pytest.mark.parametrize("value", [0.0, 1.0, 123.456, 65535.0, -42.0])
    @pytest.mark.parametrize("gain", [0.29, 1.0, 2.67])
    def test_round_trip(self, gain: float, value: float) -> None:
        """electrons_to_adu undoes adu_to_electrons for any positive gain."""
        sensor = SensorModel(gain=gain)
        assert sensor.electrons_to_adu(sensor.adu_to_electrons(value)) == (
            pytest.approx(value)
        )

    def test_electrons_to_adu_with_zero_gain_is_undefined(self) -> None:
        """Zero gain yields None instead of raising ZeroDivisionError."""
        assert SensorModel(gain=0.0).electrons_to_adu(100.0) is None


class TestTotalNoise:
    """Tests for the two noise combination policies."""

    def test_quadrature_is_default(self) -> None:
        """New models combine noise in quadrature unless told otherwise."""
        assert SensorModel().noise_model is NoiseModel.QUADRATURE

    def test_quadrature_combination(self) -> None:
        """sqrt(dark^2 * t + read^2)."""
        sensor = SensorModel(read_noise=3.0, dark_current_noise=2.0)
        assert sensor.total_noise_electrons(4.0) == pytest.approx(5.0)

    def test_quadrature_at_zero_seconds_is_read_noise(self) -> None:
        """With no exposure only read noise remains."""
        sensor = SensorModel(read_noise=7.0, dark_current_noise=2.0)
        assert sensor.total_noise_electrons(0.0) == pytest.approx(7.0)

    def test_linear_ignores_read_noise(self) -> None:
        """LINEAR is dark * t."""
        sensor = SensorModel(
            read_noise=7.0, dark_current_noise=0.5, noise_model=NoiseModel.LINEAR
        )
        assert sensor.total_noise_electrons(60.0) == pytest.approx(30.0)

    def test_with_noise_model_returns_copy(self) -> None:
        """Switching policy leaves the original model untouched."""
        sensor = SensorModel(read_noise=3.0, dark_current_noise=2.0)
        linear = sensor.with_noise_model(NoiseModel.LINEAR)
        assert linear.noise_model is NoiseModel.LINEAR
        assert sensor.noise_model is NoiseModel.QUADRATURE
        assert linear.total_noise_electrons(4.0) == pytest.approx(8.0)


class TestConfiguration:
    """Tests for the configured/unconfigured predicate."""

    def test_default_model_is_unconfigured(self) -> None:
        """A fresh model has gain 0 and cannot be used."""
        sensor = SensorModel()
        assert not sensor.is_configured()
        assert "gain must be greater than 0" in sensor.problems()

    def test_configured_model(self, sensor: SensorModel) -> None:
        """Positive gain and bit depth make a usable model."""
        assert sensor.is_configured()
        assert sensor.problems() == []

    def test_negative_and_non_finite_values_are_reported(self) -> None:
        """Every field must be finite and non-negative."""
        sensor = SensorModel(gain=1.0, read_noise=-1.0, dark_current_noise=math.inf)
        problems = sensor.problems()
        assert "read_noise must be finite and non-negative" in problems
        assert "dark_current_noise must be finite and non-negative" in problems

    def test_zero_bit_depth_is_reported(self) -> None:
        """A 0-bit digitizer has no range."""
        sensor = SensorModel(gain=1.0, bits_per_channel=0)
        assert "bits_per_channel must be greater than 0" in sensor.problems()

    def test_from_preset(self) -> None:
        """Preset values and name are copied into the model."""
        sensor = SensorModel.from_preset(
            find_preset("Canon 50D @ ISO 800"), noise_model=NoiseModel.LINEAR
        )
        assert sensor.name == "Canon 50D @ ISO 800"
        assert sensor.gain == 0.29
        assert sensor.read_noise == 3.4
        assert sensor.bits_per_channel == 14
        assert sensor.noise_model is NoiseModel.LINEAR
