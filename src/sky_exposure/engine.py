"""Exposure estimation engine.

Turns a sensor model and a background sample into the sky background flux
and three competing sub-exposure limits:

- Sky-limited (read-noise model I): the exposure at which sky plus read
  noise exceeds pure sky noise by the configured tolerance.
  Source: http://starizona.com/acb/ccd/advtheoryexp.aspx
- Read-noise model II: ``4.38 * RN^2 / (sky^2 + dark^2)``, an alternative
  closed form reported alongside model I for comparison.
- Anstey (quantization-limited): the exposure at which the minimum target
  signal clears digitization noise over the planned total integration.
  Source: http://www.cloudynights.com/item.php?item_id=1622

``generate()`` is a pure function of its inputs. Any estimate whose
formula hits a zero denominator (or produces a non-finite or negative
time) is reported as None; the others are still computed.

Example:
    from sky_exposure.engine import generate
    from sky_exposure.config import EngineConfig

    result = generate(sensor, background, EngineConfig(total_exposure_seconds=7200))
    if result.ready:
        print(result.sky_limited_exposure, result.anstey_limited_exposure)
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from sky_exposure.config import AnsteyVariant, EngineConfig
from sky_exposure.observability import get_logger
from sky_exposure.presets import find_preset
from sky_exposure.sample import ImageSource, Sample
from sky_exposure.sensor import NoiseModel, SensorModel

logger = get_logger(__name__)

# Empirical constant of the read-noise model II closed form
READ_NOISE_MODEL_II_FACTOR = 4.38

# Share of the sky-limited exposure suggested as the working sub-exposure
SUGGESTED_SUBEXPOSURE_FRACTION = 0.5


@dataclass(frozen=True)
class ExposureResult:
    """Outputs of one generate() call.

    Exposure times are in seconds; None marks an undefined estimate.

    Attributes:
        ready: False when the inputs could not be used at all.
        problems: Why the inputs are not ready (empty when ready).
        background_flux_e: Sky background rate in e-/s (0 when not ready).
        target_flux_e: Target rate in e-/s (0 without a valid target).
        sky_limited_exposure: Read-noise model I.
        read_noise_limited_exposure: Read-noise model II.
        anstey_limited_exposure: Quantization-limited exposure.
        suggested_subexposure: Half of the sky-limited exposure.
        noise_model: Noise combination policy used.
        anstey_variant: Anstey formula used.
    """

    ready: bool
    problems: tuple[str, ...] = ()
    background_flux_e: float = 0.0
    target_flux_e: float = 0.0
    sky_limited_exposure: float | None = None
    read_noise_limited_exposure: float | None = None
    anstey_limited_exposure: float | None = None
    suggested_subexposure: float | None = None
    noise_model: NoiseModel = NoiseModel.QUADRATURE
    anstey_variant: AnsteyVariant = AnsteyVariant.QUADRATIC

    def as_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (enums as their values)."""
        data = asdict(self)
        data["problems"] = list(self.problems)
        data["noise_model"] = self.noise_model.value
        data["anstey_variant"] = self.anstey_variant.value
        return data


def _exposure(numerator: float, denominator: float) -> float | None:
    """Divide, returning None for a degenerate or meaningless exposure."""
    if denominator == 0 or not math.isfinite(denominator):
        return None
    value = numerator / denominator
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _sqrt(value: float) -> float | None:
    if not math.isfinite(value) or value < 0:
        return None
    return math.sqrt(value)


def validate(sensor: SensorModel, background: Sample) -> list[str]:
    """Collect the problems that prevent any estimate from being made.

    Args:
        sensor: Camera model.
        background: Background (sky) sample.

    Returns:
        Problem strings, prefixed with their origin; empty when ready.
    """
    found = [f"sensor: {p}" for p in sensor.problems()]
    found.extend(f"background: {p}" for p in background.problems())
    if found:
        return found
    flux = background.flux_electrons(sensor)
    if not math.isfinite(flux):
        found.append("background: flux is not finite")
    elif flux < 0:
        found.append("background: median is below the pedestal")
    return found


def target_flux_rate(sensor: SensorModel, target: Sample | None) -> float:
    """Target rate in e-/s; 0 without a usable target or below its pedestal."""
    if target is None:
        return 0.0
    rate = target.flux_rate(sensor)
    if not math.isfinite(rate) or rate < 0:
        logger.debug("Target flux not usable", flux_e_s=rate)
        return 0.0
    return rate


def effective_read_noise(sensor: SensorModel, background: Sample) -> float:
    """Read noise per output pixel after binning."""
    return sensor.read_noise / background.binning


def sky_limited_exposure(
    sensor: SensorModel,
    background: Sample,
    background_flux_e: float,
    tolerance_pct: float,
) -> float | None:
    """Read-noise model I.

    Solves ``(RN^2 + F*t) / (F*t) = (1 + p)^2`` for t, giving
    ``t = RN^2 / (((1 + p)^2 - 1) * F)`` where RN is the binned read
    noise, F the background flux and p the tolerance fraction.

    Returns:
        Exposure in seconds, or None when F or p is 0.
    """
    p = tolerance_pct / 100.0
    ern = effective_read_noise(sensor, background)
    return _exposure(ern * ern, (((1.0 + p) * (1.0 + p)) - 1.0) * background_flux_e)


def read_noise_limited_exposure(
    sensor: SensorModel,
    background: Sample,
    background_flux_e: float,
) -> float | None:
    """Read-noise model II: ``4.38 * RN^2 / (F^2 + D^2)``.

    D is the dark current noise rate. Undefined when both F and D are 0.
    """
    ern = effective_read_noise(sensor, background)
    return _exposure(
        READ_NOISE_MODEL_II_FACTOR * ern * ern,
        background_flux_e**2 + sensor.dark_current_noise**2,
    )


def anstey_limited_exposure(
    sensor: SensorModel,
    background_flux_e: float,
    config: EngineConfig,
) -> float | None:
    """Quantization-limited (Anstey) exposure using the configured variant.

    QUADRATIC:
        ``a = RN^4 + S^2 * F^2 * T``,
        ``t = (-RN^2 + sqrt(a)) / (2 * F^2)``
    SQRT_TOTAL:
        ``t = S * sqrt(T) / (2 * sqrt(F + N(1)^2))``

    where RN is the unbinned read noise, S the minimum target signal in
    electrons, F the background flux, T the total planned exposure and
    N(1) the sensor noise for one second under the active noise model.

    Returns:
        Exposure in seconds, or None for a degenerate denominator.
    """
    minimum_target_e = sensor.adu_to_electrons(config.minimum_target_adu)
    total = config.total_exposure_seconds

    if config.anstey_variant is AnsteyVariant.SQRT_TOTAL:
        # Sky shot noise rate combined with the camera's own noise rate
        noise_rate = _sqrt(background_flux_e + sensor.total_noise_electrons(1.0) ** 2)
        sqrt_total = _sqrt(total)
        if noise_rate is None or sqrt_total is None:
            return None
        return _exposure(minimum_target_e * sqrt_total, 2.0 * noise_rate)

    rn2 = sensor.read_noise**2
    root = _sqrt(rn2 * rn2 + minimum_target_e**2 * background_flux_e**2 * total)
    if root is None:
        return None
    return _exposure(-rn2 + root, 2.0 * background_flux_e**2)


def generate(
    sensor: SensorModel,
    background: Sample,
    config: EngineConfig | None = None,
    target: Sample | None = None,
) -> ExposureResult:
    """Compute background flux and all exposure estimates.

    A total function of its arguments: invalid input yields a not-ready
    result with every estimate None, never an exception.

    Args:
        sensor: Camera model.
        background: Background (sky) sample.
        config: Policy parameters. None uses the defaults.
        target: Optional target sample; only its flux is reported.

    Returns:
        ExposureResult.

    Example:
        >>> result = generate(sensor, background)
        >>> round(result.background_flux_e, 2)
        1092.25
    """
    config = config or EngineConfig()
    problems = validate(sensor, background)
    if problems:
        logger.debug("Inputs not ready", problems=problems)
        return ExposureResult(
            ready=False,
            problems=tuple(problems),
            noise_model=sensor.noise_model,
            anstey_variant=config.anstey_variant,
        )

    background_flux_e = background.flux_rate(sensor)
    target_flux_e = target_flux_rate(sensor, target)

    sky_limited = sky_limited_exposure(
        sensor, background, background_flux_e, config.readout_noise_tolerance_pct
    )
    suggested = (
        sky_limited * SUGGESTED_SUBEXPOSURE_FRACTION
        if sky_limited is not None
        else None
    )

    result = ExposureResult(
        ready=True,
        background_flux_e=background_flux_e,
        target_flux_e=target_flux_e,
        sky_limited_exposure=sky_limited,
        read_noise_limited_exposure=read_noise_limited_exposure(
            sensor, background, background_flux_e
        ),
        anstey_limited_exposure=anstey_limited_exposure(
            sensor, background_flux_e, config
        ),
        suggested_subexposure=suggested,
        noise_model=sensor.noise_model,
        anstey_variant=config.anstey_variant,
    )
    logger.debug(
        "Generated exposure estimates",
        camera=sensor.name,
        flux_e_s=result.background_flux_e,
        sky_limited_s=result.sky_limited_exposure,
        model_ii_s=result.read_noise_limited_exposure,
        anstey_s=result.anstey_limited_exposure,
        anstey_variant=config.anstey_variant.value,
        noise_model=sensor.noise_model.value,
    )
    return result


@dataclass
class ExposureEngine:
    """Calculation session holding the current inputs.

    Each update_* / attach_* call replaces one immutable input; generate()
    always recomputes from scratch, so repeated calls with no change in
    between return equal results.

    Example:
        engine = ExposureEngine()
        engine.select_camera("QSI 583")
        engine.attach_background(load_fits("sky.fits"))
        engine.update_config(total_exposure_seconds=7200)
        result = engine.generate()
    """

    sensor: SensorModel = field(default_factory=SensorModel)
    background: Sample = field(default_factory=Sample)
    target: Sample | None = None
    config: EngineConfig = field(default_factory=EngineConfig)

    def select_camera(self, name: str) -> None:
        """Load a named camera preset, keeping the active noise model.

        Raises:
            KeyError: If the preset is unknown.
        """
        self.sensor = SensorModel.from_preset(
            find_preset(name), noise_model=self.sensor.noise_model
        )
        logger.info(
            "Camera selected",
            camera=self.sensor.name,
            gain=self.sensor.gain,
            read_noise=self.sensor.read_noise,
        )

    def update_sensor(self, **changes: Any) -> None:
        """Edit sensor fields (gain, read_noise, noise_model, ...)."""
        self.sensor = replace(self.sensor, **changes)

    def attach_background(self, source: ImageSource) -> None:
        """Attach the background image and derive its metadata."""
        self.background = Sample.attach(source)

    def attach_target(self, source: ImageSource) -> None:
        """Attach the target image and derive its metadata."""
        self.target = Sample.attach(source)

    def update_background(self, **overrides: float | None) -> None:
        """Edit the background's pedestal, exposure_seconds or binning."""
        self.background = self.background.with_overrides(**overrides)

    def update_target(self, **overrides: float | None) -> None:
        """Edit the target's pedestal, exposure_seconds or binning."""
        if self.target is not None:
            self.target = self.target.with_overrides(**overrides)

    def update_config(self, **changes: Any) -> None:
        """Edit policy parameters (tolerance, minimum ADU, total, variant)."""
        self.config = replace(self.config, **changes)

    @property
    def ready(self) -> bool:
        """True when generate() can produce estimates."""
        return not validate(self.sensor, self.background)

    def generate(self) -> ExposureResult:
        """Compute estimates from the current inputs."""
        return generate(self.sensor, self.background, self.config, self.target)
