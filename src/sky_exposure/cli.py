"""CLI entry point for sky-exposure.

Provides the ``sky-exposure`` console script with subcommands:

- ``estimate`` — Estimate sub-exposure limits from a background sample
- ``presets`` — List the built-in camera presets

Usage::

    # Background frame with header metadata, camera from the preset table
    sky-exposure estimate sky_L_120s.fits --camera "QSI 583"

    # Frame from a telescope session file, hand-entered camera values
    sky-exposure estimate observation_m31.asdf --frame 3 \\
        --gain 0.25 --read-noise 3.2 --bits 12

    # No image at hand: give the median directly
    sky-exposure estimate --median 0.052 --exposure 60 --camera "QSI 583" --json

    # Find a camera
    sky-exposure presets --search canon

Settings are layered: ``--config`` file first, then ``--camera``, then the
individual options.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

import numpy as np

from sky_exposure.config import AnsteyVariant, CalculatorConfig, load_config
from sky_exposure.engine import ExposureEngine, ExposureResult
from sky_exposure.formatting import exposure_display, flux_display
from sky_exposure.images import ArrayImage, load_image
from sky_exposure.observability import LogContext, configure_logging, get_logger
from sky_exposure.presets import CAMERA_PRESETS
from sky_exposure.sample import ImageSource
from sky_exposure.sensor import NoiseModel

PROG_NAME = "sky-exposure"

# Exit codes (argparse itself exits with 2 on usage errors)
EXIT_OK = 0
EXIT_INVALID = 1

# Column at which report values start
REPORT_LABEL_WIDTH = 25

logger = get_logger(__name__)


def _emit(text: str, stream: TextIO | None = None) -> None:
    """Write one line of command output to stdout (or the given stream)."""
    print(text, file=stream or sys.stdout)


def _manual_image(median: float) -> ArrayImage:
    """Stand-in image for a median typed on the command line."""
    return ArrayImage(
        data=np.array([median], dtype=np.float64),
        keywords={},
        full_scale=1.0,
        name="manual",
    )


def _background_source(args: argparse.Namespace) -> ImageSource | None:
    """Image the background sample is taken from, or None if not given."""
    if args.median is not None:
        return _manual_image(args.median)
    if args.background is None:
        return None
    return load_image(args.background, camera=args.session_camera, index=args.frame)


def build_engine(args: argparse.Namespace) -> ExposureEngine:
    """Assemble an ExposureEngine from parsed ``estimate`` arguments.

    Args:
        args: Namespace from the ``estimate`` subparser.

    Returns:
        Engine with sensor, samples and policy set.

    Raises:
        FileNotFoundError: If an image or config file is missing.
        ValueError: If a file cannot be read or holds bad values.
        KeyError: If the camera preset is unknown.
    """
    base = load_config(args.config) if args.config else CalculatorConfig()
    engine = ExposureEngine(sensor=base.sensor, config=base.engine)

    if args.camera:
        engine.select_camera(args.camera)

    sensor_changes = {
        "gain": args.gain,
        "read_noise": args.read_noise,
        "dark_current_noise": args.dark_noise,
        "bits_per_channel": args.bits,
        "noise_model": NoiseModel(args.noise_model) if args.noise_model else None,
    }
    engine.update_sensor(**{k: v for k, v in sensor_changes.items() if v is not None})

    config_changes = {
        "readout_noise_tolerance_pct": args.tolerance,
        "minimum_target_adu": args.min_target_adu,
        "total_exposure_seconds": args.total_exposure,
        "anstey_variant": (
            AnsteyVariant(args.anstey_variant) if args.anstey_variant else None
        ),
    }
    engine.update_config(**{k: v for k, v in config_changes.items() if v is not None})

    source = _background_source(args)
    if source is not None:
        engine.attach_background(source)
    engine.update_background(
        pedestal=args.pedestal,
        exposure_seconds=args.exposure,
        binning=args.binning,
    )

    if args.target is not None:
        engine.attach_target(
            load_image(
                args.target,
                camera=args.target_session_camera,
                index=args.target_frame,
            )
        )
        engine.update_target(
            pedestal=args.target_pedestal,
            exposure_seconds=args.target_exposure,
        )

    return engine


def format_report(engine: ExposureEngine, result: ExposureResult) -> list[str]:
    """Human-readable report lines for a generated result."""
    sensor = engine.sensor
    rows = [
        (
            "Camera",
            f"{sensor.name} (gain {sensor.gain:g} e-/ADU, "
            f"read noise {sensor.read_noise:g} e-, "
            f"dark {sensor.dark_current_noise:g} e-/s, "
            f"{sensor.bits_per_channel} bits, {sensor.noise_model.value} noise)",
        ),
        ("Background flux", flux_display(result.background_flux_e, sensor.gain)),
    ]
    if engine.target is not None:
        rows.append(("Target flux", flux_display(result.target_flux_e, sensor.gain)))
    rows.extend(
        [
            ("Sky limited exposure", exposure_display(result.sky_limited_exposure)),
            (
                "Read noise model II",
                exposure_display(result.read_noise_limited_exposure),
            ),
            (
                "Anstey subexposure",
                f"{exposure_display(result.anstey_limited_exposure)}"
                f" [{result.anstey_variant.value}]",
            ),
            ("Suggested subexposure", exposure_display(result.suggested_subexposure)),
        ]
    )
    return [f"{label + ':':<{REPORT_LABEL_WIDTH}}{value}" for label, value in rows]


def run_estimate(args: argparse.Namespace, stream: TextIO | None = None) -> int:
    """Run the ``estimate`` subcommand.

    Returns:
        EXIT_OK when estimates were produced, EXIT_INVALID when inputs could
        not be loaded or are not usable.
    """
    try:
        engine = build_engine(args)
    except (FileNotFoundError, ValueError, KeyError) as e:
        logger.error("Could not prepare inputs", error=str(e))
        return EXIT_INVALID

    for problem in engine.config.problems():
        logger.warning("Questionable setting", problem=problem)

    with LogContext(camera=engine.sensor.name):
        result = engine.generate()

    if args.json:
        _emit(json.dumps(result.as_dict(), indent=2), stream)
    elif result.ready:
        for line in format_report(engine, result):
            _emit(line, stream)

    if not result.ready:
        for problem in result.problems:
            logger.warning("Invalid input", problem=problem)
        return EXIT_INVALID
    return EXIT_OK


def run_presets(args: argparse.Namespace, stream: TextIO | None = None) -> int:
    """Run the ``presets`` subcommand: list presets matching --search."""
    needle = (args.search or "").casefold()
    for preset in CAMERA_PRESETS:
        if needle not in preset.name.casefold():
            continue
        _emit(
            f"{preset.name:<32} gain {preset.gain:>5g} e-/ADU  "
            f"read noise {preset.read_noise:>5g} e-  "
            f"dark {preset.dark_current_noise:g} e-/s  "
            f"{preset.bits_per_channel} bits",
            stream,
        )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description=(
            "Estimate the sky-limited and quantization-limited sub-exposure "
            "for a camera, telescope and sky"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostic log level (logs go to stderr)",
    )
    parser.add_argument(
        "--log-json", action="store_true", help="Write diagnostic logs as JSON"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    estimate = subparsers.add_parser(
        "estimate", help="Estimate sub-exposure limits from a background sample"
    )
    estimate.add_argument(
        "background",
        nargs="?",
        type=Path,
        help="Background image (FITS, or ASDF session file)",
    )
    estimate.add_argument("--target", type=Path, help="Target image (optional)")
    estimate.add_argument("--config", type=Path, help="JSON config file")
    estimate.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    camera = estimate.add_argument_group("camera")
    camera.add_argument("--camera", help="Camera preset name (see 'presets')")
    camera.add_argument("--gain", type=float, help="Gain (e-/ADU)")
    camera.add_argument("--read-noise", type=float, help="Read noise (e-)")
    camera.add_argument("--dark-noise", type=float, help="Dark current noise (e-/s)")
    camera.add_argument("--bits", type=int, help="ADU bits per channel")
    camera.add_argument(
        "--noise-model",
        choices=[m.value for m in NoiseModel],
        help="How dark and read noise combine (default: quadrature)",
    )

    sample = estimate.add_argument_group("background sample")
    sample.add_argument(
        "--median",
        type=float,
        help="Normalized background median in [0, 1] instead of an image",
    )
    sample.add_argument("--exposure", type=float, help="Exposure (s)")
    sample.add_argument("--pedestal", type=float, help="Pedestal (ADU)")
    sample.add_argument("--binning", type=float, help="Binning factor")
    sample.add_argument(
        "--session-camera",
        default="main",
        help="Camera key inside an ASDF session file (default: main)",
    )
    sample.add_argument(
        "--frame",
        type=int,
        default=-1,
        help="Frame index inside an ASDF session file (default: last)",
    )

    target = estimate.add_argument_group("target sample")
    target.add_argument(
        "--target-session-camera",
        default="main",
        help="Camera key inside the target ASDF session file (default: main)",
    )
    target.add_argument(
        "--target-frame",
        type=int,
        default=-1,
        help="Frame index inside the target ASDF session file (default: last)",
    )
    target.add_argument("--target-exposure", type=float, help="Target exposure (s)")
    target.add_argument("--target-pedestal", type=float, help="Target pedestal (ADU)")

    policy = estimate.add_argument_group("calculation")
    policy.add_argument(
        "--tolerance",
        type=float,
        help="Acceptable read noise relative to sky noise, percent (default: 5)",
    )
    policy.add_argument(
        "--min-target-adu",
        type=float,
        help="Minimum resolvable target signal, ADU (default: 15)",
    )
    policy.add_argument(
        "--total-exposure",
        type=float,
        help="Total planned integration, seconds (default: 3600)",
    )
    policy.add_argument(
        "--anstey-variant",
        choices=[v.value for v in AnsteyVariant],
        help="Quantization-limited formula (default: quadratic)",
    )

    presets = subparsers.add_parser("presets", help="List camera presets")
    presets.add_argument("--search", help="Only show names containing this text")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point for sky-exposure.

    Args:
        argv: Arguments without the program name. None reads sys.argv.

    Returns:
        Exit code 0 for success, 1 for invalid input.

    Raises:
        SystemExit: On --help or argument parsing errors.

    Example:
        >>> main(["estimate", "--median", "0.5", "--exposure", "60",
        ...       "--gain", "2", "--read-noise", "10"])
        0
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, json_format=args.log_json, force=True)

    if args.command == "presets":
        return run_presets(args)
    return run_estimate(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
