"""Display formatting for exposure results."""

from __future__ import annotations

import math

# Shown in place of an undefined value
UNDEFINED = "--"

# Decimal places kept when displaying flux
FLUX_DECIMALS = 2


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def chop_precision(value: float, digits: int = FLUX_DECIMALS) -> float:
    """Round half up to a fixed number of decimal places.

    Example:
        >>> chop_precision(546.125)
        546.13
    """
    scale = 10**digits
    return _round_half_up(value * scale) / scale


def _decimal(value: float) -> str:
    """Rounded value without trailing zeros (1092.0 -> "1092")."""
    text = f"{chop_precision(value):.{FLUX_DECIMALS}f}"
    return text.rstrip("0").rstrip(".")


def human_readable_duration(seconds: float) -> str:
    """Format a duration as "{minutes}m {seconds}s".

    Minutes are floored and the remaining seconds rounded half up; a
    remainder that rounds to 60 carries into the minutes.

    Example:
        >>> human_readable_duration(125)
        '2m 5s'
        >>> human_readable_duration(59.6)
        '1m 0s'
    """
    minutes = math.floor(seconds / 60.0)
    remainder = _round_half_up(seconds - minutes * 60.0)
    if remainder >= 60:
        minutes += 1
        remainder -= 60
    return f"{minutes}m {remainder}s"


def exposure_display(seconds: float | None) -> str:
    """Format an exposure estimate as "2m 5s (125s)", or "--" if undefined."""
    if seconds is None or not math.isfinite(seconds):
        return UNDEFINED
    return f"{human_readable_duration(seconds)} ({_round_half_up(seconds)}s)"


def flux_display(flux_e: float, gain: float) -> str:
    """Format a flux rate in electrons and ADU per second.

    Args:
        flux_e: Flux in e-/s.
        gain: Camera gain in e-/ADU. With gain 0 the ADU part is "--".

    Returns:
        e.g. "1092.25 e-/s    (546.13 ADU/s)".
    """
    if not math.isfinite(flux_e):
        return f"{UNDEFINED} e-/s    ({UNDEFINED} ADU/s)"
    electrons = _decimal(flux_e)
    adu = UNDEFINED if gain == 0 else _decimal(flux_e / gain)
    return f"{electrons} e-/s    ({adu} ADU/s)"
