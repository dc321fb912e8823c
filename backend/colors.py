"""
Color helpers for the park layer.

Parks are filled on a light tan -> dark brown gradient by the year they were
established: the earliest year sits at the light end and the latest year at
the dark end, with an easing curve pulling mid-range years toward the dark
end. Nothing in here raises on
bad input; invalid colors and missing bounds fall back to FALLBACK_COLOR.
"""

import math
import re
from typing import Iterable, NamedTuple, Optional

from models import StatusYearRange

START_COLOR = "#faedcf"
END_COLOR = "#5a2f12"
FALLBACK_COLOR = "#d6c5a5"
EASING_EXPONENT = 0.8

_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")


class RGB(NamedTuple):
    r: float
    g: float
    b: float


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def hex_to_rgb(hex_color: str) -> Optional[RGB]:
    """Parse '#rrggbb' (the '#' is optional). Returns None for anything else."""
    if not isinstance(hex_color, str):
        return None
    clean = hex_color.strip().replace("#", "")
    if not _HEX_RE.match(clean):
        return None
    num = int(clean, 16)
    return RGB((num >> 16) & 255, (num >> 8) & 255, num & 255)


def _channel(value: float) -> int:
    # round half up, then clamp into a byte
    if value is None or math.isnan(value):
        return 0
    if math.isinf(value):
        return 255 if value > 0 else 0
    return max(0, min(255, math.floor(value + 0.5)))


def rgb_to_hex(rgb) -> str:
    r, g, b = rgb
    return "#" + "".join(f"{_channel(v):02x}" for v in (r, g, b))


def interpolate_hex_color(start_hex: str, end_hex: str, t: float) -> str:
    start = hex_to_rgb(start_hex)
    end = hex_to_rgb(end_hex)
    if start is None or end is None:
        return FALLBACK_COLOR
    return rgb_to_hex(
        (
            lerp(start.r, end.r, t),
            lerp(start.g, end.g, t),
            lerp(start.b, end.b, t),
        )
    )


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def color_by_status_year(
    year: Optional[float],
    min_year: Optional[float],
    max_year: Optional[float],
) -> str:
    """Fill color for a park established in `year` on the tan -> brown gradient."""
    if not _is_number(year) or not year:
        return FALLBACK_COLOR
    if not _is_number(min_year) or not _is_number(max_year) or not min_year or not max_year:
        return FALLBACK_COLOR
    if min_year == max_year:
        return END_COLOR

    t = (year - min_year) / (max_year - min_year)
    t = max(0.0, min(1.0, t))
    eased = t ** EASING_EXPONENT
    return interpolate_hex_color(START_COLOR, END_COLOR, eased)


def status_year_range(years: Iterable) -> StatusYearRange:
    """Min/max over the numeric years. WDPA uses 0 for "not reported", so 0 is skipped."""
    valid = [y for y in years if _is_number(y) and y > 0]
    if not valid:
        return StatusYearRange()
    return StatusYearRange(min_year=min(valid), max_year=max(valid))
