"""
Helper utilities for ollamactl

Number, size and time formatting shared by the report and list renderers.
"""

import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple, Union

THOUSAND = 1000
MILLION = THOUSAND * 1000
BILLION = MILLION * 1000
TRILLION = BILLION * 1000

KILOBYTE = 1000
MEGABYTE = KILOBYTE * 1000
GIGABYTE = MEGABYTE * 1000
TERABYTE = GIGABYTE * 1000


def _is_whole(number: float) -> bool:
    return number == math.floor(number)


def human_number(count: Union[int, float]) -> str:
    """Format a parameter count with a K/M/B/T suffix (133700000 -> 133.70M)"""
    if not math.isfinite(count):
        return _special_float(count)
    count = int(count)
    if count >= TRILLION:
        number = count / TRILLION
        return f"{number:.0f}T" if _is_whole(number) else f"{number:.1f}T"
    if count >= BILLION:
        number = count / BILLION
        return f"{number:.0f}B" if _is_whole(number) else f"{number:.1f}B"
    if count >= MILLION:
        number = count / MILLION
        return f"{number:.0f}M" if _is_whole(number) else f"{number:.2f}M"
    if count >= THOUSAND:
        return f"{count / THOUSAND:.0f}K"
    return str(count)


def human_bytes(size_bytes: int) -> str:
    """Format a byte count with decimal units (1024 -> 1.0 KB)"""
    if size_bytes >= TERABYTE:
        value, unit = size_bytes / TERABYTE, "TB"
    elif size_bytes >= GIGABYTE:
        value, unit = size_bytes / GIGABYTE, "GB"
    elif size_bytes >= MEGABYTE:
        value, unit = size_bytes / MEGABYTE, "MB"
    elif size_bytes >= KILOBYTE:
        value, unit = size_bytes / KILOBYTE, "KB"
    else:
        return f"{size_bytes} B"

    if value >= 10 or _is_whole(value):
        return f"{int(value)} {unit}"
    return f"{value:.1f} {unit}"


def _human_duration(seconds: float) -> str:
    whole_seconds = int(seconds)
    if whole_seconds < 1:
        return "Less than a second"
    if whole_seconds == 1:
        return "1 second"
    if whole_seconds < 60:
        return f"{whole_seconds} seconds"

    minutes = int(seconds // 60)
    if minutes == 1:
        return "About a minute"
    if minutes < 60:
        return f"{minutes} minutes"

    hours = round(seconds / 3600)
    if hours == 1:
        return "About an hour"
    if hours < 48:
        return f"{hours} hours"
    if hours < 24 * 7 * 2:
        return f"{hours // 24} days"
    if hours < 24 * 30 * 2:
        return f"{hours // 24 // 7} weeks"
    if hours < 24 * 365 * 2:
        return f"{hours // 24 // 30} months"
    return f"{int(seconds // 3600) // 24 // 365} years"


def human_time(moment: Optional[datetime], now: Optional[datetime] = None, zero_value: str = "Never") -> str:
    """Describe a timestamp relative to now ("24 hours ago", "2 days ago")"""
    if moment is None:
        return zero_value

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    delta = (now - moment).total_seconds()
    if delta < -20 * 365 * 24 * 3600:
        return "Forever"
    if delta < 0:
        return _human_duration(-delta) + " from now"
    return _human_duration(delta) + " ago"


_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, tolerating nanosecond fractions and 'Z'"""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    # datetime only keeps microseconds
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _shortest_digits(value: float) -> Tuple[str, int]:
    """Shortest round-trip digits and the decimal point position"""
    normalized = Decimal(repr(abs(value))).normalize()
    _, digits, exponent = normalized.as_tuple()
    text = "".join(str(d) for d in digits)
    return text, len(text) + exponent


def _special_float(value: float) -> Optional[str]:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    return None


def format_float(value: Union[int, float]) -> str:
    """Shortest general-form number: 8e+09, 1000, 11434, 0.5, 1.5e-05"""
    value = float(value)
    special = _special_float(value)
    if special is not None:
        return special

    sign = "-" if value < 0 else ""
    digits, point = _shortest_digits(value)
    exponent = point - 1

    if exponent < -4 or exponent >= 6:
        mantissa = digits[0]
        if len(digits) > 1:
            mantissa += "." + digits[1:]
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exponent):02d}"

    return sign + _place_point(digits, point)


def format_decimal(value: Union[int, float]) -> str:
    """Shortest plain decimal notation, never an exponent: 1000, 0, 0.5"""
    value = float(value)
    special = _special_float(value)
    if special is not None:
        return special

    sign = "-" if value < 0 else ""
    digits, point = _shortest_digits(value)
    return sign + _place_point(digits, point)


def _place_point(digits: str, point: int) -> str:
    if point <= 0:
        return "0." + "0" * -point + digits
    if point >= len(digits):
        return digits + "0" * (point - len(digits))
    return digits[:point] + "." + digits[point:]
