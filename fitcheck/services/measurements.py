import math
import re
from typing import Any, Dict, Optional

import structlog

from ..schemas.profile import BodyProfile


logger = structlog.get_logger("fitcheck")

CM_PER_INCH = 2.54

# A bare height above this many inches can only be centimeters
MAX_PLAIN_HEIGHT_IN = 96.0
# and a bare height below this is whole feet
MAX_PLAIN_HEIGHT_FEET = 9.0

_FEET_INCHES_RE = re.compile(r"^\s*(\d+)\s*(?:'|ft|feet|foot)\s*(\d+(?:\.\d+)?)?\s*(?:\"|in|inch|inches)?\s*$", re.I)
_COMPOUND_RE = re.compile(r"^\s*(\d)\.(\d{1,2})\s*$")
_WITH_UNIT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(cm|in|inch|inches|\")\s*$", re.I)
_MIXED_FRACTION_RE = re.compile(r"^\s*(\d+)\s+(\d+)/(\d+)\s*$")
_FRACTION_RE = re.compile(r"^\s*(\d+)/(\d+)\s*$")


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


def safe_float(value: Any, field: str | None = None) -> Optional[float]:
    """Coerce to a finite positive float or None; malformed input is logged, never raised."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        logger.warning("measurement_malformed", field=field, value=str(value)[:40])
        return None
    return _positive(num)


def cm_to_inches(cm: Optional[float]) -> Optional[float]:
    if cm is None:
        return None
    return _positive(cm / CM_PER_INCH)


def inches_to_cm(inches: Optional[float]) -> Optional[float]:
    if inches is None:
        return None
    return _positive(inches * CM_PER_INCH)


def resolve_inches(inches_value: Any, legacy_cm_value: Any = None, field: str | None = None) -> Optional[float]:
    """Pick the canonical inch value for one profile field.

    The explicit inch field is trusted as-is when present. Otherwise the legacy
    value is assumed to be centimeters. Zero, negative and non-finite results
    come back as None so they cannot bias comparisons toward "too small".
    """
    inches = safe_float(inches_value, field)
    if inches is not None:
        return inches
    return cm_to_inches(safe_float(legacy_cm_value, field))


def parse_height_to_inches(value: Any) -> Optional[float]:
    """Parse a height in inches, centimeters or feet.inches notation ("5.4" is 5'4")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None

    text = str(value).strip().lower()
    if not text:
        return None

    m = _FEET_INCHES_RE.match(text)
    if m:
        feet = int(m.group(1))
        inches = float(m.group(2)) if m.group(2) else 0.0
        return _positive(feet * 12 + inches)

    m = _COMPOUND_RE.match(text)
    if m:
        # The digits after the dot are an inch count, so "5.10" is 70 and "5.4" is 64
        feet, inches = int(m.group(1)), int(m.group(2))
        if inches < 12:
            return _positive(feet * 12.0 + inches)

    m = _WITH_UNIT_RE.match(text)
    if m:
        num = float(m.group(1))
        if m.group(2) == "cm":
            return _positive(num / CM_PER_INCH)
        return _positive(num)

    num = safe_float(text, "height")
    if num is None:
        return None
    if num < MAX_PLAIN_HEIGHT_FEET:
        return _positive(num * 12)
    return _positive(num / CM_PER_INCH) if num > MAX_PLAIN_HEIGHT_IN else num


def parse_measurement(value: Any, default_unit: str = "in") -> Optional[float]:
    """Parse "1 1/2", "3/4", "32 in", "81 cm" or a bare number into inches."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = _positive(float(value))
        return cm_to_inches(num) if default_unit == "cm" else num

    text = str(value).strip()
    if not text:
        return None

    m = _MIXED_FRACTION_RE.match(text)
    if m:
        den = int(m.group(3))
        if den == 0:
            return None
        return _positive(int(m.group(1)) + int(m.group(2)) / den)

    m = _FRACTION_RE.match(text)
    if m:
        den = int(m.group(2))
        if den == 0:
            return None
        return _positive(int(m.group(1)) / den)

    m = _WITH_UNIT_RE.match(text)
    if m:
        num = float(m.group(1))
        return cm_to_inches(num) if m.group(2).lower() == "cm" else _positive(num)

    num = safe_float(text)
    if num is None:
        return None
    return cm_to_inches(num) if default_unit == "cm" else num


def format_inches_as_fraction(inches: Optional[float], precision: int = 8) -> str:
    """Render 1.5 as "1 1/2 in", 0.75 as "3/4 in"."""
    if inches is None or not math.isfinite(inches):
        return ""
    whole = math.floor(inches)
    parts = round((inches - whole) * precision)
    if parts == 0:
        return f"{whole} in"
    if parts == precision:
        return f"{whole + 1} in"
    divisor = math.gcd(parts, precision)
    num, den = parts // divisor, precision // divisor
    if whole == 0:
        return f"{num}/{den} in"
    return f"{whole} {num}/{den} in"


# profile field -> (new inch column, legacy centimeter column)
PROFILE_COLUMNS: Dict[str, tuple[str, str]] = {
    "chest_in": ("chest_circ_in", "chest"),
    "bust_in": ("bust_circ_in", "bust"),
    "waist_in": ("waist_circ_in", "waist"),
    "hips_in": ("hip_circ_in", "hips"),
    "shoulder_in": ("shoulder_width_in", "shoulder"),
    "sleeve_in": ("sleeve_length_in", "sleeve"),
    "inseam_in": ("inseam_in", "inseam"),
    "thigh_in": ("thigh_circ_in", "thigh"),
}


def _color_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(c).strip().lower() for c in value if str(c).strip()]


def _choice(value: Any, allowed: tuple[str, ...]) -> Optional[str]:
    if not value:
        return None
    v = str(value).strip().lower()
    if v == "fall":
        v = "autumn"
    return v if v in allowed else None


def normalize_body_profile(row: Dict[str, Any]) -> BodyProfile:
    """Build a BodyProfile from a persisted profile row holding new and/or legacy columns."""
    values: Dict[str, Any] = {}
    for field, (inch_col, legacy_col) in PROFILE_COLUMNS.items():
        values[field] = resolve_inches(row.get(inch_col), row.get(legacy_col), field)

    if row.get("height_in") not in (None, ""):
        values["height_in"] = parse_height_to_inches(row.get("height_in"))
    else:
        legacy_height = row.get("height")
        if isinstance(legacy_height, (int, float)) and not isinstance(legacy_height, bool):
            # numeric legacy heights were stored in centimeters
            values["height_in"] = cm_to_inches(safe_float(legacy_height, "height"))
        else:
            values["height_in"] = parse_height_to_inches(legacy_height)

    return BodyProfile(
        **values,
        weight_kg=safe_float(row.get("weight_kg") or row.get("weight"), "weight_kg"),
        gender=(row.get("gender") or None),
        body_shape=(str(row["body_shape"]).strip().lower() or None) if row.get("body_shape") else None,
        undertone=_choice(row.get("undertone"), ("warm", "cool", "neutral")),
        season=_choice(row.get("season"), ("spring", "summer", "autumn", "winter")),
        depth=_choice(row.get("depth"), ("light", "medium", "deep")),
        best_colors=_color_list(row.get("best_colors")),
        avoid_colors=_color_list(row.get("avoid_colors")),
    )
