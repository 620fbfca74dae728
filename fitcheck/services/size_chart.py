from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from ..schemas.profile import CANONICAL_AXES, SizeChartEntry
from .measurements import CM_PER_INCH, parse_measurement, safe_float


logger = structlog.get_logger("fitcheck")

# Ordered alias table: first matching alias wins. Keys are compared lowercased
# with "-" and "_" folded to spaces.
AXIS_ALIASES: List[Tuple[str, str]] = [
    ("chest", "chest"),
    ("bust", "chest"),
    ("bust/chest", "chest"),
    ("chest circumference", "chest"),
    ("pit to pit", "chest"),
    ("waist", "waist"),
    ("waist circumference", "waist"),
    ("hips", "hips"),
    ("hip", "hips"),
    ("hip circumference", "hips"),
    ("hem", "hips"),
    ("shoulder", "shoulder"),
    ("shoulders", "shoulder"),
    ("shoulder width", "shoulder"),
    ("shoulder to shoulder", "shoulder"),
    ("sleeve", "sleeve"),
    ("sleeve length", "sleeve"),
    ("arm", "sleeve"),
    ("inseam", "inseam"),
    ("in seam", "inseam"),
    ("inside leg", "inseam"),
    ("rise", "rise"),
    ("front rise", "rise"),
    ("thigh", "thigh"),
    ("thigh circumference", "thigh"),
    ("leg opening", "leg_opening"),
    ("leg", "leg_opening"),
    ("length", "length"),
    ("top length", "length"),
    ("shirt length", "length"),
    ("dress length", "length"),
    ("full length", "length"),
    ("garment length", "length"),
]

_ALIAS_LOOKUP: Dict[str, str] = {}
for _alias, _axis in AXIS_ALIASES:
    _ALIAS_LOOKUP.setdefault(_alias, _axis)

_LABEL_KEYS = ("size", "label", "name", "size_label")
_ROW_META_KEYS = set(_LABEL_KEYS) | {"measurements", "measurement", "unit", "id", "garment_id"}


def canonical_axis(key: str) -> Optional[str]:
    k = str(key).strip().lower().replace("_", " ").replace("-", " ")
    k = " ".join(k.split())
    if k in _ALIAS_LOOKUP:
        return _ALIAS_LOOKUP[k]
    if k.endswith(" in") or k.endswith(" cm"):
        return _ALIAS_LOOKUP.get(k[:-3])
    return None


def _normalize_measurements(raw: Dict[str, Any], unit: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for key, value in raw.items():
        axis = canonical_axis(key)
        if axis is None:
            continue
        inches = parse_measurement(value, default_unit=unit)
        if inches is None:
            if value not in (None, ""):
                logger.warning("size_chart_value_dropped", axis=axis, value=str(value)[:40])
            continue
        # First alias wins when a row carries both e.g. "bust" and "chest"
        out.setdefault(axis, round(inches, 3))
    return out


def _row_label(row: Dict[str, Any]) -> Optional[str]:
    for key in _LABEL_KEYS:
        label = row.get(key)
        if label is not None and str(label).strip():
            return str(label).strip()
    return None


def normalize_size_chart(raw: Any, unit: str = "in") -> List[SizeChartEntry]:
    """Normalize a size chart given as a list of rows or an axis-keyed object.

    Accepted shapes::

        [{"size": "S", "measurements": {"chest": 36, "waist": "28 in"}}, ...]
        [{"size": "S", "chest": 36, "waist": 28}, ...]
        {"S": {"chest": 36, "waist": 28}, "M": {...}}
        {"unit": "cm", "scale": {"S": {...}}}

    Bare numbers are read in ``unit`` (a ``unit`` key on the payload or row
    overrides it); strings may carry their own unit. The label order of the
    input is preserved.
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        declared = str(raw.get("unit") or unit).lower()
        unit = "cm" if declared in ("cm", "centimeter", "centimeters") else "in"
        table = raw.get("scale") if isinstance(raw.get("scale"), dict) else raw
        rows: Iterable[Dict[str, Any]] = (
            {"size": label, "measurements": m} for label, m in table.items() if isinstance(m, dict)
        )
    elif isinstance(raw, list):
        rows = (r for r in raw if isinstance(r, dict))
    else:
        raise TypeError(f"size chart must be a list or an object, got {type(raw).__name__}")

    chart: List[SizeChartEntry] = []
    seen = set()
    for row in rows:
        label = _row_label(row)
        if label is None or label in seen:
            continue
        row_unit = str(row.get("unit") or unit).lower()
        row_unit = "cm" if row_unit in ("cm", "centimeter", "centimeters") else "in"
        m = row.get("measurements") or row.get("measurement")
        if not isinstance(m, dict):
            m = {k: v for k, v in row.items() if k not in _ROW_META_KEYS}
        seen.add(label)
        chart.append(SizeChartEntry(size=label, measurements=_normalize_measurements(m, row_unit)))
    return chart


def size_labels(chart: List[SizeChartEntry]) -> List[str]:
    return [entry.size for entry in chart]


def chart_to_mapping(chart: List[SizeChartEntry]) -> Dict[str, Dict[str, float]]:
    return {entry.size: dict(entry.measurements) for entry in chart}


def chart_axes(chart: List[SizeChartEntry]) -> set[str]:
    axes: set[str] = set()
    for entry in chart:
        axes.update(k for k in entry.measurements if k in CANONICAL_AXES)
    return axes


# catalog column -> (canonical axis, new inch column, legacy column, legacy is flat half-width)
CATALOG_COLUMNS: List[Tuple[str, str, str, bool]] = [
    ("chest", "chest_circumference", "chest_width", True),
    ("waist", "waist_circumference", "waist_width", True),
    ("hips", "hip_circumference", "hip_width", True),
    ("length", "garment_length_in", "garment_length", False),
    ("shoulder", "shoulder_width_in", "shoulder_width", False),
    ("sleeve", "sleeve_length_in", "sleeve_length", False),
    ("inseam", "inseam_in", "inseam", False),
    ("rise", "rise_in", "rise", False),
    ("thigh", "thigh_circumference", "thigh_width", True),
    ("leg_opening", "leg_opening_circumference", "leg_opening", True),
]


def convert_catalog_sizes(rows: List[Dict[str, Any]]) -> List[SizeChartEntry]:
    """Convert catalog ``garment_sizes`` rows into a size chart in inches.

    New columns hold inch circumferences/lengths. Legacy columns hold
    centimeters, and legacy girths were measured flat, so they are doubled.
    """
    chart: List[SizeChartEntry] = []
    for row in rows or []:
        label = _row_label(row)
        if label is None:
            continue
        measurements: Dict[str, float] = {}
        for axis, new_col, legacy_col, flat in CATALOG_COLUMNS:
            value = safe_float(row.get(new_col), new_col)
            if value is None:
                legacy = safe_float(row.get(legacy_col), legacy_col)
                if legacy is not None:
                    value = (legacy * 2 if flat else legacy) / CM_PER_INCH
            if value is not None:
                measurements[axis] = round(value, 3)
        chart.append(SizeChartEntry(size=label, measurements=measurements))
    return chart
