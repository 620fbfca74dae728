from typing import Dict, List, Optional, Tuple

import structlog

from ..config import settings
from ..schemas.profile import BodyProfile, GarmentRecord, SizeChartEntry
from ..schemas.results import MAX_FIT_INSIGHTS, FitOptions, FitResult
from .measurements import format_inches_as_fraction
from .size_chart import chart_axes


logger = structlog.get_logger("fitcheck")


PRIMARY_AXES: Tuple[str, ...] = ("chest", "waist", "hips")

# Weights for scoring (higher = more important)
AXIS_WEIGHTS = {
    "chest": 2.0,
    "waist": 2.0,
    "hips": 2.0,
    "shoulder": 1.0,
    "sleeve": 1.0,
    "inseam": 1.0,
    "default": 0.5,
}

# Runner-up within this much weighted score of the winner is offered as backup
TOLERANCE_STEP = AXIS_WEIGHTS["chest"]

# Acceptable ease (garment - body) in inches for a regular fit, per category
EASE_BANDS_IN: Dict[str, Dict[str, Tuple[float, float]]] = {
    "upper_body": {
        "chest": (0.0, 6.0),
        "waist": (0.0, 8.0),
        "hips": (0.0, 8.0),
        "shoulder": (-0.5, 1.5),
        "sleeve": (-1.0, 1.5),
        "default": (0.0, 4.0),
    },
    "lower_body": {
        "chest": (0.0, 6.0),
        "waist": (0.0, 2.0),
        "hips": (0.0, 4.0),
        "thigh": (0.0, 3.0),
        "inseam": (-1.0, 1.5),
        "default": (0.0, 3.0),
    },
    "dresses": {
        "chest": (0.0, 5.0),
        "waist": (0.0, 4.0),
        "hips": (0.0, 5.0),
        "shoulder": (-0.5, 1.5),
        "sleeve": (-1.0, 1.5),
        "default": (0.0, 4.0),
    },
}

# Length axes are matched against the body, not eased, so fit intent does not scale them
LENGTH_AXES = {"sleeve", "inseam"}

# Multiplier on the upper edge of girth bands
FIT_INTENT_SCALE = {
    "snug": 0.5,
    "regular": 1.0,
    "relaxed": 1.5,
    "oversized": 2.5,
}

# Extra negative ease a stretch fabric tolerates on girth axes
STRETCH_ALLOWANCE_IN = {
    "none": 0.0,
    "low": 0.5,
    "medium": 1.5,
    "high": 2.5,
}

# Penalty slope for ease below the band, relative to looseness
TIGHT_PENALTY = 3.0

# A failing axis loses its whole weight once it misses the band by this many inches
MISS_SCALE_IN = 1.0

BODY_FIELDS = {
    "chest": "chest_in",
    "waist": "waist_in",
    "hips": "hips_in",
    "shoulder": "shoulder_in",
    "sleeve": "sleeve_in",
    "inseam": "inseam_in",
    "thigh": "thigh_in",
}

AXIS_LABELS = {
    "chest": "Chest",
    "waist": "Waist",
    "hips": "Hips",
    "shoulder": "Shoulders",
    "sleeve": "Sleeves",
    "inseam": "Inseam",
    "thigh": "Thigh",
}


def normalize_fit_intent(fit_type: Optional[str], fallback: Optional[str] = None) -> str:
    raw = (fit_type or fallback or "regular").lower()
    if "over" in raw or "boxy" in raw:
        return "oversized"
    if "relax" in raw or "loose" in raw:
        return "relaxed"
    if "slim" in raw or "snug" in raw or "skinny" in raw or "fitted" in raw or "bodycon" in raw:
        return "snug"
    return "regular"


def stretch_allowance(fabric_stretch) -> float:
    if fabric_stretch is True:
        return STRETCH_ALLOWANCE_IN["medium"]
    if fabric_stretch is False or fabric_stretch is None:
        return 0.0
    return STRETCH_ALLOWANCE_IN.get(str(fabric_stretch).lower(), 0.0)


def ease_band(axis: str, category: str, fit_intent: str, fabric_stretch=None) -> Tuple[float, float]:
    """Tolerance band [low, high] of acceptable ease for one axis."""
    if category not in EASE_BANDS_IN:
        raise ValueError(f"unknown garment category: {category!r}")
    bands = EASE_BANDS_IN[category]
    low, high = bands.get(axis, bands["default"])
    if axis in LENGTH_AXES:
        return low, high
    high *= FIT_INTENT_SCALE[fit_intent]
    low -= stretch_allowance(fabric_stretch)
    return low, high


def target_ease(band: Tuple[float, float]) -> float:
    low, high = band
    return (max(low, 0.0) + high) / 2.0


def _axis_weight(axis: str) -> float:
    return AXIS_WEIGHTS.get(axis, AXIS_WEIGHTS["default"])


def _deviation(ease: float, band: Tuple[float, float]) -> float:
    low, _ = band
    target = target_ease(band)
    if ease >= target:
        return ease - target
    if ease >= low:
        return target - ease
    return (target - low) + (low - ease) * TIGHT_PENALTY


def _miss(ease: float, band: Tuple[float, float]) -> float:
    """Inches outside the band, tight side weighted by TIGHT_PENALTY."""
    low, high = band
    if ease < low:
        return (low - ease) * TIGHT_PENALTY
    if ease > high:
        return ease - high
    return 0.0


def body_measurements(body: BodyProfile, category: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for axis, field in BODY_FIELDS.items():
        value = getattr(body, field)
        if value is not None:
            out[axis] = value
    # Dresses are charted by bust; tops fall back to bust when chest is missing
    if category == "dresses" and body.bust_in is not None:
        out["chest"] = body.bust_in
    elif "chest" not in out and body.bust_in is not None:
        out["chest"] = body.bust_in
    return out


class SizeScore:
    """Per-size scoring state.

    ``score`` is the weight of passing axes. ``credit`` ranks sizes: a passing
    axis earns its weight and a failing one earns less the further it misses,
    so credit never jumps at a band edge and a larger body never ranks a
    smaller size higher.
    """

    __slots__ = ("index", "size", "score", "credit", "total_weight", "deviation", "ease", "passes", "bands")

    def __init__(self, index: int, size: str) -> None:
        self.index = index
        self.size = size
        self.score = 0.0
        self.credit = 0.0
        self.total_weight = 0.0
        self.deviation = 0.0
        self.ease: Dict[str, float] = {}
        self.passes: Dict[str, bool] = {}
        self.bands: Dict[str, Tuple[float, float]] = {}

    def sort_key(self) -> Tuple[float, float, int]:
        return (-round(self.credit, 6), round(self.deviation, 6), self.index)


def _score_size(
    index: int,
    entry: SizeChartEntry,
    body: Dict[str, float],
    category: str,
    fit_intent: str,
    fabric_stretch,
) -> SizeScore:
    result = SizeScore(index, entry.size)
    for axis, garment_value in entry.measurements.items():
        b = body.get(axis)
        if b is None:
            continue
        band = ease_band(axis, category, fit_intent, fabric_stretch)
        weight = _axis_weight(axis)
        ease = garment_value - b
        passed = band[0] <= ease <= band[1]

        result.ease[axis] = round(ease, 2)
        result.passes[axis] = passed
        result.bands[axis] = band
        result.total_weight += weight
        result.deviation += _deviation(ease, band) * weight
        result.credit += weight * (1.0 - _miss(ease, band) / MISS_SCALE_IN)
        if passed:
            result.score += weight
    return result


def _risk(best: SizeScore) -> str:
    primary = [a for a in best.passes if a in PRIMARY_AXES]
    secondary = [a for a in best.passes if a not in PRIMARY_AXES]
    if not primary:
        # Nothing load-bearing was compared, so a pass cannot be called low risk
        return "medium" if all(best.passes[a] for a in secondary) else "high"
    if not all(best.passes[a] for a in primary):
        return "high"
    if all(best.passes[a] for a in secondary):
        return "low"
    return "medium"


def _bias_insight(best: SizeScore) -> Optional[str]:
    threshold = settings.runs_small_threshold_in
    under = over = 0
    for axis in PRIMARY_AXES:
        if axis not in best.ease:
            continue
        low, high = best.bands[axis]
        if best.ease[axis] <= low - threshold:
            under += 1
        elif best.ease[axis] >= high + threshold:
            over += 1
    if under >= settings.runs_small_min_axes:
        return f"Runs small: size {best.size} is undersized on {under} key areas, consider sizing up."
    if over >= settings.runs_small_min_axes:
        return f"Runs large: size {best.size} is oversized on {over} key areas, consider sizing down."
    return None


def _axis_insight(axis: str, ease: float, band: Tuple[float, float]) -> str:
    label = AXIS_LABELS.get(axis, axis.replace("_", " ").capitalize())
    amount = format_inches_as_fraction(abs(ease))
    low, high = band
    if axis in LENGTH_AXES:
        if ease < low:
            return f"{label} run short (about {amount} shorter than yours)."
        if ease > high:
            return f"{label} run long (about {amount} longer than yours)."
        return f"{label} length should land close to your usual."
    if ease < low:
        return f"{label} will feel tight (about {amount} smaller than your measurement)."
    if ease < 0:
        return f"{label} is snug and relies on stretch (about {amount} under your measurement)."
    if ease > high:
        return f"{label} has a lot of room (about {amount} of ease, looser than intended)."
    if ease == 0:
        return f"{label} is close to your measurement with no extra room."
    return f"{label} has comfortable room (about {amount} of ease)."


def _length_insight(category: str, entry: SizeChartEntry, height_in: Optional[float]) -> Optional[str]:
    length = entry.measurements.get("length")
    if length is None or not height_in:
        return None
    ratio = length / height_in
    if category == "dresses":
        if ratio < 0.45:
            return "Dress length reads as mini, above the knee."
        if ratio < 0.55:
            return "Dress length reads as around the knee."
        if ratio < 0.65:
            return "Dress length reads as midi, below the knee."
        return "Dress length reads as maxi, near the ankle."
    if category == "upper_body":
        if ratio < 0.28:
            return "Top length looks cropped, above the hip."
        if ratio < 0.33:
            return "Top length looks standard, around the hip."
        if ratio < 0.37:
            return "Top length looks long, covering the hip."
        return "Top length looks very long, likely covering the upper thigh."
    return None


def _insufficient(
    body_axes: set[str], garment_axes: set[str], category: str, has_chart: bool
) -> FitResult:
    missing_body = not body_axes or bool(garment_axes)
    missing_garment = not garment_axes or bool(body_axes)
    missing: List[str] = []
    insights: List[str] = []

    if missing_body:
        wanted = sorted(garment_axes) if garment_axes else [
            a for a in PRIMARY_AXES if a in EASE_BANDS_IN[category]
        ]
        missing.extend(BODY_FIELDS[a] for a in wanted if a in BODY_FIELDS)
        insights.append("Add your body measurements in your Fit Profile to get a size recommendation.")
    if missing_garment:
        if not has_chart or not garment_axes:
            missing.append("size_chart")
            insights.append("No usable size chart for this product. Add one manually or choose a link that includes one.")
        else:
            missing.extend(f"size_chart.{a}" for a in sorted(body_axes))
            insights.append("The size chart does not share any measurement with your profile.")

    return FitResult(
        status="INSUFFICIENT_DATA",
        risk="high",
        confidence=0.0,
        missing=missing,
        missing_body=missing_body,
        missing_garment=missing_garment,
        insights=insights[:MAX_FIT_INSIGHTS],
    )


def recommend_size_and_fit(
    body: BodyProfile, garment: GarmentRecord, options: Optional[FitOptions] = None
) -> FitResult:
    """Recommend a size from the garment's chart for the given body profile.

    Deterministic: identical inputs always produce identical output.
    """
    options = options or FitOptions()
    category = garment.category
    if category not in EASE_BANDS_IN:
        raise ValueError(f"unknown garment category: {category!r}")

    fit_intent = normalize_fit_intent(garment.fit_type, options.fit_intent)
    measured = body_measurements(body, category)
    garment_axes = chart_axes(garment.size_chart)
    body_axes = set(measured)

    if not (body_axes & garment_axes):
        return _insufficient(body_axes, garment_axes, category, bool(garment.size_chart))

    scored = [
        _score_size(i, entry, measured, category, fit_intent, garment.fabric_stretch)
        for i, entry in enumerate(garment.size_chart)
    ]
    scored = [s for s in scored if s.passes]
    ranked = sorted(scored, key=SizeScore.sort_key)
    best = ranked[0]
    risk = _risk(best)

    backup: Optional[str] = None
    if len(ranked) > 1 and best.score - ranked[1].score <= TOLERANCE_STEP:
        backup = ranked[1].size
    elif risk == "high" and best.index + 1 < len(garment.size_chart):
        backup = garment.size_chart[best.index + 1].size

    confidence = best.score / best.total_weight if best.total_weight else 0.0
    confidence = round(max(0.0, min(1.0, confidence)), 3)

    insights: List[str] = []
    bias = _bias_insight(best)
    if bias:
        insights.append(bias)
    by_deviation = sorted(
        best.ease,
        key=lambda a: (-abs(best.ease[a] - target_ease(best.bands[a])) * _axis_weight(a), a),
    )
    for axis in by_deviation:
        insights.append(_axis_insight(axis, best.ease[axis], best.bands[axis]))
    entry = garment.size_chart[best.index]
    length_line = _length_insight(category, entry, body.height_in)
    if length_line:
        insights.append(length_line)

    logger.debug(
        "fit_recommendation",
        category=category,
        fit_intent=fit_intent,
        size=best.size,
        score=best.score,
        risk=risk,
        ease=best.ease,
    )

    return FitResult(
        status="OK",
        recommended_size=best.size,
        backup_size=backup,
        risk=risk,
        confidence=confidence,
        insights=insights[:MAX_FIT_INSIGHTS],
        axis_ease=best.ease,
    )
