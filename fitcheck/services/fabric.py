"""Fabric stretch classification and comfort verdicts.

Both lexicons are ordered rule tables: the first keyword found in the
lowercased material text decides, so more specific terms ("stretch denim")
are listed ahead of the generic ones ("denim").
"""
from typing import List, Optional, Tuple, Union

from ..schemas.results import MAX_REASONS, FabricComfortResult, StretchResult
from .recommender import normalize_fit_intent


STRETCH_LEXICON: List[Tuple[str, str]] = [
    ("spandex", "high"),
    ("elastane", "high"),
    ("lycra", "high"),
    ("elastodiene", "high"),
    ("elasterell", "high"),
    ("non-stretch", "none"),
    ("no stretch", "none"),
    ("stretch", "medium"),
    ("elastic", "medium"),
    ("jersey", "medium"),
    ("knit", "medium"),
    ("ribbed", "medium"),
    ("modal", "low"),
    ("viscose", "low"),
    ("rayon", "low"),
    ("bamboo", "low"),
    ("cotton", "none"),
    ("polyester", "none"),
    ("nylon", "none"),
    ("polyamide", "none"),
    ("acrylic", "none"),
    ("silk", "none"),
    ("wool", "none"),
    ("cashmere", "none"),
    ("linen", "none"),
    ("denim", "none"),
    ("canvas", "none"),
    ("twill", "none"),
    ("poplin", "none"),
    ("satin", "none"),
    ("velvet", "none"),
    ("chiffon", "none"),
    ("organza", "none"),
    ("tulle", "none"),
    ("faux leather", "none"),
    ("pleather", "none"),
    ("leather", "none"),
    ("suede", "none"),
    ("vinyl", "none"),
]

# (keywords, unless, comfort points, remark). Every matching row contributes
# unless one of its exclusion keywords is also present.
FIBER_RULES: List[Tuple[Tuple[str, ...], Tuple[str, ...], int, str]] = [
    (("cotton", "linen", "silk", "wool", "cashmere", "bamboo", "modal"), (), 1,
     "Natural fibers typically feel soft and breathable."),
    (("polyester", "nylon", "acrylic", "polyamide"), (), -1,
     "Synthetic fabric may be less breathable, watch for heat."),
    (("leather", "pleather", "vinyl"), (), -1,
     "Leather and pleather do not breathe well."),
    (("sheer", "mesh", "chiffon"), (), 0,
     "Sheer fabric, may need layering."),
    (("denim",), (), 0,
     "Denim may feel stiff at first and softens with wear."),
    (("linen",), (), 0,
     "Linen wrinkles easily but stays cool."),
    (("wool",), ("merino",), 0,
     "Wool may feel itchy on sensitive skin."),
]

STRETCH_POINTS = {"high": 2, "medium": 2, "low": 1, "none": 0, "unknown": 0}


def _normalize_material(material: Optional[str]) -> str:
    if not material:
        return ""
    return " ".join(str(material).lower().split())


def _explicit_level(explicit: Union[bool, str, None]) -> Optional[str]:
    if explicit is True:
        return "medium"
    if explicit is False:
        return "none"
    if isinstance(explicit, str) and explicit.lower() in ("none", "low", "medium", "high"):
        return explicit.lower()
    return None


def stretch_level(material: Optional[str], explicit: Union[bool, str, None] = None) -> str:
    """Classify stretch as none/low/medium/high, or "unknown" when nothing matches.

    An explicit stretch field always wins over keyword matching.
    """
    level = _explicit_level(explicit)
    if level is not None:
        return level
    text = _normalize_material(material)
    if not text:
        return "unknown"
    for keyword, lexicon_level in STRETCH_LEXICON:
        if keyword in text:
            return lexicon_level
    return "unknown"


def has_stretch(material: Optional[str], explicit: Union[bool, str, None] = None) -> bool:
    return stretch_level(material, explicit) in ("low", "medium", "high")


def detect_stretch(material: Optional[str], explicit: Union[bool, str, None] = None) -> StretchResult:
    level = stretch_level(material, explicit)
    return StretchResult(has_stretch=level in ("low", "medium", "high"), level=level)


def analyze_fabric_comfort(
    material: Optional[str],
    category: str = "upper_body",
    fit_type: Optional[str] = None,
    fabric_stretch: Union[bool, str, None] = None,
) -> FabricComfortResult:
    text = _normalize_material(material)
    if not text:
        return FabricComfortResult(
            kind="fabric",
            status="INSUFFICIENT_DATA",
            reasons=["Fabric information not available. Add material details for comfort analysis."],
            reason_code="missing_material",
            stretch_level=_explicit_level(fabric_stretch) or "unknown",
            has_enough_data=False,
        )

    level = stretch_level(text, fabric_stretch)
    fit_intent = normalize_fit_intent(fit_type)
    insights: List[str] = []
    score = STRETCH_POINTS[level]

    if level in ("medium", "high"):
        insights.append("Stretch fabric gives with movement and feels comfortable.")
    elif level == "low":
        insights.append("Slight give in the fabric, fit should be close to the chart.")
    elif level == "none":
        insights.append("No stretch detected, the fit will follow the size chart exactly.")
    else:
        insights.append("Stretch could not be determined from the material.")

    for keywords, unless, points, remark in FIBER_RULES:
        if any(k in text for k in keywords) and not any(u in text for u in unless):
            score += points
            insights.append(remark)

    if level == "none" and fit_intent == "snug":
        score -= 2 if category == "lower_body" else 1
        insights.insert(1, "A snug cut with no stretch can feel restrictive, consider sizing up.")
    elif level == "none" and category == "lower_body" and fit_intent == "regular":
        score -= 1

    if level == "none" and fit_intent == "snug" and category == "lower_body":
        verdict = "risky"
    elif score >= 2:
        verdict = "comfortable"
    elif score >= 0:
        verdict = "ok"
    else:
        verdict = "risky"

    return FabricComfortResult(
        kind="fabric",
        status="OK",
        verdict=verdict,
        reasons=insights[:MAX_REASONS],
        stretch_level=level,
        has_enough_data=True,
    )
