from typing import FrozenSet, List, NamedTuple, Optional

from ..schemas.profile import GarmentRecord
from ..schemas.results import MAX_REASONS, SuitabilityResult
from .recommender import normalize_fit_intent


GENERIC_REASON = "Works for most body types; adjust with styling (tuck, belt, layering)."
GENERIC_TIP = "Style it your way: a tuck, a belt or a layer changes the silhouette."

ANY = None


class ShapeRule(NamedTuple):
    shape: str
    categories: Optional[FrozenSet[str]]
    fits: Optional[FrozenSet[str]]
    verdict: str
    reasons: List[str]
    tip: Optional[str]


def _set(*items: str) -> FrozenSet[str]:
    return frozenset(items)


# Ordered: "inverted triangle" must resolve before plain "triangle"
SHAPE_ALIASES = [
    ("inverted", "inverted_triangle"),
    ("v shape", "inverted_triangle"),
    ("v-shape", "inverted_triangle"),
    ("pear", "pear"),
    ("triangle", "pear"),
    ("spoon", "pear"),
    ("apple", "apple"),
    ("oval", "apple"),
    ("round", "apple"),
    ("hourglass", "hourglass"),
    ("rectangle", "rectangle"),
    ("straight", "rectangle"),
    ("banana", "rectangle"),
    ("trapezoid", "trapezoid"),
    ("athletic", "trapezoid"),
]


def canonical_shape(body_shape: Optional[str]) -> Optional[str]:
    shape = (body_shape or "").strip().lower()
    if not shape:
        return None
    for keyword, canonical in SHAPE_ALIASES:
        if keyword in shape:
            return canonical
    return None


# Evaluated top to bottom; the first rule whose shape, category and fit all match wins.
SHAPE_RULES: List[ShapeRule] = [
    ShapeRule("inverted_triangle", _set("upper_body"), _set("oversized"), "risky",
              ["Extra volume up top can exaggerate shoulder width."],
              "For balance, try cleaner tops with wider or looser bottoms."),
    ShapeRule("inverted_triangle", _set("lower_body"), _set("relaxed", "oversized"), "flattering",
              ["More volume on the lower body balances broader shoulders."],
              "Keep the top streamlined to make the most of the balance."),
    ShapeRule("inverted_triangle", _set("dresses"), _set("relaxed", "oversized"), "flattering",
              ["A fuller skirt balances broader shoulders."],
              "V-necklines keep the shoulder line soft."),
    ShapeRule("pear", _set("upper_body"), _set("relaxed", "oversized"), "flattering",
              ["A roomier top balances the hips by adding volume up top."],
              "Pair with straight or slightly flared bottoms."),
    ShapeRule("pear", _set("lower_body"), _set("snug"), "neutral",
              ["Slim bottoms emphasize the hip and thigh area, which may or may not be the goal."],
              "For balance, try straight-leg or wide-leg cuts."),
    ShapeRule("pear", _set("dresses"), ANY, "flattering",
              ["A-line and fit-and-flare shapes skim over the hips."],
              "Detail at the neckline draws the eye upward."),
    ShapeRule("apple", _set("dresses"), ANY, "flattering",
              ["Structured or A-line dresses create a smoother line through the midsection."],
              "Avoid very tight waist seams if comfort matters."),
    ShapeRule("apple", _set("upper_body"), _set("snug"), "risky",
              ["Very slim tops can cling around the midsection."],
              "Try regular or relaxed fits, or a layering piece."),
    ShapeRule("apple", _set("upper_body"), _set("relaxed"), "flattering",
              ["Relaxed tops drape past the midsection without clinging."],
              "A V-neck lengthens the torso."),
    ShapeRule("hourglass", _set("dresses"), _set("snug", "regular"), "flattering",
              ["Waist definition highlights your natural proportions."],
              "A belt or wrap detail keeps the waist in focus."),
    ShapeRule("hourglass", ANY, _set("oversized"), "neutral",
              ["Oversized fits hide waist definition, which reads relaxed but less shaped."],
              "Tuck or belt it to bring the waist back."),
    ShapeRule("hourglass", _set("upper_body", "lower_body"), _set("snug"), "flattering",
              ["Fitted pieces follow your balanced proportions."],
              "Keep lines simple and let the shape do the work."),
    ShapeRule("rectangle", _set("dresses"), ANY, "neutral",
              ["Belts, wrap styles or defined waists add shape if you want it."],
              "Straight, minimal silhouettes also work well."),
    ShapeRule("rectangle", _set("upper_body"), _set("relaxed", "oversized"), "flattering",
              ["Relaxed volume suits a straight frame."],
              "Add structure at the shoulder for more definition."),
    ShapeRule("trapezoid", _set("upper_body"), _set("snug", "regular"), "flattering",
              ["Fitted tops follow a balanced, broad-shouldered frame."],
              "Keep bottoms straight to match the line."),
]


def _rule_matches(rule: ShapeRule, shape: str, category: str, fit: str) -> bool:
    if rule.shape != shape:
        return False
    if rule.categories is not ANY and category not in rule.categories:
        return False
    if rule.fits is not ANY and fit not in rule.fits:
        return False
    return True


def evaluate_body_shape(body_shape: Optional[str], garment: GarmentRecord) -> SuitabilityResult:
    shape = canonical_shape(body_shape)
    if shape is None:
        return SuitabilityResult(
            kind="body",
            status="INSUFFICIENT_DATA",
            verdict=None,
            reason_code="missing_body_shape",
            reasons=[GENERIC_REASON, "Set your body shape in your Fit Profile for silhouette advice."],
            alternatives=[GENERIC_TIP],
        )

    fit = normalize_fit_intent(garment.fit_type)
    for rule in SHAPE_RULES:
        if _rule_matches(rule, shape, garment.category, fit):
            return SuitabilityResult(
                kind="body",
                status="OK",
                verdict=rule.verdict,
                reasons=rule.reasons[:MAX_REASONS],
                alternatives=[rule.tip] if rule.tip else [],
            )

    return SuitabilityResult(
        kind="body",
        status="OK",
        verdict="neutral",
        reasons=[GENERIC_REASON],
        alternatives=[GENERIC_TIP],
    )
