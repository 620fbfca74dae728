from typing import Optional

from ..schemas.profile import BodyProfile, ColorProfile, GarmentRecord
from ..schemas.results import (
    DetectedColor,
    FitCheckResult,
    FitOptions,
    FitResult,
    SuitabilityBundle,
    SuitabilityResult,
)
from .body_shape import evaluate_body_shape
from .color_detection import DominantColorDetector
from .color_suitability import evaluate_color, resolve_garment_color
from .fabric import analyze_fabric_comfort
from .recommender import recommend_size_and_fit


SEPARATOR = " • "


def _part(label: str, result: SuitabilityResult) -> str:
    if result.status == "OK" and result.verdict:
        return f"{label}: {result.verdict}"
    return f"{label}: needs setup"


def suitability_summary(color: SuitabilityResult, body: SuitabilityResult) -> str:
    return SEPARATOR.join([_part("Color", color), _part("Silhouette", body)])


def fit_check_summary(
    fit: FitResult, color: SuitabilityResult, body: SuitabilityResult, fabric: SuitabilityResult
) -> str:
    if fit.status == "OK":
        size = f"Size: {fit.recommended_size} ({fit.risk} risk)"
    else:
        size = "Size: needs setup"
    return SEPARATOR.join([size, _part("Color", color), _part("Silhouette", body), _part("Fabric", fabric)])


def evaluate_suitability(
    profile: BodyProfile, garment: GarmentRecord, detected: Optional[DetectedColor] = None
) -> SuitabilityBundle:
    color = evaluate_color(ColorProfile.from_body_profile(profile), garment, detected)
    body = evaluate_body_shape(profile.body_shape, garment)
    return SuitabilityBundle(color=color, body=body, summary=suitability_summary(color, body))


def needs_detection(garment: GarmentRecord) -> bool:
    return bool(garment.image_url) and resolve_garment_color(garment) is None


async def run_fit_check(
    profile: BodyProfile,
    garment: GarmentRecord,
    options: Optional[FitOptions] = None,
    detector: Optional[DominantColorDetector] = None,
) -> FitCheckResult:
    """Run all four evaluators and fold them into one result.

    The detector is only consulted when the catalog has no usable color for
    the garment and an image is available; its failures degrade to an unknown
    color, never to an error.
    """
    detected: Optional[DetectedColor] = None
    if detector is not None and needs_detection(garment):
        detected = await detector.detect(garment.image_url)

    fit = recommend_size_and_fit(profile, garment, options)
    suitability = evaluate_suitability(profile, garment, detected)
    fabric = analyze_fabric_comfort(
        garment.material,
        category=garment.category,
        fit_type=garment.fit_type or (options.fit_intent if options else None),
        fabric_stretch=garment.fabric_stretch,
    )
    return FitCheckResult(
        fit=fit,
        color=suitability.color,
        body=suitability.body,
        fabric=fabric,
        detected_color=detected,
        summary=fit_check_summary(fit, suitability.color, suitability.body, fabric),
    )
