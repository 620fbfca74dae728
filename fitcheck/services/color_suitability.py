from typing import List, Optional, Tuple

import structlog

from ..schemas.profile import ColorProfile, GarmentRecord
from ..schemas.results import MAX_ALTERNATIVES, MAX_REASONS, DetectedColor, SuitabilityResult
from .colors import (
    SEASON_FAMILIES,
    SEASON_PALETTES,
    SEASON_RATIONALE,
    SEASON_UNDERTONE,
    color_family,
    names_match,
    nearest_named_color,
    normalize_color_name,
    parse_hex,
)


logger = structlog.get_logger("fitcheck")

FAMILY_TIER = {"neutral": "neutrals", "loud": "brights", "warm": "accents", "cool": "accents", "unknown": "neutrals"}


def resolve_garment_color(
    garment: GarmentRecord, detected: Optional[DetectedColor] = None
) -> Optional[Tuple[str, str]]:
    """Return (color name, source) for the garment, or None when indeterminate.

    A catalog hex wins over the catalog name; the detector is consulted only
    when the catalog carries neither.
    """
    rgb = parse_hex(garment.color_hex)
    if rgb is not None:
        return nearest_named_color(rgb)[0], "hex"
    name = normalize_color_name(garment.primary_color)
    if name:
        return name, "name"
    if detected is not None and detected.is_known and detected.name != "unknown":
        return detected.name, "detected"
    return None


def _alternatives(profile: ColorProfile, garment_color: str, family: str) -> List[str]:
    picks = [c for c in profile.best_colors if not names_match(garment_color, c)]
    if not picks and profile.season:
        tier = SEASON_PALETTES[profile.season][FAMILY_TIER.get(family, "neutrals")]
        picks = [c for c in tier if not names_match(garment_color, c)]
    return picks[:MAX_ALTERNATIVES]


def _seasonal_verdict(profile: ColorProfile, color: str, family: str) -> Tuple[str, List[str]]:
    season = profile.season
    undertone = profile.undertone or (SEASON_UNDERTONE.get(season) if season else None) or "neutral"
    reasons: List[str] = []

    if season:
        suited = SEASON_FAMILIES[season]
        reasons.append(SEASON_RATIONALE[season])
        if family == suited[0]:
            reasons.insert(0, f"This {family} {color} aligns with your {season.capitalize()} palette.")
            return "great", reasons
        if family in suited:
            reasons.insert(0, f"{color.capitalize()} is a {family} shade that works with {season.capitalize()} tones.")
            return "ok", reasons
        if family == "unknown":
            reasons.insert(0, "Color family unclear, advice may be less accurate.")
            return "ok", reasons
        reasons.insert(0, f"{color.capitalize()} reads {family}, which tends to clash with a {season.capitalize()} palette.")
        return "risky", reasons

    if family == "neutral":
        reasons.append("Neutrals usually work across most undertones.")
        return "ok", reasons
    if family == "unknown":
        reasons.append("Color family unclear, advice may be less accurate.")
        return "ok", reasons
    if family == "loud":
        reasons.append("High-saturation colors depend on your contrast level, try it paired with neutrals.")
        return "risky", reasons
    if family == undertone:
        reasons.append(f"This {family} color matches your {undertone} undertone.")
        return "great", reasons
    if undertone == "neutral":
        reasons.append("This color may work, but neutrals are typically safer for a neutral undertone.")
        return "ok", reasons
    reasons.append(f"This {family} color often clashes with {undertone} undertones.")
    return "risky", reasons


def evaluate_color(
    profile: Optional[ColorProfile],
    garment: GarmentRecord,
    detected: Optional[DetectedColor] = None,
) -> SuitabilityResult:
    profile = profile or ColorProfile()
    resolved = resolve_garment_color(garment, detected)
    has_profile = not profile.is_empty

    if resolved is None and not has_profile:
        return SuitabilityResult(
            kind="color",
            status="INSUFFICIENT_DATA",
            reason_code="missing_color_profile_and_garment_color",
            reasons=[
                "Missing color profile: set your undertone and season in your Color Profile.",
                "Missing garment color: add the product color or pick it from the photo.",
            ],
        )
    if resolved is None:
        return SuitabilityResult(
            kind="color",
            status="INSUFFICIENT_DATA",
            reason_code="missing_garment_color",
            reasons=["Missing garment color: add the product color or pick it from the photo."],
        )

    color, source = resolved
    family = color_family(color)

    if not has_profile:
        if family == "neutral":
            reason = "Neutral color, works across most undertones."
        elif family == "unknown":
            reason = "Color family unclear."
        else:
            reason = f"This is a {family} color."
        return SuitabilityResult(
            kind="color",
            status="OK",
            verdict="ok",
            reason_code="missing_color_profile",
            reasons=[reason, "Set your Color Profile to see whether it suits you."],
        )

    if any(names_match(color, c) for c in profile.avoid_colors):
        verdict = "risky"
        reasons = [f"{color.capitalize()} is on your avoid list from your color analysis."]
        if profile.season:
            reasons.append(SEASON_RATIONALE[profile.season])
        decision = "avoid"
    elif any(names_match(color, c) for c in profile.best_colors):
        verdict = "great"
        reasons = [f"{color.capitalize()} is one of your best colors."]
        if profile.season:
            reasons.append(SEASON_RATIONALE[profile.season])
        decision = "best"
    else:
        verdict, reasons = _seasonal_verdict(profile, color, family)
        decision = "season"

    if source == "detected":
        reasons.append("Garment color was detected from the photo, confirm it matches the product.")

    alternatives = [] if verdict == "great" else _alternatives(profile, color, family)
    logger.debug("color_decision", decision=decision, color=color, family=family, verdict=verdict, source=source)
    return SuitabilityResult(
        kind="color",
        status="OK",
        verdict=verdict,
        reasons=reasons[:MAX_REASONS],
        alternatives=alternatives,
    )
