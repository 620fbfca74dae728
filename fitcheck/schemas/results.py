from typing import Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field

from .profile import StretchLevel


Status = Literal["OK", "INSUFFICIENT_DATA"]

MAX_FIT_INSIGHTS = 5
MAX_REASONS = 4
MAX_ALTERNATIVES = 3


class FitOptions(BaseModel):
    # Used when the garment carries no fit_type of its own
    fit_intent: Optional[Literal["snug", "regular", "relaxed", "oversized"]] = None


class FitResult(BaseModel):
    status: Status
    recommended_size: Optional[str] = None
    backup_size: Optional[str] = None
    risk: Literal["low", "medium", "high"] = "high"
    confidence: float = 0.0
    missing: List[str] = Field(default_factory=list)
    missing_body: bool = False
    missing_garment: bool = False
    insights: List[str] = Field(default_factory=list, max_length=MAX_FIT_INSIGHTS)
    axis_ease: Dict[str, float] = Field(default_factory=dict)


class SuitabilityResult(BaseModel):
    """Shared result of the color, body-shape and fabric evaluators, tagged by ``kind``."""

    kind: Literal["color", "body", "fabric"]
    status: Status = "OK"
    verdict: Optional[str] = None
    reasons: List[str] = Field(default_factory=list, max_length=MAX_REASONS)
    alternatives: List[str] = Field(default_factory=list, max_length=MAX_ALTERNATIVES)
    reason_code: Optional[str] = None
    # fabric only
    stretch_level: Optional[Literal["none", "low", "medium", "high", "unknown"]] = None
    has_enough_data: bool = True

    @property
    def insights(self) -> List[str]:
        return self.reasons


# The fabric evaluator returns the shared result with kind="fabric"
FabricComfortResult = SuitabilityResult


class DetectedColor(BaseModel):
    hex: Optional[str] = None
    name: str = "unknown"
    rgb: Optional[Tuple[int, int, int]] = None
    confidence: float = 0.0
    source: Literal["dominant-cluster", "manual-pick", "unavailable"] = "unavailable"

    @property
    def is_known(self) -> bool:
        return self.hex is not None and self.confidence > 0


class StretchResult(BaseModel):
    has_stretch: bool
    level: Literal["none", "low", "medium", "high", "unknown"]


class SuitabilityBundle(BaseModel):
    color: SuitabilityResult
    body: SuitabilityResult
    summary: str


class FitCheckResult(BaseModel):
    fit: FitResult
    color: SuitabilityResult
    body: SuitabilityResult
    fabric: SuitabilityResult
    detected_color: Optional[DetectedColor] = None
    summary: str


__all__ = [
    "Status",
    "StretchLevel",
    "FitOptions",
    "FitResult",
    "SuitabilityResult",
    "FabricComfortResult",
    "DetectedColor",
    "StretchResult",
    "SuitabilityBundle",
    "FitCheckResult",
]
