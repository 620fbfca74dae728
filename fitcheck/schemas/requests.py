from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from .profile import BodyProfile, Category, GarmentRecord, SizeChartEntry, StretchLevel
from .results import FitCheckResult, FitOptions


class GarmentInput(BaseModel):
    """Garment as posted by callers: the size chart may be any raw chart shape."""

    category: Category = "upper_body"
    name: Optional[str] = None
    fit_type: Optional[str] = None
    fabric_stretch: Union[bool, StretchLevel, None] = None
    material: Optional[str] = None
    size_chart: Any = None
    size_chart_unit: Literal["in", "cm"] = "in"
    primary_color: Optional[str] = None
    color_hex: Optional[str] = None
    image_url: Optional[str] = None


class FitRecommendRequest(BaseModel):
    profile: BodyProfile
    garment: GarmentInput
    options: FitOptions = Field(default_factory=FitOptions)


class SuitabilityRequest(BaseModel):
    profile: BodyProfile
    garment: GarmentInput


class FabricComfortRequest(BaseModel):
    material: Optional[str] = None
    category: Category = "upper_body"
    fit_type: Optional[str] = None
    fabric_stretch: Union[bool, StretchLevel, None] = None


class StretchRequest(BaseModel):
    material: Optional[str] = None
    fabric_stretch: Union[bool, StretchLevel, None] = None


class ColorDetectRequest(BaseModel):
    image_url: str = Field(..., min_length=1)


class ColorPickRequest(BaseModel):
    image_url: str = Field(..., min_length=1)
    x: float
    y: float


class SizeChartNormalizeRequest(BaseModel):
    chart: Any
    unit: Literal["in", "cm"] = "in"


class SizeChartNormalizeResponse(BaseModel):
    sizes: List[SizeChartEntry]
    labels: List[str]
    by_size: Dict[str, Dict[str, float]]


class FitCheckRequest(BaseModel):
    profile: BodyProfile
    garment: GarmentInput
    options: FitOptions = Field(default_factory=FitOptions)
    narrate: bool = False
    tone: Optional[str] = None


class FitCheckByIdRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    garment_id: str = Field(..., min_length=1)
    options: FitOptions = Field(default_factory=FitOptions)
    narrate: bool = False
    tone: Optional[str] = None


class Narration(BaseModel):
    preview: List[str]
    final: str


class FitCheckResponse(FitCheckResult):
    narration: Optional[Narration] = None


__all__ = [
    "GarmentInput",
    "GarmentRecord",
    "FitRecommendRequest",
    "SuitabilityRequest",
    "FabricComfortRequest",
    "StretchRequest",
    "ColorDetectRequest",
    "ColorPickRequest",
    "SizeChartNormalizeRequest",
    "SizeChartNormalizeResponse",
    "FitCheckRequest",
    "FitCheckByIdRequest",
    "Narration",
    "FitCheckResponse",
]
