import math
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator


Category = Literal["upper_body", "lower_body", "dresses"]
StretchLevel = Literal["none", "low", "medium", "high"]

CANONICAL_AXES: List[str] = [
    "chest",
    "waist",
    "hips",
    "shoulder",
    "sleeve",
    "inseam",
    "rise",
    "thigh",
    "leg_opening",
    "length",
]


class BodyProfile(BaseModel):
    """Body and color profile of one user. Linear fields are inches or None."""

    height_in: Optional[float] = None
    weight_kg: Optional[float] = None
    chest_in: Optional[float] = None
    bust_in: Optional[float] = None
    waist_in: Optional[float] = None
    hips_in: Optional[float] = None
    shoulder_in: Optional[float] = None
    sleeve_in: Optional[float] = None
    inseam_in: Optional[float] = None
    thigh_in: Optional[float] = None
    gender: Optional[str] = None
    body_shape: Optional[str] = None
    undertone: Optional[Literal["warm", "cool", "neutral"]] = None
    season: Optional[Literal["spring", "summer", "autumn", "winter"]] = None
    depth: Optional[Literal["light", "medium", "deep"]] = None
    best_colors: List[str] = Field(default_factory=list)
    avoid_colors: List[str] = Field(default_factory=list)

    @field_validator(
        "height_in", "weight_kg", "chest_in", "bust_in", "waist_in", "hips_in",
        "shoulder_in", "sleeve_in", "inseam_in", "thigh_in",
    )
    @classmethod
    def drop_non_positive(cls, v):
        # 0 means "not measured", never a zero-inch body
        if v is None or not math.isfinite(v) or v <= 0:
            return None
        return v


class ColorProfile(BaseModel):
    undertone: Optional[Literal["warm", "cool", "neutral"]] = None
    season: Optional[Literal["spring", "summer", "autumn", "winter"]] = None
    depth: Optional[Literal["light", "medium", "deep"]] = None
    best_colors: List[str] = Field(default_factory=list)
    avoid_colors: List[str] = Field(default_factory=list)
    confidence: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (self.undertone or self.season or self.best_colors or self.avoid_colors)

    @classmethod
    def from_body_profile(cls, profile: BodyProfile) -> "ColorProfile":
        return cls(
            undertone=profile.undertone,
            season=profile.season,
            depth=profile.depth,
            best_colors=list(profile.best_colors),
            avoid_colors=list(profile.avoid_colors),
        )


class SizeChartEntry(BaseModel):
    size: str
    measurements: Dict[str, float] = Field(default_factory=dict)


class GarmentRecord(BaseModel):
    category: Category = "upper_body"
    name: Optional[str] = None
    fit_type: Optional[str] = None
    fabric_stretch: Union[bool, StretchLevel, None] = None
    material: Optional[str] = None
    size_chart: List[SizeChartEntry] = Field(default_factory=list)
    primary_color: Optional[str] = None
    color_hex: Optional[str] = None
    image_url: Optional[str] = None
