from typing import Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas.profile import BodyProfile, GarmentRecord
from ..schemas.requests import (
    FabricComfortRequest,
    FitCheckByIdRequest,
    FitCheckRequest,
    FitCheckResponse,
    FitRecommendRequest,
    GarmentInput,
    SizeChartNormalizeRequest,
    SizeChartNormalizeResponse,
    StretchRequest,
    SuitabilityRequest,
)
from ..schemas.results import FabricComfortResult, FitOptions, FitResult, StretchResult, SuitabilityBundle
from ..security import verify_api_key
from ..services.catalog_api import CatalogApiClient, CatalogNotFound
from ..services.fabric import analyze_fabric_comfort, detect_stretch
from ..services.fit_check import evaluate_suitability, run_fit_check
from ..services.recommender import recommend_size_and_fit
from ..services.size_chart import chart_to_mapping, normalize_size_chart, size_labels
from ..services.stylist import StylistNarrator


logger = structlog.get_logger("fitcheck")

router = APIRouter(tags=["fit"], dependencies=[Depends(verify_api_key)])


def _chart(raw, unit: str):
    try:
        return normalize_size_chart(raw, unit=unit)
    except TypeError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _garment_record(garment: GarmentInput) -> GarmentRecord:
    data = garment.model_dump(exclude={"size_chart", "size_chart_unit"})
    return GarmentRecord(**data, size_chart=_chart(garment.size_chart, garment.size_chart_unit))


def get_catalog_client() -> CatalogApiClient:
    return CatalogApiClient()


def get_narrator() -> StylistNarrator:
    return StylistNarrator()


async def _fit_check_response(
    request: Request,
    profile: BodyProfile,
    garment: GarmentRecord,
    options: FitOptions,
    narrate: bool,
    tone: Optional[str],
    narrator: StylistNarrator,
) -> FitCheckResponse:
    result = await run_fit_check(profile, garment, options, detector=request.app.state.color_detector)
    narration = await narrator.narrate(result, tone=tone) if narrate else None
    return FitCheckResponse(**result.model_dump(), narration=narration)


@router.post("/fit/recommend")
async def fit_recommend(body: FitRecommendRequest) -> FitResult:
    return recommend_size_and_fit(body.profile, _garment_record(body.garment), body.options)


@router.post("/suitability")
async def suitability(body: SuitabilityRequest) -> SuitabilityBundle:
    return evaluate_suitability(body.profile, _garment_record(body.garment))


@router.post("/fabric/comfort")
async def fabric_comfort(body: FabricComfortRequest) -> FabricComfortResult:
    return analyze_fabric_comfort(body.material, body.category, body.fit_type, body.fabric_stretch)


@router.post("/fabric/stretch")
async def fabric_stretch(body: StretchRequest) -> StretchResult:
    return detect_stretch(body.material, body.fabric_stretch)


@router.post("/size-chart/normalize")
async def size_chart_normalize(body: SizeChartNormalizeRequest) -> SizeChartNormalizeResponse:
    chart = _chart(body.chart, body.unit)
    return SizeChartNormalizeResponse(sizes=chart, labels=size_labels(chart), by_size=chart_to_mapping(chart))


@router.post("/fit-check")
async def fit_check(
    body: FitCheckRequest,
    request: Request,
    narrator: StylistNarrator = Depends(get_narrator),
) -> FitCheckResponse:
    garment = _garment_record(body.garment)
    return await _fit_check_response(request, body.profile, garment, body.options, body.narrate, body.tone, narrator)


@router.post("/fit-check/by-id")
async def fit_check_by_id(
    body: FitCheckByIdRequest,
    request: Request,
    catalog: CatalogApiClient = Depends(get_catalog_client),
    narrator: StylistNarrator = Depends(get_narrator),
) -> FitCheckResponse:
    try:
        profile = await catalog.fetch_profile(body.user_id)
        garment = await catalog.fetch_garment(body.garment_id)
    except CatalogNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except httpx.HTTPError as e:
        logger.error("catalog_fetch_failed", user_id=body.user_id, garment_id=body.garment_id, error=str(e))
        raise HTTPException(status_code=502, detail="Catalog store request failed")
    return await _fit_check_response(request, profile, garment, body.options, body.narrate, body.tone, narrator)
