from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..schemas.requests import ColorDetectRequest, ColorPickRequest
from ..schemas.results import DetectedColor
from ..security import verify_api_key


router = APIRouter(prefix="/color", tags=["color"], dependencies=[Depends(verify_api_key)])


@router.post("/detect")
async def detect(body: ColorDetectRequest, request: Request) -> DetectedColor:
    return await request.app.state.color_detector.detect(body.image_url)


@router.post("/pick")
async def pick(body: ColorPickRequest, request: Request) -> DetectedColor:
    return await request.app.state.color_detector.pick(body.image_url, body.x, body.y)


@router.delete("/cache")
async def clear_cache(request: Request, image_url: Optional[str] = Query(None)):
    cache = request.app.state.color_cache
    if image_url:
        return {"cleared": 1 if cache.invalidate(image_url) else 0}
    return {"cleared": cache.clear()}
