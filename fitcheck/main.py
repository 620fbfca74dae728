import os
import time
import hashlib
from typing import Dict, Tuple
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config import settings
from .routers.color import router as color_router
from .routers.fit import router as fit_router
from .security import create_jwt
from .services.color_detection import ColorCache, DominantColorDetector


logger = structlog.get_logger("fitcheck")


app = FastAPI(title="Fit Check", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# One detection cache per process, owned by the app and cleared through /v1/color/cache
app.state.color_cache = ColorCache()
app.state.color_detector = DominantColorDetector(cache=app.state.color_cache)


# Token-bucket rate limit per client ip
_buckets: Dict[str, Tuple[float, float]] = {}


class RateLimited(Exception):
    pass


def _rate_limit(ident: str, requests_per_min: int, burst: int) -> None:
    refill_rate = requests_per_min / 60.0
    capacity = float(burst)
    now = time.time()
    tokens, last = _buckets.get(ident, (capacity, now))
    tokens = min(capacity, tokens + refill_rate * (now - last))
    if tokens < 1.0:
        _buckets[ident] = (tokens, now)
        raise RateLimited(ident)
    _buckets[ident] = (tokens - 1.0, now)


def _request_id(request: Request) -> str:
    host = request.client.host if request.client else "unknown"
    return hashlib.md5(f"{host}{time.time()}".encode()).hexdigest()[:8]


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    if not settings.api_key or settings.api_key == "change-me":
        errors.append("API_KEY must be set to a secure value")
    if not settings.jwt_secret or settings.jwt_secret == "dev-secret":
        errors.append("JWT_SECRET must be set to a secure value")
    if not settings.catalog_api_base:
        errors.append("CATALOG_API_BASE must be set")
    if settings.color_cluster_count < 1 or settings.color_sample_size < 8:
        errors.append("COLOR_CLUSTER_COUNT must be >= 1 and COLOR_SAMPLE_SIZE >= 8")
    if settings.runs_small_min_axes < 1:
        errors.append("RUNS_SMALL_MIN_AXES must be >= 1")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        for e in errors:
            logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = _request_id(request)
    client_ip = request.client.host if request.client else "unknown"
    resp = None

    try:
        try:
            _rate_limit(client_ip, settings.rate_limit_per_min, settings.rate_limit_burst)
        except RateLimited:
            logger.warning("rate_limit_exceeded", client_ip=client_ip, request_id=request_id)
            resp = JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
            return resp

        logger.info("request_started",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    client_ip=client_ip,
                    user_agent=request.headers.get("user-agent", "unknown"))

        resp = await call_next(request)
        return resp

    except Exception as e:
        logger.error("request_failed",
                     request_id=request_id,
                     path=str(request.url.path),
                     method=request.method,
                     error=str(e),
                     duration_ms=int((time.time() - start) * 1000),
                     exc_info=True)
        raise
    finally:
        logger.info("request_completed",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    status=getattr(resp, "status_code", 0) if resp else 0,
                    duration_ms=int((time.time() - start) * 1000))


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.error("unhandled_exception",
                 request_id=request_id,
                 path=str(request.url.path),
                 method=request.method,
                 error=str(exc),
                 error_type=type(exc).__name__,
                 exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": request_id,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        },
    )


@app.get("/v1/health")
async def health():
    return {"status": "ok", "color_cache_entries": len(app.state.color_cache)}


@app.post("/v1/auth/token")
async def issue_token():
    token = create_jwt("fitcheck-client")
    return {"token": token}


# Routers under versioned prefix
app.include_router(fit_router, prefix="/v1")
app.include_router(color_router, prefix="/v1")

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
