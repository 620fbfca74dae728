from typing import Any, Dict, List, Optional, Union

import httpx
import structlog

from ..config import settings
from ..schemas.profile import BodyProfile, GarmentRecord
from .measurements import normalize_body_profile
from .size_chart import convert_catalog_sizes


logger = structlog.get_logger("fitcheck")

# Catalog category spellings -> engine category
CATEGORY_ALIASES = [
    ("dress", "dresses"),
    ("jumpsuit", "dresses"),
    ("lower", "lower_body"),
    ("bottom", "lower_body"),
    ("pant", "lower_body"),
    ("jean", "lower_body"),
    ("trouser", "lower_body"),
    ("short", "lower_body"),
    ("skirt", "lower_body"),
    ("upper", "upper_body"),
    ("top", "upper_body"),
    ("shirt", "upper_body"),
    ("jacket", "upper_body"),
    ("outer", "upper_body"),
]


class CatalogNotFound(Exception):
    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"{table} row {key!r} not found")
        self.table = table
        self.key = key


def normalize_category(value: Any) -> str:
    text = str(value or "").strip().lower()
    for keyword, category in CATEGORY_ALIASES:
        if keyword in text:
            return category
    logger.warning("garment_category_defaulted", category=value)
    return "upper_body"


def _stretch(value: Any) -> Union[bool, str, None]:
    if isinstance(value, bool) or value is None:
        return value
    text = str(value).strip().lower()
    if text in ("none", "low", "medium", "high"):
        return text
    if text in ("true", "yes", "1"):
        return True
    if text in ("false", "no", "0"):
        return False
    return None


def normalize_garment_record(row: Dict[str, Any], size_rows: List[Dict[str, Any]]) -> GarmentRecord:
    return GarmentRecord(
        category=normalize_category(row.get("category")),
        name=row.get("name"),
        fit_type=row.get("fit_type") or row.get("fit") or None,
        fabric_stretch=_stretch(row.get("fabric_stretch")),
        material=row.get("material") or row.get("fabric") or None,
        size_chart=convert_catalog_sizes(size_rows),
        primary_color=row.get("primary_color") or row.get("color") or None,
        color_hex=row.get("color_hex") or None,
        image_url=row.get("image_url") or None,
    )


class CatalogApiClient:
    """Reads profiles, garments and garment_sizes from a PostgREST-style store."""

    def __init__(self, base: Optional[str] = None, api_key: Optional[str] = None, timeout: float = 30.0) -> None:
        self.base = (base or settings.catalog_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.catalog_api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.base}/{table}", params={"select": "*", **params}, headers=self._headers())
            resp.raise_for_status()
            rows = resp.json()
        if not isinstance(rows, list):
            raise httpx.DecodingError(f"expected a JSON array from {table}")
        return rows

    async def fetch_profile(self, user_id: str) -> BodyProfile:
        rows = await self._select("profiles", {"id": f"eq.{user_id}"})
        if not rows:
            raise CatalogNotFound("profiles", user_id)
        return normalize_body_profile(rows[0])

    async def fetch_garment(self, garment_id: str) -> GarmentRecord:
        rows = await self._select("garments", {"id": f"eq.{garment_id}"})
        if not rows:
            raise CatalogNotFound("garments", garment_id)
        # Insertion order is the brand's size order; size_label sorts alphabetically
        sizes = await self._select("garment_sizes", {"garment_id": f"eq.{garment_id}", "order": "id.asc"})
        return normalize_garment_record(rows[0], sizes)
