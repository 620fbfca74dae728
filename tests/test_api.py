import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from conftest import data_uri, garment_on_background
from fitcheck.main import app
from fitcheck.routers.fit import get_catalog_client, get_narrator
from fitcheck.schemas.profile import BodyProfile, GarmentRecord, SizeChartEntry
from fitcheck.services.catalog_api import CatalogNotFound
from fitcheck.services.stylist import StylistNarrator


client = TestClient(app)

PROFILE = {"chest_in": 38, "waist_in": 33, "hips_in": 39, "height_in": 68, "season": "autumn", "best_colors": ["rust"]}
GARMENT = {
    "category": "upper_body",
    "fit_type": "regular",
    "material": "cotton jersey",
    "primary_color": "rust",
    "size_chart": {"S": {"chest": 38, "waist": 36}, "M": {"chest": 41, "waist": 39}, "L": {"chest": 44, "waist": 42}},
}


def test_health():
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_token():
    r = client.post("/v1/auth/token")
    assert r.status_code == 200
    assert "token" in r.json()


def test_routes_require_auth():
    r = client.post("/v1/fabric/stretch", json={"material": "spandex"})
    assert r.status_code == 401
    r = client.post("/v1/fabric/stretch", json={"material": "spandex"}, headers={"x-api-key": "wrong"})
    assert r.status_code == 401


def test_bearer_jwt_is_accepted():
    token = client.post("/v1/auth/token").json()["token"]
    r = client.post("/v1/fabric/stretch", json={"material": "spandex"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    r = client.post("/v1/fabric/stretch", json={"material": "spandex"}, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_fit_recommend(auth_headers):
    r = client.post("/v1/fit/recommend", json={"profile": PROFILE, "garment": GARMENT}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "OK"
    assert body["recommended_size"] == "M"
    assert body["risk"] == "low"


def test_fit_recommend_centimeter_chart(auth_headers):
    garment = dict(GARMENT, size_chart=[{"size": "M", "chest": 104.14, "waist": 99.06}], size_chart_unit="cm")
    r = client.post("/v1/fit/recommend", json={"profile": PROFILE, "garment": garment}, headers=auth_headers)
    assert r.json()["axis_ease"] == {"chest": 3.0, "waist": 6.0}


def test_fit_recommend_validation_errors(auth_headers):
    r = client.post("/v1/fit/recommend", json={"profile": PROFILE, "garment": dict(GARMENT, category="shoes")}, headers=auth_headers)
    assert r.status_code == 422
    r = client.post("/v1/fit/recommend", json={"profile": PROFILE, "garment": dict(GARMENT, size_chart="S,M")}, headers=auth_headers)
    assert r.status_code == 400


def test_suitability(auth_headers):
    r = client.post("/v1/suitability", json={"profile": PROFILE, "garment": GARMENT}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["color"]["verdict"] == "great"
    assert r.json()["summary"].startswith("Color: great")


def test_fabric_routes(auth_headers):
    r = client.post(
        "/v1/fabric/comfort",
        json={"material": "rigid denim", "category": "lower_body", "fit_type": "skinny"},
        headers=auth_headers,
    )
    assert r.json()["verdict"] == "risky"
    r = client.post("/v1/fabric/stretch", json={"material": "95% cotton 5% elastane"}, headers=auth_headers)
    assert r.json() == {"has_stretch": True, "level": "high"}


def test_size_chart_normalize(auth_headers):
    r = client.post(
        "/v1/size-chart/normalize",
        json={"chart": [{"size": "S", "pit_to_pit": "18"}, {"size": "M", "bust": "40 in"}]},
        headers=auth_headers,
    )
    body = r.json()
    assert body["labels"] == ["S", "M"]
    assert body["by_size"] == {"S": {"chest": 18.0}, "M": {"chest": 40.0}}


def test_color_detect_pick_and_cache(auth_headers):
    app.state.color_cache.clear()
    ref = data_uri(garment_on_background((0, 0, 128)))
    r = client.post("/v1/color/detect", json={"image_url": ref}, headers=auth_headers)
    assert r.json()["name"] == "navy"
    assert len(app.state.color_cache) == 1

    r = client.post("/v1/color/pick", json={"image_url": ref, "x": 1, "y": 1}, headers=auth_headers)
    assert r.json()["rgb"] == [255, 255, 255]
    assert r.json()["source"] == "manual-pick"

    r = client.delete("/v1/color/cache", params={"image_url": ref}, headers=auth_headers)
    assert r.json() == {"cleared": 1}
    r = client.delete("/v1/color/cache", headers=auth_headers)
    assert r.json() == {"cleared": 0}


@respx.mock
def test_color_detect_unreachable_image(auth_headers):
    respx.get("https://cdn.example/gone.png").mock(return_value=httpx.Response(404))
    r = client.post("/v1/color/detect", json={"image_url": "https://cdn.example/gone.png"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["confidence"] == 0
    assert r.json()["source"] == "unavailable"


def test_color_detect_refuses_server_paths(auth_headers, tmp_path):
    path = tmp_path / "navy.png"
    garment_on_background((0, 0, 128)).save(path)
    r = client.post("/v1/color/detect", json={"image_url": str(path)}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["hex"] is None
    r = client.post("/v1/color/pick", json={"image_url": str(path), "x": 40, "y": 40}, headers=auth_headers)
    assert r.json()["hex"] is None


def test_fit_check_with_narration(auth_headers):
    app.dependency_overrides[get_narrator] = lambda: StylistNarrator(api_key="")
    try:
        _check_narrated(auth_headers)
    finally:
        app.dependency_overrides.pop(get_narrator, None)


def _check_narrated(auth_headers):
    r = client.post(
        "/v1/fit-check",
        json={"profile": PROFILE, "garment": GARMENT, "narrate": True},
        headers=auth_headers,
    )
    body = r.json()
    assert r.status_code == 200
    assert body["fit"]["recommended_size"] == "M"
    assert body["fabric"]["verdict"] == "comfortable"
    assert body["summary"].startswith("Size: M")
    assert len(body["narration"]["preview"]) == 3


class FakeCatalog:
    def __init__(self, error=None):
        self.error = error

    async def fetch_profile(self, user_id):
        if self.error:
            raise self.error
        if user_id != "u1":
            raise CatalogNotFound("profiles", user_id)
        return BodyProfile(chest_in=38, waist_in=33)

    async def fetch_garment(self, garment_id):
        return GarmentRecord(
            primary_color="navy",
            size_chart=[SizeChartEntry(size="M", measurements={"chest": 41, "waist": 39})],
        )


@pytest.fixture
def catalog_override():
    def install(fake):
        app.dependency_overrides[get_catalog_client] = lambda: fake

    yield install
    app.dependency_overrides.pop(get_catalog_client, None)


def test_fit_check_by_id(auth_headers, catalog_override):
    catalog_override(FakeCatalog())
    r = client.post("/v1/fit-check/by-id", json={"user_id": "u1", "garment_id": "g1"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["fit"]["recommended_size"] == "M"
    assert r.json()["narration"] is None


def test_fit_check_by_id_not_found(auth_headers, catalog_override):
    catalog_override(FakeCatalog())
    r = client.post("/v1/fit-check/by-id", json={"user_id": "ghost", "garment_id": "g1"}, headers=auth_headers)
    assert r.status_code == 404


def test_fit_check_by_id_store_failure(auth_headers, catalog_override):
    catalog_override(FakeCatalog(error=httpx.ConnectError("down")))
    r = client.post("/v1/fit-check/by-id", json={"user_id": "u1", "garment_id": "g1"}, headers=auth_headers)
    assert r.status_code == 502


def test_rate_limit(auth_headers, monkeypatch):
    from fitcheck.config import settings

    monkeypatch.setattr(settings, "rate_limit_burst", 2)
    monkeypatch.setattr(settings, "rate_limit_per_min", 1)
    codes = [client.get("/v1/health").status_code for _ in range(3)]
    assert codes == [200, 200, 429]


def test_unhandled_errors_return_internal_error(auth_headers, catalog_override):
    catalog_override(FakeCatalog(error=RuntimeError("boom")))
    safe_client = TestClient(app, raise_server_exceptions=False)
    r = safe_client.post("/v1/fit-check/by-id", json={"user_id": "u1", "garment_id": "g1"}, headers=auth_headers)
    assert r.status_code == 500
    assert r.json()["error_code"] == "INTERNAL_ERROR"
