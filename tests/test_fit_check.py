import pytest

from fitcheck.schemas.profile import BodyProfile, GarmentRecord
from fitcheck.schemas.results import DetectedColor
from fitcheck.services.fit_check import evaluate_suitability, needs_detection, run_fit_check


class StubDetector:
    def __init__(self, result: DetectedColor) -> None:
        self.result = result
        self.calls = []

    async def detect(self, image_ref: str) -> DetectedColor:
        self.calls.append(image_ref)
        return self.result


CAMEL = DetectedColor(hex="#c19a6b", name="camel", rgb=(193, 154, 107), confidence=0.9, source="dominant-cluster")


def test_evaluate_suitability_summary(profile, tshirt):
    bundle = evaluate_suitability(profile, tshirt)
    assert bundle.color.verdict == "great"
    assert bundle.body.kind == "body"
    assert bundle.summary == f"Color: great • Silhouette: {bundle.body.verdict}"


def test_evaluate_suitability_needs_setup():
    bundle = evaluate_suitability(BodyProfile(), GarmentRecord())
    assert bundle.summary == "Color: needs setup • Silhouette: needs setup"


def test_needs_detection():
    assert needs_detection(GarmentRecord(image_url="https://cdn.example/a.jpg"))
    assert not needs_detection(GarmentRecord(image_url="https://cdn.example/a.jpg", primary_color="red"))
    assert not needs_detection(GarmentRecord(image_url="https://cdn.example/a.jpg", color_hex="#ff0000"))
    assert not needs_detection(GarmentRecord())


@pytest.mark.parametrize("catalog", [{"color_hex": "#zzz"}, {"primary_color": "unknown"}, {"primary_color": "  "}])
def test_needs_detection_when_catalog_color_is_unusable(catalog):
    assert needs_detection(GarmentRecord(image_url="https://cdn.example/a.jpg", **catalog))


@pytest.mark.asyncio
async def test_run_fit_check_detects_when_catalog_hex_is_bad(profile, tshirt_chart):
    garment = GarmentRecord(size_chart=tshirt_chart, color_hex="not-a-hex", image_url="https://cdn.example/tee.jpg")
    detector = StubDetector(CAMEL)
    result = await run_fit_check(profile, garment, detector=detector)
    assert detector.calls == ["https://cdn.example/tee.jpg"]
    assert result.color.status == "OK"
    assert result.color.verdict == "great"


@pytest.mark.asyncio
async def test_run_fit_check_combines_all_evaluators(profile, tshirt):
    detector = StubDetector(CAMEL)
    result = await run_fit_check(profile, tshirt, detector=detector)
    assert result.fit.recommended_size == "M"
    assert result.color.verdict == "great"
    assert result.fabric.kind == "fabric"
    assert result.fabric.verdict == "comfortable"
    assert result.detected_color is None
    assert detector.calls == []
    assert result.summary.startswith("Size: M (")
    assert "Fabric: comfortable" in result.summary


@pytest.mark.asyncio
async def test_run_fit_check_uses_detector_without_catalog_color(profile, tshirt_chart):
    garment = GarmentRecord(size_chart=tshirt_chart, image_url="https://cdn.example/tee.jpg")
    detector = StubDetector(CAMEL)
    result = await run_fit_check(profile, garment, detector=detector)
    assert detector.calls == ["https://cdn.example/tee.jpg"]
    assert result.detected_color == CAMEL
    assert result.color.verdict == "great"


@pytest.mark.asyncio
async def test_run_fit_check_detector_failure_is_not_an_error(profile, tshirt_chart):
    garment = GarmentRecord(size_chart=tshirt_chart, image_url="https://cdn.example/tee.jpg")
    result = await run_fit_check(profile, garment, detector=StubDetector(DetectedColor()))
    assert result.color.status == "INSUFFICIENT_DATA"
    assert result.color.reason_code == "missing_garment_color"
    assert result.fit.status == "OK"


@pytest.mark.asyncio
async def test_run_fit_check_without_data():
    result = await run_fit_check(BodyProfile(), GarmentRecord())
    assert result.fit.status == "INSUFFICIENT_DATA"
    assert result.fabric.status == "INSUFFICIENT_DATA"
    assert result.summary.startswith("Size: needs setup")
