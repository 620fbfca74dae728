import base64
import io

import pytest
from PIL import Image

from fitcheck.config import settings
from fitcheck.schemas.profile import BodyProfile, GarmentRecord, SizeChartEntry


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_uri(img: Image.Image) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(img)).decode()


def garment_on_background(garment_rgb, background_rgb=(255, 255, 255), size=80, inset=20) -> Image.Image:
    """Solid square of garment color centered on a plain background."""
    img = Image.new("RGB", (size, size), background_rgb)
    img.paste(Image.new("RGB", (size - 2 * inset, size - 2 * inset), garment_rgb), (inset, inset))
    return img


@pytest.fixture
def auth_headers():
    return {"x-api-key": settings.api_key}


@pytest.fixture(autouse=True)
def _reset_rate_limit():
    from fitcheck import main

    main._buckets.clear()
    yield
    main._buckets.clear()


@pytest.fixture
def tshirt_chart():
    return [
        SizeChartEntry(size="S", measurements={"chest": 38.0, "waist": 36.0, "length": 27.0}),
        SizeChartEntry(size="M", measurements={"chest": 41.0, "waist": 39.0, "length": 28.0}),
        SizeChartEntry(size="L", measurements={"chest": 44.0, "waist": 42.0, "length": 29.0}),
        SizeChartEntry(size="XL", measurements={"chest": 47.0, "waist": 45.0, "length": 30.0}),
    ]


@pytest.fixture
def profile():
    return BodyProfile(
        height_in=68.0,
        chest_in=38.0,
        waist_in=33.0,
        hips_in=39.0,
        body_shape="rectangle",
        undertone="warm",
        season="autumn",
        best_colors=["camel", "rust", "olive"],
        avoid_colors=["fuchsia", "icy blue"],
    )


@pytest.fixture
def tshirt(tshirt_chart):
    return GarmentRecord(
        category="upper_body",
        name="Classic tee",
        fit_type="regular",
        material="100% cotton jersey",
        size_chart=tshirt_chart,
        primary_color="rust",
    )
