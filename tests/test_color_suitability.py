import pytest

from fitcheck.schemas.profile import ColorProfile, GarmentRecord
from fitcheck.schemas.results import DetectedColor
from fitcheck.services.color_suitability import evaluate_color, resolve_garment_color
from fitcheck.services.colors import color_family, names_match, nearest_named_color, parse_hex


@pytest.fixture
def autumn():
    return ColorProfile(
        undertone="warm",
        season="autumn",
        best_colors=["camel", "rust", "olive", "burgundy"],
        avoid_colors=["orange", "icy blue"],
    )


@pytest.mark.parametrize(
    "name, family",
    [
        ("navy", "cool"),
        ("Charcoal Gray", "neutral"),
        ("camel", "warm"),
        ("neon green", "loud"),
        ("hot pink", "loud"),
        ("light blue", "cool"),
        ("chartreuse", "unknown"),
        (None, "unknown"),
    ],
)
def test_color_family_rules(name, family):
    assert color_family(name) == family


def test_parse_hex_and_nearest_name():
    assert parse_hex("#fff") == (255, 255, 255)
    assert parse_hex("1e50dc") == (30, 80, 220)
    assert parse_hex("blue") is None
    assert nearest_named_color((2, 2, 130))[0] == "navy"
    assert nearest_named_color((250, 250, 250))[0] == "white"


def test_names_match_uses_synonyms():
    assert names_match("wine", "burgundy")
    assert names_match("dark navy", "navy")
    assert not names_match("red", "navy")


@pytest.mark.parametrize("garment, listed", [("tan", "titanium"), ("red", "bored"), ("rose", "primrose"), ("teal", "steel")])
def test_names_match_needs_whole_words(garment, listed):
    assert not names_match(garment, listed)
    assert not names_match(listed, garment)


def test_partial_word_is_not_on_avoid_list():
    profile = ColorProfile(season="autumn", avoid_colors=["titanium"])
    assert evaluate_color(profile, GarmentRecord(primary_color="tan")).verdict != "risky"


def test_hex_wins_over_name():
    garment = GarmentRecord(primary_color="red", color_hex="#000080")
    assert resolve_garment_color(garment) == ("navy", "hex")


def test_detected_color_used_only_without_catalog_color():
    detected = DetectedColor(hex="#c19a6b", name="camel", rgb=(193, 154, 107), confidence=0.8, source="dominant-cluster")
    assert resolve_garment_color(GarmentRecord(), detected) == ("camel", "detected")
    assert resolve_garment_color(GarmentRecord(primary_color="navy"), detected) == ("navy", "name")
    assert resolve_garment_color(GarmentRecord(), DetectedColor()) is None


def test_avoid_color_is_risky_with_alternatives(autumn):
    result = evaluate_color(autumn, GarmentRecord(primary_color="orange"))
    assert result.status == "OK"
    assert result.verdict == "risky"
    assert len(result.reasons) >= 1
    assert 1 <= len(result.alternatives) <= 3
    assert "orange" not in result.alternatives


def test_avoid_list_checked_before_best_list():
    profile = ColorProfile(season="autumn", best_colors=["blue"], avoid_colors=["navy"])
    assert evaluate_color(profile, GarmentRecord(primary_color="navy blue")).verdict == "risky"


def test_best_color_synonym_is_great(autumn):
    result = evaluate_color(autumn, GarmentRecord(primary_color="wine"))
    assert result.verdict == "great"
    assert result.alternatives == []


def test_seasonal_heuristic_without_lists():
    winter = ColorProfile(season="winter")
    assert evaluate_color(winter, GarmentRecord(primary_color="cobalt")).verdict == "great"
    assert evaluate_color(winter, GarmentRecord(primary_color="black")).verdict == "ok"
    risky = evaluate_color(winter, GarmentRecord(primary_color="mustard"))
    assert risky.verdict == "risky"
    # suggestions come from the season palette when the user has no best colors
    assert risky.alternatives and len(risky.alternatives) <= 3


def test_undertone_only_profile():
    cool = ColorProfile(undertone="cool")
    assert evaluate_color(cool, GarmentRecord(primary_color="teal")).verdict == "great"
    assert evaluate_color(cool, GarmentRecord(primary_color="rust")).verdict == "risky"


def test_missing_garment_color():
    result = evaluate_color(ColorProfile(season="spring"), GarmentRecord())
    assert result.status == "INSUFFICIENT_DATA"
    assert result.reason_code == "missing_garment_color"


def test_missing_profile_with_known_color_is_ok():
    result = evaluate_color(None, GarmentRecord(primary_color="black"))
    assert result.status == "OK"
    assert result.verdict == "ok"
    assert result.reason_code == "missing_color_profile"


def test_missing_both():
    result = evaluate_color(ColorProfile(), GarmentRecord(primary_color="unknown"))
    assert result.status == "INSUFFICIENT_DATA"
    assert result.reason_code == "missing_color_profile_and_garment_color"
    assert len(result.reasons) == 2


def test_detected_color_adds_confirmation_reason(autumn):
    detected = DetectedColor(hex="#b7410e", name="rust", rgb=(183, 65, 14), confidence=0.7, source="dominant-cluster")
    result = evaluate_color(autumn, GarmentRecord(image_url="https://cdn.example/x.jpg"), detected)
    assert result.verdict == "great"
    assert any("detected from the photo" in r for r in result.reasons)
