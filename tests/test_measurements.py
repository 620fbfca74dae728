import math

import pytest

from fitcheck.services.measurements import (
    format_inches_as_fraction,
    normalize_body_profile,
    parse_height_to_inches,
    parse_measurement,
    resolve_inches,
    safe_float,
)


def test_legacy_centimeters_convert_to_inches():
    assert resolve_inches(None, 86) == pytest.approx(33.86, abs=0.01)


def test_explicit_inch_value_is_trusted():
    # 86 would be implausible as inches, but the inch column is never second-guessed
    assert resolve_inches(86, 30) == 86


def test_zero_and_garbage_become_none():
    assert resolve_inches(0, None) is None
    assert resolve_inches(None, 0) is None
    assert resolve_inches("abc", None) is None
    assert safe_float(float("nan")) is None
    assert safe_float(-3) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5.4", 64),
        ("5.11", 71),
        ("5.10", 70),
        ("5'4\"", 64),
        ("5 ft 4", 64),
        ("6'", 72),
        ("170 cm", 170 / 2.54),
        (170, 170 / 2.54),
        ("68", 68),
        (68, 68),
        ("64 in", 64),
        (5, 60),
    ],
)
def test_parse_height(raw, expected):
    assert parse_height_to_inches(raw) == pytest.approx(expected, abs=0.01)


@pytest.mark.parametrize("raw", [None, "", "tall", float("inf"), float("nan"), -5, "0"])
def test_parse_height_rejects_unusable(raw):
    assert parse_height_to_inches(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1 1/2", 1.5),
        ("3/4", 0.75),
        ("32 in", 32),
        ("32 inches", 32),
        ("81 cm", 81 / 2.54),
        ("32", 32),
        (32, 32),
    ],
)
def test_parse_measurement(raw, expected):
    assert parse_measurement(raw) == pytest.approx(expected, abs=0.001)


def test_parse_measurement_default_unit_cm():
    assert parse_measurement("100", default_unit="cm") == pytest.approx(39.37, abs=0.01)
    # an explicit unit wins over the default
    assert parse_measurement("40 in", default_unit="cm") == 40


def test_parse_measurement_bad_fraction():
    assert parse_measurement("1/0") is None
    assert parse_measurement("n/a") is None


def test_format_inches_as_fraction():
    assert format_inches_as_fraction(1.5) == "1 1/2 in"
    assert format_inches_as_fraction(0.75) == "3/4 in"
    assert format_inches_as_fraction(2.0) == "2 in"
    assert format_inches_as_fraction(2.99) == "3 in"
    assert format_inches_as_fraction(None) == ""
    assert format_inches_as_fraction(math.inf) == ""


def test_normalize_body_profile_prefers_inch_columns():
    row = {
        "height_in": "5.9",
        "chest_circ_in": 40,
        "chest": 150,  # legacy cm, ignored
        "waist": 81.28,  # legacy cm only
        "hip_circ_in": None,
        "hips": "not a number",
        "body_shape": " Hourglass ",
        "undertone": "Warm",
        "season": "Fall",
        "best_colors": "camel, Rust",
        "avoid_colors": ["Fuchsia"],
    }
    p = normalize_body_profile(row)
    assert p.height_in == 69
    assert p.chest_in == 40
    assert p.waist_in == pytest.approx(32.0, abs=0.01)
    assert p.hips_in is None
    assert p.body_shape == "hourglass"
    assert p.undertone == "warm"
    assert p.season == "autumn"
    assert p.best_colors == ["camel", "rust"]
    assert p.avoid_colors == ["fuchsia"]


def test_normalize_body_profile_legacy_numeric_height_is_cm():
    p = normalize_body_profile({"height": 172.72})
    assert p.height_in == pytest.approx(68.0, abs=0.01)


def test_normalize_body_profile_unknown_choices_dropped():
    p = normalize_body_profile({"undertone": "olive", "season": "monsoon"})
    assert p.undertone is None
    assert p.season is None
    assert p.chest_in is None
