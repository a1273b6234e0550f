import json
import math

import pytest

from tilemark.errors import SettingsError
from tilemark.settings import (
    WatermarkSettings,
    format_color,
    load_settings,
    parse_color,
    round_half_up,
    save_settings,
)


def test_from_mapping_accepts_form_keys():
    settings = WatermarkSettings.from_mapping({
        "text": "SAMPLE",
        "fontSize": "40",
        "color": "#FF0000",
        "rotation": 30,
        "hSpacing": 300,
        "vSpacing": "250",
        "opacity": 50,
        "density": 5,
    })
    assert settings == WatermarkSettings("SAMPLE", 40, (255, 0, 0), 30, 300, 250, 50, 5)


def test_from_mapping_keeps_base_values():
    base = WatermarkSettings(text="A", opacity=80)
    settings = WatermarkSettings.from_mapping({"rotation": -45}, base=base)
    assert settings.text == "A"
    assert settings.opacity == 80
    assert settings.rotation == -45


def test_density_is_clamped():
    assert WatermarkSettings(density=0).density == 1
    assert WatermarkSettings(density=42).density == 10


@pytest.mark.parametrize(
    "raw",
    [
        {"fontSize": 0},
        {"rotation": 181},
        {"opacity": 101},
        {"hSpacing": 0},
        {"vSpacing": -3},
        {"fontSize": "abc"},
        {"fontSize": math.inf},
        {"opacity": float("nan")},
        {"color": "not-a-colour"},
        {"unknown": 1},
    ],
)
def test_invalid_values_raise(raw):
    with pytest.raises(SettingsError):
        WatermarkSettings.from_mapping(raw)


def test_require_text():
    WatermarkSettings(text="x").require_text()
    with pytest.raises(SettingsError):
        WatermarkSettings(text="").require_text()


def test_parse_color_forms():
    assert parse_color("#FF0000") == (255, 0, 0)
    assert parse_color("#0f0") == (0, 255, 0)
    assert parse_color("blue") == (0, 0, 255)
    assert parse_color([1, 2, 3]) == (1, 2, 3)
    assert format_color((255, 0, 16)) == "#FF0010"


def test_fill_folds_opacity_into_alpha():
    assert WatermarkSettings(color=(1, 2, 3), opacity=50).fill == (1, 2, 3, 128)
    assert WatermarkSettings(opacity=0).fill[3] == 0
    assert WatermarkSettings(opacity=100).fill[3] == 255


def test_round_half_up_matches_form_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-0.5) == 0


def test_settings_json_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    original = WatermarkSettings(text="SAMPLE", color=(255, 0, 0), rotation=15)
    save_settings(original, path)
    assert json.loads(path.read_text())["color"] == "#FF0000"
    assert load_settings(path) == original


def test_load_settings_rejects_non_object(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]")
    with pytest.raises(SettingsError):
        load_settings(path)
