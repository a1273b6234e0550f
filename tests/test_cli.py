import json

from conftest import write_image
from tilemark.cli import build_parser, main, settings_from_args
from tilemark.settings import WatermarkSettings


def test_flags_override_settings_file(tmp_path):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"text": "FROM FILE", "fontSize": 60, "color": "#00FF00"}))
    args = build_parser().parse_args([
        "-i", "in", "-o", "out", "--settings-json", str(settings_file), "--font-size", "24", "--density", "9",
    ])
    settings = settings_from_args(args)
    assert settings.text == "FROM FILE"
    assert settings.font_size == 24
    assert settings.color == (0, 255, 0)
    assert settings.density == 9


def test_cli_batch(tmp_path, capsys):
    source = tmp_path / "in"
    source.mkdir()
    write_image(source / "a.png")
    write_image(source / "b.jpg")
    (source / "notes.txt").write_text("skip me")

    code = main(["-i", str(source), "-o", str(tmp_path / "out"), "--text", "SAMPLE", "--color", "#FF0000"])

    assert code == 0
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["a.png", "b.jpg"]
    assert "Processed 2/2" in capsys.readouterr().out


def test_cli_reports_failures(tmp_path, capsys):
    source = tmp_path / "in"
    source.mkdir()
    write_image(source / "a.png")
    (source / "bad.gif").write_bytes(b"GIF89a-broken")

    code = main(["-i", str(source), "-o", str(tmp_path / "out"), "--text", "X"])

    assert code == 1
    out = capsys.readouterr().out
    assert "Processed 1/2" in out
    assert "bad.gif" in out


def test_cli_rejects_bad_settings(tmp_path):
    assert main(["-i", str(tmp_path), "-o", str(tmp_path / "out"), "--opacity", "150"]) == 2
    assert main(["-i", str(tmp_path), "-o", str(tmp_path / "out"), "--text", ""]) == 2


def test_cli_missing_input_folder(tmp_path, capsys):
    code = main(["-i", str(tmp_path / "missing"), "-o", str(tmp_path / "out"), "--text", "X"])
    assert code == 1
    assert "Batch failed" in capsys.readouterr().out


def test_unset_flags_leave_defaults_alone():
    args = build_parser().parse_args(["-i", "in", "-o", "out"])
    assert not hasattr(args, "text")
    assert not hasattr(args, "settings_json")
    assert settings_from_args(args) == WatermarkSettings()


def test_help_shows_real_defaults():
    text = " ".join(build_parser().format_help().split())
    assert "(default: None)" not in text
    assert "(default: WATERMARK)" in text
    assert "(default: #FFFFFF)" in text
