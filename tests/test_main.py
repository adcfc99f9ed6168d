import json
import sys

import cv2
import numpy as np
import pytest
from PIL import Image

import cropscore.cli as cli
from cropscore import __version__


def _write_test_image(path, width: int = 240, height: int = 120) -> None:
    """Black image with a checkered green square right of centre."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    yy, xx = np.mgrid[40:72, 176:208]
    on = (xx + yy) % 2 == 0
    img[yy[on], xx[on], 1] = 255
    cv2.imwrite(str(path), img)


def test_version() -> None:
    assert __version__ == "1.0.0"


def test_main_parses_cli_and_invokes_run(monkeypatch, tmp_path) -> None:
    captured = {}

    def fake_run(**kwargs):
        captured.update(kwargs)

    monkeypatch.setattr(cli, "run", fake_run)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "cropscore",
            str(tmp_path / "in.png"),
            "--width",
            "300",
            "-H",
            "200",
            "--output",
            str(tmp_path / "out.png"),
            "--faces",
            "--classifier",
            "face.xml",
            "--all",
            "--top",
            "3",
            "--report",
            str(tmp_path / "report.json"),
            "--debug",
        ],
    )

    cli.main()

    assert captured == {
        "image_path": str(tmp_path / "in.png"),
        "width": 300,
        "height": 200,
        "output_path": str(tmp_path / "out.png"),
        "faces": True,
        "classifier": "face.xml",
        "show_all": True,
        "top_n": 3,
        "report_path": str(tmp_path / "report.json"),
        "debug": True,
    }


def test_main_missing_input_prints_full_help(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["cropscore"])

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 2
    stderr = capsys.readouterr().err
    assert "positional arguments:" in stderr
    assert "--classifier" in stderr
    assert "error: the following arguments are required: image" in stderr


def test_main_writes_crop_and_report(monkeypatch, tmp_path, capsys) -> None:
    src = tmp_path / "source.png"
    out = tmp_path / "cropped.png"
    report = tmp_path / "report.json"
    _write_test_image(src)

    monkeypatch.setattr(
        sys,
        "argv",
        ["cropscore", str(src), "-W", "100", "-H", "100", "-o", str(out), "--all", "--report", str(report)],
    )

    cli.main()

    with Image.open(out) as cropped:
        w, h = cropped.size
    assert w == h
    assert w < 240

    payload = json.loads(report.read_text(encoding="utf-8"))
    best = payload["best_crop_xyxy"]
    assert payload["candidates"][0]["rect_xyxy"] == best
    assert best[0] <= 176 and best[2] >= 208

    stdout = capsys.readouterr().out
    assert "Best crop for source.png" in stdout
    assert "#1:" in stdout


def test_main_reports_invalid_dimensions(monkeypatch, tmp_path, capsys) -> None:
    src = tmp_path / "source.png"
    _write_test_image(src)
    monkeypatch.setattr(sys, "argv", ["cropscore", str(src)])

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 1
    assert "Expect either a height or width" in capsys.readouterr().out


def test_main_reports_missing_file(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["cropscore", str(tmp_path / "nope.jpg"), "-W", "10"])

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 1
    assert "Input image not found" in capsys.readouterr().out
