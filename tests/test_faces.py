from pathlib import Path

import cv2
import numpy as np
import pytest

import cropscore.analyzer as analyzer
import cropscore.faces as faces
from cropscore.config import DEFAULT_CONFIG, FACE_CLASSIFIER_ENV_VAR, FACE_DETECT_CONFIG
from cropscore.errors import ClassifierLoadError
from cropscore.geometry import Rectangle


def test_filter_faces_uses_strict_five_percent_threshold() -> None:
    boxes = [
        Rectangle(0, 0, 10, 50),  # exactly 5% of 100x100
        Rectangle(0, 0, 11, 50),
        Rectangle(50, 50, 52, 52),
    ]

    assert faces.filter_faces(boxes, 100, 100) == [Rectangle(0, 0, 11, 50)]


def test_filter_faces_keeps_detector_order() -> None:
    boxes = [Rectangle(60, 0, 100, 40), Rectangle(0, 0, 50, 50)]

    assert faces.filter_faces(boxes, 100, 100) == boxes


def test_resolve_classifier_path_prefers_config(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(FACE_CLASSIFIER_ENV_VAR, str(tmp_path / "env.xml"))
    config = FACE_DETECT_CONFIG.replace(face_detect_classifier_file=str(tmp_path / "cfg.xml"))

    assert faces.resolve_classifier_path(config) == tmp_path / "cfg.xml"


def test_resolve_classifier_path_reads_environment_then_dotenv(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(FACE_CLASSIFIER_ENV_VAR, str(tmp_path / "env.xml"))
    (tmp_path / ".env").write_text(
        f"export {FACE_CLASSIFIER_ENV_VAR}='{tmp_path / 'dotenv.xml'}'", encoding="utf-8"
    )

    assert faces.resolve_classifier_path(FACE_DETECT_CONFIG) == tmp_path / "env.xml"

    monkeypatch.delenv(FACE_CLASSIFIER_ENV_VAR)
    assert faces.resolve_classifier_path(FACE_DETECT_CONFIG) == tmp_path / "dotenv.xml"


def test_resolve_classifier_path_falls_back_to_bundled_cascade(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(FACE_CLASSIFIER_ENV_VAR, raising=False)

    path = faces.resolve_classifier_path(FACE_DETECT_CONFIG)

    assert path.name == "haarcascade_frontalface_default.xml"
    assert path.exists()


def test_haar_detector_rejects_unparseable_cascade(tmp_path) -> None:
    bogus = tmp_path / "bogus.xml"
    bogus.write_text("not a cascade", encoding="utf-8")
    detector = faces.HaarFaceDetector(FACE_DETECT_CONFIG.replace(face_detect_classifier_file=str(bogus)))

    with pytest.raises(ClassifierLoadError):
        detector.detect(np.zeros((32, 32, 4), dtype=np.uint8))


def test_haar_detector_finds_nothing_on_blank_image(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(FACE_CLASSIFIER_ENV_VAR, raising=False)
    detector = faces.HaarFaceDetector(FACE_DETECT_CONFIG)

    assert detector.detect(np.zeros((64, 64, 4), dtype=np.uint8)) == []
    # classifier is cached after the first load
    assert detector._classifier is not None


def test_locate_faces_propagates_classifier_failures() -> None:
    class _Broken:
        def detect(self, pixels):
            raise ClassifierLoadError("no cascade")

    with pytest.raises(ClassifierLoadError):
        faces.locate_faces(_Broken(), np.zeros((8, 8, 4), dtype=np.uint8))


def test_locate_faces_degrades_on_wrong_pixel_format(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(FACE_CLASSIFIER_ENV_VAR, raising=False)
    detector = faces.HaarFaceDetector(FACE_DETECT_CONFIG)

    # two channels cannot be converted from RGBA
    found = faces.locate_faces(detector, np.zeros((32, 32, 2), dtype=np.uint8))

    assert found == []
    assert "Face detection failed" in capsys.readouterr().out


def test_classifier_setup_hint_mentions_env_var_for_missing_file(tmp_path) -> None:
    hint = faces._classifier_setup_hint(Path(tmp_path / "nope.xml"))

    assert FACE_CLASSIFIER_ENV_VAR in hint


def test_missing_cascade_api_surfaces_only_when_detecting(monkeypatch) -> None:
    monkeypatch.delattr(cv2, "CascadeClassifier")

    best = analyzer.find_best_crop(np.zeros((40, 40, 3), dtype=np.uint8), 20, 20, config=DEFAULT_CONFIG)
    assert not best.is_empty()

    detector = faces.HaarFaceDetector(FACE_DETECT_CONFIG)
    with pytest.raises(ClassifierLoadError, match="no Haar cascade support"):
        detector.detect(np.zeros((32, 32, 4), dtype=np.uint8))
