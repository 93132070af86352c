import pytest

from face_tracker import face_detector
from face_tracker.exceptions import FaceDetectorError


def test_missing_mediapipe_raises_detector_error(monkeypatch):
    monkeypatch.setattr(face_detector, "mp", None)

    with pytest.raises(FaceDetectorError):
        face_detector.FaceDetector()
