from typing import List

import cv2
import numpy as np

from .config import FACE_DETECTION_THRESHOLD, MIN_FACE_SIZE
from .exceptions import FaceDetectorError
from .face_types import FaceDetection

try:
    import mediapipe as mp
except Exception:  # pragma: no cover - runtime dependency guard
    mp = None


class FaceDetector:
    """MediaPipe short-range face detector returning boxes in preview pixels."""

    def __init__(
        self,
        detection_threshold: float = FACE_DETECTION_THRESHOLD,
        min_face_size: int = MIN_FACE_SIZE,
    ):
        if mp is None:
            raise FaceDetectorError("mediapipe is required. Install the project dependencies.")

        self.detection_threshold = detection_threshold
        self.min_face_size = min_face_size

        try:
            self.detector = mp.solutions.face_detection.FaceDetection(
                model_selection=0,
                min_detection_confidence=detection_threshold,
            )
        except Exception as exc:
            raise FaceDetectorError(f"Failed to initialize face detector: {exc}") from exc

    def detect(self, preview: np.ndarray) -> List[FaceDetection]:
        try:
            rgb = cv2.cvtColor(preview, cv2.COLOR_BGR2RGB)
            result = self.detector.process(rgb)
        except Exception as exc:
            raise FaceDetectorError(f"Face detection failed: {exc}") from exc

        if not result.detections:
            return []

        h, w = preview.shape[:2]
        faces: List[FaceDetection] = []
        for det in result.detections:
            score = float(det.score[0]) if det.score else 0.0
            if score < self.detection_threshold:
                continue

            rel = det.location_data.relative_bounding_box
            x1 = max(0, int(rel.xmin * w))
            y1 = max(0, int(rel.ymin * h))
            x2 = min(w, x1 + int(rel.width * w))
            y2 = min(h, y1 + int(rel.height * h))

            if (x2 - x1) < self.min_face_size or (y2 - y1) < self.min_face_size:
                continue
            faces.append(FaceDetection(bbox=(x1, y1, x2 - x1, y2 - y1), confidence=score))
        return faces

    def close(self) -> None:
        self.detector.close()
