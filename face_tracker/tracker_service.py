from __future__ import annotations

from typing import Dict, Optional, Protocol, Sequence

import cv2
import numpy as np

from .camera import CameraStream
from .config import PREVIEW_SCALE
from .exceptions import FaceTrackerError
from .face_types import FaceDetection
from .graphics import FaceGraphic
from .logger import setup_logger
from .overlay import CameraFacing, GraphicOverlay
from .tracking import FaceTrackRegistry


class Detector(Protocol):
    def detect(self, preview: np.ndarray) -> Sequence[FaceDetection]:
        ...


class FaceTrackerService:
    """Runs detection on a downscaled preview and keeps one face graphic per track."""

    def __init__(
        self,
        detector: Detector,
        overlay: Optional[GraphicOverlay] = None,
        facing: CameraFacing = CameraFacing.FRONT,
        preview_scale: float = PREVIEW_SCALE,
        registry: Optional[FaceTrackRegistry] = None,
    ):
        if not 0.0 < preview_scale <= 1.0:
            raise FaceTrackerError(f"preview_scale must be in (0, 1], got {preview_scale}.")

        self.detector = detector
        self.overlay = overlay or GraphicOverlay()
        self.facing = CameraFacing(facing)
        self.preview_scale = preview_scale
        self.registry = registry or FaceTrackRegistry()
        self.logger = setup_logger(self.__class__.__name__)
        self._face_graphics: Dict[int, FaceGraphic] = {}

    @property
    def face_graphics(self) -> Dict[int, FaceGraphic]:
        return dict(self._face_graphics)

    def process_frame(self, frame: np.ndarray) -> np.ndarray:
        """Detect faces in ``frame`` and return the display canvas with the overlay drawn."""
        h, w = frame.shape[:2]
        if (self.overlay.width, self.overlay.height) != (w, h):
            self.overlay.set_view_size(w, h)

        pw = max(1, int(round(w * self.preview_scale)))
        ph = max(1, int(round(h * self.preview_scale)))
        preview = cv2.resize(frame, (pw, ph), interpolation=cv2.INTER_AREA)
        self.overlay.set_camera_info(pw, ph, self.facing)

        detections = self.detector.detect(preview)
        self._sync_graphics(detections)

        # The view shows the front camera mirrored; graphics mirror to match.
        canvas = cv2.flip(frame, 1) if self.facing == CameraFacing.FRONT else frame.copy()
        return self.overlay.draw(canvas)

    def _sync_graphics(self, detections: Sequence[FaceDetection]) -> None:
        update = self.registry.update(detections)

        for tid in update.expired:
            graphic = self._face_graphics.pop(tid, None)
            if graphic is not None:
                self.overlay.remove(graphic)
                self.logger.debug("Face %d done", tid)

        seen = set()
        for idx, tid in update.assignments.items():
            graphic = self._face_graphics.get(tid)
            if graphic is None:
                graphic = FaceGraphic(self.overlay, face_id=tid)
                self._face_graphics[tid] = graphic
                self.logger.debug("New face %d", tid)
            self.overlay.add(graphic)
            graphic.update_face(detections[idx])
            seen.add(tid)

        # Hide faces missed this frame until they are matched again or expire.
        for tid, graphic in self._face_graphics.items():
            if tid not in seen:
                self.overlay.remove(graphic)

    def reset(self) -> None:
        self.registry.reset()
        self._face_graphics.clear()
        self.overlay.clear()

    def run(self, camera_index: int = 0, window_name: str = "Face Tracker - Press Q to exit") -> None:
        self.logger.info("Starting face tracking on camera %d (%s)", camera_index, self.facing.name.lower())

        try:
            with CameraStream(camera_index) as cam:
                while True:
                    canvas = self.process_frame(cam.read())
                    cv2.imshow(window_name, canvas)

                    key = cv2.waitKey(1) & 0xFF
                    if key in (ord("q"), 27):
                        break
        finally:
            self.reset()
