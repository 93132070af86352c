from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .camera import CameraStream
from .config import CAPTURE_SAMPLES, JPEG_QUALITY, SAMPLE_EVERY_N_FRAMES, UPLOAD_DIR
from .exceptions import FaceTrackerError
from .graphics import FaceGraphic
from .guides import bounds_inside, guide_ellipse_bounds
from .logger import setup_logger
from .tracker_service import FaceTrackerService


class FaceCaptureService:
    """Saves face crops into the upload directory while a single face sits inside the guide."""

    def __init__(
        self,
        tracker: FaceTrackerService,
        output_dir: Path = UPLOAD_DIR,
        prefix: str = "face",
        jpeg_quality: int = JPEG_QUALITY,
    ):
        self.tracker = tracker
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.jpeg_quality = jpeg_quality
        self.logger = setup_logger(self.__class__.__name__)
        self._saved = 0

    def aligned_face(self) -> Tuple[Optional[FaceGraphic], str]:
        overlay = self.tracker.overlay
        faces = [g for g in overlay.graphics if isinstance(g, FaceGraphic) and g.face is not None]
        if not faces:
            return None, "No face detected"
        if len(faces) > 1:
            return None, "Only one face should be visible"

        bounds = faces[0].view_bounds()
        if bounds is None or not bounds_inside(guide_ellipse_bounds(overlay.width), bounds):
            return None, "Move your face inside the guide"
        return faces[0], "Hold still..."

    def save_face(self, frame: np.ndarray, graphic: FaceGraphic) -> Path:
        overlay = self.tracker.overlay
        x, y, w, h = graphic.face.bbox
        # Crop from the unmirrored frame, which shares the view's size.
        x1 = max(0, int(x * overlay.width_scale_factor))
        y1 = max(0, int(y * overlay.height_scale_factor))
        x2 = min(frame.shape[1], int((x + w) * overlay.width_scale_factor))
        y2 = min(frame.shape[0], int((y + h) * overlay.height_scale_factor))
        crop = frame[y1:y2, x1:x2]
        if crop.size == 0:
            raise FaceTrackerError("Face crop is empty.")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._saved += 1
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = self.output_dir / f"{self.prefix}_{stamp}_{self._saved}.jpg"
        # Never overwrite a sample still waiting in the queue.
        while path.exists():
            self._saved += 1
            path = self.output_dir / f"{self.prefix}_{stamp}_{self._saved}.jpg"
        if not cv2.imwrite(str(path), crop, [cv2.IMWRITE_JPEG_QUALITY, int(self.jpeg_quality)]):
            raise FaceTrackerError(f"Failed to write face image to {path}.")
        self.logger.info("Saved face sample %s", path.name)
        return path

    def run(
        self,
        camera_index: int = 0,
        target_samples: int = CAPTURE_SAMPLES,
        sample_every_n_frames: int = SAMPLE_EVERY_N_FRAMES,
    ) -> List[Path]:
        if target_samples < 1:
            raise FaceTrackerError("target_samples should be at least 1.")

        saved: List[Path] = []
        frame_index = 0
        window_name = "Face Capture - Press Q to cancel"
        self.logger.info("Capturing %d face samples into %s", target_samples, self.output_dir)

        try:
            with CameraStream(camera_index) as cam:
                while len(saved) < target_samples:
                    frame = cam.read()
                    frame_index += 1
                    canvas = self.tracker.process_frame(frame)

                    graphic, status = self.aligned_face()
                    if graphic is not None and frame_index % max(1, sample_every_n_frames) == 0:
                        saved.append(self.save_face(frame, graphic))
                        status = f"Captured sample {len(saved)}/{target_samples}"

                    self._draw_status(canvas, status, len(saved), target_samples)
                    cv2.imshow(window_name, canvas)

                    key = cv2.waitKey(1) & 0xFF
                    if key in (ord("q"), 27):
                        self.logger.info("Capture cancelled after %d samples", len(saved))
                        break
        finally:
            self.tracker.reset()

        return saved

    @staticmethod
    def _draw_status(canvas: np.ndarray, status: str, collected: int, target_samples: int) -> None:
        cv2.putText(
            canvas,
            status,
            (20, 40),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.8,
            (20, 20, 240),
            2,
            cv2.LINE_AA,
        )
        cv2.putText(
            canvas,
            f"Samples: {collected}/{target_samples}",
            (20, 75),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.75,
            (255, 255, 255),
            2,
            cv2.LINE_AA,
        )
