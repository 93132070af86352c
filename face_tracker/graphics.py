from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from .face_types import FaceDetection
from .overlay import Graphic, GraphicOverlay

FACE_POSITION_RADIUS = 10
ID_FONT_SCALE = 0.9
ID_Y_OFFSET = 50
ID_X_OFFSET = -50
BOX_STROKE_WIDTH = 5

# BGR: blue, cyan, green, magenta, red, white, yellow
COLOR_CHOICES = (
    (255, 0, 0),
    (255, 255, 0),
    (0, 255, 0),
    (255, 0, 255),
    (0, 0, 255),
    (255, 255, 255),
    (0, 255, 255),
)

_current_color_index = 0


def _next_color() -> Tuple[int, int, int]:
    global _current_color_index
    _current_color_index = (_current_color_index + 1) % len(COLOR_CHOICES)
    return COLOR_CHOICES[_current_color_index]


class FaceGraphic(Graphic):
    """Face position, id and bounding box for one tracked face."""

    def __init__(self, overlay: GraphicOverlay, face_id: int = 0):
        super().__init__(overlay)
        self.face_id = face_id
        self.color = _next_color()
        self._face: Optional[FaceDetection] = None

    @property
    def face(self) -> Optional[FaceDetection]:
        return self._face

    def update_face(self, face: FaceDetection) -> None:
        self._face = face
        self.post_invalidate()

    def view_bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """Face box in view space as (left, top, right, bottom)."""
        face = self._face
        if face is None:
            return None
        cx, cy = face.center
        x = self.translate_x(cx)
        y = self.translate_y(cy)
        x_offset = self.scale_x(face.bbox[2] / 2.0)
        y_offset = self.scale_y(face.bbox[3] / 2.0)
        return x - x_offset, y - y_offset, x + x_offset, y + y_offset

    def draw(self, canvas: np.ndarray) -> None:
        face = self._face
        if face is None:
            return

        cx, cy = face.center
        x = int(round(self.translate_x(cx)))
        y = int(round(self.translate_y(cy)))
        cv2.circle(canvas, (x, y), FACE_POSITION_RADIUS, self.color, -1, cv2.LINE_AA)
        cv2.putText(
            canvas,
            f"id: {self.face_id}",
            (x + ID_X_OFFSET, y + ID_Y_OFFSET),
            cv2.FONT_HERSHEY_SIMPLEX,
            ID_FONT_SCALE,
            self.color,
            2,
            cv2.LINE_AA,
        )

        left, top, right, bottom = (int(round(v)) for v in self.view_bounds())
        cv2.rectangle(canvas, (left, top), (right, bottom), self.color, BOX_STROKE_WIDTH)
