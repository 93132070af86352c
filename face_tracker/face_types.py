from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

BBox = Tuple[int, int, int, int]


@dataclass
class FaceDetection:
    """Face box in preview pixels as (x, y, width, height)."""

    bbox: BBox
    confidence: float

    @property
    def center(self) -> Tuple[float, float]:
        x, y, w, h = self.bbox
        return x + w / 2.0, y + h / 2.0


@dataclass
class FaceTrack:
    track_id: int
    bbox: BBox
    age: int = 0
    last_seen: float = 0.0
