from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .config import IOU_THRESHOLD, MAX_TRACK_AGE
from .face_types import BBox, FaceDetection, FaceTrack


def calculate_iou(box1: BBox, box2: BBox) -> float:
    x1, y1, w1, h1 = box1
    x2, y2, w2, h2 = box2
    xi1, yi1 = max(x1, x2), max(y1, y2)
    xi2, yi2 = min(x1 + w1, x2 + w2), min(y1 + h1, y2 + h2)
    if xi2 <= xi1 or yi2 <= yi1:
        return 0.0
    inter = (xi2 - xi1) * (yi2 - yi1)
    union = (w1 * h1) + (w2 * h2) - inter
    return inter / union if union > 0 else 0.0


@dataclass
class TrackUpdate:
    # detection index -> track id
    assignments: Dict[int, int] = field(default_factory=dict)
    created: List[int] = field(default_factory=list)
    expired: List[int] = field(default_factory=list)


class FaceTrackRegistry:
    """Greedy IoU association of per-frame detections to stable track ids."""

    def __init__(self, iou_threshold: float = IOU_THRESHOLD, max_track_age: int = MAX_TRACK_AGE):
        self.iou_threshold = iou_threshold
        self.max_track_age = max_track_age
        self.tracks: Dict[int, FaceTrack] = {}
        self._next_track_id = 0

    def update(self, detections: Sequence[FaceDetection]) -> TrackUpdate:
        now = time.time()
        result = TrackUpdate()

        for tid in list(self.tracks.keys()):
            self.tracks[tid].age += 1
            if self.tracks[tid].age > self.max_track_age:
                del self.tracks[tid]
                result.expired.append(tid)

        matched: set[int] = set()
        for idx, detection in enumerate(detections):
            best_tid, best_iou = None, 0.0
            for tid, track in self.tracks.items():
                if tid in matched:
                    continue
                iou = calculate_iou(detection.bbox, track.bbox)
                if iou > best_iou and iou > self.iou_threshold:
                    best_iou = iou
                    best_tid = tid

            if best_tid is None:
                best_tid = self._next_track_id
                self._next_track_id += 1
                self.tracks[best_tid] = FaceTrack(track_id=best_tid, bbox=detection.bbox)
                result.created.append(best_tid)

            track = self.tracks[best_tid]
            track.bbox = detection.bbox
            track.age = 0
            track.last_seen = now
            matched.add(best_tid)
            result.assignments[idx] = best_tid

        return result

    def reset(self) -> List[int]:
        ids = list(self.tracks.keys())
        self.tracks.clear()
        return ids
