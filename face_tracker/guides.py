from typing import Tuple

import cv2
import numpy as np

Bounds = Tuple[int, int, int, int]

GUIDE_COLOR = (255, 255, 255)
OUTER_STROKE = 3
INNER_STROKE = 2


def guide_ellipse_bounds(view_width: int) -> Bounds:
    """Outer face guide as (left, top, right, bottom), sized from the view width only."""
    w = int(view_width)
    return w // 4, w * 2 // 15, w * 3 // 4, w * 11 // 15


def inset_bounds(bounds: Bounds, pad: int) -> Bounds:
    left, top, right, bottom = bounds
    return left + pad, top + pad, right - pad, bottom - pad


def bounds_inside(outer: Bounds, inner: Tuple[float, float, float, float]) -> bool:
    left, top, right, bottom = inner
    return left >= outer[0] and top >= outer[1] and right <= outer[2] and bottom <= outer[3]


def _draw_oval(canvas: np.ndarray, bounds: Bounds, thickness: int) -> None:
    left, top, right, bottom = bounds
    axes = ((right - left) // 2, (bottom - top) // 2)
    if axes[0] <= 0 or axes[1] <= 0:
        return
    center = ((left + right) // 2, (top + bottom) // 2)
    cv2.ellipse(canvas, center, axes, 0, 0, 360, GUIDE_COLOR, thickness, cv2.LINE_AA)


def draw_guide_ellipses(canvas: np.ndarray, view_width: int, pad: int = 40) -> None:
    outer = guide_ellipse_bounds(view_width)
    _draw_oval(canvas, inset_bounds(outer, pad), INNER_STROKE)
    _draw_oval(canvas, outer, OUTER_STROKE)
