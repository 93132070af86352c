"""Graphic overlay rendered on top of a camera preview.

Detection results are expressed in the preview's pixel space (the frame the
detector saw), while the overlay draws in the displayed view's pixel space.
Graphics added to a :class:`GraphicOverlay` convert their coordinates with
:meth:`Graphic.scale_x` / :meth:`Graphic.scale_y` for sizes and
:meth:`Graphic.translate_x` / :meth:`Graphic.translate_y` for positions,
which also mirror horizontally when the preview comes from a front-facing
camera.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Callable, List, Optional, Set

import numpy as np

from .config import DRAW_GUIDES, GUIDE_PAD
from .guides import draw_guide_ellipses


class CameraFacing(IntEnum):
    BACK = 0
    FRONT = 1


class Graphic(ABC):
    """Base class for a graphics object rendered within a :class:`GraphicOverlay`.

    Subclasses implement :meth:`draw` and must route every coordinate through
    the conversion helpers before emitting draw calls.
    """

    def __init__(self, overlay: "GraphicOverlay"):
        self._overlay = overlay

    @property
    def overlay(self) -> "GraphicOverlay":
        return self._overlay

    @abstractmethod
    def draw(self, canvas: np.ndarray) -> None:
        """Draw the graphic on the supplied BGR canvas."""

    def scale_x(self, horizontal: float) -> float:
        """Adjust a horizontal size from the preview scale to the view scale."""
        return horizontal * self._overlay.width_scale_factor

    def scale_y(self, vertical: float) -> float:
        """Adjust a vertical size from the preview scale to the view scale."""
        return vertical * self._overlay.height_scale_factor

    def translate_x(self, x: float) -> float:
        """Map an x coordinate from preview space to view space, mirroring for the front camera."""
        if self._overlay.facing == CameraFacing.FRONT:
            return self._overlay.width - self.scale_x(x)
        return self.scale_x(x)

    def translate_y(self, y: float) -> float:
        """Map a y coordinate from preview space to view space."""
        return self.scale_y(y)

    def post_invalidate(self) -> None:
        self._overlay.post_invalidate()


class GraphicOverlay:
    """Holds the graphics drawn over a preview and the preview-to-view transform.

    ``add``, ``remove``, ``clear`` and ``set_camera_info`` may be called from
    any thread; they are serialized with the draw pass by a single lock and
    each schedules a redraw.
    """

    def __init__(
        self,
        width: int = 0,
        height: int = 0,
        draw_guides: bool = DRAW_GUIDES,
        guide_pad: int = GUIDE_PAD,
        on_invalidate: Optional[Callable[[], None]] = None,
    ):
        self._lock = threading.Lock()
        self._graphics: Set[Graphic] = set()
        self._invalidated = threading.Event()
        self._on_invalidate = on_invalidate

        self.width = int(width)
        self.height = int(height)
        self.preview_width = 0
        self.preview_height = 0
        self.width_scale_factor = 1.0
        self.height_scale_factor = 1.0
        self.facing = CameraFacing.BACK

        self.draw_guides = draw_guides
        self.guide_pad = guide_pad

    def __len__(self) -> int:
        with self._lock:
            return len(self._graphics)

    def __contains__(self, graphic: object) -> bool:
        with self._lock:
            return graphic in self._graphics

    @property
    def graphics(self) -> List[Graphic]:
        with self._lock:
            return list(self._graphics)

    def clear(self) -> None:
        """Remove all graphics from the overlay."""
        with self._lock:
            self._graphics.clear()
        self.post_invalidate()

    def add(self, graphic: Graphic) -> None:
        with self._lock:
            self._graphics.add(graphic)
        self.post_invalidate()

    def remove(self, graphic: Graphic) -> None:
        with self._lock:
            self._graphics.discard(graphic)
        self.post_invalidate()

    def set_camera_info(self, preview_width: int, preview_height: int, facing: CameraFacing) -> None:
        """Set the preview size and facing direction used to transform coordinates."""
        with self._lock:
            self.preview_width = int(preview_width)
            self.preview_height = int(preview_height)
            self.facing = CameraFacing(facing)
        self.post_invalidate()

    def set_view_size(self, width: int, height: int) -> None:
        with self._lock:
            self.width = int(width)
            self.height = int(height)
        self.post_invalidate()

    def post_invalidate(self) -> None:
        self._invalidated.set()
        if self._on_invalidate is not None:
            self._on_invalidate()

    def consume_invalidation(self) -> bool:
        """Return whether a redraw was requested since the last call, clearing the flag."""
        requested = self._invalidated.is_set()
        self._invalidated.clear()
        return requested

    def draw(self, canvas: np.ndarray) -> np.ndarray:
        """Draw the guide ellipses and every graphic onto ``canvas`` in place."""
        if self.draw_guides:
            draw_guide_ellipses(canvas, self.width, pad=self.guide_pad)

        with self._lock:
            # Stale factors are kept until both preview dimensions are known.
            if self.preview_width != 0 and self.preview_height != 0:
                self.width_scale_factor = float(self.width) / float(self.preview_width)
                self.height_scale_factor = float(self.height) / float(self.preview_height)

            for graphic in self._graphics:
                graphic.draw(canvas)

        return canvas
