"""
Offscreen drawing surface that captures the learner's strokes.
"""

from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from . import constants


class DrawingSurface:
    """Square raster canvas with round-capped, fixed-width strokes"""

    def __init__(self, size=constants.CANVAS_SIZE, stroke_width=constants.STROKE_WIDTH,
                 ink_color=constants.INK_COLOR, background_color=constants.BACKGROUND_COLOR):
        self.size = int(size)
        self.stroke_width = int(stroke_width)
        self.ink_color = ink_color
        self.background_color = background_color
        self.image = Image.new("RGB", (self.size, self.size), self.background_color)
        self.draw = ImageDraw.Draw(self.image)
        self._last_point: Optional[Tuple[int, int]] = None

    @property
    def stroke_active(self) -> bool:
        return self._last_point is not None

    def begin_stroke(self, x, y):
        """Start a stroke; the pen tip leaves a round dot"""
        point = (int(x), int(y))
        self._dot(point)
        self._last_point = point

    def extend_stroke(self, x, y):
        """Draw a segment from the last point; ignored when no stroke is active"""
        if self._last_point is None:
            return
        point = (int(x), int(y))
        self.draw.line([self._last_point, point], fill=self.ink_color, width=self.stroke_width)
        # PIL lines have flat ends; cap the joint so strokes stay round
        self._dot(point)
        self._last_point = point

    def end_stroke(self):
        self._last_point = None

    def clear(self):
        """Paint the whole surface with the background colour"""
        self.image.paste(self.background_color, (0, 0, self.size, self.size))
        self._last_point = None

    def snapshot(self) -> np.ndarray:
        """Current raster as a (H, W, 3) uint8 RGB array"""
        return np.array(self.image, dtype=np.uint8)

    def has_ink(self) -> bool:
        background = np.array(Image.new("RGB", (1, 1), self.background_color), dtype=np.uint8)[0, 0]
        return bool(np.any(self.snapshot() != background))

    def _dot(self, point):
        r = self.stroke_width // 2
        x, y = point
        self.draw.ellipse((x - r, y - r, x + r, y + r), fill=self.ink_color)
