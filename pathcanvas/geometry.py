"""
Layout geometry shared by the cost model and the canvas.

Rectangles are reported by the layout surface in graph space. Edges leave a
node from the middle of its right side and enter the next node in the middle
of its left side, so those are the two anchors distances are measured between.
"""

import math
from dataclasses import dataclass
from typing import Tuple

Point = Tuple[float, float]

# Default node footprint used when only a top-left position is known
NODE_WIDTH = 120.0
NODE_HEIGHT = 60.0


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle: top-left corner plus size."""
    x: float
    y: float
    width: float = NODE_WIDTH
    height: float = NODE_HEIGHT

    @classmethod
    def at(cls, position: Point, width: float = NODE_WIDTH, height: float = NODE_HEIGHT) -> "Rect":
        return cls(float(position[0]), float(position[1]), width, height)

    def left_center(self) -> Point:
        return (self.x, self.y + self.height / 2.0)

    def right_center(self) -> Point:
        return (self.x + self.width, self.y + self.height / 2.0)


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def round_half_up(value: float) -> int:
    """
    Round a non-negative float to the nearest integer, halves going up.

    The builtin round() uses banker's rounding, which would make a distance of
    exactly 25.5 and 26.5 both land on 26.
    """
    return int(math.floor(value + 0.5))
