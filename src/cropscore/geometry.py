"""Rectangles, scores and scored crop candidates."""

import math
from dataclasses import dataclass, field


def chop(value: float) -> int:
    """Truncate toward zero."""
    return int(math.ceil(value)) if value < 0 else int(math.floor(value))


@dataclass(frozen=True)
class Rectangle:
    """Integer rectangle, half-open on the max edge (pixels min..max-1)."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @classmethod
    def from_xywh(cls, x: int, y: int, w: int, h: int) -> "Rectangle":
        return cls(int(x), int(y), int(x) + int(w), int(y) + int(h))

    @property
    def width(self) -> int:
        return self.max_x - self.min_x

    @property
    def height(self) -> int:
        return self.max_y - self.min_y

    @property
    def area(self) -> int:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.min_x >= self.max_x or self.min_y >= self.max_y

    def canon(self) -> "Rectangle":
        """Return the same rectangle with min <= max on both axes."""
        return Rectangle(
            min(self.min_x, self.max_x),
            min(self.min_y, self.max_y),
            max(self.min_x, self.max_x),
            max(self.min_y, self.max_y),
        )

    def contains(self, other: "Rectangle") -> bool:
        """True if other lies entirely within this rectangle.

        An empty rectangle is contained in every rectangle.
        """
        if other.is_empty():
            return True
        return (
            self.min_x <= other.min_x
            and other.max_x <= self.max_x
            and self.min_y <= other.min_y
            and other.max_y <= self.max_y
        )

    def scaled_down(self, factor: float) -> "Rectangle":
        """Divide every coordinate by factor, truncating toward zero."""
        if factor == 1.0:
            return self
        return Rectangle(
            chop(self.min_x / factor),
            chop(self.min_y / factor),
            chop(self.max_x / factor),
            chop(self.max_y / factor),
        )

    def as_xywh(self) -> tuple[int, int, int, int]:
        return (self.min_x, self.min_y, self.width, self.height)

    def as_box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as used by PIL's Image.crop."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass
class Score:
    """Raw accumulators for one candidate plus the weighted total."""

    skin: float = 0.0
    detail: float = 0.0
    saturation: float = 0.0
    face: float = 0.0
    total: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "skin": self.skin,
            "detail": self.detail,
            "saturation": self.saturation,
            "face": self.face,
            "total": self.total,
        }


@dataclass
class Crop:
    rect: Rectangle
    score: Score = field(default_factory=Score)

    @property
    def total(self) -> float:
        return self.score.total

    def as_dict(self) -> dict[str, object]:
        return {"rect_xyxy": list(self.rect.as_box()), **self.score.as_dict()}
