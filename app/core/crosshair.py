from __future__ import annotations

from typing import Optional, Tuple

Point = Tuple[float, float]


class CrosshairState:
    """
    Two crosshair sources: a touch crosshair (long press, dragged, cleared by a tap)
    and a hover crosshair that follows the pointer. Touch wins; while it is active
    hover updates are dropped.
    """

    def __init__(self) -> None:
        self.touch_active = False
        self.touch_position: Optional[Point] = None
        self.hover_position: Optional[Point] = None
        self.width = 0.0
        self.height = 0.0

    def set_bounds(self, width: float, height: float) -> None:
        self.width = max(0.0, float(width))
        self.height = max(0.0, float(height))

    def long_press(self, x: float, y: float) -> None:
        self.touch_active = True
        self.touch_position = (float(x), float(y))
        self.hover_position = None

    def drag(self, dx: float, dy: float) -> bool:
        if not self.touch_active or self.touch_position is None:
            return False
        x, y = self.touch_position
        self.touch_position = (
            max(0.0, min(self.width, x + dx)),
            max(0.0, min(self.height, y + dy)),
        )
        return True

    def tap(self) -> bool:
        if not self.touch_active:
            return False
        self.touch_active = False
        self.touch_position = None
        self.hover_position = None
        return True

    def hover(self, x: float, y: float) -> None:
        if self.touch_active:
            self.hover_position = None
            return
        self.hover_position = (float(x), float(y))

    def leave(self) -> None:
        self.hover_position = None

    @property
    def position(self) -> Optional[Point]:
        if self.touch_active:
            return self.touch_position
        return self.hover_position

    @property
    def visible(self) -> bool:
        return self.position is not None
