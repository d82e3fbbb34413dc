# interaction.py
"""
Tracks the external interaction point (e.g. a tracked hand).

The state is written by the input path through set() and read once per
frame by the simulation, which calls advance() after its pass so that the
next frame can estimate how fast the point moved.
"""
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class InteractionState:
    active: bool = False
    point: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    previous_point: Optional[np.ndarray] = None

    def set(self, active: bool, point) -> None:
        """
        Records the interaction for the next step. Going inactive forgets
        the previous point, so a resumed interaction never measures its
        velocity against a point from before the gap.
        """
        self.active = bool(active)
        try:
            point = np.asarray(point, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError):
            logging.warning(f"Ignoring non-numeric interaction point {point!r}.")
            point = np.full(3, np.nan)
        if point.shape != (3,):
            logging.warning(f"Ignoring interaction point with shape {point.shape}; expected 3 coordinates.")
            point = np.full(3, np.nan)
        self.point = point.copy()
        if not self.active:
            self.previous_point = None

    def is_valid(self) -> bool:
        return bool(np.isfinite(self.point).all())

    def hand_velocity(self, dt: float) -> Optional[np.ndarray]:
        """Velocity of the point since the previous frame, if one is known."""
        if self.previous_point is None:
            return None
        return (self.point - self.previous_point) / dt

    def advance(self, active_this_frame: bool) -> None:
        """Carries the current point over as the previous one for the next frame."""
        self.previous_point = self.point.copy() if active_this_frame else None
