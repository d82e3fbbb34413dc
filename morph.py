# morph.py
"""
Orchestrates shape switches.

A morph swaps every particle target for a freshly generated shape and
kicks each particle with a random explosion impulse; the springs then pull
the burst back together on the new shape.
"""
import logging
import numpy as np
from typing import Optional, Union

from particle import ParticleSystem
from shapes import ShapeDescriptor, ShapeType, Rasterizer, parse_shape, generate_shape
from utils import RandomSource
from constants import DEFAULT_EXPLOSION_RANGE, DEFAULT_TEXT


class MorphController:
    """
    Tracks the active shape and applies morph requests to a ParticleSystem.
    """
    def __init__(self, particles: ParticleSystem, initial_shape: ShapeDescriptor, rng: RandomSource,
                 explosion_range: float = DEFAULT_EXPLOSION_RANGE, default_text: str = DEFAULT_TEXT,
                 rasterizer: Optional[Rasterizer] = None):
        explosion_range = float(explosion_range)
        if not (np.isfinite(explosion_range) and explosion_range >= 0.0):
            msg = f"Configuration error: explosion_range must be a non-negative number, got {explosion_range}."
            logging.critical(msg)
            raise ValueError(msg)

        self.particles = particles
        self.rng = rng
        self.explosion_range = explosion_range
        self.default_text = default_text
        self.rasterizer = rasterizer
        self._current_shape = parse_shape(initial_shape, default_text)

    @property
    def current_shape(self) -> ShapeDescriptor:
        return self._current_shape

    def resolve(self, shape: Union[ShapeDescriptor, ShapeType, str]) -> ShapeDescriptor:
        """Validates a shape identifier without touching any state."""
        return parse_shape(shape, self.default_text)

    def morph_to(self, shape: Union[ShapeDescriptor, ShapeType, str]) -> bool:
        """
        Switches the swarm to `shape`.

        Returns:
            bool: True if a transition happened, False if `shape` is
            already active (no targets replaced, no impulse added).

        Raises:
            InvalidShapeError: If `shape` is not a known shape. The active
                shape and all particle arrays are left as they were.
        """
        shape = self.resolve(shape)
        if shape == self._current_shape:
            logging.debug(f"Morph to {shape} ignored; it is already active.")
            return False

        count = self.particles.particle_count
        targets = generate_shape(shape, count, self.rng, self.rasterizer)
        impulse = np.asarray(
            self.rng.uniform(-self.explosion_range, self.explosion_range, 3 * count),
            dtype=np.float64
        )
        self.particles.retarget(targets, impulse)

        previous = self._current_shape
        self._current_shape = shape
        logging.info(f"Morphed from {previous} to {shape}.")
        return True
