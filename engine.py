# engine.py
"""
Composition root of the particle morph engine.

The Engine owns one ParticleSystem, its InteractionState, the physics
integrator and the morph controller, and exposes the four operations the
outside world uses: step, morph_to, set_interaction and positions. A frame
scheduler drives step(); an independent input path drives set_interaction()
and morph_to()/queue_morph(). Both only ever go through these entry points.
"""
import logging
import numpy as np
from collections import deque
from typing import Dict, Any, Optional, Union

from constants import (
    DEFAULT_PARTICLE_COUNT, DEFAULT_SEED, DEFAULT_INITIAL_SHAPE, DEFAULT_TEXT,
    DEFAULT_EXPLOSION_RANGE
)
from interaction import InteractionState
from morph import MorphController
from particle import ParticleSystem
from shapes import ShapeDescriptor, ShapeType, Rasterizer, parse_shape, generate_shape
from simulation import Simulation
from utils import RandomSource, make_random_source

ShapeLike = Union[ShapeDescriptor, ShapeType, str]

# --- Data Contracts ---
#
# class Engine:
#   - __init__(self, params: Optional[Dict[str, Any]] = None,
#              rng: Optional[RandomSource] = None,
#              rasterizer: Optional[Rasterizer] = None):
#     - Inputs:
#       - params: The "simulation_parameters" section of config.json.
#         - "particle_count": int (default 16000)
#         - "seed": int, used only when no rng is given
#         - "initial_shape": str (default "SPHERE")
#         - "text": str, text for TEXT requests without their own string
#         - "explosion_range": float
#         - physics constants, see simulation.Simulation
#     - Side Effects: Generates the initial shape; positions equal targets
#       and velocities are zero on return.
#
#   - step(dt) -> None, morph_to(shape) -> bool, queue_morph(shape) -> None,
#     set_interaction(active, point) -> None, positions() -> read-only view.
#   - Invariants: queued morphs are applied only between integration
#     passes, never during one.


class Engine:
    """
    Owns the swarm state and exposes its external operations.
    """
    def __init__(self, params: Optional[Dict[str, Any]] = None,
                 rng: Optional[RandomSource] = None,
                 rasterizer: Optional[Rasterizer] = None):
        params = dict(params or {})

        count = int(params.get('particle_count', DEFAULT_PARTICLE_COUNT))
        if count < 0:
            msg = f"Configuration error: particle_count must be non-negative, got {count}."
            logging.critical(msg)
            raise ValueError(msg)

        self.rng = rng if rng is not None else make_random_source(params.get('seed', DEFAULT_SEED))
        default_text = str(params.get('text', DEFAULT_TEXT))
        initial_shape = parse_shape(params.get('initial_shape', DEFAULT_INITIAL_SHAPE), default_text)

        initial = generate_shape(initial_shape, count, self.rng, rasterizer)
        self.particles = ParticleSystem(initial, count)
        self.interaction = InteractionState()
        self.simulation = Simulation(self.particles, self.interaction, params, self.rng)
        self.morpher = MorphController(
            self.particles, initial_shape, self.rng,
            explosion_range=params.get('explosion_range', DEFAULT_EXPLOSION_RANGE),
            default_text=default_text,
            rasterizer=rasterizer,
        )
        self._pending = deque()
        self._closed = False

        logging.info(f"Engine ready with {count} particles in shape {initial_shape}.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Engine has been closed.")

    @property
    def particle_count(self) -> int:
        self._check_open()
        return self.particles.particle_count

    @property
    def current_shape(self) -> ShapeDescriptor:
        self._check_open()
        return self.morpher.current_shape

    def step(self, dt: float) -> None:
        """Applies queued morphs, then advances the swarm by one frame."""
        self._check_open()
        while self._pending:
            self.morpher.morph_to(self._pending.popleft())
        self.simulation.step(dt)

    def morph_to(self, shape: ShapeLike) -> bool:
        """Morphs immediately. Returns False when `shape` is already active."""
        self._check_open()
        return self.morpher.morph_to(shape)

    def queue_morph(self, shape: ShapeLike) -> None:
        """
        Requests a morph to be applied before the next step.

        The shape is validated now, so a bad request raises here and never
        reaches the queue.
        """
        self._check_open()
        shape = self.morpher.resolve(shape)
        self._pending.append(shape)
        logging.debug(f"Queued morph to {shape}.")

    def set_interaction(self, active: bool, point) -> None:
        """Records the interaction point for the next step. No physics runs here."""
        self._check_open()
        self.interaction.set(active, point)

    def positions(self) -> np.ndarray:
        """Read-only view of the flat position array (length 3N)."""
        self._check_open()
        return self.particles.positions

    def stats(self) -> Dict[str, float]:
        """Aggregate metrics for throttled logging."""
        self._check_open()
        if self.particle_count == 0:
            return {'mean_speed': 0.0, 'mean_target_distance': 0.0}
        velocities = ParticleSystem.as_points(self.particles.velocities)
        offsets = ParticleSystem.as_points(self.particles.targets - self.particles.positions)
        return {
            'mean_speed': float(np.mean(np.linalg.norm(velocities, axis=1))),
            'mean_target_distance': float(np.mean(np.linalg.norm(offsets, axis=1))),
        }

    def close(self) -> None:
        """Releases the particle state. Further calls raise RuntimeError."""
        if self._closed:
            return
        self._pending.clear()
        self.particles = None
        self.simulation = None
        self.morpher = None
        self._closed = True
        logging.info("Engine closed.")
