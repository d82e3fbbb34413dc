# particle.py
"""
Manages the state of all particles in the swarm.

This module defines the ParticleSystem class, which owns the three
co-indexed per-particle arrays (position, target, velocity) as flat NumPy
arrays and guards who may write to them.
"""
import logging
import numpy as np
from typing import Callable, Optional

# --- Data Contracts ---
#
# class ParticleSystem:
#   - __init__(self, initial: np.ndarray, count: int):
#     - Inputs:
#       - initial: flat float64 point cloud of length 3 * count, used for
#         both the starting positions and the starting targets.
#       - count: int, number of particles (>= 0).
#     - Outputs: None
#     - Side Effects: Allocates internal NumPy arrays for particle state.
#     - Invariants:
#       - positions, targets and velocities are float64 arrays of shape
#         (3 * count,) for the lifetime of the system; particle i owns
#         slots [3i, 3i + 2] in each.
#       - The public properties are read-only views.
#       - integrate() is the only writer of positions/velocities for the
#         per-frame pass; retarget() is the only writer of targets.


class ParticleSystem:
    """
    A container for all particles, managing their state via NumPy arrays.
    """
    def __init__(self, initial: np.ndarray, count: int):
        """
        Initializes the particle system with positions resting on `initial`.

        Args:
            initial (np.ndarray): Flat starting point cloud of length 3 * count.
            count (int): The number of particles.
        """
        count = int(count)
        if count < 0:
            raise ValueError(f"Particle count must be non-negative, got {count}.")
        initial = np.asarray(initial, dtype=np.float64).reshape(-1)
        if initial.shape[0] != 3 * count:
            raise ValueError(
                f"Initial point cloud has {initial.shape[0]} values, "
                f"expected {3 * count} for {count} particles."
            )

        self.particle_count = count
        self._positions = initial.copy()
        self._targets = initial.copy()
        self._velocities = np.zeros(3 * count, dtype=np.float64)

        logging.info(f"ParticleSystem initialized with {self.particle_count} particles.")
        logging.debug(
            f"Particle data arrays created. "
            f"Positions shape: {self._positions.shape}, "
            f"Targets shape: {self._targets.shape}, "
            f"Velocities shape: {self._velocities.shape}"
        )

    @classmethod
    def from_arrays(cls, positions, targets, velocities=None) -> "ParticleSystem":
        """
        Builds a particle system from explicit state, e.g. for tools and tests.

        Raises:
            ValueError: If the arrays disagree in length, are not whole
                triplets, or the targets are not finite.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1)
        targets = np.asarray(targets, dtype=np.float64).reshape(-1)
        if positions.shape != targets.shape or positions.shape[0] % 3:
            raise ValueError(
                f"Positions ({positions.shape[0]}) and targets ({targets.shape[0]}) "
                f"must have the same length, a multiple of 3."
            )
        if not np.isfinite(targets).all():
            raise ValueError("Targets must be finite.")

        system = cls(targets, positions.shape[0] // 3)
        system._positions[:] = positions
        if velocities is not None:
            velocities = np.asarray(velocities, dtype=np.float64).reshape(-1)
            if velocities.shape != positions.shape:
                raise ValueError(
                    f"Velocities ({velocities.shape[0]}) must match positions ({positions.shape[0]})."
                )
            system._velocities[:] = velocities
        return system

    @staticmethod
    def _read_only(array: np.ndarray) -> np.ndarray:
        view = array.view()
        view.flags.writeable = False
        return view

    @property
    def positions(self) -> np.ndarray:
        return self._read_only(self._positions)

    @property
    def targets(self) -> np.ndarray:
        return self._read_only(self._targets)

    @property
    def velocities(self) -> np.ndarray:
        return self._read_only(self._velocities)

    @staticmethod
    def as_points(array: np.ndarray) -> np.ndarray:
        """Views a flat state array as (count, 3) rows."""
        return array.reshape(-1, 3)

    def is_finite(self) -> bool:
        return bool(np.isfinite(self._positions).all() and np.isfinite(self._velocities).all())

    def integrate(self, kernel: Callable, *args):
        """
        Runs one per-frame physics pass.

        `kernel` is called as kernel(positions, targets, velocities, *args)
        with the writable arrays and may update positions and velocities in
        place. Its return value is passed through.
        """
        return kernel(self._positions, self._targets, self._velocities, *args)

    def retarget(self, targets: np.ndarray, impulse: Optional[np.ndarray] = None) -> None:
        """
        Replaces every target and adds `impulse` to the velocities.

        Both arrays are validated before anything is written, so a rejected
        call leaves the system untouched.
        """
        targets = np.asarray(targets, dtype=np.float64).reshape(-1)
        if targets.shape != self._targets.shape:
            raise ValueError(
                f"New targets have {targets.shape[0]} values, expected {self._targets.shape[0]}."
            )
        if not np.isfinite(targets).all():
            raise ValueError("New targets must be finite.")
        if impulse is not None:
            impulse = np.asarray(impulse, dtype=np.float64).reshape(-1)
            if impulse.shape != self._velocities.shape:
                raise ValueError(
                    f"Impulse has {impulse.shape[0]} values, expected {self._velocities.shape[0]}."
                )

        self._targets[:] = targets
        if impulse is not None:
            self._velocities += impulse
