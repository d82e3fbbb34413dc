# simulation.py
"""
Handles the core simulation logic and physics calculations.

This module defines the Simulation class, which is responsible for
advancing the particle swarm by one clamped time step. Every particle is
pulled toward its target by a spring, optionally disturbed by the "wind"
of a fast-moving interaction point, damped, and then moved.
"""
import logging
import math
import numpy as np
from typing import Dict, Any, Optional, Tuple
from numba import jit

from particle import ParticleSystem
from interaction import InteractionState
from utils import RandomSource
from constants import (
    DEFAULT_STIFFNESS, DEFAULT_DAMPING, DEFAULT_INTERACTION_RADIUS,
    DEFAULT_WIND_FORCE_MULTIPLIER, DEFAULT_WIND_ACTIVATION_SPEED,
    DEFAULT_WIND_NOISE, DEFAULT_WIND_EPSILON_SQ, DEFAULT_DT_CLAMP,
    DEFAULT_FRAME_DT
)

# --- Data Contracts ---
#
# class Simulation:
#   - __init__(self, particles: ParticleSystem, interaction: InteractionState,
#              params: Dict[str, Any], rng: RandomSource):
#     - Inputs:
#       - particles: An initialized ParticleSystem object.
#       - interaction: The InteractionState written by the input path.
#       - params: Dictionary of simulation parameters from config.json.
#         - "stiffness": float
#         - "damping": float in (0, 1)
#         - "interaction_radius": float
#         - "wind_force_multiplier": float
#         - "wind_activation_speed": float
#         - "wind_noise": float
#         - "wind_epsilon_sq": float
#         - "dt_clamp": float
#       - rng: Source of the wind turbulence noise.
#     - Outputs: None
#     - Side Effects: Stores references and validated parameters.
#
#   - step(self, dt: float) -> None:
#     - Inputs: elapsed seconds since the previous frame.
#     - Outputs: None
#     - Side Effects: Modifies positions and velocities of the internal
#       ParticleSystem in one pass; advances the InteractionState.
#     - Invariants: Particle count remains constant. No input, however
#       malformed, raises; bad frames lose their wind and still relax.


@jit(nopython=True)
def _integrate_numba(positions, targets, velocities, dt, stiffness, damping,
                     wind, center, radius_sq, apply_wind, noise):
    """
    Numba-jitted semi-implicit Euler pass over the flat state arrays.

    Particles do not interact, so each one is advanced independently.
    Non-finite slots are reset (position to target, velocity to zero)
    before the forces are applied. Returns the number of repaired slots.
    """
    particle_count = positions.shape[0] // 3
    repaired = 0

    for i in range(particle_count):
        i3 = i * 3

        for axis in range(3):
            j = i3 + axis
            if not math.isfinite(positions[j]):
                positions[j] = targets[j]
                repaired += 1
            if not math.isfinite(velocities[j]):
                velocities[j] = 0.0
                repaired += 1

        # Wind reach is measured from where the particle was at frame start.
        inside = False
        if apply_wind:
            dx = positions[i3] - center[0]
            dy = positions[i3 + 1] - center[1]
            dz = positions[i3 + 2] - center[2]
            inside = dx * dx + dy * dy + dz * dz < radius_sq

        for axis in range(3):
            j = i3 + axis
            # Hooke's law toward the morph target
            velocities[j] += (targets[j] - positions[j]) * stiffness * dt
            if inside:
                velocities[j] += wind[axis] * dt + noise[j]
            velocities[j] *= damping
            positions[j] += velocities[j] * dt

    return repaired


class Simulation:
    """
    Advances the particle swarm with a spring-damper model.
    """
    def __init__(self, particles: ParticleSystem, interaction: InteractionState,
                 params: Dict[str, Any], rng: RandomSource):
        """
        Initializes the physics integrator.

        Args:
            particles (ParticleSystem): The particle system to simulate.
            interaction (InteractionState): The external interaction point.
            params (Dict[str, Any]): Simulation parameters from config.
            rng (RandomSource): Random source for wind turbulence.
        """
        self.particles = particles
        self.interaction = interaction
        self.rng = rng

        self.stiffness = float(params.get('stiffness', DEFAULT_STIFFNESS))
        self.damping = float(params.get('damping', DEFAULT_DAMPING))
        self.interaction_radius = float(params.get('interaction_radius', DEFAULT_INTERACTION_RADIUS))
        self.wind_force_multiplier = float(params.get('wind_force_multiplier', DEFAULT_WIND_FORCE_MULTIPLIER))
        self.wind_activation_speed = float(params.get('wind_activation_speed', DEFAULT_WIND_ACTIVATION_SPEED))
        self.wind_noise = float(params.get('wind_noise', DEFAULT_WIND_NOISE))
        self.wind_epsilon_sq = float(params.get('wind_epsilon_sq', DEFAULT_WIND_EPSILON_SQ))
        self.dt_clamp = float(params.get('dt_clamp', DEFAULT_DT_CLAMP))

        # Rule 7: Enforce data contracts. Validate config on initialization.
        problems = []
        if not 0.0 < self.damping < 1.0:
            problems.append(f"damping must lie in (0, 1), got {self.damping}")
        if not self.dt_clamp > 0.0:
            problems.append(f"dt_clamp must be positive, got {self.dt_clamp}")
        for name in ('stiffness', 'interaction_radius', 'wind_force_multiplier',
                     'wind_activation_speed', 'wind_noise', 'wind_epsilon_sq'):
            value = getattr(self, name)
            if not (math.isfinite(value) and value >= 0.0):
                problems.append(f"{name} must be a non-negative number, got {value}")
        if problems:
            msg = "Configuration error: " + "; ".join(problems) + "."
            logging.critical(msg)
            raise ValueError(msg)

        # Rule 11: Performance - Pre-calculate the squared radius to avoid sqrt in the hot loop
        self.radius_sq = self.interaction_radius ** 2

        self._last_dt = DEFAULT_FRAME_DT
        self._no_wind = np.zeros(3, dtype=np.float64)
        self._no_noise = np.zeros(0, dtype=np.float64)
        self.last_wind: Optional[np.ndarray] = None
        self.step_count = 0

        logging.info("Simulation logic initialized and configuration validated.")
        logging.debug(
            f"Physics: k={self.stiffness}, d={self.damping}, "
            f"radius={self.interaction_radius}, dt clamp={self.dt_clamp}s."
        )

    def _sanitize_dt(self, dt) -> Tuple[float, bool]:
        """Clamps dt, falling back to the last good value for unusable input."""
        try:
            dt = float(dt)
        except (TypeError, ValueError):
            dt = math.nan
        if not math.isfinite(dt) or dt <= 0.0:
            logging.debug(f"Unusable dt {dt}; reusing {self._last_dt:.4f}s without interaction.")
            return self._last_dt, False
        dt = min(dt, self.dt_clamp)
        self._last_dt = dt
        return dt, True

    def _compute_wind(self, dt: float) -> Optional[np.ndarray]:
        # A tiny dt can overflow the velocity estimate; the result is checked below.
        with np.errstate(over='ignore', invalid='ignore'):
            hand_velocity = self.interaction.hand_velocity(dt)
            if hand_velocity is None:
                return None
            wind = hand_velocity * self.wind_force_multiplier
            if not (np.isfinite(hand_velocity).all() and np.isfinite(wind).all()):
                logging.debug(f"Non-finite wind estimate at dt {dt}; interaction suppressed for this frame.")
                return None
            # Only trigger wind if the point moves fast enough
            if not np.linalg.norm(hand_velocity) > self.wind_activation_speed:
                return None
            if not float(wind @ wind) > self.wind_epsilon_sq:
                return None
        return wind

    def step(self, dt: float) -> None:
        """
        Executes one time step of the simulation.
        """
        dt, dt_ok = self._sanitize_dt(dt)
        interaction = self.interaction

        buffer_ok = self.particles.is_finite()
        if not buffer_ok:
            logging.warning("Non-finite particle state detected; repairing and skipping interaction this frame.")

        # A frame with bad input counts as inactive for this call only.
        active = interaction.active and dt_ok and buffer_ok and interaction.is_valid()
        if interaction.active and not active:
            logging.debug("Interaction suppressed for this frame.")

        wind = self._compute_wind(dt) if active else None
        if wind is None:
            repaired = self.particles.integrate(
                _integrate_numba, dt, self.stiffness, self.damping,
                self._no_wind, self._no_wind, self.radius_sq, False, self._no_noise
            )
        else:
            noise = np.asarray(
                self.rng.uniform(-self.wind_noise, self.wind_noise, 3 * self.particles.particle_count),
                dtype=np.float64
            )
            repaired = self.particles.integrate(
                _integrate_numba, dt, self.stiffness, self.damping,
                wind, interaction.point, self.radius_sq, True, noise
            )

        if repaired:
            logging.warning(f"Reset {repaired} non-finite particle values.")

        interaction.advance(active)
        self.last_wind = wind
        self.step_count += 1
