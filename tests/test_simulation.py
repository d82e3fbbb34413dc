"""
Tests for the spring-damper integrator.

Verifies:
1. One deterministic step matches the hand-computed spring/damping result
2. Relaxation toward a fixed target is monotonic without forcing
3. Wind only reaches particles inside the interaction radius, above the
   activation speed
4. Malformed frames (bad dt, bad point, corrupted state) never raise and
   drop only their interaction contribution
"""

import numpy as np
import pytest

from conftest import ConstantSource
from interaction import InteractionState
from particle import ParticleSystem
from simulation import Simulation

DT = 1.0 / 60.0


def make_simulation(positions, targets, velocities=None, params=None, rng=None):
    particles = ParticleSystem.from_arrays(positions, targets, velocities)
    interaction = InteractionState()
    sim = Simulation(particles, interaction, params or {}, rng or ConstantSource(0.5))
    return sim, particles, interaction


def test_single_step_matches_hand_computation():
    sim, particles, _ = make_simulation([0, 0, 0], [1, 0, 0], params={"stiffness": 3.0, "damping": 0.92})
    sim.step(DT)
    # spring: 3 * 1 * dt = 0.05, damped to 0.046
    np.testing.assert_allclose(particles.velocities, [0.046, 0, 0], rtol=1e-12)
    np.testing.assert_allclose(particles.positions, [0.046 * DT, 0, 0], rtol=1e-12)
    assert particles.positions[0] == pytest.approx(0.00077, abs=1e-5)


def test_large_dt_is_clamped():
    clamped, clamped_particles, _ = make_simulation([0, 0, 0], [1, 2, 3])
    reference, reference_particles, _ = make_simulation([0, 0, 0], [1, 2, 3])
    clamped.step(5.0)
    reference.step(0.1)
    np.testing.assert_array_equal(clamped_particles.positions, reference_particles.positions)


def test_relaxation_is_monotonic(seeded_rng):
    targets = seeded_rng.uniform(-5, 5, 3 * 50)
    sim, particles, _ = make_simulation(np.zeros(3 * 50), targets)

    def error():
        return np.linalg.norm(particles.targets - particles.positions)

    errors = [error()]
    for _ in range(1200):
        sim.step(DT)
        errors.append(error())

    assert np.all(np.diff(errors) <= 1e-12)
    assert errors[-1] < 1e-3 * errors[0]


def test_damping_applies_without_spring():
    sim, particles, _ = make_simulation([0, 0, 0], [0, 0, 0], [1, 0, 0])
    sim.step(DT)
    np.testing.assert_allclose(particles.velocities, [0.92, 0, 0])


def wind_setup(rng=None):
    """Two particles at rest on their targets, one near the origin and one far away."""
    return make_simulation([0, 0, 0, 10, 0, 0], [0, 0, 0, 10, 0, 0], rng=rng)


def test_wind_only_reaches_particles_inside_radius():
    sim, particles, interaction = wind_setup()
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    # First active frame has no previous point, so no wind yet.
    assert sim.last_wind is None
    np.testing.assert_array_equal(particles.velocities, np.zeros(6))

    interaction.set(True, (1, 0, 0))
    sim.step(DT)
    # Hand speed 60 units/s, wind = 60 * 15 = 900; 900 * dt = 15, damped to 13.8.
    np.testing.assert_allclose(sim.last_wind, [900, 0, 0])
    velocities = ParticleSystem.as_points(particles.velocities)
    np.testing.assert_allclose(velocities[0], [13.8, 0, 0])
    np.testing.assert_array_equal(velocities[1], [0, 0, 0])


def test_wind_adds_turbulence_noise():
    # fraction 1.0 puts every noise draw at +wind_noise
    sim, particles, interaction = wind_setup(ConstantSource(1.0))
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    interaction.set(True, (0, 1, 0))
    sim.step(DT)
    velocities = ParticleSystem.as_points(particles.velocities)
    np.testing.assert_allclose(velocities[0], np.array([0.5, 15.5, 0.5]) * 0.92)
    np.testing.assert_array_equal(velocities[1], [0, 0, 0])


def test_slow_interaction_produces_no_wind():
    sim, particles, interaction = wind_setup()
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    # 0.05 units in one frame is 3 units/s, below the 5 units/s activation speed.
    interaction.set(True, (0.05, 0, 0))
    sim.step(DT)
    assert sim.last_wind is None
    np.testing.assert_array_equal(particles.velocities, np.zeros(6))


def test_inactive_interaction_produces_no_wind():
    sim, particles, interaction = wind_setup()
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    interaction.set(False, (3, 0, 0))
    sim.step(DT)
    assert sim.last_wind is None
    assert interaction.previous_point is None
    np.testing.assert_array_equal(particles.velocities, np.zeros(6))


def test_noise_is_only_drawn_on_windy_frames():
    rng = ConstantSource(0.5)
    sim, _, interaction = wind_setup(rng)
    for _ in range(3):
        sim.step(DT)
    assert rng.calls == 0
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    interaction.set(True, (2, 0, 0))
    sim.step(DT)
    assert rng.calls == 1


@pytest.mark.parametrize("bad_dt", [float("nan"), float("inf"), 0.0, -0.5, "soon", None])
def test_unusable_dt_reuses_last_good_dt_without_wind(bad_dt):
    sim, particles, interaction = make_simulation([0, 0, 0], [1, 0, 0])
    reference, reference_particles, _ = make_simulation([0, 0, 0], [1, 0, 0])
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    reference.step(DT)
    interaction.set(True, (3, 0, 0))

    sim.step(bad_dt)
    reference.step(DT)

    assert sim.last_wind is None
    assert interaction.previous_point is None
    np.testing.assert_allclose(particles.positions, reference_particles.positions)
    np.testing.assert_allclose(particles.velocities, reference_particles.velocities)


def test_non_finite_point_suppresses_wind_for_that_frame():
    sim, particles, interaction = wind_setup()
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    interaction.set(True, (np.nan, 0, 0))
    sim.step(DT)
    assert sim.last_wind is None
    assert interaction.previous_point is None
    assert interaction.active
    assert particles.is_finite()


def test_overflowing_hand_velocity_suppresses_wind():
    rng = ConstantSource(0.5)
    sim, particles, interaction = wind_setup(rng)
    interaction.set(True, (0, 0, 0))
    sim.step(DT)
    interaction.set(True, (1, 0, 0))
    # Finite and positive, so the dt itself is accepted, but 1 / dt overflows.
    sim.step(5e-324)
    assert sim.last_wind is None
    assert rng.calls == 0
    assert particles.is_finite()
    assert np.isfinite(particles.positions).all()


def test_corrupted_state_is_repaired_without_wind():
    rng = ConstantSource(0.5)
    sim, particles, interaction = make_simulation(
        [np.nan, 0, 0, 1, 1, 1], [2, 0, 0, 1, 1, 1], [0, np.inf, 0, 0, 0, 0], rng=rng
    )
    interaction.set(True, (0, 0, 0))
    interaction.advance(True)
    interaction.set(True, (1, 0, 0))

    sim.step(DT)

    assert rng.calls == 0
    assert sim.last_wind is None
    assert particles.is_finite()
    np.testing.assert_allclose(ParticleSystem.as_points(particles.positions)[0], [2, 0, 0])
    np.testing.assert_allclose(particles.velocities, np.zeros(6))


@pytest.mark.parametrize("params", [
    {"damping": 1.0},
    {"damping": 0.0},
    {"damping": 1.5},
    {"dt_clamp": 0.0},
    {"stiffness": -1.0},
    {"interaction_radius": float("nan")},
])
def test_invalid_parameters_are_rejected(params):
    with pytest.raises(ValueError):
        make_simulation([0, 0, 0], [0, 0, 0], params=params)
