"""Tests for the Kalman and particle filters."""

import itertools

import numpy as np
import pytest

from plantree.common.errors import DimensionMismatch, PreconditionViolation, SingularMatrix
from plantree.estimation import KalmanFilter, Particle, ParticleFilter


class _Clock:
    def __init__(self, step: float) -> None:
        self._ticks = itertools.count()
        self.step = step

    def __call__(self) -> float:
        return next(self._ticks) * self.step


def test_kalman_tracks_constant_velocity() -> None:
    """Position and velocity converge on an exact constant-velocity track."""

    kf = KalmanFilter(clock=_Clock(0.1))
    kf.initialize([0.0, 0.0], uncertainty=10.0, system_noise=1e-5, measurement_noise=1e-3)
    velocity = np.array([1.0, -0.5])
    for k in range(1, 201):
        kf.update(velocity * 0.1 * k)
    assert np.allclose(kf.velocity, velocity, atol=0.05)
    assert np.allclose(kf.position, velocity * 20.0, atol=0.05)
    assert kf.state.shape == (4,)


def test_kalman_explicit_dt_skips_clock() -> None:
    kf = KalmanFilter(clock=lambda: 0.0)
    kf.initialize([1.0], uncertainty=1.0, system_noise=0.0, measurement_noise=1.0)
    predicted = kf.predict(dt=2.0)
    assert np.allclose(predicted, [1.0, 0.0])
    # velocity variance leaks into position over dt
    assert kf.P[0, 0] == pytest.approx(1.0 + 4.0)


def test_kalman_errors() -> None:
    kf = KalmanFilter(clock=lambda: 0.0)
    with pytest.raises(PreconditionViolation):
        kf.update([0.0])
    kf.initialize([0.0, 0.0], uncertainty=1.0, system_noise=0.0, measurement_noise=1.0)
    with pytest.raises(DimensionMismatch):
        kf.update([0.0, 0.0, 0.0])

    singular = KalmanFilter(clock=lambda: 0.0)
    singular.initialize([0.0], uncertainty=0.0, system_noise=0.0, measurement_noise=0.0)
    with pytest.raises(SingularMatrix):
        singular.update([1.0])
    with pytest.raises(np.linalg.LinAlgError):
        singular.update([1.0])


def test_kalman_failed_update_keeps_covariance() -> None:
    """A singular fusion leaves the covariance and clock as they were."""

    kf = KalmanFilter(clock=_Clock(1.0))
    kf.initialize([0.0], uncertainty=0.0, system_noise=0.0, measurement_noise=0.0)
    before = kf.P.copy()
    for _ in range(2):
        with pytest.raises(SingularMatrix):
            kf.update([1.0])
        assert np.array_equal(kf.P, before)
        assert np.allclose(kf.state, [0.0, 0.0])


class _PointFilter(ParticleFilter):
    """One-dimensional filter weighting particles by a Gaussian likelihood."""

    def initialize(self, observation):
        obs = np.asarray(observation, dtype=float)
        self.particles = []
        self.create_new_particles(obs - 1.0, obs + 1.0, self.sample_size)

    def create_new_particles(self, lower, upper, count):
        for _ in range(count):
            state = np.array([self.rand_range(lower[0], upper[0])])
            self.particles.append(Particle(state))

    def fitness(self, particle, observation):
        return float(np.exp(-0.5 * ((particle.state[0] - observation[0]) / 0.2) ** 2))

    def update(self, observation):
        obs = np.asarray(observation, dtype=float)
        for p in self.particles:
            p.state = p.state + self.rand_normal(0.0, 0.05)
            p.weight = self.fitness(p, obs)
        total = sum(p.weight for p in self.particles)
        self.value = total / len(self.particles)
        self.resample(total)
        return np.mean([p.state for p in self.particles], axis=0)


def test_resample_preserves_count_and_favours_heavy() -> None:
    pf = _PointFilter(sample_size=50, seed=1)
    pf.particles = [Particle(np.array([float(i)]), weight=1e-9) for i in range(10)]
    pf.particles[3].weight = 1.0
    pf.resample()
    assert pf.num_particles() == 50
    assert all(p.state[0] == 3.0 for p in pf.particles)
    # draws are copies
    pf.particles[0].state[0] = -1.0
    assert pf.particles[1].state[0] == 3.0


def test_resample_rejects_degenerate_input() -> None:
    pf = _PointFilter(sample_size=5, seed=0)
    with pytest.raises(PreconditionViolation):
        pf.resample()
    pf.particles = [Particle(np.zeros(1), weight=0.0)]
    with pytest.raises(PreconditionViolation):
        pf.resample()
    with pytest.raises(ValueError):
        _PointFilter(sample_size=0)


def test_particle_filter_follows_observation() -> None:
    pf = _PointFilter(sample_size=200, seed=3)
    pf.initialize([0.0])
    estimate = None
    for _ in range(10):
        estimate = pf.update([0.5])
    assert pf.num_particles() == 200
    assert abs(estimate[0] - 0.5) < 0.1
    assert pf.value > 0.0
