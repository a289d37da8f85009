# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Particle filter base with low-variance resampling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from plantree.common.errors import PreconditionViolation
from plantree.common.vector import StateLike


@dataclass
class Particle:
    """Weighted state hypothesis."""

    state: np.ndarray
    weight: float = 1.0

    def copy(self) -> "Particle":
        return Particle(self.state.copy(), self.weight)


class ParticleFilter(ABC):
    """Common scaffolding for concrete particle filters.

    Subclasses decide how particles are spawned, weighted and combined into
    an estimate; the base class provides resampling and random draws from a
    seeded generator.

    Parameters
    ----------
    sample_size:
        Particles drawn by each :meth:`resample`.
    max_particles:
        Upper bound on the particle set, defaults to ``sample_size + extra``.
    extra:
        Fresh particles a subclass may add per iteration.
    seed:
        Seed for :func:`numpy.random.default_rng`.
    """

    def __init__(
        self,
        sample_size: int,
        *,
        max_particles: Optional[int] = None,
        extra: int = 0,
        seed: Optional[int] = None,
    ) -> None:
        if sample_size < 1:
            raise ValueError("sample_size must be >= 1")
        if extra < 0:
            raise ValueError("extra must be >= 0")
        self.sample_size = sample_size
        self.extra = extra
        self.max_particles = max_particles if max_particles is not None else sample_size + extra
        self.particles: List[Particle] = []
        self.value = 0.0
        self._rng = np.random.default_rng(seed)

    @abstractmethod
    def initialize(self, observation: StateLike) -> None:
        """Seed the particle set around ``observation``."""

    @abstractmethod
    def update(self, observation: StateLike) -> np.ndarray:
        """Reweight and resample on ``observation``; return the estimate."""

    @abstractmethod
    def create_new_particles(
        self, lower: np.ndarray, upper: np.ndarray, count: int
    ) -> None:
        """Append ``count`` particles drawn between ``lower`` and ``upper``."""

    @abstractmethod
    def fitness(self, particle: Particle, observation: np.ndarray) -> float:
        """Return the unnormalised likelihood of ``particle``."""

    def resample(self, sum_weights: Optional[float] = None) -> None:
        """Low-variance resampling of :attr:`particles`.

        A single random offset in ``[0, 1/M)`` is stepped by ``1/M`` through
        the cumulative normalised weights, so heavy particles are copied
        proportionally often while the draw stays ``O(M + N)``.
        """

        if not self.particles:
            raise PreconditionViolation("cannot resample an empty particle set")
        total = sum(p.weight for p in self.particles) if sum_weights is None else sum_weights
        if total <= 0.0:
            raise PreconditionViolation(f"particle weights must sum to > 0, got {total}")

        m_total = self.sample_size
        r = self._rng.random() / m_total
        c = self.particles[0].weight / total
        i = 0
        drawn: List[Particle] = []
        for m in range(m_total):
            u = r + m / m_total
            while u > c and i < len(self.particles) - 1:
                i += 1
                c += self.particles[i].weight / total
            drawn.append(self.particles[i].copy())
        self.particles = drawn

    def rand_normal(self, mean: float, std: float) -> float:
        return float(self._rng.normal(mean, std))

    def rand_range(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def num_particles(self) -> int:
        return len(self.particles)


__all__ = ["Particle", "ParticleFilter"]
