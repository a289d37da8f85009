# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""State estimators feeding states into a planning tree."""

from .kalman import KalmanFilter
from .particle import Particle, ParticleFilter

__all__ = ["KalmanFilter", "Particle", "ParticleFilter"]
