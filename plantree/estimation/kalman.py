# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Constant-velocity linear Kalman filter.

Summary
-------
The filter tracks a position of dimension ``n`` and its velocity, so the
internal state has length ``2n``. Measurements observe the position only.
The transition matrix couples each position to its velocity through the
elapsed time, which is read from an injectable clock unless ``dt`` is given.

Examples
--------
>>> t = iter([0.0, 1.0, 2.0])
>>> kf = KalmanFilter(clock=lambda: next(t))
>>> kf.initialize([0.0], uncertainty=1.0, system_noise=0.0, measurement_noise=0.1)
>>> kf.update([1.0]).shape
(2,)
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import numpy as np

from plantree.common.errors import PreconditionViolation, SingularMatrix
from plantree.common.vector import StateLike, as_state


class KalmanFilter:
    """Kalman filter with position/velocity state.

    Parameters
    ----------
    clock:
        Callable returning seconds; defaults to :func:`time.monotonic`.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self.state: Optional[np.ndarray] = None
        self.Q: Optional[np.ndarray] = None
        self.R: Optional[np.ndarray] = None
        self.P: Optional[np.ndarray] = None
        self._F: Optional[np.ndarray] = None
        self._H: Optional[np.ndarray] = None
        self._last_update = 0.0

    @property
    def dims(self) -> int:
        """Number of observed (position) components."""
        return 0 if self.state is None else self.state.shape[0] // 2

    @property
    def position(self) -> np.ndarray:
        return self._require_state()[: self.dims]

    @property
    def velocity(self) -> np.ndarray:
        return self._require_state()[self.dims :]

    def _require_state(self) -> np.ndarray:
        if self.state is None:
            raise PreconditionViolation("kalman filter used before initialize()")
        return self.state

    def initialize(
        self,
        state: StateLike,
        uncertainty: float,
        system_noise: float,
        measurement_noise: float,
    ) -> None:
        """Start tracking at ``state`` with zero velocity.

        Parameters
        ----------
        state:
            Initial position of length ``n``.
        uncertainty:
            Diagonal of the initial error covariance ``P``.
        system_noise:
            Diagonal of the process noise ``Q``.
        measurement_noise:
            Diagonal of the measurement noise ``R``.
        """

        pos = as_state(state)
        n = pos.shape[0]
        self.state = np.concatenate([pos, np.zeros(n)])
        self.Q = np.eye(2 * n) * system_noise
        self.R = np.eye(n) * measurement_noise
        self.P = np.eye(2 * n) * uncertainty
        self._F = np.eye(2 * n)
        self._H = np.hstack([np.eye(n), np.zeros((n, n))])
        self._last_update = self._clock()

    def _propagate(self, dt: Optional[float]):
        """Return the predicted state, covariance and clock reading."""

        state = self._require_state()
        now = self._last_update
        if dt is None:
            now = self._clock()
            dt = now - self._last_update
        n = self.dims
        F = self._F.copy()
        F[:n, n:] = np.eye(n) * dt
        return F @ state, F @ self.P @ F.T + self.Q, now

    def predict(self, dt: Optional[float] = None) -> np.ndarray:
        """Propagate the covariance and return the predicted state.

        ``dt`` defaults to the clock time elapsed since the previous call.
        The stored state is only replaced by :meth:`update`.
        """

        x_hat, self.P, self._last_update = self._propagate(dt)
        return x_hat

    def update(self, measurement: StateLike, dt: Optional[float] = None) -> np.ndarray:
        """Fuse a position ``measurement`` and return the new state.

        Nothing is stored when the fusion fails.

        Raises
        ------
        DimensionMismatch
            If the measurement length differs from the tracked position.
        SingularMatrix
            If the innovation covariance cannot be inverted.
        """

        self._require_state()
        z = as_state(measurement, self.dims)
        x_hat, P, now = self._propagate(dt)
        H = self._H
        y = z - H @ x_hat
        PHt = P @ H.T
        try:
            S_inv = np.linalg.inv(H @ PHt + self.R)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrix(f"innovation covariance is singular: {exc}") from exc
        K = PHt @ S_inv
        self.state = x_hat + K @ y
        self.P = (np.eye(2 * self.dims) - K @ H) @ P
        self._last_update = now
        return self.state


__all__ = ["KalmanFilter"]
