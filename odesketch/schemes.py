"""
Embedded Runge-Kutta integrators.

An embedded method computes two solutions of different order from the same
stages; their difference estimates the local error, which the step-size
controller compares against the tolerance to accept or reject a step and to
propose the next step size.

Each integrator exposes a single-attempt operation (``attempt``) and a
retrying wrapper (``step``) bounded by ``IntegratorConfig.max_iterations``.
The driver in ``odesketch.solver`` only relies on ``step``, so any variant
below can be swapped in.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Type

import numpy as np

from odesketch.errors import ReachedMaxStepIter
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.problem import OdeProblem

logger = logging.getLogger(__name__)

# step shrink applied when a stage evaluates to inf/nan
NON_FINITE_SHRINK = 0.2


@dataclass(frozen=True)
class StepAttempt:
    accepted: bool
    y: np.ndarray
    error: float
    dt: float
    next_dt: float


@dataclass(frozen=True)
class Step:
    dt: float
    y: np.ndarray
    next_dt: float
    attempts: int


class AdaptiveIntegrator(ABC):
    """Integrator capability: attempt one adaptive step from (t, y)."""

    name = "adaptive"

    def __init__(self, config: IntegratorConfig = DEFAULT_INTEGRATOR_CONFIG):
        self.config = config

    @abstractmethod
    def attempt(self, problem: OdeProblem, t: float, y: Sequence[float], dt: float) -> StepAttempt:
        """Propose a step of size ``dt`` and decide whether to accept it."""

    def step(self, problem: OdeProblem, t: float, y: Sequence[float], dt: float) -> Step:
        """
        Advance from (t, y), shrinking ``dt`` until a step is accepted.

        At most ``config.max_iterations`` attempts are made. ReachedMaxStepIter
        is raised when none is accepted, or as soon as a rejected step is
        already at its smallest size; (t, y) is left as is.
        """
        for n in range(self.config.max_iterations):
            result = self.attempt(problem, t, y, dt)
            if result.accepted:
                return Step(dt=dt, y=result.y, next_dt=result.next_dt, attempts=n + 1)
            # a rejected step never grows, even when min_step is above dt
            next_dt = min(result.next_dt, dt)
            if next_dt >= dt:
                logger.debug(f"{self.name}: step of {dt:g} rejected at t={t:g} and cannot shrink")
                raise ReachedMaxStepIter(t, n + 1)
            dt = next_dt

        logger.debug(f"{self.name}: no step accepted at t={t:g} after {self.config.max_iterations} attempts")
        raise ReachedMaxStepIter(t, self.config.max_iterations)


class EmbeddedIntegrator(AdaptiveIntegrator):
    """
    Embedded explicit Runge-Kutta method given by its Butcher tableau.

    A: stage coefficients (lower triangular, shape (s, s))
    C: stage nodes
    B_HIGH: weights of the propagated solution
    B_LOW: weights of the embedded solution used for the error estimate
    ORDER: exponent of the controller, (tol / err) ** (1 / ORDER)
    """

    A: np.ndarray
    C: np.ndarray
    B_HIGH: np.ndarray
    B_LOW: np.ndarray
    ORDER: int

    @property
    def stages(self) -> int:
        return len(self.C)

    def attempt(self, problem: OdeProblem, t: float, y: Sequence[float], dt: float) -> StepAttempt:
        cfg = self.config
        y = np.asarray(y, dtype=float)
        k = np.zeros((self.stages, y.size), dtype=float)

        for i in range(self.stages):
            y_stage = y + dt * (self.A[i, :i] @ k[:i])
            problem.rhs(t + self.C[i] * dt, y_stage, k[i])

        y_new = y + dt * (self.B_HIGH @ k)
        err = dt * ((self.B_HIGH - self.B_LOW) @ k)

        if not (np.all(np.isfinite(k)) and np.all(np.isfinite(y_new))):
            return StepAttempt(False, y, np.inf, dt, cfg.clamp(dt * NON_FINITE_SHRINK))

        error = float(np.max(np.abs(err))) if err.size else 0.0
        if error == 0.0:
            next_dt = cfg.max_step
        else:
            factor = (cfg.relative_tolerance / error) ** (1.0 / self.ORDER)
            next_dt = cfg.clamp(cfg.safety_factor * dt * factor)

        if error < cfg.relative_tolerance:
            return StepAttempt(True, y_new, error, dt, next_dt)
        return StepAttempt(False, y, error, dt, next_dt)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config})"


class BS23(EmbeddedIntegrator):
    """Bogacki-Shampine 3(2)."""

    name = "BS23"
    C = np.array([0.0, 1 / 2, 3 / 4, 1.0])
    A = np.array([
        [0.0, 0.0, 0.0, 0.0],
        [1 / 2, 0.0, 0.0, 0.0],
        [0.0, 3 / 4, 0.0, 0.0],
        [2 / 9, 1 / 3, 4 / 9, 0.0],
    ])
    B_HIGH = np.array([2 / 9, 1 / 3, 4 / 9, 0.0])
    B_LOW = np.array([7 / 24, 1 / 4, 1 / 3, 1 / 8])
    ORDER = 3


class RKF45(EmbeddedIntegrator):
    """Runge-Kutta-Fehlberg 4(5), advancing with the 5th order solution."""

    name = "RKF45"
    C = np.array([0.0, 1 / 4, 3 / 8, 12 / 13, 1.0, 1 / 2])
    A = np.array([
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [1 / 4, 0.0, 0.0, 0.0, 0.0, 0.0],
        [3 / 32, 9 / 32, 0.0, 0.0, 0.0, 0.0],
        [1932 / 2197, -7200 / 2197, 7296 / 2197, 0.0, 0.0, 0.0],
        [439 / 216, -8.0, 3680 / 513, -845 / 4104, 0.0, 0.0],
        [-8 / 27, 2.0, -3544 / 2565, 1859 / 4104, -11 / 40, 0.0],
    ])
    B_HIGH = np.array([16 / 135, 0.0, 6656 / 12825, 28561 / 56430, -9 / 50, 2 / 55])
    B_LOW = np.array([25 / 216, 0.0, 1408 / 2565, 2197 / 4104, -1 / 5, 0.0])
    ORDER = 5


class DP45(EmbeddedIntegrator):
    """Dormand-Prince 5(4)."""

    name = "DP45"
    C = np.array([0.0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1.0, 1.0])
    A = np.array([
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [1 / 5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [3 / 40, 9 / 40, 0.0, 0.0, 0.0, 0.0, 0.0],
        [44 / 45, -56 / 15, 32 / 9, 0.0, 0.0, 0.0, 0.0],
        [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729, 0.0, 0.0, 0.0],
        [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656, 0.0, 0.0],
        [35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0.0],
    ])
    B_HIGH = np.array([35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0.0])
    B_LOW = np.array([5179 / 57600, 0.0, 7571 / 16695, 393 / 640, -92097 / 339200, 187 / 2100, 1 / 40])
    ORDER = 5


class EmbeddedMethod(Enum):
    BS23 = "bs23"
    RKF45 = "rkf45"
    DP45 = "dp45"

    @property
    def label(self) -> str:
        return METHOD_LABELS[self]


METHOD_LABELS: Dict[EmbeddedMethod, str] = {
    EmbeddedMethod.BS23: "BS23 (Bogacki–Shampine 3(2))",
    EmbeddedMethod.RKF45: "RKF45 (Runge–Kutta–Fehlberg 4(5))",
    EmbeddedMethod.DP45: "DP45 (Dormand–Prince 5(4))",
}

INTEGRATORS: Dict[EmbeddedMethod, Type[EmbeddedIntegrator]] = {
    EmbeddedMethod.BS23: BS23,
    EmbeddedMethod.RKF45: RKF45,
    EmbeddedMethod.DP45: DP45,
}


def make_integrator(
    method: EmbeddedMethod = EmbeddedMethod.RKF45,
    config: IntegratorConfig = DEFAULT_INTEGRATOR_CONFIG,
) -> EmbeddedIntegrator:
    return INTEGRATORS[EmbeddedMethod(method)](config)
