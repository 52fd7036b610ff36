import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from odesketch.config import OdeSettings
from odesketch.coordinates import solver_span, to_solver_frame
from odesketch.errors import DimensionError, ReachedMaxStepIter, UnimplementedSystem
from odesketch.expressions import compile_inputs
from odesketch.problem import ExpressionProblem, OdeProblem
from odesketch.schemes import AdaptiveIntegrator, make_integrator

logger = logging.getLogger(__name__)
metrics = logging.getLogger("odesketch.metrics")


@dataclass(frozen=True)
class Trajectory:
    """
    Samples (t_i, y_i) of one solve.

    t has shape (n,), y has shape (n, dimensions). Both arrays are read-only.
    ``truncated`` is set when integration stopped before the end of the span
    because no step could be accepted.
    """

    t: np.ndarray
    y: np.ndarray
    truncated: bool = False

    def __post_init__(self):
        t = np.array(self.t, dtype=float)
        y = np.array(self.y, dtype=float).reshape(len(t), -1)
        t.setflags(write=False)
        y.setflags(write=False)
        object.__setattr__(self, "t", t)
        object.__setattr__(self, "y", y)

    def __len__(self) -> int:
        return len(self.t)

    @property
    def dimensions(self) -> int:
        return self.y.shape[1]

    @property
    def t_end(self) -> float:
        return float(self.t[-1])


class MaxStepSolver:
    """
    Drives an adaptive integrator from t_span[0] to t_span[1].

    The loop ends at the end of the span or when the integrator gives up
    (ReachedMaxStepIter); the latter still returns the samples accumulated so
    far, flagged as truncated.
    """

    def __init__(self, integrator: AdaptiveIntegrator):
        self.integrator = integrator

    def solve(
        self,
        problem: OdeProblem,
        t_span: Tuple[float, float],
        dt: float,
        initial_conditions: Sequence[float],
    ) -> Trajectory:
        if len(initial_conditions) != problem.dimensions:
            raise DimensionError(
                f"Expected {problem.dimensions} initial condition(s), got {len(initial_conditions)}"
            )

        t, t_end = float(t_span[0]), float(t_span[1])
        dt = self.integrator.config.clamp(float(dt))
        y = np.array(initial_conditions, dtype=float)
        t_vec = [t]
        y_vec = [y.copy()]
        truncated = False

        while t < t_end:
            remaining = t_end - t
            try:
                step = self.integrator.step(problem, t, y, min(dt, remaining))
            except ReachedMaxStepIter as e:
                logger.warning(f"Stopping integration early: {e}")
                truncated = True
                break

            t_next = t_end if step.dt >= remaining else t + step.dt
            if t_next <= t:
                logger.warning(f"Step size {step.dt:g} too small to advance from t={t:g}")
                truncated = True
                break

            t, y = t_next, step.y
            t_vec.append(t)
            y_vec.append(y.copy())
            dt = step.next_dt

        return Trajectory(np.array(t_vec), np.array(y_vec), truncated=truncated)


def solve_ode(
    settings: OdeSettings,
    t_span: Tuple[float, float],
    dt: float,
    ics: Sequence[float],
    integrator: Optional[AdaptiveIntegrator] = None,
) -> Trajectory:
    """
    Compile the settings' expression and integrate it over ``t_span``.

    Raises UnimplementedSystem for systems (dimensions > 1), and
    ParseFailed / BuildFailed when the expression cannot be compiled. Neither
    case touches the integrator.
    """
    if settings.dimensions != 1:
        raise UnimplementedSystem(settings.dimensions)

    metrics.debug(f"solve_ode: t_span={t_span} dt={dt} ics={list(ics)} method={settings.method.value}")
    start = time.perf_counter()

    evaluator = compile_inputs(settings.inputs, settings.coordinate)
    problem = ExpressionProblem(evaluator, settings.dimensions)
    compiled = time.perf_counter()
    metrics.debug(f"compiled {evaluator!r} in {(compiled - start) * 1e3:.3f} ms")

    if integrator is None:
        integrator = make_integrator(settings.method, settings.integrator)
    metrics.debug(f"integrator: {integrator!r}")

    trajectory = MaxStepSolver(integrator).solve(problem, t_span, dt, ics)
    metrics.debug(
        f"solved {len(trajectory)} samples up to t={trajectory.t_end:g} "
        f"(truncated={trajectory.truncated}) in {(time.perf_counter() - compiled) * 1e3:.3f} ms"
    )
    return trajectory


def compute_ode_solution(settings: OdeSettings, integrator: Optional[AdaptiveIntegrator] = None) -> Trajectory:
    """
    Solve the ODE starting at the settings' initial point.

    The initial point and the span (x0, x0 + integration_length) are mapped
    into the solver frame first; the returned trajectory is in solver
    coordinates (see ``odesketch.coordinates.from_solver_frame``).
    """
    if settings.dimensions != 1:
        raise UnimplementedSystem(settings.dimensions)

    span = solver_span(settings.ics, settings.integration_length)
    state, t_span = to_solver_frame(settings.coordinate, settings.ics, span)
    return solve_ode(settings, t_span, settings.initial_step, state, integrator=integrator)
