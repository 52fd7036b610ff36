"""Tests for odesketch/schemes.py: embedded Runge-Kutta integrators."""

import math

import numpy as np
import pytest

from odesketch.errors import ReachedMaxStepIter
from odesketch.expressions import compile_expressions, parse_expression
from odesketch.parameters import IntegratorConfig
from odesketch.problem import ExpressionProblem
from odesketch.schemes import (
    BS23,
    DP45,
    INTEGRATORS,
    NON_FINITE_SHRINK,
    RKF45,
    EmbeddedMethod,
    make_integrator,
)
from odesketch.symbols import CoordinateFrame

ALL_METHODS = [BS23, RKF45, DP45]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _compile(text: str, frame: CoordinateFrame = CoordinateFrame.CARTESIAN):
    return compile_expressions([parse_expression(text)], frame)


def _problem(text: str) -> ExpressionProblem:
    return ExpressionProblem(_compile(text, CoordinateFrame.CARTESIAN))


class CountingProblem:
    """Wraps a problem and counts rhs evaluations."""

    def __init__(self, inner):
        self.inner = inner
        self.dimensions = inner.dimensions
        self.calls = 0

    def rhs(self, t, y, dy):
        self.calls += 1
        self.inner.rhs(t, y, dy)


def _integrate(integrator, problem, t_end, y0, dt=1e-3):
    t, y = 0.0, np.array([y0], dtype=float)
    while t < t_end:
        step = integrator.step(problem, t, y, min(dt, t_end - t))
        t = t_end if step.dt >= t_end - t else t + step.dt
        y, dt = step.y, step.next_dt
    return y[0]


# ---------------------------------------------------------------------------
# Tableaux
# ---------------------------------------------------------------------------

class TestTableaux:
    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_weights_sum_to_one(self, cls):
        assert cls.B_HIGH.sum() == pytest.approx(1.0)
        assert cls.B_LOW.sum() == pytest.approx(1.0)

    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_rows_sum_to_nodes(self, cls):
        np.testing.assert_allclose(cls.A.sum(axis=1), cls.C, atol=1e-12)

    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_explicit(self, cls):
        assert np.allclose(np.triu(cls.A), 0.0)

    def test_controller_orders(self):
        assert BS23.ORDER == 3
        assert RKF45.ORDER == 5
        assert DP45.ORDER == 5


# ---------------------------------------------------------------------------
# Single attempts
# ---------------------------------------------------------------------------

class TestAttempt:
    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_accepts_smooth_step(self, cls):
        integrator = cls()
        result = integrator.attempt(_problem("y"), 0.0, [1.0], 0.01)
        assert result.accepted
        assert result.y[0] == pytest.approx(math.exp(0.01), abs=1e-8)
        assert result.error < integrator.config.relative_tolerance
        assert integrator.config.min_step <= result.next_dt <= integrator.config.max_step

    def test_rejects_large_error(self):
        integrator = RKF45(IntegratorConfig(relative_tolerance=1e-6))
        result = integrator.attempt(_problem("100*y"), 0.0, [1.0], 0.01)
        assert not result.accepted
        assert result.error >= 1e-6
        assert result.next_dt < 0.01
        assert result.y[0] == 1.0

    def test_zero_error_proposes_max_step(self):
        cfg = IntegratorConfig(max_step=0.05)
        result = RKF45(cfg).attempt(_problem("0"), 0.0, [3.0], 0.001)
        assert result.accepted
        assert result.error == 0.0
        assert result.next_dt == 0.05

    def test_non_finite_stage_rejected(self):
        cfg = IntegratorConfig()
        result = RKF45(cfg).attempt(_problem("1/(x - 1)"), 1.0, [0.0], 0.01)
        assert not result.accepted
        assert math.isinf(result.error)
        assert result.next_dt == pytest.approx(0.01 * NON_FINITE_SHRINK)
        assert np.all(np.isfinite(result.y))

    def test_non_finite_shrink_is_clamped(self):
        cfg = IntegratorConfig(min_step=1e-3)
        result = DP45(cfg).attempt(_problem("sqrt(x - 2)"), 0.0, [0.0], 1e-3)
        assert not result.accepted
        assert result.next_dt == 1e-3


# ---------------------------------------------------------------------------
# Retrying step
# ---------------------------------------------------------------------------

class TestStep:
    def test_retries_until_accepted(self):
        integrator = RKF45(IntegratorConfig(relative_tolerance=1e-6))
        step = integrator.step(_problem("100*y"), 0.0, [1.0], 0.01)
        assert step.attempts > 1
        assert step.dt < 0.01
        assert step.y[0] == pytest.approx(math.exp(100 * step.dt), rel=1e-5)

    def test_first_attempt_accepted(self):
        step = RKF45().step(_problem("y"), 0.0, [1.0], 0.001)
        assert step.attempts == 1
        assert step.dt == 0.001

    def test_gives_up(self):
        integrator = RKF45(IntegratorConfig(max_iterations=5))
        with pytest.raises(ReachedMaxStepIter) as info:
            integrator.step(_problem("sqrt(x - 2)"), 0.0, [0.0], 0.01)
        assert info.value.t == 0.0
        assert info.value.attempts == 5

    def test_zero_iterations_makes_no_attempt(self):
        problem = CountingProblem(_problem("y"))
        integrator = RKF45(IntegratorConfig(max_iterations=0))
        with pytest.raises(ReachedMaxStepIter):
            integrator.step(problem, 0.0, [1.0], 0.01)
        assert problem.calls == 0

    def test_rejected_step_never_grows(self):
        # min_step above the requested dt: the clamped proposal must not be used
        cfg = IntegratorConfig(min_step=0.1, max_step=1.0, max_iterations=3)
        seen = []

        class Recording(RKF45):
            def attempt(self, problem, t, y, dt):
                seen.append(dt)
                return super().attempt(problem, t, y, dt)

        with pytest.raises(ReachedMaxStepIter) as info:
            Recording(cfg).step(_problem("sqrt(x - 2)"), 0.0, [0.0], 0.01)
        assert seen == [0.01]
        assert info.value.attempts == 1

    def test_stops_once_step_cannot_shrink(self):
        # 0.01 shrinks by 0.2 per rejection down to min_step = 1e-6
        problem = CountingProblem(_problem("sqrt(x - 2)"))
        integrator = RKF45(IntegratorConfig(max_iterations=1000))
        with pytest.raises(ReachedMaxStepIter) as info:
            integrator.step(problem, 0.0, [0.0], 0.01)
        assert info.value.attempts == 7
        assert problem.calls == 7 * integrator.stages


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------

class TestAccuracy:
    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_exponential_growth(self, cls):
        y = _integrate(cls(), _problem("y"), 1.0, 1.0)
        assert y == pytest.approx(math.e, abs=1e-5)

    @pytest.mark.parametrize("cls", ALL_METHODS)
    def test_non_autonomous(self, cls):
        # y' = 2x, y(0) = 0  =>  y = x^2
        y = _integrate(cls(), _problem("2x"), 2.0, 0.0)
        assert y == pytest.approx(4.0, abs=1e-8)

    def test_decay(self):
        y = _integrate(DP45(), _problem("-3y"), 1.0, 2.0)
        assert y == pytest.approx(2.0 * math.exp(-3.0), abs=1e-6)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestMakeIntegrator:
    @pytest.mark.parametrize("method", list(EmbeddedMethod))
    def test_builds_each_method(self, method):
        cfg = IntegratorConfig(relative_tolerance=1e-5)
        integrator = make_integrator(method, cfg)
        assert isinstance(integrator, INTEGRATORS[method])
        assert integrator.config is cfg

    def test_accepts_value_string(self):
        assert isinstance(make_integrator("dp45"), DP45)

    def test_default_is_rkf45(self):
        assert isinstance(make_integrator(), RKF45)

    def test_labels(self):
        assert "Fehlberg" in EmbeddedMethod.RKF45.label
