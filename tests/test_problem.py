"""Tests for odesketch/problem.py."""

import math

import numpy as np
import pytest

from odesketch.errors import DimensionError
from odesketch.expressions import compile_expressions, parse_expression
from odesketch.problem import ExpressionProblem
from odesketch.symbols import CoordinateFrame


def _compile(text: str, frame: CoordinateFrame = CoordinateFrame.CARTESIAN):
    return compile_expressions([parse_expression(text)], frame)


def _problem(text: str, frame: CoordinateFrame = CoordinateFrame.CARTESIAN) -> ExpressionProblem:
    return ExpressionProblem(_compile(text, frame))


class TestExpressionProblem:
    def test_dimensions_from_evaluator(self):
        assert _problem("x + y").dimensions == 1

    def test_rhs(self):
        problem = _problem("x^2 - 7y - 10")
        dy = np.zeros(1)
        problem.rhs(2.0, [1.0], dy)
        assert dy[0] == pytest.approx(4.0 - 7.0 - 10.0)

    def test_call_signature(self):
        problem = _problem("x * y")
        np.testing.assert_allclose(problem(3.0, [2.0]), [6.0])

    def test_repeated_calls_are_independent(self):
        problem = _problem("x + y")
        first = problem(1.0, [1.0])
        problem(5.0, [5.0])
        again = problem(1.0, [1.0])
        assert first[0] == again[0] == 2.0

    def test_dimension_mismatch_on_construction(self):
        ev = _compile("x + y", CoordinateFrame.CARTESIAN)
        with pytest.raises(DimensionError):
            ExpressionProblem(ev, dimensions=2)

    def test_wrong_state_length(self):
        problem = _problem("x + y")
        with pytest.raises(DimensionError, match="Expected 1, got 2"):
            problem.rhs(0.0, [1.0, 2.0], np.zeros(1))

    def test_wrong_output_length(self):
        problem = _problem("x + y")
        with pytest.raises(DimensionError):
            problem.rhs(0.0, [1.0], np.zeros(3))

    def test_dimension_error_is_value_error(self):
        problem = _problem("y")
        with pytest.raises(ValueError):
            problem.rhs(0.0, [], np.zeros(1))

    def test_pole_gives_inf(self):
        problem = _problem("1/(x - 1)")
        dy = np.zeros(1)
        problem.rhs(1.0, [0.0], dy)
        assert math.isinf(dy[0])
