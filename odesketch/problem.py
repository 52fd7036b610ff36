from typing import Optional, Protocol, Sequence

import numpy as np

from odesketch.errors import DimensionError
from odesketch.expressions import CompiledEvaluator


class OdeProblem(Protocol):
    """Anything that can evaluate dy/dt at (t, y)."""

    dimensions: int

    def rhs(self, t: float, y: Sequence[float], dy: np.ndarray) -> None:
        ...


class ExpressionProblem:
    """
    Right-hand side backed by a compiled user expression.

    Every call builds its own ``[t, y...]`` input vector, so the problem can be
    evaluated any number of times without state carried between calls.
    """

    def __init__(self, evaluator: CompiledEvaluator, dimensions: Optional[int] = None):
        self.evaluator = evaluator
        self.dimensions = evaluator.dimensions if dimensions is None else int(dimensions)
        if self.dimensions != evaluator.dimensions:
            raise DimensionError(
                f"Evaluator has {evaluator.dimensions} output(s), expected {self.dimensions}"
            )
        if 1 + self.dimensions != evaluator.n_inputs:
            raise DimensionError(
                f"Evaluator takes {evaluator.n_inputs} input(s), "
                f"expected t plus {self.dimensions} state variable(s)"
            )

    def rhs(self, t: float, y: Sequence[float], dy: np.ndarray) -> None:
        if len(y) != self.dimensions:
            raise DimensionError(
                f"y has the wrong length. Expected {self.dimensions}, got {len(y)}"
            )
        if len(dy) != self.dimensions:
            raise DimensionError(
                f"dy has the wrong length. Expected {self.dimensions}, got {len(dy)}"
            )

        inputs = np.empty(1 + self.dimensions, dtype=float)
        inputs[0] = t
        inputs[1:] = y
        self.evaluator.evaluate(inputs, dy)

    def __call__(self, t: float, y: Sequence[float]) -> np.ndarray:
        """``f(t, y)`` signature, as expected by scipy's solve_ivp."""
        dy = np.empty(self.dimensions, dtype=float)
        self.rhs(t, y, dy)
        return dy
