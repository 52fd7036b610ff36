"""
Settings snapshot read by the solver.

The page (or the command line) owns the settings and hands a frozen
``OdeSettings`` value to ``solve_ode`` / ``compute_ode_solution``; nothing in
the solving pipeline reads global state.
"""
from dataclasses import dataclass, field, replace
from typing import Tuple

from odesketch.expressions import OdeInputs
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.schemes import EmbeddedMethod
from odesketch.symbols import CoordinateFrame

DEFAULT_EXPRESSION = "x^2 - 7y - 10"
DEFAULT_INITIAL_STEP = 1e-3
# upper bound of the integration length widget
MAX_INTEGRATION_LENGTH = 20.0


def _default_inputs() -> OdeInputs:
    return OdeInputs.from_texts([DEFAULT_EXPRESSION])


@dataclass(frozen=True)
class OdeSettings:
    inputs: OdeInputs = field(default_factory=_default_inputs)
    coordinate: CoordinateFrame = CoordinateFrame.CARTESIAN
    ics: Tuple[float, float] = (1.0, 1.0)
    integration_length: float = 10.0
    dimensions: int = 1
    method: EmbeddedMethod = EmbeddedMethod.RKF45
    initial_step: float = DEFAULT_INITIAL_STEP
    integrator: IntegratorConfig = DEFAULT_INTEGRATOR_CONFIG

    def __post_init__(self):
        if len(self.ics) != 2:
            raise ValueError(f"Initial condition must be a point (x, y), got {self.ics}")
        object.__setattr__(self, "ics", tuple(float(v) for v in self.ics))

    def with_expression(self, text: str, index: int = 0) -> "OdeSettings":
        return replace(self, inputs=self.inputs.with_input(index, text))

    def updated(self, **changes) -> "OdeSettings":
        return replace(self, **changes)


DEFAULT_SETTINGS = OdeSettings()
