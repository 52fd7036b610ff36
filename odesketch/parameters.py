import math
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class IntegratorConfig:
    """
    Step-size controller settings of an embedded integrator.

    relative_tolerance: accept a step when the local error estimate is below this
    safety_factor: scales the proposed next step (0 < safety_factor <= 1)
    min_step, max_step: bounds every proposed step is clamped to
    max_iterations: attempts allowed at a single t before giving up
    """

    relative_tolerance: float = 1e-4
    safety_factor: float = 0.9
    min_step: float = 1e-6
    max_step: float = 1e-2
    max_iterations: int = 1000

    def __post_init__(self):
        if not (self.relative_tolerance > 0 and math.isfinite(self.relative_tolerance)):
            raise ValueError(f"relative_tolerance must be positive, got {self.relative_tolerance}")
        if not (0 < self.safety_factor <= 1):
            raise ValueError(f"safety_factor must be in (0, 1], got {self.safety_factor}")
        if not (self.min_step > 0 and math.isfinite(self.min_step)):
            raise ValueError(f"min_step must be positive, got {self.min_step}")
        if not (self.max_step >= self.min_step):
            raise ValueError(
                f"max_step ({self.max_step}) must not be smaller than min_step ({self.min_step})"
            )
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 0:
            raise ValueError(f"max_iterations must be a non-negative integer, got {self.max_iterations}")

    def clamp(self, dt: float) -> float:
        return min(max(dt, self.min_step), self.max_step)

    def updated(self, **changes) -> "IntegratorConfig":
        return replace(self, **changes)


DEFAULT_INTEGRATOR_CONFIG = IntegratorConfig()
