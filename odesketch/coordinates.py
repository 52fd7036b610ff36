"""
Mapping between the displayed (Cartesian) plane and the solver's variables.

In the Cartesian frame the ODE is dy/dx = f(x, y): x is the independent
variable and y the state. In the polar frame it is dtheta/dr = f(r, theta), so
the clicked point (x0, y0) becomes the radius r0 (start of the span) and the
angle theta0 (initial state).
"""
import math
from typing import Sequence, Tuple

import numpy as np

from odesketch.symbols import CoordinateFrame


def solver_span(ics: Sequence[float], integration_length: float) -> Tuple[float, float]:
    """Display-frame span (x0, x0 + integration_length)."""
    x0 = float(ics[0])
    return x0, x0 + float(integration_length)


def to_solver_frame(
    frame: CoordinateFrame,
    ics: Sequence[float],
    t_span: Tuple[float, float],
) -> Tuple[list, Tuple[float, float]]:
    """
    Map the initial point and the integration bounds into the solver frame.

    Returns ``(state, span)`` where ``state`` is the one-element initial state.

    For the polar frame the terminal radius is computed from ``x_n`` and the
    *initial* y, i.e. ``sqrt(x_n**2 + y0**2)``.
    """
    x0, y0 = float(ics[0]), float(ics[1])
    xn = float(t_span[1])

    if frame is CoordinateFrame.POLAR:
        r0 = math.sqrt(x0 ** 2 + y0 ** 2)
        rn = math.sqrt(xn ** 2 + y0 ** 2)
        theta0 = math.atan2(y0, x0)
        return [theta0], (r0, rn)

    return [y0], (float(t_span[0]), xn)


def point_to_display(frame: CoordinateFrame, abscissa: float, ordinate: float) -> Tuple[float, float]:
    if frame is CoordinateFrame.POLAR:
        r, theta = abscissa, ordinate
        return r * math.cos(theta), r * math.sin(theta)
    return abscissa, ordinate


def from_solver_frame(frame: CoordinateFrame, trajectory) -> Tuple[np.ndarray, np.ndarray]:
    """
    Display coordinates (xs, ys) of every trajectory sample.

    Polar samples (r, theta) become (r cos(theta), r sin(theta)).
    """
    t = np.asarray(trajectory.t, dtype=float)
    y = np.asarray(trajectory.y, dtype=float)[:, 0]

    if frame is CoordinateFrame.POLAR:
        return t * np.cos(y), t * np.sin(y)
    return t.copy(), y.copy()
