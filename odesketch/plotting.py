import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import plotly.graph_objects as go

from odesketch.coordinates import from_solver_frame
from odesketch.symbols import CoordinateFrame

logger = logging.getLogger(__name__)

CURVE_COLOR = "rgb(31, 101, 245)"
IC_COLOR = "red"


@dataclass(frozen=True)
class PlotSettings:
    x_min: float = -10.0
    x_max: float = 10.0
    y_min: float = -10.0
    y_max: float = 10.0


DEFAULT_PLOT_SETTINGS = PlotSettings()


def finite_prefix(xs: np.ndarray, ys: np.ndarray):
    """
    Samples up to (not including) the first non-finite point.

    The curve is drawn as one polyline, so it stops where the solution blows up.
    """
    finite = np.isfinite(xs) & np.isfinite(ys)
    if finite.all():
        return xs, ys
    cut = int(np.argmin(finite))
    logger.warning(f"Found non-finite point: ({xs[cut]}, {ys[cut]}) (sample {cut})")
    return xs[:cut], ys[:cut]


def trajectory_figure(
    trajectory,
    frame: CoordinateFrame,
    ics: Optional[Sequence[float]] = None,
    plot_settings: PlotSettings = DEFAULT_PLOT_SETTINGS,
    name: str = "solution",
) -> go.Figure:
    """Plotly figure of the trajectory in display (Cartesian) coordinates."""
    xs, ys = finite_prefix(*from_solver_frame(frame, trajectory))

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=xs,
            y=ys,
            mode="lines",
            name=name,
            line=dict(color=CURVE_COLOR, width=2),
            hovertemplate="x=%{x}<br>y=%{y}<extra></extra>",
        )
    )

    if ics is not None:
        fig.add_trace(
            go.Scatter(
                x=[ics[0]],
                y=[ics[1]],
                mode="markers",
                name="initial condition",
                marker=dict(color=IC_COLOR, size=10),
                hovertemplate="x₀=%{x}<br>y₀=%{y}<extra></extra>",
            )
        )

    fig.update_layout(
        xaxis_title="x",
        yaxis_title="y",
        template="plotly_white",
        legend_title_text="Components",
        margin=dict(l=40, r=20, t=60, b=40),
    )
    fig.update_xaxes(range=[plot_settings.x_min, plot_settings.x_max], showgrid=True)
    fig.update_yaxes(range=[plot_settings.y_min, plot_settings.y_max], showgrid=True)
    return fig


def sample_table(trajectory, frame: CoordinateFrame, show_n: int = 10) -> Dict[str, np.ndarray]:
    """First ``show_n`` samples, in solver and display coordinates."""
    indep, dep = frame.symbol_names
    show_n = min(show_n, len(trajectory))
    xs, ys = from_solver_frame(frame, trajectory)

    table = {indep: trajectory.t[:show_n], dep: trajectory.y[:show_n, 0]}
    if frame is CoordinateFrame.POLAR:
        table["x"] = xs[:show_n]
        table["y"] = ys[:show_n]
    return table
