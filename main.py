import logging

import streamlit as st
import sympy as sp

from odesketch.config import DEFAULT_SETTINGS, MAX_INTEGRATION_LENGTH, OdeSettings
from odesketch.errors import CompileError, OdeError
from odesketch.logging_config import setup_logging
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.plotting import sample_table, trajectory_figure
from odesketch.schemes import EmbeddedMethod
from odesketch.solver import compute_ode_solution
from odesketch.symbols import CoordinateFrame

logger = logging.getLogger("odesketch.app")


@st.cache_resource
def _init_logging():
    # once per server process, not once per rerun
    setup_logging(level=logging.INFO, metrics_file="metrics.log")
    return True


def _expression_latex(settings: OdeSettings) -> str:
    indep, dep = settings.coordinate.symbol_names
    lhs = rf"\frac{{d{sp.latex(sp.Symbol(dep))}}}{{d{sp.latex(sp.Symbol(indep))}}}"
    rhs = sp.latex(settings.inputs.parsed[0].expr)
    return f"{lhs} = {rhs}"


def app():
    st.set_page_config(page_title="odesketch", layout="wide")
    _init_logging()
    st.title("ODE Sketch")

    # CSS
    st.markdown("""
    <style>
    /* Style for the reset button */
    div.stButton > button:first-child {
        background-color: #0D6EFD;
        color: white;
        border: 2px solid #0D6EFD;
        border-radius: 8px;
        padding: 0.5em 1em;
        font-weight: 600;
    }

    /* Disabled */
    div.stButton > button:disabled {
        background-color: #D3D3D3 !important;
        color: #FFFFFF !important;
        border: 1px solid #C0C0C0 !important;
    }
    </style>
    """, unsafe_allow_html=True)

    st.subheader("Define the ODE")

    frame = st.radio(
        "**Coordinate system**",
        options=[f for f in CoordinateFrame],
        format_func=lambda f: f.label,
        horizontal=True,
        key="frame",
        help="Cartesian solves dy/dx = f(x, y); polar solves dθ/dr = f(r, θ)."
    )
    indep, dep = frame.symbol_names

    expr_text = st.text_input(
        f"f({indep}, {dep}) =",
        value=DEFAULT_SETTINGS.inputs.inputs[0],
        key="ode_expr",
        help="Use ^ or ** for powers, e.g. x^2 - 7y - 10 or sin(theta) / r.",
    )

    # Initial condition and domain
    with st.expander("Initial condition and domain", expanded=True):
        c1, c2, c3 = st.columns(3)
        with c1:
            x0 = st.number_input("x₀", value=DEFAULT_SETTINGS.ics[0], step=0.1, format="%.2f", key="ic_x")
        with c2:
            y0 = st.number_input("y₀", value=DEFAULT_SETTINGS.ics[1], step=0.1, format="%.2f", key="ic_y")
        with c3:
            integration_length = st.slider(
                "Integration length",
                min_value=0.0,
                max_value=MAX_INTEGRATION_LENGTH,
                value=DEFAULT_SETTINGS.integration_length,
                step=0.1,
                key="integration_length",
            )

    # Solver Settings
    st.subheader("Solver Method and Settings")

    DEFAULTS = {
        "method": DEFAULT_SETTINGS.method,
        "rtol": DEFAULT_INTEGRATOR_CONFIG.relative_tolerance,
        "safety": DEFAULT_INTEGRATOR_CONFIG.safety_factor,
        "min_step": DEFAULT_INTEGRATOR_CONFIG.min_step,
        "max_step": DEFAULT_INTEGRATOR_CONFIG.max_step,
        "max_iter": DEFAULT_INTEGRATOR_CONFIG.max_iterations,
    }

    method = st.selectbox(
        "Embedded method",
        options=[m for m in EmbeddedMethod],
        format_func=lambda m: m.label,
        index=list(EmbeddedMethod).index(DEFAULTS["method"]),
        help="RKF45 is a good general-purpose choice.",
        key="method_choice",
    )

    show_extra = st.checkbox("Customize method parameters (advanced)",
                             help="Leave unchecked to use recommended defaults. Check to override.",
                             value=False)

    integrator = DEFAULT_INTEGRATOR_CONFIG
    if show_extra:
        with st.expander("Method Parameters", expanded=True):
            c1, c2, c3 = st.columns(3)
            with c1:
                st.number_input("Tolerance", key="rtol", value=DEFAULTS["rtol"], format="%.1e",
                                help="Smaller = more accurate, slower.")
                st.number_input("Safety factor", key="safety", min_value=0.01, max_value=1.0,
                                value=DEFAULTS["safety"], step=0.05, format="%.2f")
            with c2:
                st.number_input("Min step size", key="min_step", min_value=1e-12,
                                value=DEFAULTS["min_step"], format="%.1e")
                st.number_input("Max step size", key="max_step", min_value=1e-12,
                                value=DEFAULTS["max_step"], format="%.1e")
            with c3:
                st.number_input("Max iterations per step", key="max_iter", min_value=0,
                                value=DEFAULTS["max_iter"], step=100,
                                help="Attempts at a single point before the curve is cut short.")

            # Check if anything changed from defaults
            has_changed = any(st.session_state[k] != DEFAULTS[k]
                              for k in ("rtol", "safety", "min_step", "max_step", "max_iter"))

            st.button(
                "Reset to recommended defaults",
                disabled=not has_changed,
                on_click=lambda: st.session_state.update({
                    k: DEFAULTS[k] for k in ("rtol", "safety", "min_step", "max_step", "max_iter")
                })
            )

            try:
                integrator = IntegratorConfig(
                    relative_tolerance=float(st.session_state["rtol"]),
                    safety_factor=float(st.session_state["safety"]),
                    min_step=float(st.session_state["min_step"]),
                    max_step=float(st.session_state["max_step"]),
                    max_iterations=int(st.session_state["max_iter"]),
                )
            except ValueError as e:
                st.error(f"Invalid method parameters: {e}")
                st.stop()

    settings = DEFAULT_SETTINGS.with_expression(expr_text).updated(
        coordinate=frame,
        ics=(float(x0), float(y0)),
        integration_length=float(integration_length),
        method=method,
        integrator=integrator,
    )

    # Preview (LaTeX)
    if settings.inputs.ok:
        st.latex(_expression_latex(settings))

    # Solve on every rerun; keep showing the last good curve when this one fails
    try:
        trajectory = compute_ode_solution(settings)
        st.session_state["last_solution"] = (trajectory, settings)
    except CompileError as e:
        st.error(str(e))
    except OdeError as e:
        logger.error(f"Failed to solve ODE: {e}")
        st.error(f"Solver error: {e}")

    last = st.session_state.get("last_solution")
    if last is None:
        return
    trajectory, shown = last

    if trajectory.truncated:
        st.warning(f"Integration stopped early at {indep} = {trajectory.t_end:.4g} "
                   "(no acceptable step within the iteration limit).")

    st.markdown("#### Solution Plot")
    fig = trajectory_figure(trajectory, shown.coordinate, ics=shown.ics,
                            name=shown.inputs.inputs[0])
    st.plotly_chart(fig, use_container_width=True)

    st.markdown("#### Sample of solution values")
    st.dataframe(sample_table(trajectory, shown.coordinate))
    st.caption(f"{len(trajectory)} samples")


if __name__ == "__main__":
    app()
