import argparse
import logging
import sys
from typing import List, Optional

from odesketch.config import DEFAULT_EXPRESSION, DEFAULT_INITIAL_STEP, OdeSettings
from odesketch.coordinates import point_to_display
from odesketch.errors import OdeError
from odesketch.expressions import OdeInputs
from odesketch.logging_config import setup_logging
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.plotting import sample_table, trajectory_figure
from odesketch.schemes import EmbeddedMethod
from odesketch.solver import compute_ode_solution
from odesketch.symbols import CoordinateFrame

logger = logging.getLogger(__name__)

VERBOSITY = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]


def build_parser() -> argparse.ArgumentParser:
    cfg = DEFAULT_INTEGRATOR_CONFIG
    parser = argparse.ArgumentParser(
        prog="odesketch",
        description="Solve dy/dx = f(x, y) (or dtheta/dr = f(r, theta)) from an initial point.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default equation from (1, 1)
  python -m odesketch

  # Polar frame, written to an interactive HTML plot
  python -m odesketch --expr "sin(theta) / r" --frame polar --ics 2 1 --html spiral.html

  # Interactive page
  streamlit run main.py
        """
    )

    parser.add_argument('-v', '--verbose', action='count', default=0, help='More output (repeat for debug)')
    parser.add_argument('-q', '--quiet', action='count', default=0, help='Less output')
    parser.add_argument('--expr', type=str, default=DEFAULT_EXPRESSION,
                        help=f'Right-hand side f (default: "{DEFAULT_EXPRESSION}")')
    parser.add_argument('--frame', type=str, choices=[f.value for f in CoordinateFrame],
                        default=CoordinateFrame.CARTESIAN.value, help='Coordinate frame (default: cartesian)')
    parser.add_argument('--ics', type=float, nargs=2, metavar=('X', 'Y'), default=(1.0, 1.0),
                        help='Initial point (default: 1 1)')
    parser.add_argument('--length', type=float, default=10.0, help='Integration length (default: 10.0)')
    parser.add_argument('--method', type=str, choices=[m.value for m in EmbeddedMethod],
                        default=EmbeddedMethod.RKF45.value, help='Embedded method (default: rkf45)')
    parser.add_argument('--tolerance', type=float, default=cfg.relative_tolerance,
                        help=f'Error tolerance (default: {cfg.relative_tolerance})')
    parser.add_argument('--safety', type=float, default=cfg.safety_factor,
                        help=f'Safety factor (default: {cfg.safety_factor})')
    parser.add_argument('--min-step', type=float, default=cfg.min_step,
                        help=f'Minimum step size (default: {cfg.min_step})')
    parser.add_argument('--max-step', type=float, default=cfg.max_step,
                        help=f'Maximum step size (default: {cfg.max_step})')
    parser.add_argument('--max-iterations', type=int, default=cfg.max_iterations,
                        help=f'Attempts per step before giving up (default: {cfg.max_iterations})')
    parser.add_argument('--initial-step', type=float, default=DEFAULT_INITIAL_STEP,
                        help=f'First step size (default: {DEFAULT_INITIAL_STEP})')
    parser.add_argument('--points', type=int, default=10, help='Number of samples to print (default: 10)')
    parser.add_argument('--html', type=str, help='Write the plot to an HTML file')
    parser.add_argument('--log-file', type=str, help='Also write logs to this file')
    parser.add_argument('--metrics-file', type=str, help='Write solve metrics to this file')
    return parser


def settings_from_args(args: argparse.Namespace) -> OdeSettings:
    integrator = IntegratorConfig(
        relative_tolerance=args.tolerance,
        safety_factor=args.safety,
        min_step=args.min_step,
        max_step=args.max_step,
        max_iterations=args.max_iterations,
    )
    return OdeSettings(
        inputs=OdeInputs.from_texts([args.expr]),
        coordinate=CoordinateFrame(args.frame),
        ics=tuple(args.ics),
        integration_length=args.length,
        method=EmbeddedMethod(args.method),
        initial_step=args.initial_step,
        integrator=integrator,
    )


def _format_table(table) -> str:
    names = list(table)
    rows = ["  ".join(f"{name:>14}" for name in names)]
    for values in zip(*table.values()):
        rows.append("  ".join(f"{v:>14.6g}" for v in values))
    return "\n".join(rows)


def main(argv: Optional[List[str]] = None) -> int:
    """Command line interface for odesketch"""
    parser = build_parser()
    args = parser.parse_args(argv)

    level_index = min(max(1 + args.verbose - args.quiet, 0), len(VERBOSITY) - 1)
    setup_logging(level=VERBOSITY[level_index], log_file=args.log_file, metrics_file=args.metrics_file)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 1

    try:
        trajectory = compute_ode_solution(settings)
    except OdeError as e:
        print(f"Failed to solve ODE: {e}", file=sys.stderr)
        return 1

    frame = settings.coordinate
    x_end, y_end = point_to_display(frame, trajectory.t_end, trajectory.y[-1, 0])
    status = "truncated" if trajectory.truncated else "complete"
    print(f"Solved {len(trajectory)} samples ({status}), "
          f"end point ({x_end:.6g}, {y_end:.6g})")
    print(_format_table(sample_table(trajectory, frame, show_n=args.points)))

    if args.html:
        fig = trajectory_figure(trajectory, frame, ics=settings.ics, name=args.expr)
        fig.write_html(args.html)
        logger.info(f"Plot written to {args.html}")

    return 0
