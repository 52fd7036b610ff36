"""
odesketch: draw the solution curve of dy/dx = f(x, y) for a typed-in f.

The expression is compiled with sympy, integrated with an embedded adaptive
Runge-Kutta method and mapped back to the plane for plotting.
"""
from odesketch.config import DEFAULT_SETTINGS, OdeSettings
from odesketch.coordinates import from_solver_frame, to_solver_frame
from odesketch.errors import (
    BuildFailed,
    CompileError,
    DimensionError,
    OdeError,
    ParseFailed,
    ReachedMaxStepIter,
    UnimplementedSystem,
)
from odesketch.expressions import OdeInputs, compile_expressions, compile_inputs, parse_expression
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.problem import ExpressionProblem
from odesketch.schemes import BS23, DP45, RKF45, EmbeddedMethod, make_integrator
from odesketch.solver import MaxStepSolver, Trajectory, compute_ode_solution, solve_ode
from odesketch.symbols import SYMBOLS, CoordinateFrame, SymbolTable

__version__ = "0.1.0"

__all__ = [
    "BS23",
    "BuildFailed",
    "CompileError",
    "CoordinateFrame",
    "DEFAULT_INTEGRATOR_CONFIG",
    "DEFAULT_SETTINGS",
    "DP45",
    "DimensionError",
    "EmbeddedMethod",
    "ExpressionProblem",
    "IntegratorConfig",
    "MaxStepSolver",
    "OdeError",
    "OdeInputs",
    "OdeSettings",
    "ParseFailed",
    "RKF45",
    "ReachedMaxStepIter",
    "SYMBOLS",
    "SymbolTable",
    "Trajectory",
    "UnimplementedSystem",
    "compile_expressions",
    "compile_inputs",
    "compute_ode_solution",
    "from_solver_frame",
    "make_integrator",
    "parse_expression",
    "solve_ode",
    "to_solver_frame",
]
