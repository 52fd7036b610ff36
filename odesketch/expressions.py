import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
import sympy as sp
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication,
    parse_expr,
    standard_transformations,
)

from odesketch.errors import BuildFailed, ParseFailed
from odesketch.symbols import SYMBOLS, CoordinateFrame, SymbolTable

logger = logging.getLogger(__name__)


COMMON_FUNCS = {
    # trig + hyperbolic
    "sin": sp.sin, "cos": sp.cos, "tan": sp.tan,
    "asin": sp.asin, "acos": sp.acos, "atan": sp.atan, "atan2": sp.atan2,
    "sinh": sp.sinh, "cosh": sp.cosh, "tanh": sp.tanh,
    # exp/log/sqrt/abs/step
    "exp": sp.exp, "log": sp.log, "ln": sp.log, "sqrt": sp.sqrt,
    "Abs": sp.Abs, "abs": sp.Abs, "sign": sp.sign, "Heaviside": sp.Heaviside,
    # constants
    "pi": sp.pi, "E": sp.E,
}

# "^" is power and "7y" is 7*y, as in the default equation
TRANSFORMATIONS = standard_transformations + (implicit_multiplication, convert_xor)


def _normalize_ops(s: str) -> str:
    """Normalize non-ASCII operator symbols to ASCII so parsing is consistent."""
    return (s
        # minus
        .replace("−", "-")
        .replace("–", "-")
        .replace("—", "-")
        .replace("﹣", "-")
        .replace("－", "-")
        # times
        .replace("×", "*")
        .replace("⋅", "*")
        .replace("·", "*")
        .replace("∙", "*")
        # divide
        .replace("÷", "/")
        .replace("／", "/")
        # power
        .replace("＾", "^")
        # plus
        .replace("＋", "+")
        # greek names the page displays
        .replace("θ", "theta")
        .replace("π", "pi")
    )


_NUMBER_BEFORE_NAME = re.compile(
    r"(?<![A-Za-z_\d.])(\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)(\s*)([A-Za-z_(])?"
)


def _explicit_products(s: str) -> str:
    """
    Turn a number written directly before a name or bracket into a product:
    7y -> 7*y, 2theta -> 2*theta, 3(x + 1) -> 3*(x + 1). Exponents such as
    1e-3 are left alone.
    """
    def repl(m):
        if m.group(3) is None:
            return m.group(0)
        return f"{m.group(1)}*{m.group(3)}"
    return _NUMBER_BEFORE_NAME.sub(repl, s)


@dataclass(frozen=True)
class ParsedExpression:
    text: str
    expr: sp.Expr


def parse_expression(text: str, symbols: SymbolTable = SYMBOLS) -> ParsedExpression:
    """
    Parse one right-hand side, e.g. "x^2 - 7y - 10".

    Raises ParseFailed with a readable message when the text is not valid syntax.
    Whether the result is usable as an ODE right-hand side is checked at
    compile time.
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseFailed("Expression is empty")

    local_dict = {**COMMON_FUNCS, **symbols.as_dict()}
    try:
        expr = parse_expr(_explicit_products(_normalize_ops(text)), local_dict=local_dict, transformations=TRANSFORMATIONS)
    except Exception as e:
        raise ParseFailed(f"Could not parse '{text}': {e}") from e

    return ParsedExpression(text=text, expr=expr)


@dataclass(frozen=True)
class OdeInputs:
    """
    Editable expression strings together with their parse result.

    Exactly one of ``parsed`` / ``error`` is set. Values are replaced, never
    mutated: editing the text goes through ``with_input`` which re-parses.
    """

    inputs: Tuple[str, ...]
    parsed: Optional[Tuple[ParsedExpression, ...]] = None
    error: Optional[str] = None

    @classmethod
    def from_texts(cls, texts: Sequence[str], symbols: SymbolTable = SYMBOLS) -> "OdeInputs":
        texts = tuple(texts)
        try:
            parsed = tuple(parse_expression(text, symbols) for text in texts)
        except ParseFailed as e:
            return cls(inputs=texts, parsed=None, error=str(e))
        return cls(inputs=texts, parsed=parsed, error=None)

    def with_input(self, index: int, text: str, symbols: SymbolTable = SYMBOLS) -> "OdeInputs":
        texts = list(self.inputs)
        texts[index] = text
        return OdeInputs.from_texts(texts, symbols)

    @property
    def ok(self) -> bool:
        return self.parsed is not None


class CompiledEvaluator:
    """
    Numeric form of one or more parsed expressions.

    The parameter list is ``(t, state...)``: ``t`` binds to the frame's
    abscissa symbol (x or r) and the state to its ordinate symbol (y or theta).
    The output has one entry per expression, in input order.
    """

    def __init__(
        self,
        expressions: Tuple[sp.Expr, ...],
        params: Tuple[sp.Symbol, ...],
        frame: CoordinateFrame,
        func: Callable,
    ):
        self.expressions = expressions
        self.params = params
        self.frame = frame
        self._func = func

    @property
    def dimensions(self) -> int:
        return len(self.expressions)

    @property
    def n_inputs(self) -> int:
        return len(self.params)

    def evaluate(self, inputs: np.ndarray, out: np.ndarray) -> None:
        """
        Evaluate at ``inputs = [t, state...]`` and write into ``out``.

        Raises BuildFailed when the lambdified function cannot run on floats,
        e.g. a sympy function numpy has no counterpart for.
        """
        # inputs are numpy float64 scalars so that 1/0 gives inf instead of raising
        args = [np.float64(v) for v in inputs]
        try:
            with np.errstate(all="ignore"):
                values = np.asarray(self._func(*args), dtype=float)
        except (NameError, TypeError, AttributeError) as e:
            raise BuildFailed(f"Cannot evaluate {self!r} numerically: {e}") from e
        out[:] = values.reshape(-1)

    def __call__(self, t: float, state: Sequence[float]) -> np.ndarray:
        out = np.empty(self.dimensions, dtype=float)
        self.evaluate(np.array([t, *state], dtype=float), out)
        return out

    def __repr__(self) -> str:
        exprs = ", ".join(str(e) for e in self.expressions)
        params = ", ".join(p.name for p in self.params)
        return f"CompiledEvaluator([{exprs}]; ({params}))"


def _check_lowerable(parsed: ParsedExpression, allowed: Tuple[sp.Symbol, ...]) -> None:
    expr = parsed.expr
    if not isinstance(expr, sp.Expr):
        raise BuildFailed(f"'{parsed.text}' is not a scalar expression (got {type(expr).__name__})")

    undefined = sorted({str(f.func) for f in expr.atoms(AppliedUndef)})
    if undefined:
        raise BuildFailed(f"Unknown function(s) in '{parsed.text}': {', '.join(undefined)}")

    if expr.has(sp.I):
        raise BuildFailed(f"'{parsed.text}' is complex-valued")

    unknown = sorted(s.name for s in expr.free_symbols if s not in allowed)
    if unknown:
        expected = ", ".join(s.name for s in allowed)
        raise BuildFailed(
            f"Unknown symbol(s) in '{parsed.text}': {', '.join(unknown)}. "
            f"Available variables: {expected}"
        )


def compile_expressions(
    expressions: Sequence[ParsedExpression],
    frame: CoordinateFrame,
    symbols: SymbolTable = SYMBOLS,
) -> CompiledEvaluator:
    """
    Build one evaluator for all ``expressions`` in the given coordinate frame.

    Raises BuildFailed when an expression references symbols outside the
    frame, is not a scalar expression, or cannot be lambdified
    and evaluated on floats.
    """
    if not expressions:
        raise BuildFailed("No expressions to compile")

    params = symbols.for_frame(frame)
    for parsed in expressions:
        _check_lowerable(parsed, params)

    exprs = tuple(parsed.expr for parsed in expressions)
    try:
        func = sp.lambdify(params, list(exprs), modules="numpy", cse=True)
    except Exception as e:
        raise BuildFailed(f"Failed to create evaluator: {e}") from e

    evaluator = CompiledEvaluator(exprs, params, frame, func)
    # functions numpy lacks (zeta, factorial on floats) only fail when called
    evaluator.evaluate(np.ones(len(params)), np.empty(len(exprs)))
    logger.debug("Compiled %r", evaluator)
    return evaluator


def compile_inputs(
    inputs: OdeInputs,
    frame: CoordinateFrame,
    symbols: SymbolTable = SYMBOLS,
) -> CompiledEvaluator:
    if not inputs.ok:
        raise ParseFailed(f"Failed to parse expressions: {inputs.error}")
    return compile_expressions(inputs.parsed, frame, symbols)
