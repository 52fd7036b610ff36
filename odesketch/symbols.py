from enum import Enum
from typing import Dict, Iterable, Tuple

import sympy as sp


class CoordinateFrame(Enum):
    """Variable basis the ODE is written (and solved) in."""

    CARTESIAN = "cartesian"
    POLAR = "polar"

    @property
    def symbol_names(self) -> Tuple[str, str]:
        """(abscissa, ordinate) names, i.e. the independent and dependent variable."""
        return FRAME_SYMBOLS[self]

    @property
    def label(self) -> str:
        return "Cartesian (x, y)" if self is CoordinateFrame.CARTESIAN else "Polar (r, θ)"


FRAME_SYMBOLS: Dict[CoordinateFrame, Tuple[str, str]] = {
    CoordinateFrame.CARTESIAN: ("x", "y"),
    CoordinateFrame.POLAR: ("r", "theta"),
}


class SymbolTable:
    """
    Named sympy symbols available inside user expressions.

    Names are unique: registering the same name twice is an error, so the
    symbol a parsed expression refers to is always the one handed to lambdify.
    """

    def __init__(self, names: Iterable[str] = ()):
        self._symbols: Dict[str, sp.Symbol] = {}
        for name in names:
            self.register(name)

    def register(self, name: str) -> sp.Symbol:
        if name in self._symbols:
            raise ValueError(f"Symbol '{name}' is already defined")
        symbol = sp.Symbol(name, real=True)
        self._symbols[name] = symbol
        return symbol

    def __getitem__(self, name: str) -> sp.Symbol:
        return self._symbols[name]

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __iter__(self):
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def as_dict(self) -> Dict[str, sp.Symbol]:
        return dict(self._symbols)

    def for_frame(self, frame: CoordinateFrame) -> Tuple[sp.Symbol, sp.Symbol]:
        """Symbols bound to the (t, state) slots of the given frame, in slot order."""
        abscissa, ordinate = frame.symbol_names
        return self[abscissa], self[ordinate]


SYMBOLS = SymbolTable(["x", "y", "r", "theta"])
