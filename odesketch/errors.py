"""Exceptions raised by the ODE solving pipeline."""


class OdeError(Exception):
    """Base class for every error raised by odesketch."""


class CompileError(OdeError):
    """The expression could not be turned into a numeric evaluator."""


class ParseFailed(CompileError):
    """The expression text is not valid syntax."""


class BuildFailed(CompileError):
    """The expression parsed, but cannot be lowered to a numeric function."""


class DimensionError(OdeError, ValueError):
    """Buffers handed to the evaluator do not match its dimensionality."""


class ReachedMaxStepIter(OdeError):
    """No acceptable step was found within the iteration budget, or the step cannot shrink further."""

    def __init__(self, t: float, attempts: int):
        super().__init__(f"No acceptable step at t = {t:g} after {attempts} attempt(s)")
        self.t = t
        self.attempts = attempts


class UnimplementedSystem(OdeError, NotImplementedError):
    """Systems of ODEs (dimensions > 1) are not supported yet."""

    def __init__(self, dimensions: int):
        super().__init__(f"System ODEs not implemented yet (dimensions = {dimensions})")
        self.dimensions = dimensions
