"""
Exceptions raised by the solver, the state-space assembly and the forecast
driver.

Solver failures (SolverError and subclasses) depend on the parameter draw and
are recoverable: the forecast driver skips the draw and records it. The other
errors signal configuration or programming mistakes and abort the run.
"""


class DSGEError(Exception):
    pass


class SolverError(DSGEError):
    """
    Base class for gensys failures.

    eu follows the Sims (2002) convention: eu[0] == 1 for existence,
    eu[1] == 1 for uniqueness, -2 for coincident zeros, -3 for numerical
    failure of the decomposition.
    """
    def __init__(self, message, eu=None):
        super().__init__(message)
        self.eu = list(eu) if eu is not None else None


class SolutionDoesNotExist(SolverError):
    pass


class SolutionNotUnique(SolverError):
    pass


class NumericalDegeneracy(SolverError):
    pass


class DimensionMismatch(DSGEError, ValueError):
    pass


class MissingSystemMatrix(DSGEError, KeyError):
    def __str__(self):
        return Exception.__str__(self)


class InvalidEnumValue(DSGEError, ValueError):
    def __init__(self, enum_name, value, allowed):
        self.enum_name = enum_name
        self.value = value
        self.allowed = list(allowed)
        super().__init__(f"Invalid {enum_name}: {value!r}. Expected one of {self.allowed}")
