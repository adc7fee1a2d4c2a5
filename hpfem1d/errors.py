"""hpfem1d.errors
Exception hierarchy shared by every stage of the adaptive loop.
"""


class HpFemError(Exception):
    """Base class for all errors raised by hpfem1d."""


class ConfigurationError(HpFemError, ValueError):
    """Invalid boundary conditions, equation count, degree bounds or parameters."""


class AssemblyError(HpFemError, RuntimeError):
    """A weak-form callback produced an unusable value."""


class SolverFailure(HpFemError, RuntimeError):
    """The linear-solve backend reported a singular or unsolved system."""


class DivergenceError(HpFemError, RuntimeError):
    """Newton's method hit its iteration cap without meeting the tolerance."""
