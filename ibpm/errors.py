"""
Exceptions raised by the IBPM solver.
"""

from typing import Optional


class IBPMError(Exception):
    """Base class for solver errors."""
    pass


class ConfigurationError(IBPMError):
    """Invalid run setup: bad base flow, grid mismatch, unknown model or scheme."""
    pass


class ConvergenceError(IBPMError):
    """Projection solve did not reach its tolerance."""

    def __init__(self, message: str, residual: Optional[float] = None,
                 iterations: Optional[int] = None):
        super().__init__(message)
        self.residual = residual
        self.iterations = iterations
