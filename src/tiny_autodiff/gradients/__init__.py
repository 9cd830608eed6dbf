"""
Analytic gradients of quantum expectation values via the parameter-shift rule.

Quick start:
    >>> from tiny_autodiff.gradients import Autodiff
    >>> engine = Autodiff().from_observable("5.907 - 2.1433 X0X1 - 6.125 Z1")
    >>> value, grad = engine.derivative(ansatz, params)
"""

from .engine import Autodiff, DerivativeResult
from .expander import ShiftRequest, TermExpander, TermRequests

__all__ = [
    "Autodiff",
    "DerivativeResult",
    "ShiftRequest",
    "TermExpander",
    "TermRequests",
]
