"""
tiny-autodiff: exact gradients of quantum expectation values.

Features:
- Weighted Pauli observables parsed from text: "5.907 - 2.1433 X0X1 + .21829 Z0"
- Parameterized circuits with a fluent API: Circuit(2).x(0).ry(Parameter(0), 1)
- Parameter-shift gradients, no finite differences
- Pluggable evaluators: exact statevector or shot sampling
- Drop-in objective for scipy.optimize.minimize(..., jac=True)
- Gradient-based minimisation: minimize_expectation(engine, circuit)

Quick Start:
    >>> from tiny_autodiff import Autodiff, Circuit, Parameter
    >>> qc = Circuit(2).x(0).ry(Parameter(0), 1).cx(1, 0)
    >>> engine = Autodiff().from_observable(
    ...     "5.907 - 2.1433 X0X1 - 2.1433 Y0Y1 + .21829 Z0 - 6.125 Z1")
    >>> value, grad = engine.derivative(qc, [0.594])
"""
__version__ = "0.1.0"

# Core components
from .circuit import Circuit, Instruction, Parameter
from .observable import Observable, PauliTerm
from .backends import StatevectorBackend, SimulationResult
from .evaluators import Evaluator, StatevectorEvaluator, SamplingEvaluator

# Differentiation
from .gradients import Autodiff, DerivativeResult, ShiftRequest, TermExpander
from .optimize import OptimizationResult, minimize_expectation

# Errors
from .exceptions import (
    AutodiffError,
    ShapeMismatchError,
    NonDifferentiableParameterError,
    EvaluationError,
    ObservableNotBoundError,
    ObservableParseError,
)

from . import gates

__all__ = [
    # Core
    'Circuit',
    'Instruction',
    'Parameter',
    'Observable',
    'PauliTerm',
    'StatevectorBackend',
    'SimulationResult',
    'gates',
    # Evaluators
    'Evaluator',
    'StatevectorEvaluator',
    'SamplingEvaluator',
    # Differentiation
    'Autodiff',
    'DerivativeResult',
    'ShiftRequest',
    'TermExpander',
    'OptimizationResult',
    'minimize_expectation',
    # Errors
    'AutodiffError',
    'ShapeMismatchError',
    'NonDifferentiableParameterError',
    'EvaluationError',
    'ObservableNotBoundError',
    'ObservableParseError',
]
