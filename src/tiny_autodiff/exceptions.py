"""
Exception hierarchy for tiny-autodiff.

Every failure of a ``derivative`` call surfaces as an :class:`AutodiffError`
subclass so an optimizer loop can tell a failed evaluation apart from a
valid, numerically zero result.
"""

from __future__ import annotations


class AutodiffError(Exception):
    """Base class for all tiny-autodiff errors."""


class ShapeMismatchError(AutodiffError, ValueError):
    """Parameter vector does not match the circuit's parameter count."""

    def __init__(self, expected: int, got: int, message: str | None = None) -> None:
        self.expected = expected
        self.got = got
        if message is None:
            message = (
                f"Circuit has {expected} parameter(s) but {got} value(s) "
                "were supplied"
            )
        super().__init__(message)


class NonDifferentiableParameterError(AutodiffError):
    """A parameter is bound to a gate the shift rule cannot differentiate."""

    def __init__(self, index: int, gate: str | None, reason: str) -> None:
        self.index = index
        self.gate = gate
        where = f" (gate '{gate}')" if gate else ""
        super().__init__(f"Parameter {index}{where} is not differentiable: {reason}")


class EvaluationError(AutodiffError):
    """The evaluator failed on at least one request; no partial result exists."""

    def __init__(self, message: str, n_requests: int = 0) -> None:
        self.n_requests = n_requests
        super().__init__(message)


class ObservableNotBoundError(AutodiffError, RuntimeError):
    """``derivative`` was called before ``from_observable``."""


class ObservableParseError(AutodiffError, ValueError):
    """Malformed weighted Pauli-string text."""

    def __init__(self, text: str, position: int, reason: str) -> None:
        self.text = text
        self.position = position
        super().__init__(f"{reason} at position {position} in {text!r}")
