"""
Term expansion: from one Pauli term to the circuit evaluations it needs.

For a term P and base parameters θ the value needs ⟨P⟩(θ), and each
partial derivative follows from the parameter-shift rule:

    ∂⟨P⟩/∂θᵢ = [⟨P⟩(θ + s·eᵢ) − ⟨P⟩(θ − s·eᵢ)] / 2,   s = π/2

which is exact for gates exp(-iθG) whose generator G has eigenvalues
±1/2. So a term costs 1 unshifted evaluation plus 2 per parameter.

A parameter is only differentiable with the two-term rule when it drives
exactly one such gate; anything else is reported, never approximated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from tiny_autodiff import gates as g
from tiny_autodiff.circuit import Circuit
from tiny_autodiff.exceptions import NonDifferentiableParameterError
from tiny_autodiff.observable import PauliTerm


@dataclass(frozen=True)
class ShiftRequest:
    """
    One (term, parameter binding) evaluation.

    Attributes
    ----------
    term : PauliTerm
        Term to measure (its coefficient is applied by the engine).
    params : tuple of float
        Fully bound parameter vector.
    index : int or None
        Shifted parameter, ``None`` for the unshifted value request.
    direction : int
        +1 or -1 for shifted requests, 0 for the unshifted one.
    """

    term: PauliTerm
    params: tuple[float, ...]
    index: Optional[int] = None
    direction: int = 0

    @property
    def cache_key(self) -> tuple:
        """Structural identity: same operator on the same binding."""
        return (self.term.key, self.params)


@dataclass(frozen=True)
class TermRequests:
    """The unshifted request and the (+, −) pair for every parameter."""
    term: PauliTerm
    unshifted: Optional[ShiftRequest]
    shifted: tuple[tuple[ShiftRequest, ShiftRequest], ...] = field(default_factory=tuple)

    def all(self) -> list[ShiftRequest]:
        requests = [] if self.unshifted is None else [self.unshifted]
        for plus, minus in self.shifted:
            requests.extend((plus, minus))
        return requests


class TermExpander:
    """
    Builds shift requests for one circuit.

    Parameters
    ----------
    circuit : Circuit
        Parameterized circuit, read only.
    """

    def __init__(self, circuit: Circuit) -> None:
        self.circuit = circuit
        self._shifts: list[float] | None = None

    def differentiable_parameters(self) -> dict[int, str | None]:
        """
        Map every parameter index to ``None`` if it can be differentiated,
        or to the reason it cannot.
        """
        status: dict[int, str | None] = {}
        for index in range(self.circuit.parameter_count):
            uses = self.circuit.parameter_instructions(index)
            if not uses:
                status[index] = "not used by any gate"
            elif len(uses) > 1:
                status[index] = f"shared by {len(uses)} gates"
            else:
                _, inst = uses[0]
                if g.is_shift_differentiable(inst.name):
                    status[index] = None
                else:
                    status[index] = "generator does not admit the two-term shift rule"
        return status

    def check_differentiable(self) -> list[float]:
        """
        Return the shift for every parameter index.

        Raises
        ------
        NonDifferentiableParameterError
            For the first parameter the shift rule cannot handle.
        """
        if self._shifts is not None:
            return self._shifts
        shifts = []
        for index, reason in self.differentiable_parameters().items():
            uses = self.circuit.parameter_instructions(index)
            gate = uses[0][1].name if uses else None
            if reason is not None:
                raise NonDifferentiableParameterError(index, gate, reason)
            shifts.append(g.SHIFT_RULES[gate])
        self._shifts = shifts
        return shifts

    def expand(self, term: PauliTerm, params: np.ndarray) -> TermRequests:
        """
        Requests needed for ``term``'s value and gradient at ``params``.

        The identity term needs none: its value is exactly 1 everywhere.
        """
        if term.is_identity:
            return TermRequests(term=term, unshifted=None)

        shifts = self.check_differentiable()
        base = tuple(float(v) for v in params)
        unshifted = ShiftRequest(term=term, params=base)

        shifted = []
        for i, shift in enumerate(shifts):
            plus = list(base)
            plus[i] += shift
            minus = list(base)
            minus[i] -= shift
            shifted.append((
                ShiftRequest(term=term, params=tuple(plus), index=i, direction=+1),
                ShiftRequest(term=term, params=tuple(minus), index=i, direction=-1),
            ))
        return TermRequests(term=term, unshifted=unshifted, shifted=tuple(shifted))
