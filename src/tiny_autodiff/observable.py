"""
Weighted Pauli-string observables.

An observable is a weighted sum of Pauli terms:
    H = c₁ P₁ + c₂ P₂ + ... + cₙ Pₙ

where each Pᵢ is a tensor product of single-qubit Pauli operators
acting on explicitly indexed qubits (identity elsewhere).

Example:
    Deuteron Hamiltonian (two-qubit, N=2 basis):
    H = 5.907 - 2.1433 X0X1 - 2.1433 Y0Y1 + 0.21829 Z0 - 6.125 Z1

Usage:
    >>> H = Observable.from_string("5.907 - 2.1433 X0X1 - 2.1433 Y0Y1"
    ...                            " + .21829 Z0 - 6.125 Z1")
    >>> len(H)
    5
    >>> H.terms[1]
    PauliTerm(ops=((0, 'X'), (1, 'X')), coeff=-2.1433)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, Mapping

import numpy as np

from tiny_autodiff.exceptions import ObservableParseError
from tiny_autodiff.gates import PAULI

_TOKEN = re.compile(
    r"(?P<sign>[+-])"
    r"|(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<pauli>[IXYZixyz])\s*(?P<qubit>\d+)"
    r"|(?P<star>\*)"
)
_FACTOR = re.compile(r"([IXYZixyz])(\d+)")


# ---------------------------------------------------------------------------
# PauliTerm
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PauliTerm:
    """
    A single weighted Pauli string.

    Attributes
    ----------
    ops : tuple of (int, str)
        (qubit, pauli) pairs sorted by qubit, pauli in {"X", "Y", "Z"}.
        Qubits not listed carry the identity.
    coeff : float
        Real, finite coefficient.
    """

    ops: tuple[tuple[int, str], ...] = ()
    coeff: float = 1.0

    def __post_init__(self) -> None:
        coeff = float(self.coeff)
        if not math.isfinite(coeff):
            raise ValueError(f"Pauli term coefficient must be finite, got {self.coeff}")
        seen: dict[int, str] = {}
        for qubit, pauli in self.ops:
            qubit = int(qubit)
            pauli = pauli.upper()
            if qubit < 0:
                raise ValueError(f"Qubit index must be non-negative, got {qubit}")
            if pauli not in PAULI:
                raise ValueError(f"Invalid Pauli '{pauli}': only I, X, Y, Z allowed")
            if qubit in seen:
                raise ValueError(f"Qubit {qubit} appears twice in one Pauli term")
            seen[qubit] = pauli
        ops = tuple(sorted((q, p) for q, p in seen.items() if p != "I"))
        object.__setattr__(self, "ops", ops)
        object.__setattr__(self, "coeff", coeff)

    @classmethod
    def from_ops(cls, ops: Mapping[int, str] | Iterable[tuple[int, str]],
                 coeff: float = 1.0) -> PauliTerm:
        """Build a term from a qubit → Pauli mapping, dropping identities."""
        items = ops.items() if isinstance(ops, Mapping) else ops
        return cls(tuple(items), coeff)

    @property
    def key(self) -> tuple[tuple[int, str], ...]:
        """Identity of the measurable operator (coefficient excluded)."""
        return self.ops

    @property
    def is_identity(self) -> bool:
        return not self.ops

    @property
    def max_qubit(self) -> int:
        """Highest qubit index acted on, -1 for the identity."""
        return self.ops[-1][0] if self.ops else -1

    @property
    def label(self) -> str:
        return "".join(f"{p}{q}" for q, p in self.ops) or "I"

    def with_coeff(self, coeff: float) -> PauliTerm:
        return replace(self, coeff=coeff)

    def apply(self, statevector: np.ndarray, n_qubits: int) -> np.ndarray:
        """
        Apply the Pauli string (without coefficient) to a statevector.

        Contracts each non-identity 2×2 Pauli with its qubit axis instead
        of building the full 2^n × 2^n tensor product.
        """
        result = np.asarray(statevector, dtype=np.complex128)
        shape = [2] * n_qubits
        for qubit, pauli in self.ops:
            result = result.reshape(shape)
            result = np.tensordot(PAULI[pauli], result, axes=([1], [qubit]))
            result = np.moveaxis(result, 0, qubit)
        return result.reshape(-1)

    def expectation(self, statevector: np.ndarray, n_qubits: int) -> float:
        """⟨ψ|P|ψ⟩ for the bare Pauli string (coefficient not applied)."""
        if self.max_qubit >= n_qubits:
            raise ValueError(
                f"Term {self.label} acts on qubit {self.max_qubit} but the "
                f"state has only {n_qubits} qubit(s)"
            )
        sv = np.asarray(statevector, dtype=np.complex128).ravel()
        return float(np.real(np.vdot(sv, self.apply(sv, n_qubits))))

    def matrix(self, n_qubits: int) -> np.ndarray:
        """Full 2^n × 2^n matrix of coeff · P. Qubit 0 is the leftmost factor."""
        paulis = dict(self.ops)
        result = np.array([[self.coeff]], dtype=np.complex128)
        for q in range(n_qubits):
            result = np.kron(result, PAULI[paulis.get(q, "I")])
        return result

    def __str__(self) -> str:
        if self.is_identity:
            return f"{self.coeff:g}"
        return f"{self.coeff:g} {self.label}"


# ---------------------------------------------------------------------------
# Observable
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Observable:
    """
    Ordered, immutable collection of Pauli terms.

    Term order carries no physical meaning; it fixes the summation order
    so results are reproducible bit for bit. Equal-operator terms are kept
    as given until :meth:`simplify` merges them.
    """

    terms: tuple[PauliTerm, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        terms = tuple(self.terms)
        for t in terms:
            if not isinstance(t, PauliTerm):
                raise TypeError(f"Observable terms must be PauliTerm, got {type(t).__name__}")
        object.__setattr__(self, "terms", terms)

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_string(cls, text: str) -> Observable:
        """Parse text such as ``"5.907 - 2.1433 X0X1 + .21829 Z0"``."""
        return cls(tuple(_parse(text)))

    @classmethod
    def from_dict(cls, terms: Mapping[str, float]) -> Observable:
        """
        Build from ``{label: coeff}``, e.g. ``{"": 5.907, "X0X1": -2.1433}``.

        The empty string (or ``"I"``) denotes the identity term.
        """
        return cls(tuple(
            PauliTerm.from_ops(_parse_label(label), coeff)
            for label, coeff in terms.items()
        ))

    # -- Properties ---------------------------------------------------------

    @property
    def n_qubits(self) -> int:
        """Number of qubits needed to hold every term (0 if none act)."""
        return max((t.max_qubit for t in self.terms), default=-1) + 1

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self) -> Iterator[PauliTerm]:
        return iter(self.terms)

    # -- Algebra ------------------------------------------------------------

    def __add__(self, other: Observable) -> Observable:
        if not isinstance(other, Observable):
            return NotImplemented
        return Observable(self.terms + other.terms)

    def __mul__(self, scalar: float) -> Observable:
        if not isinstance(scalar, (int, float, np.floating, np.integer)):
            return NotImplemented
        return Observable(tuple(t.with_coeff(t.coeff * scalar) for t in self.terms))

    def __rmul__(self, scalar: float) -> Observable:
        return self.__mul__(scalar)

    def __neg__(self) -> Observable:
        return self * -1.0

    def simplify(self) -> Observable:
        """Merge terms acting as the same operator, keeping first-appearance order."""
        merged: dict[tuple, float] = {}
        for t in self.terms:
            merged[t.key] = merged.get(t.key, 0.0) + t.coeff
        return Observable(tuple(PauliTerm(key, c) for key, c in merged.items()))

    # -- Dense representation ----------------------------------------------

    def matrix(self, n_qubits: int | None = None) -> np.ndarray:
        """
        Build the full 2^n × 2^n Hermitian matrix.

        Only practical for small systems; used to validate the engine
        against an independent dense calculation.
        """
        n = self.n_qubits if n_qubits is None else n_qubits
        if n < self.n_qubits:
            raise ValueError(f"Observable needs {self.n_qubits} qubits, got {n}")
        dim = 2 ** n
        H = np.zeros((dim, dim), dtype=np.complex128)
        for t in self.terms:
            H += t.matrix(n)
        return H

    def __str__(self) -> str:
        if not self.terms:
            return "0"
        parts = [str(self.terms[0])]
        for t in self.terms[1:]:
            sign = "-" if t.coeff < 0 else "+"
            parts.append(f"{sign} {t.with_coeff(abs(t.coeff))}")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse(text: str) -> list[PauliTerm]:
    terms: list[PauliTerm] = []
    sign = 1.0
    coeff: float | None = None
    ops: dict[int, str] = {}
    opened = False  # a sign or content has started the current term
    star = False  # last token was '*', a factor must follow
    pos = 0

    def flush(at: int) -> None:
        if star:
            raise ObservableParseError(text, at, "Expected a Pauli factor after '*'")
        if coeff is None and not ops:
            raise ObservableParseError(text, at, "Empty term")
        terms.append(PauliTerm.from_ops(ops, sign * (1.0 if coeff is None else coeff)))

    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        m = _TOKEN.match(text, pos)
        if m is None:
            raise ObservableParseError(text, pos, f"Unexpected character {text[pos]!r}")
        if m.group("sign"):
            if opened:
                flush(pos)
            sign = -1.0 if m.group("sign") == "-" else 1.0
            coeff, ops, opened = None, {}, True
        elif m.group("number"):
            if coeff is not None or ops:
                raise ObservableParseError(text, pos, "Unexpected number")
            coeff = float(m.group("number"))
            opened = True
        elif m.group("pauli"):
            qubit = int(m.group("qubit"))
            if qubit in ops:
                raise ObservableParseError(text, pos, f"Qubit {qubit} repeated in term")
            ops[qubit] = m.group("pauli").upper()
            opened, star = True, False
        else:
            if star or not (coeff is not None or ops):
                raise ObservableParseError(text, pos, "Unexpected '*'")
            star = True
        pos = m.end()

    if not opened:
        raise ObservableParseError(text, pos, "Empty observable")
    flush(pos)
    return terms


def _parse_label(label: str) -> dict[int, str]:
    compact = "".join(label.split())
    if compact in ("", "I", "i"):
        return {}
    if not re.fullmatch(r"(?:[IXYZixyz]\d+)+", compact):
        raise ValueError(f"Invalid Pauli label '{label}'")
    ops: dict[int, str] = {}
    for pauli, qubit in _FACTOR.findall(compact):
        if int(qubit) in ops:
            raise ValueError(f"Qubit {qubit} repeated in label '{label}'")
        ops[int(qubit)] = pauli.upper()
    return ops
