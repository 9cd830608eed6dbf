"""
Evaluators: execute a fully bound circuit and return ⟨P⟩ for a Pauli term.

The gradient engine treats an evaluator as an opaque, possibly
resource-metered, possibly stochastic black box. Two implementations ship
with the package:

- :class:`StatevectorEvaluator`: exact and deterministic. One simulation
  per bound circuit, shared by every term evaluated on it.
- :class:`SamplingEvaluator`: shot-based estimate. Rotates each term into
  the Z basis, samples bitstrings and averages the parity. Unbiased with
  variance at most 1/shots per term.

Custom backends (remote simulators, hardware) subclass :class:`Evaluator`
and implement ``evaluate``; overriding ``_evaluate_terms`` lets them batch
all terms that share one parameter binding.
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import Sequence

import numpy as np

from tiny_autodiff.backends.statevector import StatevectorBackend
from tiny_autodiff.circuit import Circuit
from tiny_autodiff.observable import PauliTerm

logger = logging.getLogger(__name__)


class Evaluator(abc.ABC):
    """
    Base class for expectation-value evaluators.

    Attributes
    ----------
    deterministic : bool
        True when repeated calls on the same input return identical values.
    calls : int
        Number of ``evaluate_terms`` batches served so far.
    """

    deterministic = True

    def __init__(self) -> None:
        self._calls = 0
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return self._calls

    @abc.abstractmethod
    def evaluate(self, circuit: Circuit, term: PauliTerm) -> float:
        """Return ⟨ψ|P|ψ⟩ for the bare Pauli string of ``term``."""

    def evaluate_terms(self, circuit: Circuit, terms: Sequence[PauliTerm]) -> list[float]:
        """
        Evaluate several terms on the same bound circuit.

        Coefficients are not applied; the caller weights the results.
        """
        if circuit.is_parameterized:
            raise ValueError("Evaluator requires a fully bound circuit")
        for term in terms:
            if term.max_qubit >= circuit.n_qubits:
                raise ValueError(
                    f"Term {term.label} acts on qubit {term.max_qubit} but the "
                    f"circuit has only {circuit.n_qubits} qubit(s)"
                )
        with self._lock:
            self._calls += 1
        return self._evaluate_terms(circuit, terms)

    def _evaluate_terms(self, circuit: Circuit, terms: Sequence[PauliTerm]) -> list[float]:
        return [self.evaluate(circuit, term) for term in terms]


class StatevectorEvaluator(Evaluator):
    """
    Exact expectation values from a statevector simulation.

    Parameters
    ----------
    backend : StatevectorBackend, optional
        Simulator to use. A fresh one is created if omitted.
    """

    def __init__(self, backend: StatevectorBackend | None = None) -> None:
        super().__init__()
        self.backend = backend or StatevectorBackend()

    def evaluate(self, circuit: Circuit, term: PauliTerm) -> float:
        return self.evaluate_terms(circuit, [term])[0]

    def _evaluate_terms(self, circuit: Circuit, terms: Sequence[PauliTerm]) -> list[float]:
        sv = self.backend.statevector(circuit)
        n = circuit.n_qubits
        return [1.0 if t.is_identity else t.expectation(sv, n) for t in terms]

    def __repr__(self) -> str:
        return "StatevectorEvaluator()"


class SamplingEvaluator(Evaluator):
    """
    Shot-based expectation values.

    Each non-identity term is measured in its own eigenbasis: ``H`` maps
    X to Z and ``Sdg`` then ``H`` maps Y to Z. The estimate is the mean of
    (-1)^parity over the measured qubits.

    Not safe for concurrent use: sampling draws from one
    ``numpy.random.Generator``.

    Parameters
    ----------
    shots : int
        Samples per term.
    seed : int | None
        Random seed for reproducible estimates.
    """

    deterministic = False

    def __init__(self, shots: int = 1024, seed: int | None = None) -> None:
        super().__init__()
        if shots < 1:
            raise ValueError(f"shots must be positive, got {shots}")
        self.shots = shots
        self.backend = StatevectorBackend(seed=seed)

    def evaluate(self, circuit: Circuit, term: PauliTerm) -> float:
        return self.evaluate_terms(circuit, [term])[0]

    def _evaluate_terms(self, circuit: Circuit, terms: Sequence[PauliTerm]) -> list[float]:
        return [self._estimate(circuit, t) for t in terms]

    def _estimate(self, circuit: Circuit, term: PauliTerm) -> float:
        if term.is_identity:
            return 1.0
        rotated = circuit.copy()
        for qubit, pauli in term.ops:
            if pauli == "X":
                rotated.h(qubit)
            elif pauli == "Y":
                rotated.sdg(qubit).h(qubit)

        n = circuit.n_qubits
        result = self.backend.run(rotated, shots=self.shots)
        outcomes = np.fromiter(result.counts.keys(), dtype=np.int64)
        counts = np.fromiter(result.counts.values(), dtype=np.int64)
        parity = np.zeros_like(outcomes)
        for qubit, _ in term.ops:
            parity ^= (outcomes >> (n - 1 - qubit)) & 1
        signs = 1 - 2 * parity
        estimate = float(np.dot(signs, counts)) / self.shots
        logger.debug("Sampled %s over %d shots: %.6f", term.label, self.shots, estimate)
        return estimate

    def __repr__(self) -> str:
        return f"SamplingEvaluator(shots={self.shots})"
