"""
Reference statevector simulator.

The state is held as a rank-n tensor of shape (2,)*n and each k-qubit gate
is contracted into its k target axes with ``numpy.einsum``, which costs
O(2^n · 4^k) per gate instead of building a 2^n × 2^n operator.

Axis 0 of the tensor is qubit 0, so after flattening qubit 0 is the most
significant bit of the basis index. This matches the Kronecker order of
``PauliTerm.matrix`` and ``Observable.matrix``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy import ndarray

from tiny_autodiff.circuit import Circuit

_STATE_LABELS = "abcdefghijklmnopqrst"
_GATE_LABELS = "ABCD"
MAX_QUBITS = len(_STATE_LABELS)


@dataclass
class SimulationResult:
    """
    Outcome of one ``StatevectorBackend.run``.

    ``counts`` maps basis index to number of hits and is ``None`` when no
    shots were requested.
    """

    statevector: ndarray
    n_qubits: int
    counts: Optional[dict[int, int]] = None
    shots: int = 0

    @property
    def probabilities(self) -> ndarray:
        return np.abs(self.statevector) ** 2

    def bitstring_counts(self) -> dict[str, int]:
        """Counts keyed by bitstring, qubit 0 leftmost."""
        if not self.counts:
            return {}
        width = self.n_qubits
        return {format(k, f"0{width}b"): v for k, v in sorted(self.counts.items())}


class StatevectorBackend:
    """
    Exact simulator for bound, unitary circuits.

    Parameters
    ----------
    seed : int | None
        Seed of the generator used when sampling shots.

    Example
    -------
    >>> bell = Circuit(2).h(0).cx(0, 1)
    >>> sorted(StatevectorBackend(seed=1).run(bell, shots=100).bitstring_counts())
    ['00', '11']
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)

    def run(self, circuit: Circuit, shots: int = 0) -> SimulationResult:
        """
        Evolve |0…0⟩ through ``circuit`` and optionally sample ``shots``
        computational-basis measurements.

        Raises
        ------
        ValueError
            If the circuit is too wide or still has unbound parameters.
        """
        n = circuit.n_qubits
        if n > MAX_QUBITS:
            raise ValueError(f"Statevector backend supports at most {MAX_QUBITS} qubits, got {n}")

        state = np.zeros((2,) * n, dtype=np.complex128)
        state[(0,) * n] = 1.0
        for inst in circuit.instructions:
            state = self._contract(state, inst.matrix(), inst.qubits)
        state = state.reshape(-1)

        counts = self._sample(state, shots) if shots > 0 else None
        return SimulationResult(statevector=state, n_qubits=n, counts=counts, shots=shots)

    @staticmethod
    def _contract(state: ndarray, gate: ndarray, qubits: tuple[int, ...]) -> ndarray:
        k = len(qubits)
        tensor = gate.reshape((2,) * (2 * k))  # out axes then in axes
        labels = list(_STATE_LABELS[:state.ndim])
        outs = _GATE_LABELS[:k]
        ins = "".join(labels[q] for q in qubits)
        result = labels.copy()
        for label, q in zip(outs, qubits):
            result[q] = label
        spec = f"{outs}{ins},{''.join(labels)}->{''.join(result)}"
        return np.einsum(spec, tensor, state)

    def _sample(self, state: ndarray, shots: int) -> dict[int, int]:
        probs = np.abs(state) ** 2
        probs /= probs.sum()
        hits = self._rng.choice(len(state), size=shots, p=probs)
        index, freq = np.unique(hits, return_counts=True)
        return dict(zip(index.tolist(), freq.tolist()))

    def statevector(self, circuit: Circuit) -> ndarray:
        return self.run(circuit).statevector

    def expectation_value(self, circuit: Circuit, observable: ndarray) -> float:
        """⟨ψ|O|ψ⟩ against a dense Hermitian matrix, for cross-checks."""
        sv = self.statevector(circuit)
        return float(np.real(np.vdot(sv, observable @ sv)))
