"""
Ready-made variational circuits.

    >>> from tiny_autodiff.ansatz import deuteron, DEUTERON_OBSERVABLE
    >>> qc = deuteron()          # X 0; Ry(θ) 1; CX 1 0
    >>> qc.parameter_count
    1
"""

from __future__ import annotations

from tiny_autodiff.circuit import Circuit, Parameter

# Deuteron binding energy, N=2 harmonic-oscillator basis (MeV).
# Minimum over the deuteron ansatz: E ≈ -1.74886 at θ ≈ 0.594.
DEUTERON_OBSERVABLE = "5.907 - 2.1433 X0X1 - 2.1433 Y0Y1 + .21829 Z0 - 6.125 Z1"


def deuteron(theta: Parameter | float | None = None) -> Circuit:
    """Single-parameter two-qubit ansatz: X on q0, Ry(θ) on q1, CNOT(1 → 0)."""
    if theta is None:
        theta = Parameter(0, "theta")
    return Circuit(2, name="deuteron").x(0).ry(theta, 1).cx(1, 0)


def hardware_efficient(n_qubits: int, layers: int = 1) -> Circuit:
    """
    Layers of Ry on every qubit followed by a CX ladder, then a final Ry layer.

    Parameters are numbered in order of appearance, giving
    ``n_qubits * (layers + 1)`` in total.
    """
    if layers < 0:
        raise ValueError(f"layers must be non-negative, got {layers}")
    qc = Circuit(n_qubits, name=f"hea_{n_qubits}x{layers}")
    index = 0
    for _ in range(layers):
        for q in range(n_qubits):
            qc.ry(Parameter(index), q)
            index += 1
        for q in range(n_qubits - 1):
            qc.cx(q, q + 1)
    for q in range(n_qubits):
        qc.ry(Parameter(index), q)
        index += 1
    return qc
