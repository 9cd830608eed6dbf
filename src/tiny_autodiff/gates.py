"""
Gate matrices and their generators.

Fixed gates are module-level unitary matrices; parameterized gates are
factories ``f(*params) -> matrix``. Every single-parameter gate also
records its generator G, the Hermitian matrix with U(θ) = exp(-iθG).

The two-term parameter-shift rule

    ∂f/∂θ = [f(θ + π/2) − f(θ − π/2)] / 2

is exact when G is half a Pauli string up to a constant, which only
contributes a global phase: then (G − c·I)² = I/4. ``SHIFT_RULES`` is
derived from the generators, so controlled rotations, whose generators
are projector-weighted (|1⟩⟨1| ⊗ P/2), are excluded.

Qubit 0 of a multi-qubit gate is the leftmost Kronecker factor.
"""

from __future__ import annotations

from typing import Callable, NamedTuple, Optional

import numpy as np
from numpy import ndarray

Matrix = ndarray

# ---------------------------------------------------------------------------
# Fixed gates
# ---------------------------------------------------------------------------

I = np.eye(2, dtype=np.complex128)
X = np.array([[0, 1], [1, 0]], dtype=np.complex128)
Y = np.array([[0, -1j], [1j, 0]], dtype=np.complex128)
Z = np.diag([1, -1]).astype(np.complex128)

H = np.array([[1, 1], [1, -1]], dtype=np.complex128) / np.sqrt(2.0)
"""Hadamard: maps the X eigenbasis onto Z."""

S = np.diag([1, 1j]).astype(np.complex128)
Sdg = S.conj().T
"""S-dagger: followed by H, maps the Y eigenbasis onto Z."""

PAULI: dict[str, Matrix] = {"I": I, "X": X, "Y": Y, "Z": Z}

_P0 = np.diag([1, 0]).astype(np.complex128)  # |0⟩⟨0|
_P1 = np.diag([0, 1]).astype(np.complex128)  # |1⟩⟨1|


def _controlled(u: Matrix) -> Matrix:
    """|0⟩⟨0| ⊗ I + |1⟩⟨1| ⊗ U, control on the first qubit."""
    return np.kron(_P0, np.eye(len(u))) + np.kron(_P1, u)


CX = CNOT = _controlled(X)
CZ = _controlled(Z)
SWAP = np.eye(4, dtype=np.complex128)[[0, 2, 1, 3]]

# ---------------------------------------------------------------------------
# Parameterized gates
# ---------------------------------------------------------------------------

def _pauli_rotation(pauli: Matrix) -> Callable[[float], Matrix]:
    """exp(-iθP/2) = cos(θ/2)·I − i·sin(θ/2)·P, valid for any Pauli string P."""
    eye = np.eye(len(pauli), dtype=np.complex128)

    def rotation(theta: float) -> Matrix:
        return np.cos(theta / 2) * eye - 1j * np.sin(theta / 2) * pauli

    return rotation


Rx = _pauli_rotation(X)
Ry = _pauli_rotation(Y)
Rz = _pauli_rotation(Z)
Rxx = _pauli_rotation(np.kron(X, X))
Ryy = _pauli_rotation(np.kron(Y, Y))
Rzz = _pauli_rotation(np.kron(Z, Z))


def P(lam: float) -> Matrix:
    """Phase gate diag(1, e^{iλ}) = e^{iλ/2}·Rz(λ)."""
    return np.diag([1, np.exp(1j * lam)]).astype(np.complex128)


U1 = P


def U3(theta: float, phi: float, lam: float) -> Matrix:
    """
    General single-qubit rotation.

    U3(θ, φ, λ) = [[cos(θ/2),          -e^{iλ} sin(θ/2)],
                   [e^{iφ} sin(θ/2),  e^{i(φ+λ)} cos(θ/2)]]
    """
    c, s = np.cos(theta / 2), np.sin(theta / 2)
    return np.array(
        [[c, -np.exp(1j * lam) * s],
         [np.exp(1j * phi) * s, np.exp(1j * (phi + lam)) * c]],
        dtype=np.complex128,
    )


def CP(lam: float) -> Matrix:
    return _controlled(P(lam))


def CRx(theta: float) -> Matrix:
    return _controlled(Rx(theta))


def CRy(theta: float) -> Matrix:
    return _controlled(Ry(theta))


def CRz(theta: float) -> Matrix:
    return _controlled(Rz(theta))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class GateSpec(NamedTuple):
    """Static description of one gate name."""
    n_qubits: int
    n_params: int
    matrix: Optional[Matrix] = None
    factory: Optional[Callable[..., Matrix]] = None
    generator: Optional[Matrix] = None


def _fixed(m: Matrix) -> GateSpec:
    return GateSpec(n_qubits=int(np.log2(len(m))), n_params=0, matrix=m)


def _rotation(factory: Callable[..., Matrix], generator: Matrix) -> GateSpec:
    return GateSpec(n_qubits=int(np.log2(len(generator))), n_params=1,
                    factory=factory, generator=generator)


GATE_REGISTRY: dict[str, GateSpec] = {
    "i": _fixed(I),
    "x": _fixed(X),
    "y": _fixed(Y),
    "z": _fixed(Z),
    "h": _fixed(H),
    "s": _fixed(S),
    "sdg": _fixed(Sdg),
    "cx": _fixed(CX),
    "cz": _fixed(CZ),
    "swap": _fixed(SWAP),
    "rx": _rotation(Rx, X / 2),
    "ry": _rotation(Ry, Y / 2),
    "rz": _rotation(Rz, Z / 2),
    "p": _rotation(P, -_P1),
    "u1": _rotation(U1, -_P1),
    "rxx": _rotation(Rxx, np.kron(X, X) / 2),
    "ryy": _rotation(Ryy, np.kron(Y, Y) / 2),
    "rzz": _rotation(Rzz, np.kron(Z, Z) / 2),
    "cp": _rotation(CP, -np.kron(_P1, _P1)),
    "crx": _rotation(CRx, np.kron(_P1, X / 2)),
    "cry": _rotation(CRy, np.kron(_P1, Y / 2)),
    "crz": _rotation(CRz, np.kron(_P1, Z / 2)),
    "u3": GateSpec(n_qubits=1, n_params=3, factory=U3),
}


def _is_half_pauli(generator: Matrix) -> bool:
    d = len(generator)
    g = generator - np.trace(generator).real / d * np.eye(d)
    return np.allclose(g @ g, np.eye(d) / 4)


# Gate name -> shift s for the two-term rule.
SHIFT_RULES: dict[str, float] = {
    name: np.pi / 2
    for name, spec in GATE_REGISTRY.items()
    if spec.generator is not None and _is_half_pauli(spec.generator)
}


def get_matrix(name: str, params: tuple[float, ...] = ()) -> Matrix:
    """
    Matrix of gate ``name`` (case-insensitive) at ``params``.

    Raises
    ------
    KeyError
        Unknown gate name.
    ValueError
        Wrong number of parameters.
    """
    key = name.lower()
    if key not in GATE_REGISTRY:
        raise KeyError(f"Unknown gate: '{name}'. Available: {sorted(GATE_REGISTRY)}")

    spec = GATE_REGISTRY[key]
    if spec.n_params == 0:
        if params:
            raise ValueError(f"Gate '{name}' takes no parameters, got {len(params)}")
        return spec.matrix
    if len(params) != spec.n_params:
        raise ValueError(
            f"Gate '{name}' requires {spec.n_params} parameter(s), got {len(params)}"
        )
    return spec.factory(*params)


def is_shift_differentiable(name: str) -> bool:
    """True if the gate's parameter obeys the two-term shift rule."""
    return name.lower() in SHIFT_RULES


def is_unitary(m: Matrix, tol: float = 1e-9) -> bool:
    return np.allclose(m @ m.conj().T, np.eye(len(m)), atol=tol)
