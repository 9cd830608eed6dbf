"""
Parameterized quantum circuit representation.

Provides a builder-style API for constructing unitary circuits whose gate
angles are either fixed numbers or free parameters addressed by a 0-based
index into the parameter vector.

Example
-------
>>> from tiny_autodiff import Circuit, Parameter
>>> theta = Parameter(0, "theta")
>>> qc = Circuit(2)
>>> qc.x(0).ry(theta, 1).cx(1, 0)
>>> qc.parameter_count
1
>>> bound = qc.bind([0.5])
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from tiny_autodiff import gates as g
from tiny_autodiff.exceptions import ShapeMismatchError


# ---------------------------------------------------------------------------
# Parameter: one entry of the parameter vector
# ---------------------------------------------------------------------------

class Parameter:
    """
    Free circuit parameter, identified by its position in the parameter vector.

    Parameters
    ----------
    index : int
        0-based position in the vector passed to ``bind``.
    name : str, optional
        Human-readable name. Defaults to ``theta<index>``.

    Example
    -------
    >>> theta = Parameter(0)
    >>> phi = Parameter(1, "phi")
    """

    __slots__ = ("index", "name")

    def __init__(self, index: int, name: str | None = None) -> None:
        if index < 0:
            raise ValueError(f"Parameter index must be non-negative, got {index}")
        self.index = int(index)
        self.name = name if name is not None else f"theta{index}"

    def __repr__(self) -> str:
        return f"Parameter({self.index}, '{self.name}')"

    def __hash__(self) -> int:
        return hash(("Parameter", self.index))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Parameter):
            return self.index == other.index
        return NotImplemented


# ---------------------------------------------------------------------------
# Instruction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    """A single gate operation applied to specific qubits."""
    name: str
    qubits: tuple[int, ...]
    params: tuple[Any, ...] = ()  # float or Parameter

    @property
    def n_qubits(self) -> int:
        return len(self.qubits)

    @property
    def is_parameterized(self) -> bool:
        return any(isinstance(p, Parameter) for p in self.params)

    @property
    def parameter_indices(self) -> tuple[int, ...]:
        return tuple(p.index for p in self.params if isinstance(p, Parameter))

    def bind(self, values: Sequence[float]) -> Instruction:
        """Return a new Instruction with parameters resolved from ``values``."""
        if not self.is_parameterized:
            return self
        new_params = tuple(
            float(values[p.index]) if isinstance(p, Parameter) else p
            for p in self.params
        )
        return Instruction(name=self.name, qubits=self.qubits, params=new_params)

    def matrix(self) -> np.ndarray:
        """Get the unitary matrix. Raises if unresolved parameters remain."""
        if self.is_parameterized:
            raise ValueError(
                f"Cannot get matrix: gate '{self.name}' has unbound parameters "
                f"{[p for p in self.params if isinstance(p, Parameter)]}"
            )
        return g.get_matrix(self.name, self.params)

    def __str__(self) -> str:
        qubits = ", ".join(str(q) for q in self.qubits)
        if not self.params:
            return f"{self.name.upper()} {qubits}"
        params = ", ".join(
            p.name if isinstance(p, Parameter) else f"{p:.4g}" for p in self.params
        )
        return f"{self.name.upper()}({params}) {qubits}"


# ---------------------------------------------------------------------------
# Circuit
# ---------------------------------------------------------------------------

class Circuit:
    """
    Unitary quantum circuit on n_qubits qubits.

    The circuit is consumed read-only by evaluators and the gradient
    engine; ``bind`` always returns a fresh circuit.

    Parameters
    ----------
    n_qubits : int
        Number of quantum bits.
    name : str, optional
        Circuit name for display.
    """

    def __init__(self, n_qubits: int, name: str = "circuit") -> None:
        if n_qubits < 1:
            raise ValueError(f"Need at least 1 qubit, got {n_qubits}")
        self.n_qubits = n_qubits
        self.name = name
        self._instructions: list[Instruction] = []

    # -- Properties ---------------------------------------------------------

    @property
    def instructions(self) -> list[Instruction]:
        """List of instructions in the circuit."""
        return list(self._instructions)

    @property
    def parameters(self) -> list[Parameter]:
        """Distinct free parameters, sorted by index."""
        found: dict[int, Parameter] = {}
        for inst in self._instructions:
            for p in inst.params:
                if isinstance(p, Parameter):
                    found.setdefault(p.index, p)
        return [found[i] for i in sorted(found)]

    @property
    def parameter_count(self) -> int:
        """Length of the parameter vector: highest referenced index + 1."""
        params = self.parameters
        return params[-1].index + 1 if params else 0

    @property
    def is_parameterized(self) -> bool:
        return any(inst.is_parameterized for inst in self._instructions)

    @property
    def depth(self) -> int:
        """Circuit depth (longest path through any qubit)."""
        qubit_depth = [0] * self.n_qubits
        for inst in self._instructions:
            max_d = max(qubit_depth[q] for q in inst.qubits)
            for q in inst.qubits:
                qubit_depth[q] = max_d + 1
        return max(qubit_depth)

    @property
    def num_gates(self) -> int:
        return len(self._instructions)

    def __len__(self) -> int:
        return len(self._instructions)

    # -- Parameter bookkeeping ----------------------------------------------

    def check_parameters(self) -> None:
        """
        Verify referenced parameter indices are exactly 0..N-1.

        Raises
        ------
        ShapeMismatchError
            If an index in that range is never used.
        """
        used = {p.index for p in self.parameters}
        count = self.parameter_count
        missing = sorted(set(range(count)) - used)
        if missing:
            raise ShapeMismatchError(
                count, len(used),
                f"Circuit parameter indices must be contiguous from 0; "
                f"missing {missing}",
            )

    def parameter_instructions(self, index: int) -> list[tuple[int, Instruction]]:
        """(position, instruction) pairs that reference parameter ``index``."""
        return [
            (pos, inst)
            for pos, inst in enumerate(self._instructions)
            if index in inst.parameter_indices
        ]

    # -- Internal helpers ---------------------------------------------------

    def _validate_qubits(self, qubits: Sequence[int]) -> None:
        for q in qubits:
            if not 0 <= q < self.n_qubits:
                raise ValueError(
                    f"Qubit {q} out of range for {self.n_qubits}-qubit circuit"
                )
        if len(set(qubits)) != len(qubits):
            raise ValueError(f"Duplicate qubits in {qubits}")

    def _add(self, name: str, qubits: tuple[int, ...], params: tuple = ()) -> Circuit:
        """Add an instruction and return self for chaining."""
        self._validate_qubits(qubits)
        for p in params:
            if not isinstance(p, (Parameter, int, float, np.integer, np.floating)):
                raise TypeError(
                    f"Gate '{name}' parameter must be a number or Parameter, "
                    f"got {type(p).__name__}"
                )
        params = tuple(p if isinstance(p, Parameter) else float(p) for p in params)
        self._instructions.append(Instruction(name=name, qubits=qubits, params=params))
        return self

    # -- Fixed gates --------------------------------------------------------

    def i(self, qubit: int) -> Circuit:
        return self._add("i", (qubit,))

    def x(self, qubit: int) -> Circuit:
        return self._add("x", (qubit,))

    def y(self, qubit: int) -> Circuit:
        return self._add("y", (qubit,))

    def z(self, qubit: int) -> Circuit:
        return self._add("z", (qubit,))

    def h(self, qubit: int) -> Circuit:
        return self._add("h", (qubit,))

    def s(self, qubit: int) -> Circuit:
        return self._add("s", (qubit,))

    def sdg(self, qubit: int) -> Circuit:
        return self._add("sdg", (qubit,))

    def cx(self, control: int, target: int) -> Circuit:
        return self._add("cx", (control, target))

    cnot = cx

    def cz(self, q0: int, q1: int) -> Circuit:
        return self._add("cz", (q0, q1))

    def swap(self, q0: int, q1: int) -> Circuit:
        return self._add("swap", (q0, q1))

    # -- Shift-differentiable rotations -------------------------------------
    # Each angle may be a number or a Parameter.

    def rx(self, theta: float | Parameter, qubit: int) -> Circuit:
        """exp(-iθX/2)"""
        return self._add("rx", (qubit,), (theta,))

    def ry(self, theta: float | Parameter, qubit: int) -> Circuit:
        """exp(-iθY/2)"""
        return self._add("ry", (qubit,), (theta,))

    def rz(self, theta: float | Parameter, qubit: int) -> Circuit:
        """exp(-iθZ/2)"""
        return self._add("rz", (qubit,), (theta,))

    def p(self, lam: float | Parameter, qubit: int) -> Circuit:
        """diag(1, e^{iλ}), i.e. Rz(λ) up to a global phase."""
        return self._add("p", (qubit,), (lam,))

    def u1(self, lam: float | Parameter, qubit: int) -> Circuit:
        """Same as ``p``."""
        return self._add("u1", (qubit,), (lam,))

    def rxx(self, theta: float | Parameter, q0: int, q1: int) -> Circuit:
        """exp(-iθ X⊗X/2)"""
        return self._add("rxx", (q0, q1), (theta,))

    def ryy(self, theta: float | Parameter, q0: int, q1: int) -> Circuit:
        """exp(-iθ Y⊗Y/2)"""
        return self._add("ryy", (q0, q1), (theta,))

    def rzz(self, theta: float | Parameter, q0: int, q1: int) -> Circuit:
        """exp(-iθ Z⊗Z/2)"""
        return self._add("rzz", (q0, q1), (theta,))

    # -- Other parameterized gates ------------------------------------------
    # Simulated normally; a Parameter here makes ``derivative`` fail with
    # NonDifferentiableParameterError.

    def u3(self, theta: float | Parameter, phi: float | Parameter,
           lam: float | Parameter, qubit: int) -> Circuit:
        return self._add("u3", (qubit,), (theta, phi, lam))

    def cp(self, lam: float | Parameter, control: int, target: int) -> Circuit:
        return self._add("cp", (control, target), (lam,))

    def crx(self, theta: float | Parameter, control: int, target: int) -> Circuit:
        return self._add("crx", (control, target), (theta,))

    def cry(self, theta: float | Parameter, control: int, target: int) -> Circuit:
        return self._add("cry", (control, target), (theta,))

    def crz(self, theta: float | Parameter, control: int, target: int) -> Circuit:
        return self._add("crz", (control, target), (theta,))

    # -- Parameter binding --------------------------------------------------

    def bind(self, values: Sequence[float]) -> Circuit:
        """
        Return a new circuit with every parameter bound to a concrete value.

        Parameters
        ----------
        values : sequence of float
            Parameter vector; ``values[i]`` replaces ``Parameter(i)``.

        Returns
        -------
        Circuit
            New, fully bound circuit. ``self`` is left untouched.

        Raises
        ------
        ShapeMismatchError
            If ``len(values) != parameter_count``.
        """
        values = np.asarray(values, dtype=float).ravel()
        if len(values) != self.parameter_count:
            raise ShapeMismatchError(self.parameter_count, len(values))
        new_circuit = Circuit(self.n_qubits, self.name)
        new_circuit._instructions = [inst.bind(values) for inst in self._instructions]
        return new_circuit

    # -- Copy ---------------------------------------------------------------

    def copy(self) -> Circuit:
        """Return an independent copy (instructions are immutable)."""
        new_circuit = Circuit(self.n_qubits, self.name)
        new_circuit._instructions = list(self._instructions)
        return new_circuit

    # -- Display ------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"Circuit(n_qubits={self.n_qubits}, depth={self.depth}, "
            f"gates={self.num_gates}, parameters={self.parameter_count})"
        )

    def __str__(self) -> str:
        lines = [f"{self.name} ({self.n_qubits} qubits)"]
        lines.extend(f"  {inst}" for inst in self._instructions)
        return "\n".join(lines)
