"""Tests for the statevector simulation backend."""

import numpy as np
import pytest

from tiny_autodiff import Circuit, Observable, Parameter, StatevectorBackend
from tiny_autodiff.ansatz import deuteron


@pytest.fixture
def backend():
    return StatevectorBackend(seed=42)


# ---------------------------------------------------------------------------
# Basic state preparation
# ---------------------------------------------------------------------------

def test_zero_state(backend):
    result = backend.run(Circuit(1))
    np.testing.assert_allclose(result.statevector, [1, 0], atol=1e-12)


def test_x_gate_flips_to_one(backend):
    sv = backend.statevector(Circuit(1).x(0))
    np.testing.assert_allclose(sv, [0, 1], atol=1e-12)


def test_qubit_zero_is_most_significant(backend):
    sv = backend.statevector(Circuit(2).x(0))
    np.testing.assert_allclose(sv, [0, 0, 1, 0], atol=1e-12)


def test_cx_control_first(backend):
    sv = backend.statevector(Circuit(2).x(0).cx(0, 1))
    np.testing.assert_allclose(sv, [0, 0, 0, 1], atol=1e-12)
    sv = backend.statevector(Circuit(2).x(1).cx(0, 1))
    np.testing.assert_allclose(sv, [0, 1, 0, 0], atol=1e-12)


def test_reversed_cx(backend):
    sv = backend.statevector(Circuit(2).x(1).cx(1, 0))
    np.testing.assert_allclose(sv, [0, 0, 0, 1], atol=1e-12)


def test_bell_state(backend):
    sv = backend.statevector(Circuit(2).h(0).cx(0, 1))
    np.testing.assert_allclose(sv, np.array([1, 0, 0, 1]) / np.sqrt(2), atol=1e-12)


def test_deuteron_state(backend):
    theta = 0.8
    sv = backend.statevector(deuteron().bind([theta]))
    expected = np.zeros(4)
    expected[2] = np.cos(theta / 2)  # |q0=1, q1=0⟩
    expected[1] = np.sin(theta / 2)  # |q0=0, q1=1⟩
    np.testing.assert_allclose(sv, expected, atol=1e-12)


def test_unbound_circuit_rejected(backend):
    with pytest.raises(ValueError, match="unbound"):
        backend.run(Circuit(1).ry(Parameter(0), 0))


def test_three_qubit_gate_order(backend):
    qc = Circuit(3).x(2).swap(0, 2)
    sv = backend.statevector(qc)
    assert np.argmax(np.abs(sv)) == 0b100


# ---------------------------------------------------------------------------
# Sampling and expectation
# ---------------------------------------------------------------------------

def test_sampling_counts(backend):
    result = backend.run(Circuit(2).h(0).cx(0, 1), shots=1000)
    counts = result.bitstring_counts()
    assert sum(counts.values()) == 1000
    assert set(counts) <= {"00", "11"}


def test_no_counts_without_shots(backend):
    result = backend.run(Circuit(1).h(0))
    assert result.counts is None
    assert result.bitstring_counts() == {}
    np.testing.assert_allclose(result.probabilities, [0.5, 0.5])


def test_sampling_is_seeded():
    a = StatevectorBackend(seed=7).run(Circuit(2).h(0).h(1), shots=200).counts
    b = StatevectorBackend(seed=7).run(Circuit(2).h(0).h(1), shots=200).counts
    assert a == b


def test_dense_expectation_value(backend):
    H = Observable.from_string("Z0 + 0.5 X1")
    qc = Circuit(2).x(0).h(1)
    assert backend.expectation_value(qc, H.matrix(2)) == pytest.approx(-1.0 + 0.5)


def test_too_many_qubits(backend):
    with pytest.raises(ValueError, match="at most 20"):
        backend.run(Circuit(21))
