"""Tests for the evaluator adapters."""

import numpy as np
import pytest

from tiny_autodiff import (
    Circuit,
    Evaluator,
    Parameter,
    PauliTerm,
    SamplingEvaluator,
    StatevectorEvaluator,
)
from tiny_autodiff.ansatz import deuteron

Z0 = PauliTerm.from_ops({0: "Z"})
X0 = PauliTerm.from_ops({0: "X"})
Y0 = PauliTerm.from_ops({0: "Y"})
IDENTITY = PauliTerm((), 3.0)


# ---------------------------------------------------------------------------
# StatevectorEvaluator
# ---------------------------------------------------------------------------

class TestStatevectorEvaluator:

    @pytest.mark.parametrize("circuit,term,expected", [
        (Circuit(1), Z0, 1.0),
        (Circuit(1).x(0), Z0, -1.0),
        (Circuit(1).h(0), X0, 1.0),
        (Circuit(1).rx(-np.pi / 2, 0), Y0, 1.0),
        (Circuit(1).h(0), Z0, 0.0),
    ])
    def test_single_qubit_values(self, circuit, term, expected):
        assert StatevectorEvaluator().evaluate(circuit, term) == pytest.approx(expected, abs=1e-12)

    def test_coefficient_not_applied(self):
        term = PauliTerm.from_ops({0: "Z"}, -7.0)
        assert StatevectorEvaluator().evaluate(Circuit(1), term) == pytest.approx(1.0)

    def test_identity_is_one(self):
        assert StatevectorEvaluator().evaluate(Circuit(2).h(0), IDENTITY) == 1.0

    def test_deuteron_terms(self):
        theta = 0.9
        qc = deuteron().bind([theta])
        terms = [PauliTerm.from_ops(ops) for ops in
                 ({0: "X", 1: "X"}, {0: "Y", 1: "Y"}, {0: "Z"}, {1: "Z"})]
        values = StatevectorEvaluator().evaluate_terms(qc, terms)
        np.testing.assert_allclose(
            values, [np.sin(theta), np.sin(theta), -np.cos(theta), np.cos(theta)], atol=1e-12
        )

    def test_counts_batches(self):
        ev = StatevectorEvaluator()
        ev.evaluate_terms(Circuit(1), [Z0, X0, Y0])
        ev.evaluate(Circuit(1), Z0)
        assert ev.calls == 2

    def test_unbound_circuit_rejected(self):
        with pytest.raises(ValueError, match="fully bound"):
            StatevectorEvaluator().evaluate(Circuit(1).ry(Parameter(0), 0), Z0)

    def test_term_outside_circuit_rejected(self):
        with pytest.raises(ValueError, match="qubit 1"):
            StatevectorEvaluator().evaluate(Circuit(1), PauliTerm.from_ops({1: "Z"}))

    def test_deterministic_flag(self):
        assert StatevectorEvaluator.deterministic
        assert not SamplingEvaluator.deterministic


# ---------------------------------------------------------------------------
# SamplingEvaluator
# ---------------------------------------------------------------------------

class TestSamplingEvaluator:

    def test_eigenstates_are_exact(self):
        ev = SamplingEvaluator(shots=100, seed=1)
        assert ev.evaluate(Circuit(1).x(0), Z0) == -1.0
        assert ev.evaluate(Circuit(1).h(0), X0) == 1.0
        assert ev.evaluate(Circuit(1).rx(-np.pi / 2, 0), Y0) == 1.0

    def test_converges_to_exact_value(self):
        shots = 20000
        qc = deuteron().bind([0.9])
        terms = [PauliTerm.from_ops(ops) for ops in
                 ({0: "X", 1: "X"}, {0: "Y", 1: "Y"}, {0: "Z"}, {1: "Z"})]
        exact = StatevectorEvaluator().evaluate_terms(qc, terms)
        sampled = SamplingEvaluator(shots=shots, seed=11).evaluate_terms(qc, terms)
        # 5 standard errors, variance ≤ 1/shots
        np.testing.assert_allclose(sampled, exact, atol=5 / np.sqrt(shots))

    def test_seeded_reproducible(self):
        qc = Circuit(1).ry(0.7, 0)
        a = SamplingEvaluator(shots=500, seed=3).evaluate(qc, X0)
        b = SamplingEvaluator(shots=500, seed=3).evaluate(qc, X0)
        assert a == b

    def test_does_not_modify_circuit(self):
        qc = Circuit(1).ry(0.7, 0)
        SamplingEvaluator(shots=10, seed=0).evaluate(qc, Y0)
        assert qc.num_gates == 1

    def test_identity_is_one(self):
        assert SamplingEvaluator(shots=10).evaluate(Circuit(1).h(0), IDENTITY) == 1.0

    def test_invalid_shots(self):
        with pytest.raises(ValueError):
            SamplingEvaluator(shots=0)


# ---------------------------------------------------------------------------
# Custom evaluators
# ---------------------------------------------------------------------------

def test_custom_evaluator_default_batching():
    class ConstantEvaluator(Evaluator):
        def evaluate(self, circuit, term):
            return 0.25

    ev = ConstantEvaluator()
    assert ev.evaluate_terms(Circuit(1), [Z0, X0]) == [0.25, 0.25]
    assert ev.calls == 1


def test_evaluator_is_abstract():
    with pytest.raises(TypeError):
        Evaluator()
