"""Tests for Pauli terms, observables and the text parser."""

import numpy as np
import pytest

from tiny_autodiff import Observable, ObservableParseError, PauliTerm
from tiny_autodiff import gates as g

DEUTERON = "5.907 - 2.1433 X0X1 - 2.1433 Y0Y1+ .21829 Z0 - 6.125 Z1"


# ---------------------------------------------------------------------------
# PauliTerm
# ---------------------------------------------------------------------------

class TestPauliTerm:

    def test_from_ops_sorts_and_drops_identity(self):
        t = PauliTerm.from_ops({3: "z", 0: "X", 1: "I"}, 0.5)
        assert t.ops == ((0, "X"), (3, "Z"))
        assert t.coeff == 0.5

    def test_identity(self):
        t = PauliTerm((), 2.0)
        assert t.is_identity
        assert t.max_qubit == -1
        assert t.label == "I"

    def test_key_ignores_coefficient(self):
        assert PauliTerm.from_ops({0: "X"}, 1.0).key == PauliTerm.from_ops({0: "X"}, -3.0).key

    def test_immutable(self):
        t = PauliTerm.from_ops({0: "Z"})
        with pytest.raises(AttributeError):
            t.coeff = 2.0

    def test_non_finite_coefficient_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            PauliTerm.from_ops({0: "Z"}, float("nan"))
        with pytest.raises(ValueError, match="finite"):
            PauliTerm.from_ops({0: "Z"}, float("inf"))

    def test_invalid_pauli_rejected(self):
        with pytest.raises(ValueError, match="Invalid Pauli"):
            PauliTerm.from_ops({0: "Q"})

    def test_duplicate_qubit_rejected(self):
        with pytest.raises(ValueError, match="twice"):
            PauliTerm(((0, "X"), (0, "Z")))

    def test_str(self):
        assert str(PauliTerm.from_ops({0: "X", 1: "X"}, -2.1433)) == "-2.1433 X0X1"
        assert str(PauliTerm((), 5.907)) == "5.907"

    def test_expectation_z_on_zero_state(self):
        t = PauliTerm.from_ops({0: "Z"})
        assert t.expectation(np.array([1, 0]), 1) == pytest.approx(1.0)

    def test_expectation_x_on_plus_state(self):
        t = PauliTerm.from_ops({0: "X"})
        plus = np.array([1, 1]) / np.sqrt(2)
        assert t.expectation(plus, 1) == pytest.approx(1.0)

    def test_expectation_matches_matrix(self):
        rng = np.random.default_rng(3)
        sv = rng.normal(size=8) + 1j * rng.normal(size=8)
        sv /= np.linalg.norm(sv)
        t = PauliTerm.from_ops({0: "Y", 2: "X"}, 1.0)
        dense = np.real(np.vdot(sv, t.matrix(3) @ sv))
        assert t.expectation(sv, 3) == pytest.approx(dense)

    def test_expectation_qubit_out_of_range(self):
        t = PauliTerm.from_ops({2: "Z"})
        with pytest.raises(ValueError, match="qubit 2"):
            t.expectation(np.array([1, 0, 0, 0]), 2)

    def test_matrix_ordering(self):
        """Qubit 0 is the leftmost Kronecker factor."""
        t = PauliTerm.from_ops({0: "Z"}, 1.0)
        np.testing.assert_allclose(t.matrix(2), np.kron(g.Z, g.I))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class TestParser:

    def test_reference_string(self):
        H = Observable.from_string(DEUTERON)
        assert [t.coeff for t in H] == [5.907, -2.1433, -2.1433, 0.21829, -6.125]
        assert [t.label for t in H] == ["I", "X0X1", "Y0Y1", "Z0", "Z1"]
        assert H.n_qubits == 2

    def test_implicit_coefficient(self):
        H = Observable.from_string("X0 - Z1")
        assert [t.coeff for t in H] == [1.0, -1.0]

    def test_leading_sign(self):
        H = Observable.from_string("-0.5 Z0")
        assert H.terms[0].coeff == -0.5

    @pytest.mark.parametrize("text,coeff", [
        ("3 Z0", 3.0), ("2. Z0", 2.0), (".25 Z0", 0.25), ("1e-3 Z0", 1e-3),
        ("2.5E2 Z0", 250.0),
    ])
    def test_number_forms(self, text, coeff):
        assert Observable.from_string(text).terms[0].coeff == pytest.approx(coeff)

    def test_star_and_spaces(self):
        H = Observable.from_string("0.5 * X0 * Y 3")
        assert H.terms[0].ops == ((0, "X"), (3, "Y"))

    def test_lower_case(self):
        assert Observable.from_string("z0x1").terms[0].ops == ((0, "Z"), (1, "X"))

    def test_identity_factor_dropped(self):
        assert Observable.from_string("2 I0").terms[0].is_identity

    @pytest.mark.parametrize("text", [
        "", "   ", "2 +", "X0 2", "2 3 Z0", "Z0 Z0", "A0", "X", "*Z0", "+ - Z0",
        "2 *", "X0 * + Z1", "2 * * X0",
    ])
    def test_malformed(self, text):
        with pytest.raises(ObservableParseError):
            Observable.from_string(text)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            Observable.from_string("Q0")

    def test_parse_error_position(self):
        with pytest.raises(ObservableParseError) as info:
            Observable.from_string("1.0 Z0 + W1")
        assert info.value.position == 9

    def test_dangling_star_reported_at_end(self):
        with pytest.raises(ObservableParseError, match="after '\\*'") as info:
            Observable.from_string("X0 *")
        assert info.value.position == 4


# ---------------------------------------------------------------------------
# Observable
# ---------------------------------------------------------------------------

class TestObservable:

    def test_empty(self):
        H = Observable()
        assert len(H) == 0
        assert H.n_qubits == 0
        assert str(H) == "0"

    def test_from_dict(self):
        H = Observable.from_dict({"": 1.5, "X0X1": -0.5, "Z 2": 2.0})
        assert [t.label for t in H] == ["I", "X0X1", "Z2"]
        assert H.n_qubits == 3

    def test_from_dict_invalid_label(self):
        with pytest.raises(ValueError):
            Observable.from_dict({"XX": 1.0})

    def test_rejects_non_terms(self):
        with pytest.raises(TypeError):
            Observable(("Z0",))

    def test_add_concatenates_in_order(self):
        A = Observable.from_string("Z0")
        B = Observable.from_string("2 X1 + Z0")
        assert [t.label for t in A + B] == ["Z0", "X1", "Z0"]

    def test_scalar_multiplication(self):
        H = 2 * Observable.from_string("Z0 - 3 X1")
        assert [t.coeff for t in H] == [2.0, -6.0]
        assert [t.coeff for t in -H] == [-2.0, 6.0]

    def test_simplify_merges_equal_operators(self):
        H = Observable.from_string("Z0 + X1 + 2 Z0 - 1").simplify()
        assert [(t.label, t.coeff) for t in H] == [("Z0", 3.0), ("X1", 1.0), ("I", -1.0)]

    def test_matrix_is_hermitian(self):
        M = Observable.from_string(DEUTERON).matrix()
        np.testing.assert_allclose(M, M.conj().T, atol=1e-12)

    def test_matrix_needs_enough_qubits(self):
        with pytest.raises(ValueError):
            Observable.from_string("Z3").matrix(2)

    def test_str_round_trip(self):
        H = Observable.from_string(DEUTERON)
        assert Observable.from_string(str(H)) == H

    def test_equality_and_hash(self):
        a = Observable.from_string("Z0 + X1")
        b = Observable.from_string("Z0 + X1")
        assert a == b
        assert hash(a) == hash(b)
