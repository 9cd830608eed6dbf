"""
Parameter-shift differentiation engine.

Computes ⟨ψ(θ)|H|ψ(θ)⟩ and its exact gradient for a weighted Pauli
observable H = Σₜ cₜ Pₜ:

    value      = Σₜ cₜ ⟨Pₜ⟩(θ)
    gradient_i = Σₜ cₜ [⟨Pₜ⟩(θ + π/2 eᵢ) − ⟨Pₜ⟩(θ − π/2 eᵢ)] / 2

Every (term, binding) pair is evaluated at most once per call, distinct
bindings are materialised once and handed to the evaluator as one batch,
and the final reduction runs in observable term order so results do not
depend on how many workers evaluated the batches.

Usage with scipy.optimize.minimize:
    >>> from scipy.optimize import minimize
    >>> engine = Autodiff(StatevectorEvaluator()).from_observable(
    ...     "5.907 - 2.1433 X0X1 - 2.1433 Y0Y1 + .21829 Z0 - 6.125 Z1")
    >>> result = minimize(engine.objective(ansatz), x0=[0.0],
    ...                   method="L-BFGS-B", jac=True)
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, NamedTuple, Sequence

import numpy as np

from tiny_autodiff.circuit import Circuit
from tiny_autodiff.evaluators import Evaluator, StatevectorEvaluator
from tiny_autodiff.exceptions import (
    EvaluationError,
    ObservableNotBoundError,
    ShapeMismatchError,
)
from tiny_autodiff.gradients.expander import ShiftRequest, TermExpander
from tiny_autodiff.observable import Observable, PauliTerm

logger = logging.getLogger(__name__)


class DerivativeResult(NamedTuple):
    """Expectation value and gradient (read-only array, one entry per parameter)."""
    value: float
    gradient: np.ndarray


class Autodiff:
    """
    Differentiable expectation value of an observable.

    Parameters
    ----------
    evaluator : Evaluator, optional
        Backend that measures Pauli terms on bound circuits. Defaults to
        an exact :class:`StatevectorEvaluator`.
    max_workers : int
        Number of threads used to evaluate independent bindings. With 1
        (the default) everything runs on the calling thread. Values above
        1 are only safe if the evaluator is.

    Example
    -------
    >>> engine = Autodiff().from_observable("-6.125 Z1 + .21829 Z0")
    >>> value, grad = engine.derivative(ansatz, [0.3])
    """

    def __init__(self, evaluator: Evaluator | None = None, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.evaluator = evaluator if evaluator is not None else StatevectorEvaluator()
        self.max_workers = max_workers
        self._observable: Observable | None = None

    # -- Observable binding -------------------------------------------------

    def from_observable(self, observable: Observable | str) -> Autodiff:
        """Bind (or replace) the observable. Text is parsed with ``Observable.from_string``."""
        if isinstance(observable, str):
            observable = Observable.from_string(observable)
        if not isinstance(observable, Observable):
            raise TypeError(
                f"Expected Observable or str, got {type(observable).__name__}"
            )
        self._observable = observable
        logger.debug("Bound observable with %d term(s): %s", len(observable), observable)
        return self

    @property
    def observable(self) -> Observable | None:
        return self._observable

    # -- Public API -----------------------------------------------------------

    def derivative(self, circuit: Circuit, params: Sequence[float]) -> DerivativeResult:
        """
        Expectation value and parameter-shift gradient at ``params``.

        Parameters
        ----------
        circuit : Circuit
            Parameterized circuit preparing |ψ(θ)⟩. Never modified.
        params : array-like
            Parameter vector θ, one entry per circuit parameter.

        Returns
        -------
        DerivativeResult
            ``(value, gradient)``.

        Raises
        ------
        ObservableNotBoundError
            If ``from_observable`` was never called.
        ShapeMismatchError
            If ``len(params)`` differs from ``circuit.parameter_count``.
        NonDifferentiableParameterError
            If a parameter drives a gate without a two-term shift rule.
        EvaluationError
            If the evaluator fails on any request.
        """
        observable = self._require_observable()
        values = self._validate(circuit, observable, params)
        n_params = len(values)

        expander = TermExpander(circuit)
        expanded = [expander.expand(term, values) for term in observable]
        requests = [req for e in expanded for req in e.all()]
        results = self._evaluate(circuit, requests)
        shifts = expander.check_differentiable() if requests else []

        value_parts: list[float] = []
        grad_parts: list[list[float]] = [[] for _ in range(n_params)]
        for e in expanded:
            c = e.term.coeff
            if e.unshifted is None:
                value_parts.append(c)
                continue
            value_parts.append(c * results[e.unshifted.cache_key])
            for i, (plus, minus) in enumerate(e.shifted):
                diff = results[plus.cache_key] - results[minus.cache_key]
                grad_parts[i].append(c * diff / (2.0 * math.sin(shifts[i])))

        gradient = np.array([math.fsum(parts) for parts in grad_parts], dtype=float)
        gradient.setflags(write=False)
        return DerivativeResult(math.fsum(value_parts), gradient)

    def expectation(self, circuit: Circuit, params: Sequence[float]) -> float:
        """Expectation value only: one request per non-identity term."""
        observable = self._require_observable()
        values = self._validate(circuit, observable, params)
        base = tuple(float(v) for v in values)

        requests = [
            ShiftRequest(term=term, params=base)
            for term in observable if not term.is_identity
        ]
        results = self._evaluate(circuit, requests)
        return math.fsum(
            term.coeff if term.is_identity
            else term.coeff * results[(term.key, base)]
            for term in observable
        )

    def objective(self, circuit: Circuit) -> Callable[[Sequence[float]], tuple[float, np.ndarray]]:
        """
        ``fun(params) -> (value, gradient)`` for ``minimize(..., jac=True)``.

        The gradient is returned as a writable copy since optimizers may
        update it in place.
        """
        def fun(params: Sequence[float]) -> tuple[float, np.ndarray]:
            value, gradient = self.derivative(circuit, params)
            return value, np.array(gradient)
        return fun

    # -- Internals ----------------------------------------------------------

    def _require_observable(self) -> Observable:
        if self._observable is None:
            raise ObservableNotBoundError(
                "No observable bound; call from_observable() first"
            )
        return self._observable

    def _validate(self, circuit: Circuit, observable: Observable,
                  params: Sequence[float]) -> np.ndarray:
        circuit.check_parameters()
        values = np.asarray(params, dtype=float)
        expected = circuit.parameter_count
        if values.ndim != 1:
            raise ShapeMismatchError(
                expected, values.size,
                f"Parameter vector must be 1-D, got shape {values.shape}",
            )
        if len(values) != expected:
            raise ShapeMismatchError(expected, len(values))
        if not np.all(np.isfinite(values)):
            raise ValueError(f"Parameters must be finite, got {values.tolist()}")
        if observable.n_qubits > circuit.n_qubits:
            raise ShapeMismatchError(
                circuit.n_qubits, observable.n_qubits,
                f"Observable acts on {observable.n_qubits} qubit(s) but the "
                f"circuit has {circuit.n_qubits}",
            )
        return values

    def _evaluate(self, circuit: Circuit,
                  requests: Sequence[ShiftRequest]) -> dict[tuple, float]:
        """
        Evaluate each distinct request once and return ``{cache_key: value}``.

        Distinct requests are grouped by binding so every bound circuit is
        built once and evaluated as a single batch.
        """
        distinct: dict[tuple, ShiftRequest] = {}
        for req in requests:
            distinct.setdefault(req.cache_key, req)

        batches: dict[tuple[float, ...], list[PauliTerm]] = {}
        for req in distinct.values():
            batches.setdefault(req.params, []).append(req.term)

        logger.debug(
            "%d request(s), %d distinct, %d binding(s)",
            len(requests), len(distinct), len(batches),
        )
        if not batches:
            return {}

        results: dict[tuple, float] = {}
        try:
            if self.max_workers == 1 or len(batches) == 1:
                for params, terms in batches.items():
                    self._store(results, params, terms,
                                self._run_batch(circuit, params, terms))
            else:
                self._evaluate_parallel(circuit, batches, results)
        except Exception as exc:
            logger.error("Evaluation failed, discarding %d request(s): %s",
                         len(distinct), exc)
            raise EvaluationError(
                f"Evaluator {self.evaluator!r} failed: {exc}",
                n_requests=len(distinct),
            ) from exc
        return results

    def _evaluate_parallel(self, circuit: Circuit,
                           batches: dict[tuple[float, ...], list[PauliTerm]],
                           results: dict[tuple, float]) -> None:
        pool = ThreadPoolExecutor(max_workers=self.max_workers,
                                  thread_name_prefix="tiny-autodiff")
        try:
            futures = {
                pool.submit(self._run_batch, circuit, params, terms): params
                for params, terms in batches.items()
            }
            for future in as_completed(futures):
                params = futures[future]
                self._store(results, params, batches[params], future.result())
        finally:
            # Not-yet-started batches are dropped on failure or interrupt.
            pool.shutdown(wait=True, cancel_futures=True)

    def _run_batch(self, circuit: Circuit, params: tuple[float, ...],
                   terms: list[PauliTerm]) -> list[float]:
        bound = circuit.bind(params)
        values = self.evaluator.evaluate_terms(bound, terms)
        if len(values) != len(terms):
            raise ValueError(
                f"Evaluator returned {len(values)} value(s) for {len(terms)} term(s)"
            )
        return [float(v) for v in values]

    @staticmethod
    def _store(results: dict[tuple, float], params: tuple[float, ...],
               terms: list[PauliTerm], values: list[float]) -> None:
        for term, v in zip(terms, values):
            if not math.isfinite(v):
                raise ValueError(f"Evaluator returned non-finite value {v} for {term.label}")
            results[(term.key, params)] = v

    def __repr__(self) -> str:
        n_terms = len(self._observable) if self._observable is not None else None
        return (
            f"Autodiff(evaluator={self.evaluator!r}, max_workers={self.max_workers}, "
            f"terms={n_terms})"
        )
