"""
Command-line interface for tiny-autodiff.

Usage:
    tiny-autodiff derivative --observable "5.907 - 2.1433 X0X1 - 6.125 Z1" 0.5
    tiny-autodiff derivative --ansatz hea --qubits 3 --layers 2 --shots 4096 0 0 0 0 0 0 0 0 0
    tiny-autodiff sweep --points 20
    tiny-autodiff minimize 0.0
    tiny-autodiff info
"""
import argparse
import logging
import sys

import numpy as np

from ..ansatz import DEUTERON_OBSERVABLE, deuteron, hardware_efficient
from ..evaluators import SamplingEvaluator, StatevectorEvaluator
from ..exceptions import AutodiffError
from ..gradients import Autodiff
from ..optimize import GRADIENT_METHODS, minimize_expectation


def _build_engine(args):
    if args.shots:
        # SamplingEvaluator shares one random generator across calls
        if args.workers > 1:
            raise AutodiffError("--shots cannot be combined with --workers above 1")
        evaluator = SamplingEvaluator(shots=args.shots, seed=args.seed)
    else:
        evaluator = StatevectorEvaluator()
    return Autodiff(evaluator, max_workers=args.workers).from_observable(args.observable)


def _build_ansatz(args):
    if args.ansatz == 'hea':
        return hardware_efficient(args.qubits, args.layers)
    return deuteron()


def _format_vector(values):
    return '[' + ', '.join(f'{v:+.6f}' for v in values) + ']'


def cmd_derivative(args):
    """Print value and gradient at one parameter vector."""
    engine = _build_engine(args)
    circuit = _build_ansatz(args)
    result = engine.derivative(circuit, args.params)

    print(f"Circuit:  {circuit!r}")
    print(f"Params:   {_format_vector(args.params)}")
    print(f"Value:    {result.value:+.6f}")
    print(f"Gradient: {_format_vector(result.gradient)}")


def cmd_sweep(args):
    """Print value and gradient over θ ∈ linspace(-π, π, points)."""
    engine = _build_engine(args)
    circuit = _build_ansatz(args)
    if circuit.parameter_count != 1:
        raise AutodiffError(
            f"sweep needs a single-parameter ansatz, got {circuit.parameter_count}"
        )

    print(f"{'theta':>10}  {'value':>12}  {'gradient':>12}")
    for theta in np.linspace(-np.pi, np.pi, args.points):
        value, grad = engine.derivative(circuit, [theta])
        print(f"{theta:10.4f}  {value:12.6f}  {grad[0]:12.6f}")


def cmd_minimize(args):
    """Minimise the expectation with a gradient-based scipy optimizer."""
    engine = _build_engine(args)
    circuit = _build_ansatz(args)
    x0 = args.x0 if args.x0 else None
    result = minimize_expectation(engine, circuit, x0=x0, method=args.method,
                                  maxiter=args.maxiter, seed=args.seed)

    print(f"Circuit:     {circuit!r}")
    print(f"Method:      {args.method} ({result.message})")
    print(f"Evaluations: {result.num_evaluations}")
    print(f"Value:       {result.value:+.6f}")
    print(f"Params:      {_format_vector(result.params)}")
    print(f"Gradient:    {_format_vector(result.gradient)}")


def cmd_info(args):
    """Show tiny-autodiff information."""
    from .. import __version__
    from ..gates import SHIFT_RULES

    print(f"""
tiny-autodiff v{__version__}
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Exact gradients of quantum expectation values (parameter-shift rule).

Differentiable gates: {', '.join(sorted(SHIFT_RULES))}

Usage:
  tiny-autodiff derivative 0.594
  tiny-autodiff derivative --shots 8192 --seed 7 0.594
  tiny-autodiff minimize --method BFGS 0.0
  tiny-autodiff sweep --points 20
""")


def _add_engine_options(parser):
    parser.add_argument('--observable', default=DEUTERON_OBSERVABLE,
                        help='Weighted Pauli string (default: deuteron)')
    parser.add_argument('--ansatz', choices=('deuteron', 'hea'), default='deuteron',
                        help='Circuit to differentiate')
    parser.add_argument('--qubits', type=int, default=2, help='Qubits for hea ansatz')
    parser.add_argument('--layers', type=int, default=1, help='Layers for hea ansatz')
    parser.add_argument('--shots', type=int, default=0,
                        help='Sample with N shots per term (0 = exact statevector)')
    parser.add_argument('--seed', type=int, help='Sampling seed')
    parser.add_argument('--workers', type=int, default=1, help='Evaluation threads')


def build_parser():
    parser = argparse.ArgumentParser(
        prog='tiny-autodiff',
        description='Parameter-shift gradients of quantum expectation values'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Derivative command
    deriv_parser = subparsers.add_parser('derivative', help='Value and gradient at a point')
    _add_engine_options(deriv_parser)
    deriv_parser.add_argument('params', type=float, nargs='*', help='Parameter vector')
    deriv_parser.set_defaults(func=cmd_derivative)

    # Sweep command
    sweep_parser = subparsers.add_parser('sweep', help='Scan a single-parameter ansatz')
    _add_engine_options(sweep_parser)
    sweep_parser.add_argument('--points', type=int, default=20, help='Number of angles')
    sweep_parser.set_defaults(func=cmd_sweep)

    # Minimize command
    min_parser = subparsers.add_parser('minimize', help='Gradient-based minimisation')
    _add_engine_options(min_parser)
    min_parser.add_argument('--method', choices=GRADIENT_METHODS, default='L-BFGS-B',
                            help='scipy.optimize method')
    min_parser.add_argument('--maxiter', type=int, default=200, help='Iteration cap')
    min_parser.add_argument('x0', type=float, nargs='*',
                            help='Starting point (random if omitted)')
    min_parser.set_defaults(func=cmd_minimize)

    # Info command
    info_parser = subparsers.add_parser('info', help='Show tiny-autodiff info')
    info_parser.set_defaults(func=cmd_info)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    if args.command is None:
        parser.print_help()
        return 0

    try:
        args.func(args)
    except (AutodiffError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
