"""Example: Minimise the deuteron energy with parameter-shift gradients."""
import sys
sys.path.insert(0, 'src')

import numpy as np

from tiny_autodiff import Autodiff
from tiny_autodiff.ansatz import DEUTERON_OBSERVABLE, deuteron

print("=" * 50)
print("tiny-autodiff: Deuteron Example")
print("=" * 50)

ansatz = deuteron()
engine = Autodiff().from_observable(DEUTERON_OBSERVABLE)

theta, grad = 0.0, 0.0
for step in range(200):
    theta -= 0.01 * grad
    energy, gradient = engine.derivative(ansatz, [theta])
    grad = gradient[0]
    if step % 40 == 0:
        print(f"  step {step:3d}: θ = {theta:+.4f}  E = {energy:+.6f}  dE/dθ = {grad:+.4f}")

print(f"\nFinal: θ = {theta:.4f}, E = {energy:.5f} MeV")
print(f"Expected: θ ≈ 0.594, E ≈ -1.74886 MeV (exact {-np.sqrt(4.2866**2 + 6.34329**2) + 5.907:.5f})")
