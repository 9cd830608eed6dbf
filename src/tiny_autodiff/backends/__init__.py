"""Simulation backends."""
from .statevector import StatevectorBackend, SimulationResult

__all__ = ["StatevectorBackend", "SimulationResult"]
