from .oximeter import OximeterProfile, SimulatedOximeterSource

__all__ = ["OximeterProfile", "SimulatedOximeterSource"]
