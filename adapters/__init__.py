"""Concrete implementations of the engine's ports (in-memory store, simulated sensor)."""
