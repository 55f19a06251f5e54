"""Clinical decision and session-workflow engine for point-of-care checks.

This package contains the decision rules and the encounter state machine,
isolated from rendering, devices and storage for easy testing and reasoning.
"""
