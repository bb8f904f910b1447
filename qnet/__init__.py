"""
qnet package initializer.

This package contains the fixed-step network simulation engine, its
primitives (nodes/servers/resource pools), routing policies, metric
collection, and the analytical side (queueing formulas, Jackson traffic
equations, capacity-planning helpers) used to check the simulator against
theory.
"""
__all__ = [
    "entities", "distributions", "config", "resources", "queues", "stations",
    "policies", "network", "metrics", "simulation", "theory", "traffic",
    "planning", "stats",
]
