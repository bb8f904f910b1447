"""
experiments/scenarios.py

Holds scenario definitions (decision variables) to sweep during experiments.
Overrides are merged into the baseline config; list-valued sections such as
network nodes are matched by id so a scenario only states what it changes.
"""

from __future__ import annotations

BASELINE = {
    "name": "baseline",
    "overrides": {},  # override config keys here per scenario
}

EXTRA_DOCTOR = {
    "name": "extra_doctor",
    "overrides": {
        "network": {
            "nodes": [
                {"id": "doctors", "serverCount": 4},
            ],
            "resourcePools": [
                {"id": "supervisors", "totalCount": 3},
            ],
        },
    },
}

HIGH_LOAD = {
    "name": "high_load",
    "overrides": {
        "network": {
            "nodes": [
                {"id": "reception", "externalLambda": 36},
                {"id": "triage", "serverCount": 3},
            ],
        },
        "sim": {
            "seed": 3,
        },
    },
}

SHORTEST_QUEUE = {
    "name": "shortest_queue_triage",
    "overrides": {
        "network": {
            "nodes": [
                {"id": "triage", "routingStrategy": "SHORTEST_QUEUE"},
            ],
        },
    },
}

SCENARIOS = [BASELINE, EXTRA_DOCTOR, HIGH_LOAD, SHORTEST_QUEUE]
