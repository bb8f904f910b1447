# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# traffic.py
# -----------------------------------------------------------------------------
# Purpose:
#   Jackson network traffic equations: effective arrival rate per node from
#   external arrivals plus routed internal flow, solved by fixed-point
#   iteration; and a per-node analytic view built on top of it.
#
# Design notes:
#   - Uses the generic (class-agnostic) link probability.
#   - Feedback loops with total gain >= 1 never settle; the solver then
#     returns its last iterate with converged=False instead of raising.
#
# Usage:
#   sol = solve_traffic(cfg.nodes, cfg.links)
#   sol.rates["triage"], sol.converged
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

from .config import LinkConfig, NetworkConfig, NodeConfig
from .theory import TheoreticalMetrics, theoretical_metrics

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 50
TOLERANCE = 1e-4

@dataclass
class TrafficSolution:
    rates: Dict[str, float]     # arrivals per hour
    converged: bool
    iterations: int
    max_delta: float

@dataclass
class NodeAnalysis:
    node_id: str
    arrival_rate: float         # per hour
    service_rate: float         # per hour per server
    servers: int
    metrics: TheoreticalMetrics

def solve_traffic(nodes: Sequence[NodeConfig], links: Iterable[LinkConfig],
                  max_iterations: int = MAX_ITERATIONS,
                  tolerance: float = TOLERANCE) -> TrafficSolution:
    """
    Iterate lambda_j = gamma_j + sum_i lambda_i * p_ij until the largest
    change between sweeps drops below `tolerance` or `max_iterations` sweeps
    have run.
    """
    links = list(links)
    external = {n.id: (n.external_lambda if n.is_source else 0.0) for n in nodes}
    rates = dict(external)
    incoming: Dict[str, list] = {n.id: [] for n in nodes}
    for link in links:
        if link.target_id in incoming:
            incoming[link.target_id].append(link)

    max_delta = 0.0
    iterations = 0
    converged = False
    for iterations in range(1, max_iterations + 1):
        nxt = {}
        max_delta = 0.0
        for node_id, gamma in external.items():
            total = gamma + sum(rates.get(ln.source_id, 0.0) * ln.probability
                                for ln in incoming[node_id])
            max_delta = max(max_delta, abs(total - rates[node_id]))
            nxt[node_id] = total
        rates = nxt
        if max_delta < tolerance:
            converged = True
            break
    if not converged:
        logger.warning(
            "traffic equations did not converge after %d iterations (max change %.3g); "
            "rates are unreliable", iterations, max_delta,
        )
    return TrafficSolution(rates, converged, iterations, max_delta)

def exit_rates(solution: TrafficSolution, links: Iterable[LinkConfig]) -> Dict[str, float]:
    """Per-node rate of customers leaving the network (residual routing mass)."""
    routed = {node_id: 0.0 for node_id in solution.rates}
    for link in links:
        if link.source_id in routed:
            routed[link.source_id] += link.probability
    return {
        node_id: solution.rates[node_id] * max(1.0 - p, 0.0)
        for node_id, p in routed.items()
    }

def analyze_network(config: NetworkConfig) -> Dict[str, NodeAnalysis]:
    """M/M/s reference metrics for every node at its solved arrival rate."""
    solution = solve_traffic(config.nodes, config.links)
    out = {}
    for node in config.nodes:
        lam = solution.rates[node.id]
        out[node.id] = NodeAnalysis(
            node.id, lam, node.service_rate, node.server_count,
            theoretical_metrics(lam, node.service_rate, node.server_count),
        )
    return out
