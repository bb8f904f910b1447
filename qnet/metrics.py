# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# metrics.py
# -----------------------------------------------------------------------------
# Purpose:
#   Collect and summarize simulation KPIs: per-node waits, utilization,
#   blocking, time-average occupancy, and network exits / time in network.
#
# Design notes:
#   - Keep side-effect methods (note_*) for instrumentation from the engine
#     and the router.
#   - Waits are recorded when service starts; served_count moves at departure.
#   - Summaries return JSON-serializable dicts for easy tabulation.
#
# Usage:
#   M = NetworkMetrics(); M.note_exit(customer, t); M.summary(nodes, pools, t)
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable

@dataclass
class NodeStats:
    total_wait: float = 0.0      # sum of (start - arrival), recorded at admission
    served_count: int = 0
    current_wq: float = 0.0      # minutes
    utilization: float = 0.0     # busy servers / servers, at the last tick
    blocked_count: int = 0
    total_sojourn: float = 0.0   # sum of (finish - arrival) at departure
    occupancy_area: float = 0.0  # integral of customers in node over time

    def note_wait(self, wait: float):
        self.total_wait += wait

    def note_departure(self, arrival_time: float, finish_time: float):
        self.served_count += 1
        self.total_sojourn += max(finish_time - arrival_time, 0.0)

    def note_block(self):
        self.blocked_count += 1

    def refresh(self, busy: int, servers: int):
        self.current_wq = self.total_wait / self.served_count if self.served_count > 0 else 0.0
        self.utilization = busy / servers if servers > 0 else 0.0

    def mean_sojourn(self) -> float:
        return self.total_sojourn / self.served_count if self.served_count > 0 else 0.0

    def mean_in_system(self, elapsed: float) -> float:
        return self.occupancy_area / elapsed if elapsed > 0 else 0.0

    def throughput(self, elapsed: float) -> float:
        """Departures per minute."""
        return self.served_count / elapsed if elapsed > 0 else 0.0

class NetworkMetrics:
    def __init__(self):
        self.total_exits = 0
        self.exit_time_total = 0.0    # summed end-to-end time in network of exited customers

    def note_exit(self, customer, t: float):
        self.total_exits += 1
        entered = customer.system_arrival_time
        if entered is not None:
            self.exit_time_total += max(t - entered, 0.0)

    def summary(self, nodes: Iterable[Any], pools: Iterable[Any], now: float) -> Dict:
        per_node: Dict[str, Dict[str, float]] = {}
        blocked_total = 0
        for node in nodes:
            st = node.stats
            blocked_total += st.blocked_count
            per_node[node.id] = {
                "served": st.served_count,
                "blocked": st.blocked_count,
                "avg_wait_minutes": st.current_wq,
                "utilization": st.utilization,
                "time_avg_utilization": node.busy_fraction(now),
                "avg_in_system": st.mean_in_system(now),
                "avg_sojourn_minutes": st.mean_sojourn(),
                "throughput_per_hour": st.throughput(now) * 60.0,
                "queue_length": len(node.queue),
            }
        return {
            "time_minutes": now,
            "total_exits": self.total_exits,
            "total_blocked": blocked_total,
            "avg_time_in_network_minutes": (
                self.exit_time_total / self.total_exits if self.total_exits else 0.0
            ),
            "nodes": per_node,
            "resource_pools": {p.id: {"available": p.available, "total": p.total} for p in pools},
        }
