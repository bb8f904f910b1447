# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# planning.py
# -----------------------------------------------------------------------------
# Purpose:
#   Capacity-planning helpers on top of the analytical engine: estimated
#   wait for a new arrival, inverse Erlang-C staffing, cost curves over the
#   server count, and one-parameter sensitivity sweeps.
#
# Design notes:
#   - QueueScenario keeps the single-station decision variables in one place;
#     sweeps copy it with dataclasses.replace, never mutate it.
#   - Units follow the UI convention: lam per hour, service time in minutes,
#     reported waits in minutes.
#
# Usage:
#   required_servers(60, 20, target_minutes=0.5, target_fraction=0.8)
#   sensitivity(QueueScenario(lam=50, avg_service_time=3, servers=3), "servers", 3, 8, 1, 20, 5)
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import List

from .distributions import DistributionType
from .theory import QueueModel, TheoreticalMetrics, erlang_c, theoretical_metrics

MAX_STAFFING = 100
COST_SCAN_LIMIT = 20

def estimated_wait_time(queue_length: int, active_servers: int, avg_service_time: float,
                        efficiency: float = 1.0) -> float:
    """Expected wait (minutes) of a new arrival: (Lq + 1) / (s * mu_eff)."""
    if active_servers <= 0:
        return math.inf
    rate = active_servers * efficiency / avg_service_time
    return (queue_length + 1) / rate

def required_servers(lam: float, mu: float, target_minutes: float, target_fraction: float,
                     max_servers: int = MAX_STAFFING) -> int:
    """
    Smallest server count meeting a service level P(wait <= t) >= target,
    with SL = 1 - C(s) * exp(-(s*mu - lam) * t). Rates are per hour.
    Returns max_servers when the target cannot be met below it.
    """
    r = lam / mu
    t_hours = target_minutes / 60.0
    s = int(math.floor(r)) + 1
    while s <= max_servers:
        level = 1.0 - erlang_c(r, s) * math.exp(-(s * mu - lam) * t_hours)
        if level >= target_fraction:
            return s
        s += 1
    return max_servers

@dataclass(frozen=True)
class QueueScenario:
    lam: float                      # arrivals per hour
    avg_service_time: float         # minutes
    servers: int = 1
    model: QueueModel = QueueModel.MMS
    capacity: float = math.inf
    population: float = math.inf
    arrival_type: DistributionType = DistributionType.POISSON
    arrival_k: int = 2
    service_type: DistributionType = DistributionType.POISSON
    service_k: int = 2
    efficiency: float = 1.0
    breakdown: bool = False
    mtbf: float = 60.0
    mttr: float = 5.0

    @property
    def mu(self) -> float:
        return 60.0 / self.avg_service_time

    def metrics(self) -> TheoreticalMetrics:
        return theoretical_metrics(
            self.lam, self.mu, self.servers, self.model, self.capacity, self.population,
            self.arrival_type, self.arrival_k, self.service_type, self.service_k,
            self.efficiency, self.breakdown, self.mtbf, self.mttr,
        )

@dataclass
class CostPoint:
    servers: int
    cost_servers: float
    cost_waiting: float
    total_cost: float
    is_stable: bool

@dataclass
class SensitivityPoint:
    x: float
    wq_minutes: float
    lq: float
    rho: float
    total_cost: float
    is_stable: bool

def cost_curve(scenario: QueueScenario, cost_per_server: float, cost_per_wait: float,
               max_servers: int = COST_SCAN_LIMIT) -> List[CostPoint]:
    """Server cost + waiting cost (Lq * cost_per_wait) for s = 1..max_servers."""
    if scenario.model is QueueModel.MMINF:
        return []
    top = 1 if scenario.model is QueueModel.MM1 else max_servers
    points = []
    for s in range(1, top + 1):
        m = replace(scenario, servers=s).metrics()
        staff = s * cost_per_server
        if m.is_stable:
            waiting = m.lq * cost_per_wait
            points.append(CostPoint(s, staff, waiting, staff + waiting, True))
        else:
            points.append(CostPoint(s, staff, 0.0, 0.0, False))
    return points

_SWEEPABLE = {"servers", "lam", "avg_service_time"}

def sensitivity(scenario: QueueScenario, parameter: str, low: float, high: float, step: float,
                cost_per_server: float, cost_per_wait: float) -> List[SensitivityPoint]:
    """Sweep one of servers / lam / avg_service_time from low to high."""
    if parameter not in _SWEEPABLE:
        raise ValueError(f"Cannot sweep {parameter!r}; choose one of {sorted(_SWEEPABLE)}")
    if step <= 0:
        raise ValueError("Sweep step must be positive")
    if parameter == "servers" and low < 1:
        raise ValueError(f"Sweep of 'servers' must start at 1 or above, got {low}")
    if parameter == "avg_service_time" and low <= 0:
        raise ValueError(f"Sweep of 'avg_service_time' must start above 0, got {low}")
    if parameter == "lam" and low < 0:
        raise ValueError(f"Sweep of 'lam' must start at 0 or above, got {low}")
    results = []
    n_steps = int(math.floor((high - low) / step + 1e-9))
    for i in range(n_steps + 1):
        x = round(low + i * step, 2)
        value = int(x) if parameter == "servers" else x
        m = replace(scenario, **{parameter: value}).metrics()
        s = value if parameter == "servers" else scenario.servers
        if m.is_stable:
            total = s * cost_per_server + m.lq * cost_per_wait
            results.append(SensitivityPoint(x, m.wq * 60.0, m.lq, m.rho, total, True))
        else:
            results.append(SensitivityPoint(x, 0.0, 0.0, m.rho, 0.0, False))
    return results
