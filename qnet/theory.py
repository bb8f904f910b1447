# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# theory.py
# -----------------------------------------------------------------------------
# Purpose:
#   Steady-state queueing formulas used as reference lines for the simulator:
#   M/M/s (Erlang-C), M/G/1 (Pollaczek-Khinchine), G/G/s (Allen-Cunneen),
#   M/M/s/K (finite capacity), M/M/s//N (finite population), M/G/inf.
#
# Design notes:
#   - Rates are per hour, so Wq and W come back in hours.
#   - Instability is a result (is_stable=False, infinite queue metrics),
#     never an exception. Bad parameters raise ValueError.
#   - Poisson terms r^n/n! are built by recurrence to stay in float range
#     for large server counts.
#
# Usage:
#   m = theoretical_metrics(30, 60, 1)        # M/M/1, rho = 0.5
#   m.lq, m.wq * 60                           # 0.5 customers, 1 minute
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from .distributions import DistributionType, parse_distribution, squared_cv

INF_SERVER_PROXY = 100   # server count assumed for M/G/inf when a per-server figure is needed

class QueueModel(str, Enum):
    MM1 = "M/M/1"
    MMS = "M/M/s"
    MMSK = "M/M/s/K"
    MMS_N_POP = "M/M/s//N"
    MMINF = "M/M/inf"

def parse_model(value: Union[str, QueueModel]) -> QueueModel:
    if isinstance(value, QueueModel):
        return value
    text = str(value).strip()
    for member in QueueModel:
        if text == member.value or text.upper() == member.name:
            return member
    raise ValueError(f"Unknown queue model {value!r}")

@dataclass
class TheoreticalMetrics:
    rho: float
    p0: float
    lq: float
    l: float
    wq: float                       # hours
    w: float                        # hours
    is_stable: bool
    is_approximate: bool = False
    note: Optional[str] = None
    prob_wait: Optional[float] = None
    heavy_traffic_lq: Optional[float] = None
    heavy_traffic_wq: Optional[float] = None
    lambda_eff: Optional[float] = None

def _poisson_terms(r: float, n: int) -> List[float]:
    """[r^0/0!, r^1/1!, ..., r^n/n!]"""
    terms = [1.0]
    for i in range(1, n + 1):
        terms.append(terms[-1] * r / i)
    return terms

def erlang_c(r: float, s: int) -> float:
    """Probability an arrival must wait in M/M/s with offered load r = lambda/mu."""
    if s <= r:
        return 1.0
    terms = _poisson_terms(r, s)
    top = terms[s] * s / (s - r)
    return top / (sum(terms[:s]) + top)

def theoretical_metrics(
    lam: float,
    mu: float,
    s: int = 1,
    model: QueueModel = QueueModel.MMS,
    K: float = math.inf,
    population: float = math.inf,
    arrival_type: DistributionType = DistributionType.POISSON,
    arrival_k: int = 2,
    service_type: DistributionType = DistributionType.POISSON,
    service_k: int = 2,
    avg_efficiency: float = 1.0,
    breakdown: bool = False,
    mtbf: float = 60.0,
    mttr: float = 5.0,
    custom_cs2: Optional[float] = None,
) -> TheoreticalMetrics:
    """
    Steady-state metrics of a single station.

    Parameters
    ----------
    lam : float
        Arrival rate per hour (per customer for the finite-population model).
    mu : float
        Service rate per hour per server.
    s : int
        Number of servers (forced to 1 for M/M/1).
    model : QueueModel
        Model variant; K and population are required for MMSK / MMS_N_POP.
    arrival_type, service_type : DistributionType
        Non-Poisson choices switch to the Allen-Cunneen variability factor
        (c_a^2 + c_s^2) / 2, or the exact P-K formula for M/G/1.
    avg_efficiency : float
        Multiplier on mu for heterogeneous staff.
    breakdown, mtbf, mttr
        When enabled, mu is scaled by availability MTBF / (MTBF + MTTR).
    custom_cs2 : float, optional
        Override of the service squared CV (compound workloads).
    """
    model = parse_model(model)
    arrival_type = parse_distribution(arrival_type)
    service_type = parse_distribution(service_type)
    if lam < 0:
        raise ValueError(f"Arrival rate must be >= 0, got {lam}")
    if mu <= 0:
        raise ValueError(f"Service rate must be > 0, got {mu}")
    if s < 1:
        raise ValueError(f"Server count must be >= 1, got {s}")

    if arrival_type is DistributionType.TRACE or service_type is DistributionType.TRACE:
        return TheoreticalMetrics(
            0.0, 0.0, 0.0, 0.0, 0.0, 0.0, True, is_approximate=True,
            note="Trace data: analytical model disabled, use empirical results",
        )

    eff_mu = mu * avg_efficiency
    if breakdown and mtbf > 0:
        eff_mu *= mtbf / (mtbf + mttr)
    if eff_mu <= 0:
        raise ValueError("Effective service rate must be > 0")

    r = lam / eff_mu                 # offered load (Erlangs)
    if model is QueueModel.MM1:
        s = 1
    actual_s = INF_SERVER_PROXY if model is QueueModel.MMINF else int(s)
    rho = r / actual_s

    ca2 = squared_cv(arrival_type, arrival_k)
    cs2 = custom_cs2 if custom_cs2 is not None else squared_cv(service_type, service_k)
    poisson_arrival = arrival_type is DistributionType.POISSON
    if custom_cs2 is None:
        poisson_service = service_type is DistributionType.POISSON
    else:
        poisson_service = abs(custom_cs2 - 1.0) < 0.01
    general = not poisson_arrival or not poisson_service
    variability = (ca2 + cs2) / 2.0

    if model is QueueModel.MMINF:
        return _infinite_servers(lam, eff_mu, poisson_arrival)
    if model is QueueModel.MMS_N_POP:
        return _finite_population(lam, eff_mu, actual_s, population, general)
    if model is QueueModel.MMSK:
        return _finite_capacity(lam, eff_mu, actual_s, K, general, variability)

    # Infinite capacity, infinite population: M/M/s, M/G/1, G/G/s
    if rho >= 1:
        return TheoreticalMetrics(
            rho, 0.0, math.inf, math.inf, math.inf, math.inf, False,
            note="Unstable: utilization >= 1",
        )
    terms = _poisson_terms(r, actual_s)
    p0 = 1.0 / (sum(terms[:actual_s]) + terms[actual_s] / (1.0 - rho))
    pw = erlang_c(r, actual_s)
    lq = pw * rho / (1.0 - rho)
    if general:
        lq *= variability
    wq = lq / lam if lam > 0 else 0.0
    w = wq + 1.0 / eff_mu
    l = lq + r

    is_mg1 = actual_s == 1 and poisson_arrival and not poisson_service
    approx = general and not is_mg1
    note = None
    if is_mg1:
        note = "Exact (Pollaczek-Khinchine formula)"
    elif approx:
        note = "G/G/s Allen-Cunneen approximation"
    elif breakdown:
        note = "Adjusted for availability (effective service rate)"
    elif custom_cs2 is not None:
        note = "Variable workload: compound distribution model"

    # Diffusion estimate kept alongside the primary one
    ht_lq = rho ** math.sqrt(2.0 * (actual_s + 1)) / (1.0 - rho) * variability
    ht_wq = ht_lq / lam if lam > 0 else 0.0

    return TheoreticalMetrics(
        rho, p0, lq, l, wq, w, True,
        is_approximate=approx or breakdown or custom_cs2 is not None,
        note=note, prob_wait=pw,
        heavy_traffic_lq=ht_lq, heavy_traffic_wq=ht_wq, lambda_eff=lam,
    )

def _infinite_servers(lam: float, mu: float, poisson_arrival: bool) -> TheoreticalMetrics:
    # L = lambda/mu holds for any G/G/inf; P0 = e^-L only with Poisson arrivals
    l = lam / mu
    return TheoreticalMetrics(
        0.0, math.exp(-l), 0.0, l, 0.0, 1.0 / mu, True,
        is_approximate=not poisson_arrival,
        note="Exact result (Palm's theorem)" if poisson_arrival
        else "G/G/inf approximation (L = lambda/mu remains exact)",
        prob_wait=0.0, lambda_eff=lam,
    )

def _finite_population(lam: float, mu: float, s: int, population: float,
                       general: bool) -> TheoreticalMetrics:
    if population is None or math.isinf(population):
        raise ValueError("Finite-population model needs a finite population N")
    n_pop = int(population)
    if n_pop < 0:
        raise ValueError(f"Population must be >= 0, got {population}")
    ratio = lam / mu
    p = [1.0]
    for n in range(1, n_pop + 1):
        p.append(p[-1] * (n_pop - n + 1) * ratio / min(n, s))
    total = sum(p)
    probs = [v / total for v in p]
    l = sum(n * pn for n, pn in enumerate(probs))
    lq = sum((n - s) * pn for n, pn in enumerate(probs) if n > s)
    lam_eff = lam * (n_pop - l)
    w = l / lam_eff if lam_eff > 0 else 0.0
    wq = lq / lam_eff if lam_eff > 0 else 0.0
    return TheoreticalMetrics(
        lam_eff / (s * mu), probs[0], lq, l, wq, w, True,
        is_approximate=general,
        note="M/M/s//N formulas (G/G inputs ignored)" if general else None,
        lambda_eff=lam_eff,
    )

def _finite_capacity(lam: float, mu: float, s: int, K: float, general: bool,
                     variability: float) -> TheoreticalMetrics:
    if K is None or math.isinf(K):
        raise ValueError("Finite-capacity model needs a finite capacity K")
    cap = int(K)
    if cap < 1:
        raise ValueError(f"Capacity must be >= 1, got {K}")
    r = lam / mu
    rho = r / s
    terms = _poisson_terms(r, min(cap, s))
    # unnormalized state weights 0..K of the truncated birth-death chain
    weights = list(terms)
    for n in range(s + 1, cap + 1):
        weights.append(terms[s] * rho ** (n - s))
    p0 = 1.0 / sum(weights)
    pk = weights[cap] * p0
    lam_eff = lam * (1.0 - pk)

    if cap <= s:
        lq = 0.0
    elif rho != 1:
        lq = (p0 * terms[s] * rho / (1.0 - rho) ** 2
              * (1.0 - rho ** (cap - s + 1) - (cap - s + 1) * rho ** (cap - s) * (1.0 - rho)))
    else:
        lq = p0 * terms[s] / 2.0 * (cap - s) * (cap - s + 1)
    if general:
        lq *= variability

    wq = lq / lam_eff if lam_eff > 0 else 0.0
    w = wq + 1.0 / mu
    l = lam_eff * w
    return TheoreticalMetrics(
        rho, p0, lq, l, wq, w, True,
        is_approximate=general,
        note="G/G/s/K heuristic approximation" if general else None,
        lambda_eff=lam_eff,
    )
