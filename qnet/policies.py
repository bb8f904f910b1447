# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# policies.py
# -----------------------------------------------------------------------------
# Purpose:
#   Routing policies deciding which outgoing link a departing customer takes:
#   class-conditioned probabilistic routing and join-the-shortest-queue.
#
# Design notes:
#   - Keep policies pure (customer, links, nodes -> decision) to ease testing;
#     capacity checks and blocking stay in the Router (network.py).
#   - A policy returns (link, target node) or None, meaning "leave the network".
#
# Usage:
#   from qnet.policies import policy_for, RoutingStrategy
#   choice = policy_for(RoutingStrategy.SHORTEST_QUEUE).choose(cust, links, nodes, gen)
# -----------------------------------------------------------------------------

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Sequence, Tuple, Union

if TYPE_CHECKING:
    from .config import LinkConfig
    from .distributions import VariateGenerator
    from .entities import Customer
    from .queues import Node

Choice = Optional[Tuple["LinkConfig", "Node"]]

class RoutingStrategy(str, Enum):
    PROBABILISTIC = "PROBABILISTIC"
    SHORTEST_QUEUE = "SHORTEST_QUEUE"

def parse_strategy(value: Union[str, RoutingStrategy]) -> RoutingStrategy:
    if isinstance(value, RoutingStrategy):
        return value
    try:
        return RoutingStrategy(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown routing strategy {value!r}") from None

class ProbabilisticRouting:
    """Walk links in declaration order, accumulating the customer's class
    probability; the first link whose running sum exceeds a uniform draw wins.
    Residual mass (1 - sum) sends the customer out of the network."""

    def choose(self, customer: "Customer", links: Sequence["LinkConfig"],
               nodes: Mapping[str, "Node"], gen: "VariateGenerator") -> Choice:
        draw = gen.uniform()
        cumulative = 0.0
        for link in links:
            cumulative += link.class_probability(customer.customer_class)
            if draw < cumulative:
                target = nodes.get(link.target_id)
                return (link, target) if target is not None else None
        return None

class ShortestQueueRouting:
    """Pick the reachable target with the least load (queue + in service).
    Ties go to the earliest declared link."""

    def choose(self, customer: "Customer", links: Sequence["LinkConfig"],
               nodes: Mapping[str, "Node"], gen: "VariateGenerator") -> Choice:
        best: Choice = None
        best_load = 0
        for link in links:
            target = nodes.get(link.target_id)
            if target is None:
                continue
            load = target.occupancy()
            if best is None or load < best_load:
                best, best_load = (link, target), load
        return best

_POLICIES: Dict[RoutingStrategy, object] = {
    RoutingStrategy.PROBABILISTIC: ProbabilisticRouting(),
    RoutingStrategy.SHORTEST_QUEUE: ShortestQueueRouting(),
}

def policy_for(strategy: RoutingStrategy):
    return _POLICIES[strategy]
