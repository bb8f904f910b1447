# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# network.py
# -----------------------------------------------------------------------------
# Purpose:
#   Router. Decides where a customer goes after a service completion:
#   another node, out of the network, or lost to blocking.
#
# Design notes:
#   - The origin node's routing strategy picks a candidate (policies.py);
#     the Router applies the capacity check the same way for every strategy.
#   - Blocking is loss: the origin's blocked_count grows, the link is marked
#     as recently blocked, and the customer is dropped (not an exit).
#   - Zero transit delay: the next leg starts at the previous finish time.
#
# Usage:
#   router = Router(nodes, outgoing, metrics, generator)
#   router.route(customer, node)
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from enum import Enum
from typing import Dict, List, Set

from .config import LinkConfig
from .distributions import VariateGenerator
from .entities import Customer
from .metrics import NetworkMetrics
from .policies import policy_for
from .queues import Node

logger = logging.getLogger(__name__)

class RouteOutcome(str, Enum):
    FORWARDED = "forwarded"
    EXITED = "exited"
    BLOCKED = "blocked"

class Router:
    def __init__(self, nodes: Dict[str, Node], outgoing: Dict[str, List[LinkConfig]],
                 metrics: NetworkMetrics, gen: VariateGenerator):
        self.nodes = nodes
        self.outgoing = outgoing
        self.M = metrics
        self.gen = gen
        self.blocked_links: Set[str] = set()

    def reset_blocked(self):
        self.blocked_links = set()

    def route(self, customer: Customer, origin: Node) -> RouteOutcome:
        links = self.outgoing.get(origin.id, [])
        if not links:
            return self._exit(customer)
        choice = policy_for(origin.config.routing_strategy).choose(
            customer, links, self.nodes, self.gen,
        )
        if choice is None:
            return self._exit(customer)
        link, target = choice
        if target.enqueue(customer, arrival_time=customer.finish_time):
            return RouteOutcome.FORWARDED
        # Destination full -> loss; charged to the origin
        origin.stats.note_block()
        self.blocked_links.add(link.id)
        logger.debug("customer %s blocked on link %s (%s full)", customer.cid, link.id, target.id)
        return RouteOutcome.BLOCKED

    def _exit(self, customer: Customer) -> RouteOutcome:
        self.M.note_exit(customer, customer.finish_time)
        return RouteOutcome.EXITED
