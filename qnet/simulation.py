# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# simulation.py
# -----------------------------------------------------------------------------
# Purpose:
#   Fixed-step network simulation engine. Each tick(dt) admits external
#   arrivals, starts service (batching, resource gating), completes service,
#   routes finished customers, and refreshes per-node statistics.
#   run_network(cfg) simulates a single replication from a config dict.
#
# Design notes:
#   - Fixed step, not next-event: arrivals for every source first, then each
#     node in declaration order runs admission -> departures -> stats.
#     A server freed during a tick takes new work on the next tick, so dt
#     should be small against the fastest rate in the network.
#   - All randomness comes from one VariateGenerator; same config + seed
#     gives the same trajectory.
#   - get_state() returns deep copies; callers cannot steer the engine
#     through a snapshot.
#
# Usage:
#   engine = NetworkEngine(nodes, links, pools, seed=1)
#   engine.tick(0.1); state = engine.get_state()
#   results = run_network(cfg)
# -----------------------------------------------------------------------------

from __future__ import annotations
import copy, itertools, logging, math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from .config import (LinkConfig, NetworkConfig, build_network_config,
                     network_from_dict)
from .distributions import VariateGenerator
from .entities import Customer, CustomerClass
from .metrics import NetworkMetrics
from .network import Router
from .queues import Node
from .resources import ResourcePool, ResourcePoolRegistry
from .stations import make_nodes, outgoing_links

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class NetworkState:
    """Read-only view of the engine after the last completed tick."""
    time: float
    nodes: Tuple[Node, ...]
    links: Tuple[LinkConfig, ...]
    resource_pools: Tuple[ResourcePool, ...]
    total_exits: int
    blocked_links: FrozenSet[str]

    def node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

class NetworkEngine:
    """Simulation state for one network and one random stream.

    Parameters
    ----------
    nodes, links, resource_pools : iterable
        Config records or exchange dicts; defaulted and validated once here.
    seed : int, optional
        Seed for a fresh VariateGenerator.
    generator : VariateGenerator, optional
        Random source to use instead of seeding a new one.
    """
    def __init__(self, nodes: Iterable = (), links: Iterable = (), resource_pools: Iterable = (),
                 *, seed: Optional[int] = None, generator: Optional[VariateGenerator] = None):
        self.config: NetworkConfig = build_network_config(nodes, links, resource_pools)
        self.gen = generator if generator is not None else VariateGenerator(seed)
        self.time: float = 0.0
        self.pools = ResourcePoolRegistry(self.config.resource_pools)
        self.nodes: Dict[str, Node] = make_nodes(self.config)
        self.M = NetworkMetrics()
        self.router = Router(self.nodes, outgoing_links(self.config), self.M, self.gen)
        self._ids = itertools.count(1)
        for node in self.nodes.values():
            if node.config.is_source:
                self._schedule_arrival(node, self.time)
        logger.info(
            "network engine ready: %d nodes, %d links, %d resource pools",
            len(self.nodes), len(self.config.links), len(self.pools),
        )

    @classmethod
    def from_config(cls, config: NetworkConfig, *, seed: Optional[int] = None,
                    generator: Optional[VariateGenerator] = None) -> "NetworkEngine":
        return cls(config.nodes, config.links, config.resource_pools, seed=seed, generator=generator)

    # ------------------------------------------------------------------ stepping
    def tick(self, dt: float):
        if not dt > 0:
            raise ValueError(f"tick dt must be positive, got {dt}")
        new_time = self.time + dt
        self.router.reset_blocked()

        for node in self.nodes.values():
            if node.config.is_source:
                self._admit_arrivals(node, new_time)

        for node in self.nodes.values():
            self._start_service(node)
            self._complete_service(node, new_time)
            node.stats.occupancy_area += node.occupancy() * dt
            node.stats.refresh(node.busy_count(), len(node.servers))

        self.time = new_time

    def run(self, duration: float, dt: float):
        """Tick in steps of dt until `duration` minutes have been simulated."""
        steps = max(1, int(math.ceil(duration / dt - 1e-9)))
        for _ in range(steps):
            self.tick(dt)

    def _schedule_arrival(self, node: Node, base: float):
        cfg = node.config
        if cfg.external_lambda <= 0:
            node.next_arrival = math.inf
            return
        delay = self.gen.sample(cfg.arrival_distribution, cfg.mean_interarrival, cfg.arrival_shape)
        node.next_arrival = base + delay

    def _admit_arrivals(self, node: Node, new_time: float):
        cfg = node.config
        # Catch up on every arrival event due by new_time (bursts are not skipped)
        while node.next_arrival <= new_time:
            t = node.next_arrival
            for _ in range(cfg.arrival_batch_size):
                if node.can_join():
                    node.enqueue(self._new_customer(cfg.class_a_ratio, t), t)
                else:
                    node.stats.note_block()
                    logger.debug("arrival blocked at %s (t=%.3f)", node.id, t)
            self._schedule_arrival(node, t)

    def _new_customer(self, class_a_ratio: float, t: float) -> Customer:
        cls = CustomerClass.A if self.gen.bernoulli(class_a_ratio) else CustomerClass.B
        return Customer(next(self._ids), arrival_time=t, customer_class=cls)

    def _start_service(self, node: Node):
        cfg = node.config
        pool = self.pools.get(cfg.resource_pool_id)
        idle = node.idle_servers()
        while idle and node.queue:
            lease = None
            if pool is not None:
                lease = pool.acquire()
                if lease is None:
                    # Strict FIFO: nobody overtakes the head of line
                    logger.debug("%s stalled on resource pool %s", node.id, pool.id)
                    break
            server = idle.pop(0)
            batch = node.take_batch(cfg.service_batch_size)
            start = max(self.time, max(c.arrival_time for c in batch))
            finish = start + self.gen.sample(cfg.service_distribution, cfg.avg_service_time,
                                             cfg.service_shape)
            for cust in batch:
                node.stats.note_wait(start - cust.arrival_time)
            server.start(batch, start, finish, lease)

    def _complete_service(self, node: Node, new_time: float):
        for server in node.servers:
            if not server.is_busy or server.finish_time > new_time:
                continue
            # finish() gives the pool unit back before any routing happens
            for cust in server.finish():
                node.stats.note_departure(cust.arrival_time, cust.finish_time)
                self.router.route(cust, node)

    # ------------------------------------------------------------------ views
    @property
    def total_exits(self) -> int:
        return self.M.total_exits

    @property
    def blocked_links(self) -> FrozenSet[str]:
        return frozenset(self.router.blocked_links)

    def node(self, node_id: str) -> Node:
        """Live runtime node (mutable; prefer get_state() for observers)."""
        return self.nodes[node_id]

    def get_state(self) -> NetworkState:
        nodes, pools = copy.deepcopy((list(self.nodes.values()), self.pools.all()))
        return NetworkState(
            time=self.time,
            nodes=tuple(nodes),
            links=self.config.links,
            resource_pools=tuple(pools),
            total_exits=self.M.total_exits,
            blocked_links=self.blocked_links,
        )

    def summary(self) -> Dict:
        return self.M.summary(self.nodes.values(), self.pools, self.time)

def run_network(cfg: Dict) -> Dict:
    """Simulate one replication described by a config dict and return its summary."""
    sim_cfg = cfg.get("sim", {})
    network = network_from_dict(cfg["network"])
    engine = NetworkEngine.from_config(network, seed=sim_cfg.get("seed", 0))
    engine.run(float(sim_cfg.get("duration_minutes", 480.0)), float(sim_cfg.get("dt", 0.1)))
    return engine.summary()
