# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# queues.py
# -----------------------------------------------------------------------------
# Purpose:
#   Runtime primitives of the network: a Server that serves one batch at a
#   time, and a Node with a FIFO queue, a fixed set of servers and a finite
#   system capacity K (queue + in service).
#
# Design notes:
#   - A BUSY server always holds a non-empty batch sharing one finish_time,
#     stamped on every member by start(); an IDLE server holds none.
#   - A server keeps the resource Lease for exactly its busy period:
#     start() takes it, finish() gives it back before anything else happens.
#   - Timelines are closed/opened at the batch start and finish times.
#
# Usage:
#   from qnet.queues import Node, Server
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import List, Optional

from .config import NodeConfig
from .entities import Customer, Segment, ServerState
from .metrics import NodeStats
from .resources import Lease

class Server:
    """One server of a node.

    Attributes
    ----------
    index : int
        Position within the node's server array.
    batch : list[Customer]
        Customers in service; empty unless BUSY.
    finish_time : float or None
        Completion time shared by the whole batch.
    timeline : list[Segment]
        State history used for utilization auditing.
    """
    def __init__(self, index: int):
        self.index = index
        self.state = ServerState.IDLE
        self.batch: List[Customer] = []
        self.finish_time: Optional[float] = None
        self.lease: Optional[Lease] = None
        self.timeline: List[Segment] = [Segment(ServerState.IDLE, 0.0)]

    @property
    def is_busy(self) -> bool:
        return self.state is ServerState.BUSY

    @property
    def is_idle(self) -> bool:
        return self.state is ServerState.IDLE

    def load(self) -> int:
        return len(self.batch) if self.is_busy else 0

    def start(self, batch: List[Customer], start_time: float, finish_time: float,
              lease: Optional[Lease] = None):
        if not batch:
            raise ValueError("Cannot start service on an empty batch")
        for cust in batch:
            cust.start_time = start_time
            cust.finish_time = finish_time
        self.state = ServerState.BUSY
        self.batch = batch
        self.finish_time = finish_time
        self.lease = lease
        self._switch(ServerState.BUSY, start_time)

    def finish(self) -> List[Customer]:
        """Release the lease, go IDLE and hand back the finished batch."""
        lease, self.lease = self.lease, None
        if lease is not None:
            lease.release()
        batch, self.batch = self.batch, []
        self._switch(ServerState.IDLE, self.finish_time)
        self.state = ServerState.IDLE
        self.finish_time = None
        return batch

    def _switch(self, state: ServerState, t: float):
        last = self.timeline[-1]
        if last.end is None:
            last.end = t
        self.timeline.append(Segment(state, t))

    def busy_time(self, now: float) -> float:
        """Minutes spent BUSY up to `now` according to the timeline."""
        return sum(seg.duration(now) for seg in self.timeline if seg.state is ServerState.BUSY)

class Node:
    """A service station: FIFO queue, `server_count` servers, capacity K."""
    def __init__(self, config: NodeConfig):
        self.config = config
        self.queue: List[Customer] = []
        self.servers: List[Server] = [Server(i) for i in range(config.server_count)]
        self.stats = NodeStats()
        self.next_arrival: float = float("inf")   # next external arrival (sources only)

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def capacity(self):
        return self.config.capacity

    def occupancy(self) -> int:
        """Customers waiting plus customers in service."""
        return len(self.queue) + sum(s.load() for s in self.servers)

    # Capacity check for loss or upstream blocking
    def can_join(self) -> bool:
        return self.occupancy() < self.config.capacity

    def enqueue(self, customer: Customer, arrival_time: float) -> bool:
        if not self.can_join():
            return False
        customer.begin_leg(arrival_time)
        self.queue.append(customer)
        return True

    def take_batch(self, size: int) -> List[Customer]:
        batch = self.queue[:size]
        del self.queue[:size]
        return batch

    def idle_servers(self) -> List[Server]:
        return [s for s in self.servers if s.is_idle]

    def busy_count(self) -> int:
        return sum(1 for s in self.servers if s.is_busy)

    def busy_fraction(self, now: float) -> float:
        """Time-averaged utilization from server timelines."""
        if now <= 0:
            return 0.0
        return sum(s.busy_time(now) for s in self.servers) / (now * len(self.servers))

    def __repr__(self):
        return f"Node({self.id!r}, queue={len(self.queue)}, busy={self.busy_count()}/{len(self.servers)})"
