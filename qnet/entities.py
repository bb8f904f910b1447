# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# entities.py
# -----------------------------------------------------------------------------
# Purpose:
#   Entity definitions for the network DES: Customer, its priority class,
#   server states, and the timeline segments servers keep for auditing.
#
# Design notes:
#   - A Customer record is reused across nodes: every leg overwrites
#     arrival/start/finish, while system_arrival_time keeps the first entry.
#   - required_skill is carried for skill-based routing but unused here.
#
# Usage:
#   from qnet.entities import Customer, CustomerClass, ServerState
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

class CustomerClass(str, Enum):
    A = "A"   # high priority
    B = "B"   # standard

class ServerState(str, Enum):
    IDLE = "IDLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"

@dataclass
class Customer:
    cid: int
    arrival_time: float                      # arrival at the current node (minutes)
    customer_class: CustomerClass = CustomerClass.B
    required_skill: str = "General"
    start_time: Optional[float] = None       # service start at the current node
    finish_time: Optional[float] = None      # service completion at the current node
    system_arrival_time: Optional[float] = None

    def __post_init__(self):
        if self.system_arrival_time is None:
            self.system_arrival_time = self.arrival_time

    def begin_leg(self, arrival_time: float):
        """Reset per-node timing when the customer joins a new node."""
        self.arrival_time = arrival_time
        self.start_time = None
        self.finish_time = None

@dataclass
class Segment:
    """One stretch of a server timeline; end is None while the segment is open."""
    state: ServerState
    start: float
    end: Optional[float] = None

    def duration(self, now: float) -> float:
        end = self.end if self.end is not None else now
        return max(end - self.start, 0.0)
