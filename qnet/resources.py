# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# resources.py
# -----------------------------------------------------------------------------
# Purpose:
#   Shared, finite, countable resources (e.g. supervisors) that gate service
#   start independently of server availability.
#
# Design notes:
#   - acquire() hands out a Lease; the server holding it gives the unit back
#     through Lease.release(), which is a no-op after the first call. A unit
#     therefore cannot be returned twice, and 0 <= available <= total holds.
#   - Pools belong to one engine instance; nothing here is thread-safe.
#
# Usage:
#   registry = ResourcePoolRegistry(cfg.resource_pools)
#   lease = registry.get("supervisors").acquire()
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Dict, Iterable, List, Optional

class Lease:
    """One acquired unit of a pool."""
    __slots__ = ("pool", "released")
    def __init__(self, pool: "ResourcePool"):
        self.pool = pool; self.released = False

    def release(self):
        if self.released:
            return
        self.released = True
        self.pool._give_back()

class ResourcePool:
    def __init__(self, pid: str, total: int, available: Optional[int] = None, name: str = ""):
        self.id = pid
        self.name = name or pid
        self.total = total
        self.available = total if available is None else available

    @property
    def in_use(self) -> int:
        return self.total - self.available

    def acquire(self) -> Optional[Lease]:
        """Take one unit, or return None when the pool is exhausted."""
        if self.available <= 0:
            return None
        self.available -= 1
        return Lease(self)

    def _give_back(self):
        if self.available >= self.total:
            raise RuntimeError(f"Resource pool {self.id!r} released more units than it holds")
        self.available += 1

    def __repr__(self):
        return f"ResourcePool({self.id!r}, available={self.available}/{self.total})"

class ResourcePoolRegistry:
    """Pools of one engine, looked up by id."""
    def __init__(self, pools: Iterable = ()):
        self._pools: Dict[str, ResourcePool] = {}
        for cfg in pools:
            self._pools[cfg.id] = ResourcePool(
                cfg.id, cfg.total_count, cfg.available_count, name=cfg.name,
            )

    def get(self, pid: Optional[str]) -> Optional[ResourcePool]:
        if pid is None:
            return None
        return self._pools.get(pid)

    def __iter__(self):
        return iter(self._pools.values())

    def __len__(self):
        return len(self._pools)

    def all(self) -> List[ResourcePool]:
        return list(self._pools.values())
