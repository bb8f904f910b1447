import itertools
from pathlib import Path

import pytest

from qnet.config import load_network
from qnet.entities import Customer, ServerState

BASELINE = Path(__file__).resolve().parent.parent / "config" / "baseline.yaml"

def baseline_network():
    return load_network(str(BASELINE))

def node_dict(nid, **kw):
    base = {"id": nid, "serverCount": 1, "avgServiceTime": 1.0}
    base.update(kw)
    return base

def link_dict(lid, src, dst, p=1.0, **kw):
    base = {"id": lid, "sourceId": src, "targetId": dst, "probability": p}
    base.update(kw)
    return base

def pool_holders(nodes, pool_id):
    """Servers across the network currently holding a unit of `pool_id`."""
    return sum(
        1
        for node in nodes
        for s in node.servers
        if s.lease is not None and s.lease.pool.id == pool_id
    )

def check_server_invariants(node):
    for s in node.servers:
        if s.state is ServerState.BUSY:
            assert s.batch
            assert len({c.finish_time for c in s.batch}) == 1
            assert s.finish_time == s.batch[0].finish_time
        else:
            assert s.batch == []

@pytest.fixture
def make_customer():
    counter = itertools.count(1)

    def _make(arrival_time=0.0, **kw):
        return Customer(next(counter), arrival_time=arrival_time, **kw)

    return _make
