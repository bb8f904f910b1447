import pytest

from conftest import check_server_invariants
from qnet.config import NodeConfig
from qnet.entities import ServerState
from qnet.queues import Node, Server
from qnet.resources import ResourcePool


def test_server_start_and_finish_keep_timeline(make_customer):
    server = Server(0)
    batch = [make_customer(), make_customer()]
    server.start(batch, 2.0, 5.0)
    assert [(c.start_time, c.finish_time) for c in batch] == [(2.0, 5.0), (2.0, 5.0)]
    assert server.is_busy and server.load() == 2
    assert server.finish() == batch
    assert server.is_idle and server.batch == [] and server.finish_time is None
    states = [(seg.state, seg.start, seg.end) for seg in server.timeline]
    assert states == [
        (ServerState.IDLE, 0.0, 2.0),
        (ServerState.BUSY, 2.0, 5.0),
        (ServerState.IDLE, 5.0, None),
    ]
    assert server.busy_time(10.0) == pytest.approx(3.0)


def test_open_busy_segment_counts_up_to_now(make_customer):
    server = Server(0)
    server.start([make_customer()], 1.0, 9.0)
    assert server.busy_time(4.0) == pytest.approx(3.0)


def test_empty_batch_rejected():
    with pytest.raises(ValueError):
        Server(0).start([], 0.0, 1.0)


def test_finish_returns_the_lease_first(make_customer):
    pool = ResourcePool("sup", 1)
    server = Server(0)
    server.start([make_customer()], 0.0, 1.0, pool.acquire())
    assert pool.available == 0
    server.finish()
    assert pool.available == 1 and server.lease is None


def test_node_capacity_and_occupancy(make_customer):
    node = Node(NodeConfig("n", server_count=2, capacity=3))
    assert all(node.enqueue(make_customer(), 0.0) for _ in range(2))
    node.servers[0].start(node.take_batch(1), 0.0, 4.0)
    assert node.occupancy() == 2
    assert node.enqueue(make_customer(), 1.0)
    assert not node.can_join()
    assert not node.enqueue(make_customer(), 1.0)
    assert node.occupancy() == 3
    assert [s.index for s in node.idle_servers()] == [1]
    assert node.busy_count() == 1
    check_server_invariants(node)


def test_take_batch_is_fifo(make_customer):
    node = Node(NodeConfig("n"))
    customers = [make_customer() for _ in range(4)]
    for c in customers:
        node.enqueue(c, 0.0)
    assert node.take_batch(3) == customers[:3]
    assert node.take_batch(3) == customers[3:]
    assert node.take_batch(3) == []


def test_busy_fraction_averages_over_servers(make_customer):
    node = Node(NodeConfig("n", server_count=2))
    node.servers[0].start([make_customer()], 0.0, 5.0)
    node.servers[0].finish()
    assert node.busy_fraction(10.0) == pytest.approx(0.25)
    assert node.busy_fraction(0.0) == 0.0
