import pytest

from conftest import BASELINE, link_dict, node_dict
from qnet.config import (DEFAULT_CAPACITY, ConfigError, LinkConfig, NodeConfig,
                         build_network_config, dump_network, load_network,
                         network_from_dict, network_to_dict)
from qnet.distributions import DistributionType
from qnet.entities import CustomerClass
from qnet.policies import RoutingStrategy


def test_missing_optional_fields_are_defaulted():
    cfg = network_from_dict({
        "nodes": [{"id": "a", "serverCount": 2, "avgServiceTime": 3}],
        "links": [],
    })
    node = cfg.node("a")
    assert node.capacity == DEFAULT_CAPACITY
    assert node.class_a_ratio == 0.5
    assert node.routing_strategy is RoutingStrategy.PROBABILISTIC
    assert node.arrival_batch_size == 1 and node.service_batch_size == 1
    assert node.service_distribution is DistributionType.POISSON
    assert cfg.resource_pools == ()


def test_link_class_probabilities_fall_back_to_generic():
    cfg = build_network_config(
        [node_dict("a"), node_dict("b")],
        [link_dict("ab", "a", "b", 0.7)],
    )
    link = cfg.links[0]
    assert link.prob_a == 0.7 and link.prob_b == 0.7
    assert link.class_probability(CustomerClass.A) == 0.7


def test_snake_case_aliases_accepted():
    cfg = build_network_config([
        {"id": "a", "server_count": 3, "avg_service_time": 2.0, "is_source": True,
         "external_lambda": 12, "routing_strategy": "shortest_queue"},
    ])
    node = cfg.node("a")
    assert node.server_count == 3
    assert node.is_source and node.external_lambda == 12.0
    assert node.routing_strategy is RoutingStrategy.SHORTEST_QUEUE


def test_pool_available_defaults_to_total():
    cfg = build_network_config(
        [node_dict("a", resourcePoolId="sup")], [],
        [{"id": "sup", "totalCount": 2}],
    )
    assert cfg.resource_pools[0].available_count == 2


@pytest.mark.parametrize("bad, fragment", [
    ({"avgServiceTime": 0}, "avgServiceTime"),
    ({"avgServiceTime": -2}, "avgServiceTime"),
    ({"serverCount": 0}, "serverCount"),
    ({"capacity": 0}, "capacity"),
    ({"externalLambda": -1}, "externalLambda"),
    ({"externalLambda": float("nan")}, "externalLambda"),
    ({"externalLambda": float("inf")}, "externalLambda"),
    ({"classARatio": 1.5}, "classARatio"),
    ({"serviceBatchSize": 0}, "batch"),
    ({"routingStrategy": "ROUND_ROBIN"}, "routing strategy"),
    ({"serviceDistribution": "Weibull"}, "distribution"),
    ({"serverCount": 1.5}, "integer"),
])
def test_invalid_node_fields_fail_fast(bad, fragment):
    with pytest.raises(ConfigError, match=fragment):
        build_network_config([node_dict("a", **bad)])


def test_structural_errors():
    with pytest.raises(ConfigError, match="Duplicate node"):
        build_network_config([node_dict("a"), node_dict("a")])
    with pytest.raises(ConfigError, match="unknown target"):
        build_network_config([node_dict("a")], [link_dict("ax", "a", "x")])
    with pytest.raises(ConfigError, match="unknown source"):
        build_network_config([node_dict("a")], [link_dict("xa", "x", "a")])
    with pytest.raises(ConfigError, match="unknown resource pool"):
        build_network_config([node_dict("a", resourcePoolId="nope")])
    with pytest.raises(ConfigError, match="availableCount"):
        build_network_config([], [], [{"id": "p", "totalCount": 1, "availableCount": 3}])


def test_probability_mass_above_one_is_rejected_per_class():
    nodes = [node_dict("a"), node_dict("b"), node_dict("c")]
    # generic mass is fine, class A mass is 1.2
    links = [
        link_dict("ab", "a", "b", 0.5, probA=0.6),
        link_dict("ac", "a", "c", 0.5, probA=0.6),
    ]
    with pytest.raises(ConfigError, match="class A"):
        build_network_config(nodes, links)


def test_config_records_are_accepted_directly():
    cfg = build_network_config(
        [NodeConfig("a"), NodeConfig("b", server_count=2)],
        [LinkConfig("ab", "a", "b", probability=0.25)],
    )
    assert cfg.links[0].prob_b == 0.25


def test_config_records_are_normalized_like_dicts():
    cfg = build_network_config([NodeConfig(
        "a", is_source=True, external_lambda=60, server_count=2.0,
        arrival_distribution="Deterministic", routing_strategy="shortest_queue",
    )])
    node = cfg.node("a")
    assert node.arrival_distribution is DistributionType.DETERMINISTIC
    assert node.routing_strategy is RoutingStrategy.SHORTEST_QUEUE
    assert node.server_count == 2 and isinstance(node.server_count, int)
    assert node.mean_interarrival() == pytest.approx(1.0)
    with pytest.raises(ConfigError, match="integer"):
        build_network_config([NodeConfig("a", server_count=1.5)])
    with pytest.raises(ConfigError, match="routing strategy"):
        build_network_config([NodeConfig("a", routing_strategy="ROUND_ROBIN")])


def test_exchange_round_trip_through_yaml(tmp_path):
    cfg = build_network_config(
        [node_dict("a", isSource=True, externalLambda=20, serviceDistribution="Erlang",
                   serviceShape=3, resourcePoolId="sup"),
         node_dict("b", capacity=5, routingStrategy="SHORTEST_QUEUE")],
        [link_dict("ab", "a", "b", 0.8, probA=1.0)],
        [{"id": "sup", "name": "Supervisors", "totalCount": 2}],
    )
    data = network_to_dict(cfg)
    assert data["nodes"][0]["serviceDistribution"] == "Erlang"
    assert data["links"][0]["probA"] == 1.0
    path = tmp_path / "net.yaml"
    dump_network(cfg, str(path))
    assert load_network(str(path)) == cfg


def test_load_network_reads_network_section():
    cfg = load_network(str(BASELINE))
    assert [n.id for n in cfg.nodes] == ["reception", "triage", "doctors", "nurses"]
    assert cfg.node("doctors").resource_pool_id == "supervisors"
