# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# config.py
# -----------------------------------------------------------------------------
# Purpose:
#   Network configuration: node, link and resource pool records, the single
#   defaulting/validation pass, and the dict/YAML exchange format.
#
# Design notes:
#   - Exchange keys are camelCase ("serverCount"); snake_case attribute names
#     are accepted too. Missing optional fields are defaulted, not rejected.
#   - Records are frozen; the engine builds its own runtime state from them,
#     so nothing the caller holds is ever mutated.
#   - Structural problems (bad ids, non-positive times, probability mass > 1)
#     raise ConfigError before a simulation can start.
#
# Usage:
#   cfg = network_from_dict(yaml.safe_load(text)["network"])
#   cfg = load_network("config/baseline.yaml")
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass, replace, fields
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .distributions import DistributionType, parse_distribution
from .entities import CustomerClass
from .policies import RoutingStrategy, parse_strategy

DEFAULT_CAPACITY = 9999
DEFAULT_CLASS_A_RATIO = 0.5
PROBABILITY_TOLERANCE = 1e-9

class ConfigError(ValueError):
    """Raised when a network configuration cannot be simulated."""

@dataclass(frozen=True)
class NodeConfig:
    id: str
    name: str = ""
    server_count: int = 1
    avg_service_time: float = 1.0            # minutes per service
    capacity: Union[int, float] = DEFAULT_CAPACITY   # queue + in service
    is_source: bool = False
    external_lambda: float = 0.0             # arrivals per hour
    class_a_ratio: float = DEFAULT_CLASS_A_RATIO
    routing_strategy: RoutingStrategy = RoutingStrategy.PROBABILISTIC
    arrival_batch_size: int = 1
    service_batch_size: int = 1
    resource_pool_id: Optional[str] = None
    arrival_distribution: DistributionType = DistributionType.POISSON
    arrival_shape: int = 2
    service_distribution: DistributionType = DistributionType.POISSON
    service_shape: int = 2
    x: float = 0.0
    y: float = 0.0

    @property
    def mean_interarrival(self) -> float:
        """Mean minutes between external arrival events (inf when lambda is 0)."""
        return 60.0 / self.external_lambda if self.external_lambda > 0 else math.inf

    @property
    def service_rate(self) -> float:
        """Services per hour per server."""
        return 60.0 / self.avg_service_time

@dataclass(frozen=True)
class LinkConfig:
    id: str
    source_id: str
    target_id: str
    probability: float = 1.0
    prob_a: Optional[float] = None
    prob_b: Optional[float] = None
    condition: str = "ALL"

    def class_probability(self, customer_class: CustomerClass) -> float:
        value = self.prob_a if customer_class is CustomerClass.A else self.prob_b
        return self.probability if value is None else value

@dataclass(frozen=True)
class ResourcePoolConfig:
    id: str
    name: str = ""
    total_count: int = 1
    available_count: Optional[int] = None

@dataclass(frozen=True)
class NetworkConfig:
    nodes: Tuple[NodeConfig, ...] = ()
    links: Tuple[LinkConfig, ...] = ()
    resource_pools: Tuple[ResourcePoolConfig, ...] = ()

    def node(self, node_id: str) -> NodeConfig:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def outgoing(self, node_id: str) -> List[LinkConfig]:
        return [ln for ln in self.links if ln.source_id == node_id]

# (attribute, exchange key) pairs; attribute names are accepted as aliases.
_NODE_KEYS = {
    "id": "id", "name": "name", "server_count": "serverCount",
    "avg_service_time": "avgServiceTime", "capacity": "capacity",
    "is_source": "isSource", "external_lambda": "externalLambda",
    "class_a_ratio": "classARatio", "routing_strategy": "routingStrategy",
    "arrival_batch_size": "arrivalBatchSize", "service_batch_size": "serviceBatchSize",
    "resource_pool_id": "resourcePoolId",
    "arrival_distribution": "arrivalDistribution", "arrival_shape": "arrivalShape",
    "service_distribution": "serviceDistribution", "service_shape": "serviceShape",
    "x": "x", "y": "y",
}
_LINK_KEYS = {
    "id": "id", "source_id": "sourceId", "target_id": "targetId",
    "probability": "probability", "prob_a": "probA", "prob_b": "probB",
    "condition": "condition",
}
_POOL_KEYS = {
    "id": "id", "name": "name", "total_count": "totalCount",
    "available_count": "availableCount",
}

def _read(raw: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    """Collect present fields from an exchange dict, keyed by attribute name."""
    out = {}
    for attr, key in keys.items():
        if key in raw and raw[key] is not None:
            out[attr] = raw[key]
        elif attr in raw and raw[attr] is not None:
            out[attr] = raw[attr]
    return out

def _as_int(value: Any, what: str) -> int:
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{what} must be an integer, got {value!r}") from None
    if not as_float.is_integer():
        raise ConfigError(f"{what} must be an integer, got {value!r}")
    return int(as_float)

def _as_float(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{what} must be a number, got {value!r}") from None

def _record_fields(record) -> Dict[str, Any]:
    """Attribute values of a config record, so records and dicts share one pass."""
    return {f.name: getattr(record, f.name) for f in fields(record)}

def _node_from_raw(raw: Union[Dict[str, Any], NodeConfig]) -> NodeConfig:
    if isinstance(raw, NodeConfig):
        raw = _record_fields(raw)
    vals = _read(raw, _NODE_KEYS)
    if "id" not in vals:
        raise ConfigError(f"Node without id: {raw!r}")
    nid = str(vals["id"])
    what = f"node {nid!r}"
    try:
        if "routing_strategy" in vals:
            vals["routing_strategy"] = parse_strategy(vals["routing_strategy"])
        for key in ("arrival_distribution", "service_distribution"):
            if key in vals:
                vals[key] = parse_distribution(vals[key])
    except ValueError as exc:
        raise ConfigError(f"{what}: {exc}") from None
    for key in ("server_count", "arrival_batch_size", "service_batch_size",
                "arrival_shape", "service_shape"):
        if key in vals:
            vals[key] = _as_int(vals[key], f"{what} {key}")
    for key in ("avg_service_time", "external_lambda", "class_a_ratio", "x", "y"):
        if key in vals:
            vals[key] = _as_float(vals[key], f"{what} {key}")
    if "capacity" in vals:
        cap = _as_float(vals["capacity"], f"{what} capacity")
        vals["capacity"] = cap if math.isinf(cap) else _as_int(cap, f"{what} capacity")
    vals["id"] = nid
    vals["is_source"] = bool(vals.get("is_source", False))
    if "resource_pool_id" in vals:
        vals["resource_pool_id"] = str(vals["resource_pool_id"]) or None
    return NodeConfig(**vals)

def _link_from_raw(raw: Union[Dict[str, Any], LinkConfig]) -> LinkConfig:
    if isinstance(raw, LinkConfig):
        raw = _record_fields(raw)
    vals = _read(raw, _LINK_KEYS)
    for key in ("source_id", "target_id"):
        if key not in vals:
            raise ConfigError(f"Link missing {_LINK_KEYS[key]}: {raw!r}")
        vals[key] = str(vals[key])
    if "id" not in vals:
        vals["id"] = f"{vals['source_id']}->{vals['target_id']}"
    vals["id"] = str(vals["id"])
    for key in ("probability", "prob_a", "prob_b"):
        if key in vals:
            vals[key] = _as_float(vals[key], f"link {vals['id']!r} {key}")
    link = LinkConfig(**vals)
    # Class-specific probabilities fall back to the generic one.
    return replace(
        link,
        prob_a=link.probability if link.prob_a is None else link.prob_a,
        prob_b=link.probability if link.prob_b is None else link.prob_b,
    )

def _pool_from_raw(raw: Union[Dict[str, Any], ResourcePoolConfig]) -> ResourcePoolConfig:
    if isinstance(raw, ResourcePoolConfig):
        raw = _record_fields(raw)
    vals = _read(raw, _POOL_KEYS)
    if "id" not in vals:
        raise ConfigError(f"Resource pool without id: {raw!r}")
    vals["id"] = str(vals["id"])
    for key in ("total_count", "available_count"):
        if key in vals:
            vals[key] = _as_int(vals[key], f"pool {vals['id']!r} {key}")
    pool = ResourcePoolConfig(**vals)
    if pool.available_count is None:
        pool = replace(pool, available_count=pool.total_count)
    return pool

def _unique(ids: Iterable[str], kind: str):
    seen = set()
    for item in ids:
        if item in seen:
            raise ConfigError(f"Duplicate {kind} id {item!r}")
        seen.add(item)

def validate(config: NetworkConfig) -> NetworkConfig:
    """Check a defaulted configuration; returns it unchanged or raises ConfigError."""
    _unique((n.id for n in config.nodes), "node")
    _unique((ln.id for ln in config.links), "link")
    _unique((p.id for p in config.resource_pools), "resource pool")
    pool_ids = {p.id for p in config.resource_pools}
    node_ids = {n.id for n in config.nodes}

    for pool in config.resource_pools:
        if pool.total_count < 0:
            raise ConfigError(f"pool {pool.id!r}: totalCount must be >= 0")
        if not 0 <= pool.available_count <= pool.total_count:
            raise ConfigError(
                f"pool {pool.id!r}: availableCount {pool.available_count} "
                f"outside [0, {pool.total_count}]"
            )

    for n in config.nodes:
        what = f"node {n.id!r}"
        if n.server_count < 1:
            raise ConfigError(f"{what}: serverCount must be >= 1, got {n.server_count}")
        if not n.avg_service_time > 0:
            raise ConfigError(f"{what}: avgServiceTime must be > 0, got {n.avg_service_time}")
        if n.capacity < 1:
            raise ConfigError(f"{what}: capacity must be >= 1, got {n.capacity}")
        if not 0 <= n.external_lambda < math.inf:
            raise ConfigError(f"{what}: externalLambda must be finite and >= 0, got {n.external_lambda}")
        if not 0.0 <= n.class_a_ratio <= 1.0:
            raise ConfigError(f"{what}: classARatio must be in [0, 1], got {n.class_a_ratio}")
        if n.arrival_batch_size < 1 or n.service_batch_size < 1:
            raise ConfigError(f"{what}: batch sizes must be >= 1")
        if n.arrival_shape < 1 or n.service_shape < 1:
            raise ConfigError(f"{what}: distribution shapes must be >= 1")
        if n.resource_pool_id is not None and n.resource_pool_id not in pool_ids:
            raise ConfigError(f"{what}: unknown resource pool {n.resource_pool_id!r}")

    for ln in config.links:
        what = f"link {ln.id!r}"
        if ln.source_id not in node_ids:
            raise ConfigError(f"{what}: unknown source node {ln.source_id!r}")
        if ln.target_id not in node_ids:
            raise ConfigError(f"{what}: unknown target node {ln.target_id!r}")
        for name in ("probability", "prob_a", "prob_b"):
            p = getattr(ln, name)
            if not 0.0 <= p <= 1.0:
                raise ConfigError(f"{what}: {name} must be in [0, 1], got {p}")

    for n in config.nodes:
        out = config.outgoing(n.id)
        for cls in CustomerClass:
            total = sum(ln.class_probability(cls) for ln in out)
            if total > 1.0 + PROBABILITY_TOLERANCE:
                raise ConfigError(
                    f"node {n.id!r}: class {cls.value} routing probabilities sum to {total:.6g} > 1"
                )
    return config

def build_network_config(nodes: Iterable = (), links: Iterable = (),
                         resource_pools: Iterable = ()) -> NetworkConfig:
    """Default and validate nodes/links/pools given as dicts or config records."""
    config = NetworkConfig(
        nodes=tuple(_node_from_raw(n) for n in nodes),
        links=tuple(_link_from_raw(ln) for ln in links),
        resource_pools=tuple(_pool_from_raw(p) for p in (resource_pools or ())),
    )
    return validate(config)

def network_from_dict(data: Dict[str, Any]) -> NetworkConfig:
    if not isinstance(data, dict):
        raise ConfigError("Network configuration must be a mapping")
    return build_network_config(
        data.get("nodes") or [],
        data.get("links") or [],
        data.get("resourcePools", data.get("resource_pools")) or [],
    )

def _to_plain(value: Any) -> Any:
    if isinstance(value, (DistributionType, RoutingStrategy)):
        return value.value
    return value

def _record_to_dict(record, keys: Dict[str, str]) -> Dict[str, Any]:
    out = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if value is None:
            continue
        out[keys[f.name]] = _to_plain(value)
    return out

def network_to_dict(config: NetworkConfig) -> Dict[str, Any]:
    """Exchange form of a configuration (camelCase keys, enum values as strings)."""
    return {
        "nodes": [_record_to_dict(n, _NODE_KEYS) for n in config.nodes],
        "links": [_record_to_dict(ln, _LINK_KEYS) for ln in config.links],
        "resourcePools": [_record_to_dict(p, _POOL_KEYS) for p in config.resource_pools],
    }

def load_config(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}

def load_network(path: str) -> NetworkConfig:
    """Read a YAML file holding either a top-level network or a `network:` section."""
    data = load_config(path)
    return network_from_dict(data.get("network", data))

def dump_network(config: NetworkConfig, path: str):
    with open(path, "w") as f:
        yaml.safe_dump(network_to_dict(config), f, sort_keys=False)
