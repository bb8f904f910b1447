# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# stations.py
# -----------------------------------------------------------------------------
# Purpose:
#   Turn a validated NetworkConfig into runtime Node instances and the
#   id -> index maps the engine and router use on every event.
#
# Design notes:
#   - Maps are built once per engine; topology is fixed for a run.
#   - dict preserves declaration order, which the tick loop relies on.
#
# Usage:
#   from qnet.stations import make_nodes, outgoing_links
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Dict, List

from .config import LinkConfig, NetworkConfig
from .queues import Node

def make_nodes(config: NetworkConfig) -> Dict[str, Node]:
    """
    Create one runtime Node per configured node, in declaration order.

    Parameters
    ----------
    config : NetworkConfig
        Already defaulted and validated configuration.

    Returns
    -------
    dict[str, Node]
        Mapping node id -> Node with empty queue, IDLE servers, zeroed stats.
    """
    return {cfg.id: Node(cfg) for cfg in config.nodes}

def outgoing_links(config: NetworkConfig) -> Dict[str, List[LinkConfig]]:
    """Outgoing links per node id, each list in link declaration order."""
    out: Dict[str, List[LinkConfig]] = {cfg.id: [] for cfg in config.nodes}
    for link in config.links:
        out.setdefault(link.source_id, []).append(link)
    return out
