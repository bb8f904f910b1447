"""
experiments/run_experiments.py

Experiment harness that loads the baseline config, applies scenario overrides,
runs multiple seeded replications of the network simulation, and reports
per-node KPIs with confidence intervals next to the Jackson/M/M/s reference
values. Run from the repository root:

    python -m experiments.run_experiments
"""

from __future__ import annotations
import copy, logging, os
from typing import Dict, List, Callable

import yaml

from experiments.scenarios import SCENARIOS
from qnet.config import network_from_dict
from qnet.simulation import run_network
from qnet.stats import mean_ci
from qnet.traffic import analyze_network

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

logger = logging.getLogger(__name__)

def load_cfg(path: str = None) -> Dict:
    with open(path or os.path.join(ROOT, "config", "baseline.yaml"), "r") as f:
        return yaml.safe_load(f)

def apply_overrides(cfg: Dict, overrides: Dict) -> Dict:
    """Apply scenario overrides (recursive merge) on top of the base config.

    Lists of mappings carrying an "id" are merged entry by entry on that id;
    entries with a new id are appended. Other values replace the base value.
    """
    new = copy.deepcopy(cfg)

    def _merge_list(dst: List, src: List):
        index = {item.get("id"): item for item in dst if isinstance(item, dict)}
        for item in src:
            if isinstance(item, dict) and item.get("id") in index:
                _merge(index[item["id"]], item)
            else:
                dst.append(copy.deepcopy(item))

    def _merge(dst: Dict, src: Dict):
        for key, val in src.items():
            if isinstance(val, dict) and isinstance(dst.get(key), dict):
                _merge(dst[key], val)
            elif isinstance(val, list) and isinstance(dst.get(key), list):
                _merge_list(dst[key], val)
            else:
                dst[key] = copy.deepcopy(val)

    _merge(new, overrides)
    return new

def series(results: List[Dict], extractor: Callable[[Dict], float]) -> List[float]:
    """Collect a numeric series from each replication result."""
    return [float(extractor(res)) for res in results]

def run_scenario(base_cfg: Dict, scenario: Dict, replications: int) -> List[Dict]:
    """Run `replications` copies of one scenario, advancing the seed per replication."""
    sc_cfg = apply_overrides(base_cfg, scenario["overrides"])
    seed = sc_cfg.get("sim", {}).get("seed", 0)
    results = []
    for rep in range(replications):
        run_cfg = copy.deepcopy(sc_cfg)
        run_cfg.setdefault("sim", {})["seed"] = seed + rep
        results.append(run_network(run_cfg))
    return results

def report(name: str, cfg: Dict, results: List[Dict], confidence: float):
    level_pct = confidence * 100.0
    reference = analyze_network(network_from_dict(cfg["network"]))
    print(f"Scenario: {name} (replications={len(results)}, {level_pct:.1f}% CI)")
    exits = mean_ci(series(results, lambda r: r["total_exits"]), confidence)
    blocked = mean_ci(series(results, lambda r: r["total_blocked"]), confidence)
    in_network = mean_ci(series(results, lambda r: r["avg_time_in_network_minutes"]), confidence)
    print(f"  Exits/run: {exits[0]:.1f} ± {exits[1]:.1f}")
    print(f"  Blocked/run: {blocked[0]:.1f} ± {blocked[1]:.1f}")
    print(f"  Avg time in network: {in_network[0]:.2f} ± {in_network[1]:.2f} min")
    print("  Node        | Wq sim (min)     | Wq theory (min) | rho theory | util sim | blocked")
    for node_id, ref in reference.items():
        wq = mean_ci(series(results, lambda r: r["nodes"][node_id]["avg_wait_minutes"]), confidence)
        util = mean_ci(series(results, lambda r: r["nodes"][node_id]["time_avg_utilization"]), confidence)
        node_blocked = mean_ci(series(results, lambda r: r["nodes"][node_id]["blocked"]), confidence)
        m = ref.metrics
        theory_wq = f"{m.wq * 60.0:15.2f}" if m.is_stable else f"{'unstable':>15}"
        print(f"  {node_id:<11} | {wq[0]:6.2f} ± {wq[1]:<6.2f} | {theory_wq} | {m.rho:10.2f} "
              f"| {util[0] * 100.0:7.1f}% | {node_blocked[0]:.1f}")
    print("-")

def main():
    """Entry point: drive all scenarios and replications, report KPIs."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    cfg = load_cfg()
    exp_cfg = cfg.get("experiments", {})
    replications = max(1, int(exp_cfg.get("replications", 1)))
    confidence = float(exp_cfg.get("confidence_level", 0.95))
    # Engine construction logs at INFO; keep the report readable
    logging.getLogger("qnet").setLevel(logging.WARNING)

    for sc in SCENARIOS:
        sc_cfg = apply_overrides(cfg, sc["overrides"])
        results = run_scenario(cfg, sc, replications)
        report(sc["name"], sc_cfg, results, confidence)
    logger.info("ran %d scenarios x %d replications", len(SCENARIOS), replications)

if __name__ == "__main__":
    main()
