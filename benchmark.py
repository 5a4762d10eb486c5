# benchmark.py
import json
import os
import sys
import time

import numpy as np

from cache import AccessKind, CacheGeometry, CacheManager
from main import load_config, resolve_geometry
from tracefile import TraceRecord, run_trace
from visualize import plot_associativity_sweep, plot_hit_miss_rate

PATTERNS = ("sequential", "random", "mixed")


class BenchmarkRunner:
    def __init__(self, cfg):
        bench_cfg = cfg.get("benchmark", {})
        self.rng = np.random.default_rng(bench_cfg.get("random_seed", None))
        self.geometry = resolve_geometry(cfg, environ={})
        self.line_size = self.geometry.line_size
        self.working_set_kb = bench_cfg.get("working_set_kb", 1024)
        # one block per cache line
        self.num_blocks = max(1, (self.working_set_kb * 1024) // self.line_size)
        self.num_requests = bench_cfg.get("num_requests", 10000)
        self.read_ratio = bench_cfg.get("read_ratio", 0.8)
        self.access_bytes = bench_cfg.get("access_bytes", 8)
        self.access_pattern = bench_cfg.get("access_pattern", "mixed")
        if self.access_pattern not in PATTERNS:
            raise ValueError(f"unknown access_pattern {self.access_pattern!r}, expected one of {PATTERNS}")
        self._seq_ptr = 0

    def _generate_block(self):
        if self.access_pattern == "sequential":
            return self._next_sequential()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._next_sequential()
            else:
                return int(self.rng.integers(0, self.num_blocks))

    def _next_sequential(self):
        block = self._seq_ptr
        self._seq_ptr = (block + 1) % self.num_blocks
        return block

    def generate_trace(self):
        """
        Build `num_requests` line-aligned accesses over the working set.
        Each access is a load with probability `read_ratio`, else a store.
        """
        trace = []
        for _ in range(self.num_requests):
            address = self._generate_block() * self.line_size
            kind = AccessKind.LOAD if self.rng.random() < self.read_ratio else AccessKind.STORE
            trace.append(TraceRecord(kind, address, self.access_bytes))
        return trace

    def run(self, trace=None):
        if trace is None:
            trace = self.generate_trace()
        manager = CacheManager.from_geometry(self.geometry)
        start = time.perf_counter()
        total = run_trace(manager, trace)
        end = time.perf_counter()

        duration = end - start
        stats = manager.stats()
        summary = {
            "total_requests": total,
            "hit": stats["hit"],
            "miss": stats["miss"],
            "swap": stats["swap"],
            "hit_rate": stats["hit_rate"],
            "throughput_ops_per_sec": total / duration if duration > 0 else 0,
            "duration_s": duration,
        }
        return summary, manager

    def save_results(self, summary, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path


def sweep_associativity(trace, geometry: CacheGeometry, capacities):
    """
    Replay the same trace once per set capacity, other fields unchanged.
    Returns {set_capacity: stats dict}.
    """
    results = {}
    for capacity in capacities:
        g = CacheGeometry(geometry.tag_len, geometry.index_len, geometry.offset_len, capacity).validate()
        manager = CacheManager.from_geometry(g)
        run_trace(manager, trace)
        results[capacity] = manager.stats()
    return results


def main(config_path="config.json"):
    cfg = load_config(config_path)
    runner = BenchmarkRunner(cfg)
    print("Starting benchmark with config:", cfg.get("benchmark", {}))
    trace = runner.generate_trace()
    summary, manager = runner.run(trace)
    out_cfg = cfg.get("output", {})
    results_path = runner.save_results(summary, out_cfg)
    print("Benchmark Summary:", summary)
    print("Results saved to:", results_path)

    capacities = out_cfg.get("sweep_capacities", [1, 2, 4, 8, 16])
    sweep = sweep_associativity(trace, runner.geometry, capacities)
    plot_hit_miss_rate(manager.stats(), out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png"))
    plot_associativity_sweep(sweep, out_cfg.get("sweep_plot", "results/associativity_sweep.png"))
    print("Plots saved in results/")


if __name__ == "__main__":
    main(*sys.argv[1:2])
