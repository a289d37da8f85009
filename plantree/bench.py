# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Benchmark KD-tree queries against the brute-force scan.

Summary
-------
Builds a planning tree over a random point cloud, then times nearest and
range queries through the index and through the linear scan. Every indexed
answer is checked against the scan; the process exits non-zero on any
disagreement.
"""

from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from plantree.common.config import load_config
from plantree.planning import PlanningTree
from plantree.spatial import nearest_brute_force, range_search_brute_force

logger = logging.getLogger(__name__)


def build_tree(points: np.ndarray, overrides: Optional[List[str]] = None) -> PlanningTree:
    """Return a tree whose nodes are ``points`` chained below the first one."""

    cfg = load_config(overrides=[f"dims={points.shape[1]}", *(overrides or [])])
    tree = PlanningTree(cfg)
    origin = tree.add_node(points[0])
    for point in points[1:]:
        tree.add_node(point, parent=origin)
    return tree


def run_benchmark(
    n_points: int, n_queries: int, dims: int, radius: float, seed: int
) -> Dict[str, float]:
    """Time indexed and brute-force queries and count mismatches."""

    rng = np.random.default_rng(seed)
    points = rng.uniform(0.0, 1.0, size=(n_points, dims))
    queries = rng.uniform(0.0, 1.0, size=(n_queries, dims))

    start = time.perf_counter()
    tree = build_tree(points)
    build_s = time.perf_counter() - start

    mismatches = 0
    start = time.perf_counter()
    indexed = [tree.nearest(q) for q in queries]
    nearest_kd_s = time.perf_counter() - start
    start = time.perf_counter()
    scanned = [nearest_brute_force(tree.store, q) for q in queries]
    nearest_bf_s = time.perf_counter() - start
    for q, a, b in zip(queries, indexed, scanned):
        da = np.linalg.norm(tree.get(a).state - q)
        db = np.linalg.norm(tree.get(b).state - q)
        if abs(da - db) > 1e-12:
            mismatches += 1

    start = time.perf_counter()
    indexed_sets = [tree.range_search(q, radius) for q in queries]
    range_kd_s = time.perf_counter() - start
    start = time.perf_counter()
    scanned_sets = [range_search_brute_force(tree.store, q, radius) for q in queries]
    range_bf_s = time.perf_counter() - start
    mismatches += sum(1 for a, b in zip(indexed_sets, scanned_sets) if a != b)

    return {
        "points": n_points,
        "queries": n_queries,
        "dims": dims,
        "depth": tree.kd.depth(),
        "build_s": build_s,
        "nearest_kd_s": nearest_kd_s,
        "nearest_bf_s": nearest_bf_s,
        "range_kd_s": range_kd_s,
        "range_bf_s": range_bf_s,
        "mismatches": mismatches,
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--points", type=int, default=5000, help="number of indexed points")
    parser.add_argument("--queries", type=int, default=500, help="number of query points")
    parser.add_argument("--dims", type=int, default=3, help="state dimensionality")
    parser.add_argument("--radius", type=float, default=0.1, help="range query radius")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--out", type=Path, help="write results as JSON to this file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    result = run_benchmark(args.points, args.queries, args.dims, args.radius, args.seed)
    for key, value in result.items():
        logger.info("%s: %s", key, value)
    if args.out is not None:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(json.dumps(result, indent=2), encoding="utf-8")
    if result["mismatches"]:
        logger.error("indexed and brute-force results disagree on %d queries", result["mismatches"])
        return 1
    return 0


__all__ = ["build_tree", "run_benchmark", "main"]
