"""Tests for the incremental KD-tree."""

import math

import hypothesis.extra.numpy as hnp
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from plantree.common.errors import DimensionMismatch, IndexCorruption, PreconditionViolation
from plantree.spatial import (
    KDTree,
    nearest_brute_force,
    range_search_brute_force,
    validate_kd_tree,
)
from plantree.store import NodeStore


def _build(points, dims=3, max_iterations=50000):
    store = NodeStore(dims=dims)
    kd = KDTree(store, max_iterations=max_iterations)
    ids = []
    for p in points:
        nid = store.create(p)
        kd.insert(nid)
        ids.append(nid)
    return store, kd, ids


# coarse grid values produce many ties on split planes
coords = st.integers(-4, 4).map(float)
point_lists = st.lists(st.tuples(coords, coords, coords), min_size=1, max_size=40)


def test_small_scene_queries() -> None:
    """Nearest and range queries on a hand-checked point set."""

    pts = [(0, 0, 0), (1, 1, 1), (2, 0, 0), (0, 2, 0)]
    store, kd, ids = _build(pts)
    assert kd.nearest((1.1, 1.0, 1.0)) == ids[1]
    assert kd.nearest_node == ids[1]
    assert math.isclose(kd.nearest_distance, 0.1)
    # (1, 1, 1) lies sqrt(3) from the origin, the other two points at 2
    assert kd.range_search((0, 0, 0), 1.8) == {ids[0], ids[1]}
    assert kd.nearby_nodes == {ids[0], ids[1]}
    assert kd.range_search((0, 0, 0), 1.5) == {ids[0]}
    assert kd.range_search((0, 0, 0), math.sqrt(3)) == {ids[0], ids[1]}


def test_insert_split_dimensions() -> None:
    """Split dimension cycles with depth and follows the strict-less rule."""

    store, kd, ids = _build([(0, 0, 0), (-1, 5, 5), (0, 1, 0), (0, -1, 3)])
    root = store.get(ids[0])
    assert kd.root == ids[0] and root.split_dim == 0
    assert root.kd_left == ids[1]
    # equal coordinate on the split axis goes right
    assert root.kd_right == ids[2]
    assert store.get(ids[2]).split_dim == 1
    assert store.get(ids[2]).kd_left == ids[3]
    assert store.get(ids[3]).split_dim == 2
    assert kd.depth() == 3
    assert validate_kd_tree(store) == []


def test_insert_twice_is_refused() -> None:
    """A linked node cannot be inserted again."""

    store, kd, ids = _build([(0, 0, 0), (1, 0, 0)])
    with pytest.raises(PreconditionViolation):
        kd.insert(ids[1])
    with pytest.raises(PreconditionViolation):
        kd.insert(ids[0])


def test_insert_below_explicit_root() -> None:
    """Insertion can start from an inner member."""

    store, kd, ids = _build([(0, 0, 0), (1, 0, 0)])
    nid = store.create((2, 0, 0))
    kd.insert(nid, ids[1])
    assert store.get(nid).kd_parent == ids[1]
    stray = store.create((3, 0, 0))
    with pytest.raises(PreconditionViolation):
        kd.insert(stray, nid + 10)


def test_insert_bound_leaves_tree_untouched() -> None:
    """Exceeding the iteration bound raises before linking the node."""

    store, kd, ids = _build([(float(i), 0, 0) for i in range(5)])
    kd.max_iterations = 3
    nid = store.create((10, 0, 0))
    with pytest.raises(IndexCorruption):
        kd.insert(nid)
    assert nid not in kd
    assert store.get(ids[-1]).kd_right is None


def test_queries_on_empty_tree() -> None:
    """Empty trees answer None and the empty set."""

    store = NodeStore()
    kd = KDTree(store)
    assert kd.nearest((0, 0, 0)) is None
    assert kd.nearest_distance == math.inf
    assert kd.range_search((0, 0, 0), 10.0) == set()
    assert len(kd) == 0 and kd.depth() == 0


def test_query_dimension_is_checked() -> None:
    """Queries with the wrong length raise DimensionMismatch."""

    _, kd, _ = _build([(0, 0, 0)])
    with pytest.raises(DimensionMismatch):
        kd.nearest((0, 0))


def test_remove_root_with_both_subtrees() -> None:
    """The right-subtree minimum replaces a removed root."""

    store, kd, ids = _build([(5, 5, 5), (2, 0, 0), (8, 0, 0), (6, 0, 0), (9, 0, 0)])
    kd.remove(ids[0])
    assert kd.root == ids[3]
    new_root = store.get(ids[3])
    assert new_root.split_dim == 0 and new_root.kd_parent is None
    assert new_root.kd_left == ids[1] and new_root.kd_right == ids[2]
    removed = store.get(ids[0])
    assert removed.kd_parent is None and removed.kd_children() == (None, None)
    assert ids[0] not in kd
    assert validate_kd_tree(store) == []
    assert sorted(kd.members()) == sorted(ids[1:])


def test_remove_picks_subtree_root_on_tied_minimum() -> None:
    """When the right child already holds the minimum it replaces the node."""

    store, kd, ids = _build([(5, 5, 5), (8, 0, 0), (8, 1, 0)])
    kd.remove(ids[0])
    assert kd.root == ids[1]
    assert store.get(ids[1]).kd_right == ids[2]
    assert validate_kd_tree(store) == []


def test_remove_node_with_only_left_subtree() -> None:
    """The left minimum replaces the node and keeps the rest on its right."""

    store, kd, ids = _build([(5, 5, 5), (3, 0, 0), (1, 0, 0), (2, 0, 0)])
    kd.remove(ids[0])
    assert validate_kd_tree(store) == []
    assert kd.root == ids[2]
    assert store.get(ids[2]).kd_left is None
    assert sorted(kd.members()) == sorted(ids[1:])


def test_reconstruct_root() -> None:
    """Rebuilding at the root promotes the first right-subtree node."""

    store, kd, ids = _build([(5, 5, 5), (2, 0, 0), (8, 0, 0), (6, 0, 0)])
    kd.reconstruct(ids[0])
    assert kd.root == ids[2]
    assert store.get(ids[2]).split_dim == 0
    assert validate_kd_tree(store) == []
    assert sorted(kd.members()) == sorted(ids[1:])


def test_reconstruct_single_node() -> None:
    """Rebuilding the only node empties the tree."""

    store, kd, ids = _build([(1, 2, 3)])
    kd.reconstruct(ids[0])
    assert kd.root is None
    store.remove(ids[0])
    assert len(store) == 0


def test_validator_detects_misplaced_node() -> None:
    """Order violations below the offending ancestor are reported."""

    store, kd, ids = _build([(0, 0, 0), (-1, 0, 0), (-2, 1, 0)])
    store.get(ids[2]).state[0] = 3.0
    errors = validate_kd_tree(store, strict=False)
    assert any("outside the bounds" in e for e in errors)
    with pytest.raises(IndexCorruption):
        validate_kd_tree(store)


def test_cyclic_links_raise() -> None:
    """A parent cycle surfaces as IndexCorruption instead of hanging."""

    store, kd, ids = _build([(0, 0, 0), (1, 0, 0)], max_iterations=100)
    store.get(ids[1]).kd_right = ids[0]
    with pytest.raises(IndexCorruption):
        kd.nearest((5, 0, 0))


def test_degenerate_chain_is_not_recursive() -> None:
    """A deep sorted chain is searched and emptied without recursion errors."""

    n = 1500
    store, kd, ids = _build([(float(i), 0.0, 0.0) for i in range(n)], dims=3)
    assert kd.depth() == n
    assert kd.nearest((n + 1.0, 0.0, 0.0)) == ids[-1]
    assert len(kd.range_search((0.0, 0.0, 0.0), float(n))) == n
    kd.remove(ids[0])
    assert validate_kd_tree(store) == []


@settings(max_examples=25, deadline=None)
@given(points=point_lists, queries=st.lists(st.tuples(coords, coords, coords), min_size=1, max_size=10))
def test_index_agrees_with_brute_force(points, queries) -> None:
    """Nearest distance and range sets equal the linear scan."""

    store, kd, _ = _build(points)
    assert validate_kd_tree(store) == []
    for q in queries:
        nid = kd.nearest(q)
        ref = nearest_brute_force(store, q)
        d_kd = np.linalg.norm(store.get(nid).state - np.array(q))
        d_bf = np.linalg.norm(store.get(ref).state - np.array(q))
        assert math.isclose(d_kd, d_bf, abs_tol=1e-12)
        for radius in (0.0, 1.0, 2.5):
            assert kd.range_search(q, radius) == range_search_brute_force(store, q, radius)


@settings(max_examples=25, deadline=None)
@given(
    points=hnp.arrays(np.float64, st.tuples(st.integers(1, 30), st.just(2)), elements=st.floats(-10, 10)),
    data=st.data(),
)
def test_removals_preserve_order_and_population(points, data) -> None:
    """Both deletion strategies keep the invariants and every other node."""

    store, kd, ids = _build(points, dims=2)
    live = list(ids)
    while live:
        victim = data.draw(st.sampled_from(live))
        if data.draw(st.booleans()):
            kd.remove(victim)
        else:
            kd.reconstruct(victim)
        live.remove(victim)
        assert victim not in kd
        assert validate_kd_tree(store) == []
        assert sorted(kd.members()) == sorted(live)
        if live:
            q = data.draw(hnp.arrays(np.float64, 2, elements=st.floats(-10, 10)))
            nid = kd.nearest(q)
            assert nid in live
            best = min(np.linalg.norm(store.get(i).state - q) for i in live)
            assert math.isclose(kd.nearest_distance, best, abs_tol=1e-12)
    assert kd.root is None
    for nid in ids:
        store.remove(nid)
    assert len(store) == 0
