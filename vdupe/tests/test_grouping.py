#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Unit tests for duplicate clustering.
"""

import itertools
import random

import pytest

from vdupe.config import ClusterOptions
from vdupe.errors import HashLengthMismatchError
from vdupe.grouping import (
    build_adjacency, cluster_fingerprints, collect_buckets, find_neighbors,
    is_similar, symbol_distance,
)
from vdupe.tests.fixtures.store_setup import make_fingerprint


def _partition(fingerprints):
    """Groups as a set of frozensets of object ids, independent of bucket numbering."""
    groups = {}
    for fp in fingerprints:
        if fp.bucket >= 0:
            groups.setdefault(fp.bucket, set()).add(id(fp))
    return {frozenset(g) for g in groups.values()}


class TestSymbolDistance:
    """Character-level distance between hash strings."""

    def test_identical(self):
        assert symbol_distance("0f0f0f0f0f0f0f0f", "0f0f0f0f0f0f0f0f") == 0

    def test_counts_characters_not_bits(self):
        # 0 vs 1 differs by one bit, 0 vs f by four: both count as one symbol
        assert symbol_distance("0000", "1000") == 1
        assert symbol_distance("0000", "f000") == 1
        assert symbol_distance("0000", "ffff") == 4

    def test_symmetric_and_bounded(self):
        rng = random.Random(7)
        for _ in range(200):
            n = rng.randint(1, 48)
            a = "".join(rng.choice("0123456789abcdef") for _ in range(n))
            b = "".join(rng.choice("0123456789abcdef") for _ in range(n))
            d = symbol_distance(a, b)
            assert d == symbol_distance(b, a)
            assert 0 <= d <= len(a)

    def test_unequal_length_raises(self):
        with pytest.raises(HashLengthMismatchError):
            symbol_distance("0f0f0f0f0f0f0f0f", "0f0f")

    def test_mismatch_is_also_value_error(self):
        with pytest.raises(ValueError):
            symbol_distance("abc", "ab")


class TestSimilarity:
    """Pairwise similarity predicate."""

    def test_close_pair_is_similar(self):
        f = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        g = make_fingerprint("0f0f0f0f0f0f0f0e", 102)
        assert is_similar(f, g, ClusterOptions())

    def test_duration_outside_tolerance(self):
        f = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        g = make_fingerprint("0f0f0f0f0f0f0f0f", 106)
        assert not is_similar(f, g, ClusterOptions(max_duration_diff=5))

    def test_duration_at_tolerance_is_inclusive(self):
        f = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        g = make_fingerprint("0f0f0f0f0f0f0f0f", 105)
        assert is_similar(f, g, ClusterOptions(max_duration_diff=5))

    def test_distance_threshold_is_inclusive(self):
        f = make_fingerprint("0000000000000000", 100)
        g = make_fingerprint("1111000000000000", 100)
        h = make_fingerprint("1111100000000000", 100)
        assert is_similar(f, g, ClusterOptions(max_hash_distance=4))
        assert not is_similar(f, h, ClusterOptions(max_hash_distance=4))

    def test_unequal_lengths_are_not_similar(self):
        fast = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        slow = make_fingerprint("0f0f0f0f0f0f0f0f" * 2, 100, kind="slow")
        assert not is_similar(fast, slow, ClusterOptions(max_hash_distance=100))

    def test_find_neighbors_excludes_self(self):
        fps = [make_fingerprint("0f0f0f0f0f0f0f0f", 100),
               make_fingerprint("0f0f0f0f0f0f0f0e", 102),
               make_fingerprint("ffffffffffffffff", 100)]
        assert find_neighbors(0, fps, ClusterOptions()) == [1]
        assert find_neighbors(2, fps, ClusterOptions()) == []

    def test_adjacency_is_symmetric(self):
        rng = random.Random(3)
        fps = [make_fingerprint("".join(rng.choice("01") for _ in range(16)), rng.randint(90, 110))
               for _ in range(30)]
        adjacency = build_adjacency(fps, ClusterOptions())
        for i, neighbours in enumerate(adjacency):
            assert neighbours == sorted(neighbours)
            for j in neighbours:
                assert i in adjacency[j]


class TestClustering:
    """Connected-component bucket assignment."""

    def test_close_pair_shares_bucket(self):
        a = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        b = make_fingerprint("0f0f0f0f0f0f0f0e", 102)
        buckets = cluster_fingerprints([a, b], ClusterOptions(5, 4))
        assert a.bucket == b.bucket >= 0
        assert len(buckets) == 1

    def test_distant_fingerprint_stays_apart(self):
        a = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        b = make_fingerprint("0f0f0f0f0f0f0f0e", 102)
        c = make_fingerprint("ffffffffffffffff", 100)
        cluster_fingerprints([a, b, c], ClusterOptions(5, 4))
        assert a.bucket == b.bucket
        assert c.bucket == -1

    def test_chaining_merges_through_intermediate(self):
        a = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        b = make_fingerprint("0f0f0f0f0f0f0f0e", 102)
        c = make_fingerprint("ffffffffffffffff", 100)
        # 4 symbols from a, 4 symbols from c, while a and c differ in 8
        bridge = make_fingerprint("0f0f0f0fffffffff", 100)
        assert symbol_distance(a.value, bridge.value) <= 4
        assert symbol_distance(c.value, bridge.value) <= 4
        assert symbol_distance(a.value, c.value) > 4

        buckets = cluster_fingerprints([a, b, c, bridge], ClusterOptions(5, 4))
        assert a.bucket == b.bucket == c.bucket == bridge.bucket >= 0
        assert len(buckets) == 1

    def test_chain_order_does_not_matter(self):
        a = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        c = make_fingerprint("ffffffffffffffff", 100)
        bridge = make_fingerprint("0f0f0f0fffffffff", 100)
        for order in itertools.permutations([a, c, bridge]):
            cluster_fingerprints(list(order), ClusterOptions(5, 4))
            assert a.bucket == c.bucket == bridge.bucket >= 0

    def test_singletons_not_returned(self):
        fps = [make_fingerprint("0000000000000001", 100),
               make_fingerprint("ffffffffffffff00", 100),
               make_fingerprint("0000000000000001", 300)]
        buckets = cluster_fingerprints(fps, ClusterOptions())
        assert buckets == {}
        assert all(fp.bucket == -1 for fp in fps)

    def test_no_bucket_smaller_than_two(self):
        rng = random.Random(11)
        fps = [make_fingerprint("".join(rng.choice("0123") for _ in range(16)), rng.randint(0, 50))
               for _ in range(60)]
        buckets = cluster_fingerprints(fps, ClusterOptions())
        assert all(len(members) >= 2 for members in buckets.values())
        assert collect_buckets(fps) == buckets

    def test_bucket_ids_sequential_in_store_order(self):
        a1 = make_fingerprint("0000000000000000", 10)
        b1 = make_fingerprint("ffffffffffffffff", 500)
        a2 = make_fingerprint("0000000000000001", 10)
        b2 = make_fingerprint("fffffffffffffffe", 500)
        cluster_fingerprints([a1, b1, a2, b2], ClusterOptions())
        assert a1.bucket == a2.bucket == 0
        assert b1.bucket == b2.bucket == 1

    def test_idempotent_partition(self):
        rng = random.Random(5)
        fps = [make_fingerprint("".join(rng.choice("01") for _ in range(16)), rng.randint(90, 130))
               for _ in range(40)]
        cluster_fingerprints(fps, ClusterOptions())
        first = _partition(fps)
        cluster_fingerprints(fps, ClusterOptions())
        assert _partition(fps) == first

    def test_reset_clears_previous_assignment(self):
        a = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        b = make_fingerprint("0f0f0f0f0f0f0f0e", 100)
        a.bucket, b.bucket = 7, 9
        a.neighbours = [42]
        cluster_fingerprints([a, b], ClusterOptions())
        assert a.bucket == b.bucket == 0
        assert a.neighbours == [1]
        assert b.neighbours == [0]

    def test_shared_fingerprint_without_neighbours_gets_bucket(self):
        lonely = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        shared = make_fingerprint("fedcba9876543210", 400)
        pair = [make_fingerprint("0123456789abcdef", 10), make_fingerprint("0123456789abcdee", 10)]
        lonely.id, shared.id, pair[0].id, pair[1].id = 1, 2, 3, 4

        buckets = cluster_fingerprints([lonely, shared] + pair, ClusterOptions(),
                                       shared_ids={2})
        assert lonely.bucket == -1
        assert shared.bucket == 0
        assert pair[0].bucket == pair[1].bucket == 1
        assert buckets == {0: [shared], 1: pair}
        assert collect_buckets([lonely, shared] + pair) == {1: pair}

    def test_mixed_lengths_never_share_bucket(self):
        fast = make_fingerprint("0f0f0f0f0f0f0f0f", 100)
        slow = make_fingerprint("0f0f0f0f0f0f0f0f0f0f0f0f0f0f0f0f", 100, kind="slow")
        cluster_fingerprints([fast, slow], ClusterOptions(max_hash_distance=64))
        assert fast.bucket == slow.bucket == -1

    def test_empty_input(self):
        assert cluster_fingerprints([]) == {}
