"""Bloom filter evaluation harness.

Performs a deterministic 80/20 split of unique synthetic items, builds a
filter sized for the 80% training set, and runs five checks:

1. Membership on the training set (must report 0 missing)
2. False positive rate on the held-out 20%
3. Collision analysis using simple modifications of held-out items
4. Filter properties and memory usage
5. Insert and query throughput

Run with::

    python -m bloomfilter.benchmark
"""
from __future__ import annotations

import time
import uuid
from typing import Dict, List, Optional, Tuple

from bloomfilter.bloom_filter import BloomFilter
from bloomfilter.params import DEFAULT_FALSE_POSITIVE_RATE


def generate_synthetic_data(n: int = 100_000) -> List[str]:
    """Generate ``n`` unique random strings."""
    print(f"Generating {n} synthetic items...")
    return [str(uuid.uuid4()) for _ in range(n)]


def build_split(
    items: List[str],
    false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
    hash_function: str = "murmur3",
) -> Tuple[BloomFilter, List[str], List[str]]:
    """Create a deterministic 80/20 split and build the filter on the 80%.

    Returns (bloom_filter, training_items, test_items).
    """
    split = int(len(items) * 0.8)
    train = items[:split]
    test = items[split:]

    bloom = BloomFilter(max(1, len(train)), false_positive_rate, hash_function=hash_function)
    bloom.update(train)
    return bloom, train, test


def check_membership(bloom: BloomFilter, train: List[str]) -> int:
    """Return the number of training items the filter fails to report."""
    print("CHECK A: Membership on training set")
    missing = [w for w in train if w not in bloom]
    print(f"  Training items: {len(train)}")
    print(f"  Missing after insertion: {len(missing)} (expected 0)")
    if missing:
        print(f"  Example missing: {missing[:5]}")
    print()
    return len(missing)


def check_false_positives(bloom: BloomFilter, train: List[str], test: List[str]) -> Optional[float]:
    """Return the empirical false positive rate on held-out items."""
    print("CHECK B: False positive rate on held-out items")
    train_set = set(train)
    heldout = [w for w in test if w not in train_set]
    if not heldout:
        print("  No held-out items available for testing.")
        print()
        return None

    false_positives = sum(1 for w in heldout if w in bloom)
    fpr = false_positives / len(heldout)

    print(f"  Held-out items: {len(heldout)}")
    print(f"  False positives: {false_positives}")
    print(f"  Empirical FPR: {fpr:.6f} ({fpr*100:.4f}%)")
    print(f"  Estimated FPR: {bloom.estimated_false_positive_rate():.6f}")
    print()
    return fpr


def check_collisions(bloom: BloomFilter, train: List[str], test: List[str]) -> Optional[float]:
    """Return the false positive rate over near-miss variants of held-out items."""
    print("CHECK C: Collision analysis with simple modifications of held-out items")
    variants = []
    for word in test[:500]:
        variants.append(word + "x")
        if len(word) > 1:
            variants.append(word[:-1] + "z")
        variants.append("x" + word)

    known = set(train) | set(test)
    variants = [v for v in variants if v not in known]
    if not variants:
        print("  No variants available for testing.")
        print()
        return None

    false_positives = sum(1 for v in variants if v in bloom)
    rate = false_positives / len(variants)

    print(f"  Variants tested: {len(variants)}")
    print(f"  False positives from variants: {false_positives}")
    print(f"  Collision rate: {rate:.6f} ({rate*100:.4f}%)")
    print()
    return rate


def show_properties(bloom: BloomFilter) -> Dict[str, float]:
    """Display and return filter configuration and memory figures."""
    print("CHECK D: Filter properties")
    bytes_len = len(bloom.bit_array)
    properties = {
        "bit_array_size": bloom.bit_array_size,
        "bit_array_bytes": bytes_len,
        "hash_count": bloom.hash_count,
        "inserted": bloom.size,
        "set_bits": bloom.count_set_bits(),
        "memory_usage": bloom.memory_usage(),
        "estimated_fpr": bloom.estimated_false_positive_rate(),
    }

    print(f"  Filter size (bits): {bloom.bit_array_size}")
    print(f"  Filter size (bytes): {bytes_len}")
    print(f"  Memory usage (KB): {bloom.memory_usage() / 1024:.2f}")
    print(f"  Number of hash functions: {bloom.hash_count}")
    print(f"  Items inserted: {bloom.size}")
    print(f"  Bits set: {properties['set_bits']} ({properties['set_bits'] / bloom.bit_array_size:.2%})")
    if bloom.size:
        print(f"  Bytes per item: {bytes_len / bloom.size:.4f}")
    print()
    return properties


def measure_performance(bloom: BloomFilter, train: List[str], test: List[str], query_count: int = 1_000_000) -> Dict[str, float]:
    """Measure insertion and query throughput (ops/sec) on a fresh filter."""
    print("CHECK E: Performance benchmarking")

    bench_filter = BloomFilter.with_parameters(bloom.bit_array_size, bloom.hash_count, bloom.capacity)

    start_time = time.perf_counter()
    for word in train:
        bench_filter.insert(word)
    insert_time = time.perf_counter() - start_time
    insert_ops = len(train) / insert_time if insert_time > 0 else float("inf")
    print(f"    - Inserted {len(train)} items in {insert_time:.4f} sec")
    print(f"    - Insertion Throughput: {insert_ops:,.0f} ops/sec")

    queries = test or train
    repeats = (query_count // max(1, len(queries))) + 1
    workload = (queries * repeats)[:query_count]

    start_time = time.perf_counter()
    for word in workload:
        _ = word in bench_filter
    query_time = time.perf_counter() - start_time
    query_ops = len(workload) / query_time if query_time > 0 else float("inf")
    print(f"    - Performed {len(workload)} queries in {query_time:.4f} sec")
    print(f"    - Query Throughput: {query_ops:,.0f} ops/sec")
    print()

    return {
        "insert_count": len(train),
        "insert_time": insert_time,
        "insert_ops_per_sec": insert_ops,
        "query_count": len(workload),
        "query_time": query_time,
        "query_ops_per_sec": query_ops,
    }


def run_all(n: int = 100_000, query_count: int = 1_000_000) -> Dict[str, object]:
    """Run every check on ``n`` synthetic items and return the collected results."""
    items = generate_synthetic_data(n)

    print("=" * 60)
    print("Running Bloom Filter Evaluation (80/20 split)")
    print("=" * 60)
    print()

    bloom, train, test = build_split(items)
    results = {
        "missing": check_membership(bloom, train),
        "false_positive_rate": check_false_positives(bloom, train, test),
        "collision_rate": check_collisions(bloom, train, test),
        "properties": show_properties(bloom),
        "performance": measure_performance(bloom, train, test, query_count),
    }

    print("=" * 60)
    print("Evaluation completed successfully!")
    print("=" * 60)
    return results


if __name__ == "__main__":
    run_all()
