"""Bloom filter sizing formulas.

For ``n`` expected elements and target false positive rate ``p``:

* bit array size   ``m = -n * ln(p) / ln(2)^2``
* hash count       ``k = (m / n) * ln(2)``
* estimated rate   ``(1 - e^(-k * n / m))^k`` after ``n`` insertions
"""
from __future__ import annotations

import math

DEFAULT_FALSE_POSITIVE_RATE = 0.01
MIN_BIT_ARRAY_SIZE = 64
MIN_HASH_FUNCTIONS = 1
MAX_HASH_FUNCTIONS = 32

LN_2 = 0.6931471805599453
LN_2_SQUARED = 0.4804530139182014


def optimal_bit_array_size(expected_elements: int, false_positive_rate: float) -> int:
    """Return the bit array size for the given capacity and target rate.

    Never smaller than ``MIN_BIT_ARRAY_SIZE``. Out-of-range rates fall back to
    ``DEFAULT_FALSE_POSITIVE_RATE``; callers that need strict validation do it
    before calling.
    """
    if expected_elements <= 0:
        return MIN_BIT_ARRAY_SIZE
    if not 0.0 < false_positive_rate < 1.0:
        false_positive_rate = DEFAULT_FALSE_POSITIVE_RATE

    m = -expected_elements * math.log(false_positive_rate) / LN_2_SQUARED
    return max(math.ceil(m), MIN_BIT_ARRAY_SIZE)


def optimal_hash_count(bit_array_size: int, expected_elements: int) -> int:
    """Return ``round((m / n) * ln 2)`` clamped to the supported hash range."""
    if expected_elements <= 0:
        return MIN_HASH_FUNCTIONS

    k = (bit_array_size / expected_elements) * LN_2
    # Half away from zero, not Python's round-half-to-even.
    rounded = math.floor(k + 0.5)
    return max(MIN_HASH_FUNCTIONS, min(rounded, MAX_HASH_FUNCTIONS))


def estimate_false_positive_rate(bit_array_size: int, hash_count: int, inserted_elements: int) -> float:
    if bit_array_size <= 0 or hash_count <= 0:
        return 1.0
    if inserted_elements <= 0:
        return 0.0

    exponent = -hash_count * inserted_elements / bit_array_size
    return (1.0 - math.exp(exponent)) ** hash_count
