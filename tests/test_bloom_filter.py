import math
from array import array

import pytest

from bloomfilter.bloom_filter import BloomFilter
from bloomfilter.errors import (
    BloomFilterError,
    InvalidCapacityError,
    InvalidRateOrHashCountError,
    UnknownHashFunctionError,
)
from bloomfilter.params import optimal_bit_array_size, optimal_hash_count

FRUITS = ["apple", "banana", "cherry", "date", "elderberry", "fig", "grape", "honeydew", "kiwi", "lemon"]


def test_construction():
    bloom = BloomFilter(1000, 0.01)
    assert bloom.capacity == 1000
    assert bloom.false_positive_rate == 0.01
    assert bloom.size == 0
    assert bloom.bit_array_size == 9586
    assert bloom.hash_count == 7
    assert len(bloom.bit_array) == (9586 + 7) // 8


def test_default_rate():
    assert BloomFilter(1000).false_positive_rate == 0.01


@pytest.mark.parametrize(
    "capacity, rate, error",
    [
        (0, 0.01, InvalidCapacityError),
        (-5, 0.01, InvalidCapacityError),
        (1000, 0.0, InvalidRateOrHashCountError),
        (1000, 1.0, InvalidRateOrHashCountError),
        (1000, -0.1, InvalidRateOrHashCountError),
        (1000, 1.1, InvalidRateOrHashCountError),
        (1000, float("nan"), InvalidRateOrHashCountError),
    ],
)
def test_invalid_construction(capacity, rate, error):
    with pytest.raises(error):
        BloomFilter(capacity, rate)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        BloomFilter(0, 0.01)
    assert issubclass(InvalidRateOrHashCountError, BloomFilterError)


def test_unknown_hash_function():
    with pytest.raises(UnknownHashFunctionError):
        BloomFilter(100, 0.01, hash_function="crc32")


def test_parameters_match_formulas():
    bloom = BloomFilter(10000, 0.01)
    m = optimal_bit_array_size(10000, 0.01)
    assert bloom.bit_array_size == m
    assert bloom.hash_count == optimal_hash_count(m, 10000)


def test_explicit_parameters():
    bloom = BloomFilter.with_parameters(10000, 7, 1000)
    assert bloom.bit_array_size == 10000
    assert bloom.hash_count == 7
    assert bloom.capacity == 1000
    assert bloom.false_positive_rate == pytest.approx((1 - math.exp(-0.7)) ** 7)


def test_explicit_parameters_without_capacity_reports_zero_rate():
    assert BloomFilter.with_parameters(128, 3).false_positive_rate == 0.0


@pytest.mark.parametrize(
    "m, k, n, error",
    [
        (0, 7, 1000, InvalidCapacityError),
        (10000, 7, -1, InvalidCapacityError),
        (10000, 0, 1000, InvalidRateOrHashCountError),
        (10000, 33, 1000, InvalidRateOrHashCountError),
    ],
)
def test_invalid_explicit_parameters(m, k, n, error):
    with pytest.raises(error):
        BloomFilter.with_parameters(m, k, n)


def test_insert_and_query():
    bloom = BloomFilter(1000, 0.01)
    for fruit in ("apple", "banana", "cherry"):
        bloom.insert(fruit)
    assert bloom.size == 3
    assert bloom.contains("apple")
    assert "banana" in bloom
    assert bloom.contains(b"cherry")


def test_no_false_negatives():
    bloom = BloomFilter(1000, 0.01)
    bloom.update(FRUITS)
    assert bloom.size == len(FRUITS)
    for i in range(2000):
        bloom.insert(f"noise_{i}")
    assert all(bloom.contains(fruit) for fruit in FRUITS)


def test_false_positive_rate_near_target():
    bloom = BloomFilter(1000, 0.01)
    for i in range(1000):
        bloom.insert(f"element_{i}")

    tests = 10000
    false_positives = sum(bloom.contains(f"element_{i}") for i in range(1000, 1000 + tests))
    observed = false_positives / tests

    assert 0.005 < observed < 0.02
    assert 0.0 < bloom.estimated_false_positive_rate() < 0.1


def test_empty_filter():
    bloom = BloomFilter(100, 0.01)
    assert bloom.size == 0
    assert not bloom.contains("anything")
    assert bloom.count_set_bits() == 0
    assert bloom.estimated_false_positive_rate() == 0.0


def test_empty_and_none_input_are_ignored():
    bloom = BloomFilter(100, 0.01)
    bloom.insert(None)
    bloom.insert("")
    bloom.insert(b"")
    assert bloom.size == 0
    assert bloom.count_set_bits() == 0
    assert not bloom.contains(None)
    assert not bloom.contains("")
    assert not bloom.contains(bytearray())


def test_byte_views_are_equivalent():
    bloom = BloomFilter(100, 0.01)
    bloom.insert("raw_bytes")
    assert bloom.contains(b"raw_bytes")
    assert bloom.contains(bytearray(b"raw_bytes"))
    assert bloom.contains(memoryview(b"raw_bytes"))

    value = array("i", [42])
    bloom.insert(value)
    assert bloom.contains(value.tobytes())
    assert bloom.size == 2


def test_clear():
    bloom = BloomFilter(100, 0.01)
    bloom.insert("test1")
    bloom.insert("test2")
    assert bloom.size == 2
    assert bloom.contains("test1")

    bloom.clear()
    assert bloom.size == 0
    assert not bloom.contains("test1")
    assert not bloom.contains("test2")
    assert bloom.count_set_bits() == 0
    assert bloom.bit_array_size == optimal_bit_array_size(100, 0.01)

    bloom.insert("test1")
    assert bloom.contains("test1")


def test_count_set_bits():
    bloom = BloomFilter(100, 0.01)
    bloom.insert("test1")
    after_one = bloom.count_set_bits()
    assert 0 < after_one <= bloom.hash_count

    bloom.insert("test2")
    assert bloom.count_set_bits() >= after_one
    assert bloom.count_set_bits() <= bloom.bit_array_size


def test_count_set_bits_ignores_padding():
    bloom = BloomFilter.with_parameters(70, 1)
    assert len(bloom.bit_array) == 9
    bloom.bit_array[8] |= 0b11000000
    assert bloom.count_set_bits() == 0
    bloom.bit_array[8] |= 0b00100000
    bloom.bit_array[0] = 0xFF
    assert bloom.count_set_bits() == 9


def test_idempotent_insert():
    bloom = BloomFilter(1000, 0.01)
    bloom.insert("apple")
    bits = bloom.count_set_bits()
    bloom.insert("apple")
    assert bloom.size == 2
    assert bloom.count_set_bits() == bits
    assert bloom.contains("apple")


def test_estimated_rate_increases():
    bloom = BloomFilter(1000, 0.01)
    rates = [bloom.estimated_false_positive_rate()]
    for chunk in range(4):
        for i in range(250):
            bloom.insert(f"elem_{chunk}_{i}")
        rates.append(bloom.estimated_false_positive_rate())

    assert rates[0] == 0.0
    assert all(a < b for a, b in zip(rates, rates[1:]))
    assert rates[-1] < 0.1


def test_inserting_past_capacity_is_allowed():
    bloom = BloomFilter(10, 0.01)
    bloom.update(str(i) for i in range(1000))
    assert bloom.size == 1000
    assert bloom.estimated_false_positive_rate() > bloom.false_positive_rate


def test_memory_usage():
    bloom = BloomFilter(1000, 0.01)
    memory = bloom.memory_usage()
    assert memory >= bloom.bit_array_size // 8
    assert memory > len(bloom.bit_array)


def test_filters_agree():
    first = BloomFilter(100, 0.01)
    second = BloomFilter(100, 0.01)
    for i in range(10):
        first.insert(f"elem_{i}")
        second.insert(f"elem_{i}")
    assert first.bit_array == second.bit_array
    for i in range(20):
        assert first.contains(f"elem_{i}") == second.contains(f"elem_{i}")


@pytest.mark.parametrize("hash_function", ["murmur3", "fnv1a", "mmh3", "xxh64"])
def test_hash_families(hash_function):
    bloom = BloomFilter(500, 0.01, hash_function=hash_function)
    items = [f"item_{i}" for i in range(500)]
    bloom.update(items)
    assert all(item in bloom for item in items)
    false_positives = sum(f"other_{i}" in bloom for i in range(2000))
    assert false_positives / 2000 < 0.05


def test_repr():
    assert repr(BloomFilter.with_parameters(128, 3, 10)) == (
        "BloomFilter(bit_array_size=128, hash_count=3, capacity=10, size=0)"
    )
