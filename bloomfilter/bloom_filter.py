"""Bloom filter backed by a packed ``bytearray`` bitset.

Probe positions come from :class:`bloomfilter.hashing.DoubleHasher`
(two base hashes, Kirsch-Mitzenmacher double hashing). Sizing follows the
formulas in :mod:`bloomfilter.params`:

>>> bloom = BloomFilter(1000, 0.01)
>>> bloom.bit_array_size, bloom.hash_count
(9586, 7)
>>> bloom.insert("apple")
>>> "apple" in bloom
True
"""
from __future__ import annotations

import logging
import sys
from typing import Iterable, Union

from bloomfilter.errors import InvalidCapacityError, InvalidRateOrHashCountError
from bloomfilter.hashing import DEFAULT_HASH_FUNCTION, DoubleHasher, HashFunction
from bloomfilter.params import (
    DEFAULT_FALSE_POSITIVE_RATE,
    MAX_HASH_FUNCTIONS,
    MIN_HASH_FUNCTIONS,
    estimate_false_positive_rate,
    optimal_bit_array_size,
    optimal_hash_count,
)

logger = logging.getLogger(__name__)

Item = Union[str, bytes, bytearray, memoryview, None]

# Number of set bits in every possible byte value, for bytes.translate().
_POPCOUNT_TABLE = bytes(bin(value).count("1") for value in range(256))


def _as_bytes(item: Item) -> Union[bytes, memoryview]:
    """Return a byte view of ``item``; ``None`` becomes the empty sequence."""
    if item is None:
        return b""
    if isinstance(item, str):
        return item.encode("utf-8")
    if isinstance(item, bytes):
        return item
    return memoryview(item).cast("B")


class BloomFilter:
    """Standard Bloom filter: no false negatives, tunable false positive rate."""

    __slots__ = (
        "_bit_array_size",
        "_hash_count",
        "_expected_elements",
        "_false_positive_rate",
        "_inserted_count",
        "_bit_array",
        "_hasher",
    )

    def __init__(
        self,
        expected_elements: int,
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
        *,
        hash_function: Union[str, HashFunction] = DEFAULT_HASH_FUNCTION,
    ) -> None:
        """Size a filter for ``expected_elements`` at ``false_positive_rate``.

        Args:
            expected_elements: Number of elements the filter is tuned for.
                Not enforced; inserting more only raises the false positive rate.
            false_positive_rate: Target rate, strictly between 0 and 1.
            hash_function: Registered hash name or ``fn(data, seed) -> int``.

        Raises:
            InvalidCapacityError: If ``expected_elements`` is not positive.
            InvalidRateOrHashCountError: If the rate is outside (0, 1).
        """
        if expected_elements <= 0:
            raise InvalidCapacityError("expected_elements must be greater than 0")
        if not 0.0 < false_positive_rate < 1.0:
            raise InvalidRateOrHashCountError("false_positive_rate must be between 0 and 1")

        bit_array_size = optimal_bit_array_size(expected_elements, false_positive_rate)
        hash_count = optimal_hash_count(bit_array_size, expected_elements)
        self._setup(bit_array_size, hash_count, expected_elements, false_positive_rate, hash_function)

    @classmethod
    def with_parameters(
        cls,
        bit_array_size: int,
        hash_count: int,
        expected_elements: int = 0,
        *,
        hash_function: Union[str, HashFunction] = DEFAULT_HASH_FUNCTION,
    ) -> "BloomFilter":
        """Build a filter with an explicit bit array size and hash count.

        The reported :attr:`false_positive_rate` is the estimate after
        ``expected_elements`` insertions, not a caller-supplied target.

        Raises:
            InvalidCapacityError: If ``bit_array_size`` is not positive or
                ``expected_elements`` is negative.
            InvalidRateOrHashCountError: If ``hash_count`` is outside [1, 32].
        """
        if bit_array_size <= 0:
            raise InvalidCapacityError("bit_array_size must be greater than 0")
        if expected_elements < 0:
            raise InvalidCapacityError("expected_elements must not be negative")
        if not MIN_HASH_FUNCTIONS <= hash_count <= MAX_HASH_FUNCTIONS:
            raise InvalidRateOrHashCountError(
                f"hash_count must be between {MIN_HASH_FUNCTIONS} and {MAX_HASH_FUNCTIONS}"
            )

        bloom = cls.__new__(cls)
        rate = estimate_false_positive_rate(bit_array_size, hash_count, expected_elements)
        bloom._setup(bit_array_size, hash_count, expected_elements, rate, hash_function)
        return bloom

    def _setup(
        self,
        bit_array_size: int,
        hash_count: int,
        expected_elements: int,
        false_positive_rate: float,
        hash_function: Union[str, HashFunction],
    ) -> None:
        self._bit_array_size = bit_array_size
        self._hash_count = hash_count
        self._expected_elements = expected_elements
        self._false_positive_rate = false_positive_rate
        self._inserted_count = 0
        self._bit_array = bytearray((bit_array_size + 7) // 8)
        self._hasher = DoubleHasher(bit_array_size, hash_function=hash_function)
        logger.debug(
            "Bloom filter created: m=%d bits, k=%d, capacity=%d, rate=%g",
            bit_array_size,
            hash_count,
            expected_elements,
            false_positive_rate,
        )

    def insert(self, item: Item) -> None:
        """Insert ``item``; ``None`` and empty input are ignored."""
        data = _as_bytes(item)
        if not len(data):
            return

        for bit_index in self._hasher.positions(data, self._hash_count):
            assert 0 <= bit_index < self._bit_array_size, bit_index
            self._bit_array[bit_index >> 3] |= 1 << (bit_index & 7)
        self._inserted_count += 1

    def update(self, items: Iterable[Item]) -> None:
        """Insert all ``items`` into the filter."""
        for item in items:
            self.insert(item)

    def contains(self, item: Item) -> bool:
        """Return True if ``item`` may be present, False if definitely absent."""
        data = _as_bytes(item)
        if not len(data):
            return False

        for bit_index in self._hasher.positions(data, self._hash_count):
            assert 0 <= bit_index < self._bit_array_size, bit_index
            if not (self._bit_array[bit_index >> 3] & (1 << (bit_index & 7))):
                return False
        return True

    def __contains__(self, item: Item) -> bool:
        return self.contains(item)

    def clear(self) -> None:
        """Reset every bit and the insertion counter."""
        self._bit_array[:] = bytes(len(self._bit_array))
        self._inserted_count = 0
        logger.debug("Bloom filter cleared (m=%d)", self._bit_array_size)

    def estimated_false_positive_rate(self) -> float:
        """Expected false positive rate given the insertions made so far."""
        return estimate_false_positive_rate(self._bit_array_size, self._hash_count, self._inserted_count)

    def count_set_bits(self) -> int:
        """Population count over the first ``bit_array_size`` bits."""
        full_bytes, extra_bits = divmod(self._bit_array_size, 8)
        count = sum(self._bit_array[:full_bytes].translate(_POPCOUNT_TABLE))
        if extra_bits:
            # Padding bits past bit_array_size are not part of the filter.
            count += _POPCOUNT_TABLE[self._bit_array[full_bytes] & ((1 << extra_bits) - 1)]
        return count

    def memory_usage(self) -> int:
        """Bytes held by the bit array plus the filter object itself."""
        return len(self._bit_array) + sys.getsizeof(self)

    @property
    def capacity(self) -> int:
        return self._expected_elements

    @property
    def false_positive_rate(self) -> float:
        return self._false_positive_rate

    @property
    def bit_array_size(self) -> int:
        return self._bit_array_size

    @property
    def hash_count(self) -> int:
        return self._hash_count

    @property
    def size(self) -> int:
        """Number of non-empty insertions since construction or the last clear."""
        return self._inserted_count

    @property
    def bit_array(self) -> bytearray:
        """Expose the underlying bit array for inspection."""
        return self._bit_array

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(bit_array_size={self._bit_array_size}, "
            f"hash_count={self._hash_count}, capacity={self._expected_elements}, "
            f"size={self._inserted_count})"
        )
