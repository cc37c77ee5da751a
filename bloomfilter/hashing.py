"""Hash engine for the Bloom filter.

Base hashes map a byte sequence and a seed to an unsigned 64-bit integer.
``DoubleHasher`` turns two base hashes into ``k`` probe positions with the
Kirsch-Mitzenmacher construction ``(h1 + i * h2) mod m``, so each operation
costs two hash evaluations regardless of ``k``.

``murmur3_64`` is the reference hash: a single-lane 64-bit MurmurHash3 with
the input length folded into the finalizer. It is written out here because
the ``mmh3`` package only ships the 128-bit x64 variant, whose output differs.
The ``mmh3`` and ``xxhash`` families remain available by name for callers that
prefer the C implementations and do not need reference positions.
"""
from __future__ import annotations

import struct
from typing import Callable, Dict, List, Tuple, Union

import mmh3
import xxhash

from bloomfilter.errors import InvalidCapacityError, UnknownHashFunctionError

HashFunction = Callable[[bytes, int], int]

DEFAULT_SEED1 = 0
DEFAULT_SEED2 = 0x1234567890ABCDEF
DEFAULT_HASH_FUNCTION = "murmur3"

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1

_MURMUR_C1 = 0x87C37B91114253D5
_MURMUR_C2 = 0x4CF5AD432745937F
_FMIX_M1 = 0xFF51AFD7ED558CCD
_FMIX_M2 = 0xC4CEB9FE1A85EC53

_FNV_OFFSET_BASIS = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3


def _rotl64(x: int, r: int) -> int:
    return ((x << r) | (x >> (64 - r))) & _MASK64


def _fmix64(k: int) -> int:
    k ^= k >> 33
    k = (k * _FMIX_M1) & _MASK64
    k ^= k >> 33
    k = (k * _FMIX_M2) & _MASK64
    k ^= k >> 33
    return k


def _mix_block(k1: int) -> int:
    k1 = (k1 * _MURMUR_C1) & _MASK64
    k1 = _rotl64(k1, 31)
    return (k1 * _MURMUR_C2) & _MASK64


def murmur3_64(data: bytes, seed: int = 0) -> int:
    """64-bit MurmurHash3 over ``data``.

    The body consumes little-endian 8-byte blocks; the 0-7 byte tail is mixed
    once, and the length is xor-ed in before the ``fmix64`` avalanche.
    """
    length = len(data)
    body = length - (length & 7)
    h1 = seed & _MASK64

    for (k1,) in struct.iter_unpack("<Q", data[:body]):
        h1 ^= _mix_block(k1)
        h1 = _rotl64(h1, 27)
        h1 = (h1 * 5 + 0x52DCE729) & _MASK64

    tail = data[body:]
    if tail:
        h1 ^= _mix_block(int.from_bytes(tail, "little"))

    h1 ^= length
    return _fmix64(h1)


def fnv1a_64(data: bytes, seed: int = 0) -> int:
    """FNV-1a 64-bit, with the seed xor-ed into the offset basis."""
    h = (_FNV_OFFSET_BASIS ^ seed) & _MASK64
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK64
    return h


def mmh3_64(data: bytes, seed: int = 0) -> int:
    """First 64-bit lane of ``mmh3``'s x64 MurmurHash3 (32-bit seed)."""
    return mmh3.hash64(bytes(data), seed & _MASK32, signed=False)[0]


def xxh64(data: bytes, seed: int = 0) -> int:
    return xxhash.xxh64(data, seed=seed & _MASK64).intdigest()


HASH_FUNCTIONS: Dict[str, HashFunction] = {
    "murmur3": murmur3_64,
    "fnv1a": fnv1a_64,
    "mmh3": mmh3_64,
    "xxh64": xxh64,
}


def get_hash_function(hash_function: Union[str, HashFunction]) -> HashFunction:
    """Resolve a registered hash name, or pass a callable through unchanged."""
    if callable(hash_function):
        return hash_function
    try:
        return HASH_FUNCTIONS[hash_function]
    except KeyError:
        known = ", ".join(sorted(HASH_FUNCTIONS))
        raise UnknownHashFunctionError(
            f"unknown hash function {hash_function!r} (expected one of: {known})"
        ) from None


class DoubleHasher:
    """Derive probe positions in ``[0, bit_array_size)`` from two seeded hashes."""

    __slots__ = ("bit_array_size", "seed1", "seed2", "_hash")

    def __init__(
        self,
        bit_array_size: int,
        seed1: int = DEFAULT_SEED1,
        seed2: int = DEFAULT_SEED2,
        hash_function: Union[str, HashFunction] = DEFAULT_HASH_FUNCTION,
    ) -> None:
        if bit_array_size <= 0:
            raise InvalidCapacityError("bit_array_size must be positive")

        self.bit_array_size = bit_array_size
        self.seed1 = seed1
        self.seed2 = seed2
        self._hash = get_hash_function(hash_function)

    def base_hashes(self, data: bytes) -> Tuple[int, int]:
        """Return ``(h1, h2)`` with ``h2`` forced odd."""
        h1 = self._hash(data, self.seed1)
        h2 = self._hash(data, self.seed2)
        if h2 % 2 == 0:
            h2 += 1
        return h1, h2

    def hash(self, data: bytes, hash_index: int) -> int:
        """Return the ``hash_index``-th probe position for ``data``."""
        h1, h2 = self.base_hashes(data)
        return ((h1 + hash_index * h2) & _MASK64) % self.bit_array_size

    def positions(self, data: bytes, k: int) -> List[int]:
        """Return all ``k`` probe positions for ``data``."""
        h1, h2 = self.base_hashes(data)
        m = self.bit_array_size
        # Wrap to 64 bits before reducing so positions match unsigned arithmetic.
        return [((h1 + i * h2) & _MASK64) % m for i in range(k)]
