"""Exceptions raised while constructing Bloom filters."""


class BloomFilterError(ValueError):
    """Base class for invalid Bloom filter arguments."""


class InvalidCapacityError(BloomFilterError):
    """Expected element count or bit array size is not positive."""


class InvalidRateOrHashCountError(BloomFilterError):
    """False positive rate outside (0, 1) or hash count outside the allowed range."""


class UnknownHashFunctionError(BloomFilterError):
    """Requested hash family is not registered."""
