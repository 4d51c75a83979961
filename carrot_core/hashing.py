"""Domain-separated hashing and randomness.

Every Carrot hash is a keyed BLAKE2b over a transcript of the form
``len(domain_sep) || domain_sep || data...``. The key is the secret the
output is derived from (empty for public derivations). Hash-to-scalar takes
a 64-byte digest and reduces it mod l.
"""

from __future__ import annotations

from Crypto.Hash import BLAKE2b
from Crypto.Random import get_random_bytes

from .crypto import sc_reduce, scalarmult_base, x25519_scmul_base


def _transcript(domain_separator: bytes, *args: bytes) -> bytes:
    return bytes([len(domain_separator)]) + domain_separator + b"".join(args)


def derive_bytes(size: int, key: bytes, domain_separator: bytes, *args: bytes) -> bytes:
    """H_size[key](domain_separator, args...)"""
    h = BLAKE2b.new(digest_bytes=size, key=key)
    h.update(_transcript(domain_separator, *args))
    return h.digest()


def derive_bytes_3(key: bytes, domain_separator: bytes, *args: bytes) -> bytes:
    return derive_bytes(3, key, domain_separator, *args)


def derive_bytes_8(key: bytes, domain_separator: bytes, *args: bytes) -> bytes:
    return derive_bytes(8, key, domain_separator, *args)


def derive_bytes_16(key: bytes, domain_separator: bytes, *args: bytes) -> bytes:
    return derive_bytes(16, key, domain_separator, *args)


def derive_bytes_32(key: bytes, domain_separator: bytes, *args: bytes) -> bytes:
    return derive_bytes(32, key, domain_separator, *args)


def derive_scalar(key: bytes, domain_separator: bytes, *args: bytes) -> int:
    """H_n[key](domain_separator, args...) = BytesToInt512(H_64(...)) mod l"""
    return sc_reduce(derive_bytes(64, key, domain_separator, *args))


# ===== RANDOMNESS =====


def random_bytes(n: int) -> bytes:
    return get_random_bytes(n)


def random_scalar() -> int:
    return sc_reduce(get_random_bytes(64)) or 1


def random_point() -> bytes:
    return scalarmult_base(random_scalar())


def x25519_pubkey_gen() -> bytes:
    return x25519_scmul_base(random_scalar())


def rand_u64() -> int:
    return int.from_bytes(get_random_bytes(8), "little")


def rand_u32() -> int:
    return int.from_bytes(get_random_bytes(4), "little")
