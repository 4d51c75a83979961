"""Ed25519 / X25519 primitives.

Plain Python big-integer arithmetic over Curve25519 in both its twisted
Edwards (Ed25519) and Montgomery (X25519) forms. Points cross the module
boundary as 32-byte encodings; scalars are Python ints.

Not constant time. Wallets that need side-channel resistance keep their view
secrets behind a hardware device (see ``carrot_core.devices``).

Reference: https://datatracker.ietf.org/doc/html/rfc8032 (Section 5.1),
https://datatracker.ietf.org/doc/html/rfc7748 (Section 5).
"""

from __future__ import annotations

from .exceptions import CarrotEncodingError

# Field prime
P = 2**255 - 19
# Ed25519 curve order (l)
L = 2**252 + 27742317777372353535851937790883648493

D = -121665 * pow(121666, P - 2, P) % P
SQRTM1 = pow(2, (P - 1) // 4, P)
A24 = 121665

_Point = tuple[int, int, int, int]

# ===== FIELD / SCALAR HELPERS =====


def _inv(x: int) -> int:
    return pow(x, P - 2, P)


def sc_from_bytes(b: bytes) -> int:
    """Convert 32-byte little-endian to scalar, reduced mod L"""
    return int.from_bytes(b, "little") % L


def sc_to_bytes(s: int) -> bytes:
    """Convert scalar to 32-byte little-endian representation"""
    return (s % L).to_bytes(32, "little")


def sc_reduce(b: bytes) -> int:
    """Reduce an arbitrary-length little-endian integer mod L"""
    return int.from_bytes(b, "little") % L


def sc_muladd(a: int, b: int, c: int) -> int:
    """a * b + c mod L"""
    return (a * b + c) % L


# ===== EDWARDS ARITHMETIC =====


def _recover_x(y: int, sign: int) -> int | None:
    x2 = (y * y - 1) * _inv(D * y * y + 1) % P
    if x2 == 0:
        return None if sign else 0
    x = pow(x2, (P + 3) // 8, P)
    if (x * x - x2) % P != 0:
        x = x * SQRTM1 % P
    if (x * x - x2) % P != 0:
        return None
    if (x & 1) != sign:
        x = P - x
    return x


def _edwards_add(p1: _Point, p2: _Point) -> _Point:
    # complete for a = -1, so it also doubles
    x1, y1, z1, t1 = p1
    x2, y2, z2, t2 = p2
    a = (y1 - x1) * (y2 - x2) % P
    b = (y1 + x1) * (y2 + x2) % P
    c = t1 * 2 * D * t2 % P
    dd = z1 * 2 * z2 % P
    e = b - a
    f = dd - c
    g = dd + c
    h = b + a
    return (e * f % P, g * h % P, f * g % P, e * h % P)


def _edwards_neg(pt: _Point) -> _Point:
    x, y, z, t = pt
    return (-x % P, y, z, -t % P)


def _scalarmult(pt: _Point, n: int) -> _Point:
    result = _IDENTITY
    addend = pt
    while n > 0:
        if n & 1:
            result = _edwards_add(result, addend)
        addend = _edwards_add(addend, addend)
        n >>= 1
    return result


def _compress(pt: _Point) -> bytes:
    x, y, z, _ = pt
    zi = _inv(z)
    x = x * zi % P
    y = y * zi % P
    return (y | ((x & 1) << 255)).to_bytes(32, "little")


def _decompress(b: bytes) -> _Point:
    if len(b) != 32:
        raise CarrotEncodingError(f"Point encoding must be 32 bytes, got {len(b)}")
    y = int.from_bytes(b, "little")
    sign = y >> 255
    y &= (1 << 255) - 1
    if y >= P:
        raise CarrotEncodingError("Non-canonical point encoding")
    x = _recover_x(y, sign)
    if x is None:
        raise CarrotEncodingError("Bytes do not encode a point on Ed25519")
    return (x, y, 1, x * y % P)


_IDENTITY: _Point = (0, 1, 1, 0)
_BY = 4 * _inv(5) % P
_BX = _recover_x(_BY, 0)
_G: _Point = (_BX, _BY, 1, _BX * _BY % P)

# ===== GENERATORS =====

# Ed25519 base point (compressed)
G = _compress(_G)
# Pedersen amount generator H = 8 * H_p(G)
H = bytes.fromhex("8b655970153799af2aeadc9ff1add0ea6c7251d54154cfa92c173a0dd39c1f94")
# second onetime address generator T = H_p(keccak("Monero Generator T"))
T = bytes.fromhex("966fc66b82cd56cf85eaec801c42845f5f408878d1561e00d3d7ded2794d094f")
IDENTITY = _compress(_IDENTITY)

_H = _decompress(H)
_T = _decompress(T)


# ===== POINT API (32-byte encodings) =====


def is_valid_point(b: bytes) -> bool:
    try:
        _decompress(b)
    except CarrotEncodingError:
        return False
    return True


def point_add(a: bytes, b: bytes) -> bytes:
    return _compress(_edwards_add(_decompress(a), _decompress(b)))


def point_sub(a: bytes, b: bytes) -> bytes:
    return _compress(_edwards_add(_decompress(a), _edwards_neg(_decompress(b))))


def scalarmult_base(s: int) -> bytes:
    """s * G"""
    return _compress(_scalarmult(_G, s % L))


def scalarmult_key(point: bytes, s: int) -> bytes:
    """s * P; s is not reduced so cofactor multiples are preserved"""
    return _compress(_scalarmult(_decompress(point), s))


def scalarmult_t(s: int) -> bytes:
    """s * T"""
    return _compress(_scalarmult(_T, s % L))


def add_keys2(a: int, b: int, point: bytes) -> bytes:
    """a * G + b * P"""
    return _compress(
        _edwards_add(_scalarmult(_G, a % L), _scalarmult(_decompress(point), b % L))
    )


def commit(amount: int, blinding_factor: int) -> bytes:
    """Pedersen commitment C = k G + a H"""
    return _compress(
        _edwards_add(_scalarmult(_G, blinding_factor % L), _scalarmult(_H, amount))
    )


def zero_commit(amount: int) -> bytes:
    """Commitment with unit blinding factor C = G + a H (cleartext amounts)"""
    return commit(amount, 1)


# ===== X25519 =====


def _decode_u(b: bytes) -> int:
    if len(b) != 32:
        raise CarrotEncodingError(f"X25519 pubkey must be 32 bytes, got {len(b)}")
    return (int.from_bytes(b, "little") & ((1 << 255) - 1)) % P


def _encode_u(u: int) -> bytes:
    return (u % P).to_bytes(32, "little")


def edwards_to_montgomery(point: bytes) -> bytes:
    """ConvertPointE: Ed25519 point -> X25519 u-coordinate, u = (1 + y) / (1 - y)"""
    _, y, z, _ = _decompress(point)
    return _encode_u((z + y) * _inv(z - y) % P)


def _ladder(k: int, u: int) -> int:
    x1 = u
    x2, z2 = 1, 0
    x3, z3 = u, 1
    swap = 0
    for t in reversed(range(k.bit_length())):
        k_t = (k >> t) & 1
        swap ^= k_t
        if swap:
            x2, x3 = x3, x2
            z2, z3 = z3, z2
        swap = k_t

        a = (x2 + z2) % P
        aa = a * a % P
        b = (x2 - z2) % P
        bb = b * b % P
        e = (aa - bb) % P
        c = (x3 + z3) % P
        d = (x3 - z3) % P
        da = d * a % P
        cb = c * b % P
        x3 = (da + cb) ** 2 % P
        z3 = x1 * (da - cb) ** 2 % P
        x2 = aa * bb % P
        z2 = e * (aa + A24 * e) % P
    if swap:
        x2, x3 = x3, x2
        z2, z3 = z3, z2
    return x2 * _inv(z2) % P


def x25519_scmul_key(s: int, pubkey: bytes) -> bytes:
    """Unclamped X25519 scalar multiplication s * U"""
    return _encode_u(_ladder(s, _decode_u(pubkey)))


def x25519_scmul_base(s: int) -> bytes:
    """Unclamped X25519 scalar multiplication s * B, B = ConvertPointE(G)"""
    return _encode_u(_ladder(s, 9))
