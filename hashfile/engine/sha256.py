from __future__ import annotations

import struct
from typing import List, Sequence

_MASK = 0xFFFFFFFF

_K = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)

_H0 = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (32 - n))) & _MASK


def _compress(state: Sequence[int], buf, offset: int) -> List[int]:
    """Run one 64-byte block at buf[offset:] through the compression function."""
    w = list(struct.unpack_from(">16I", buf, offset))
    for i in range(16, 64):
        x, y = w[i - 15], w[i - 2]
        s0 = _rotr(x, 7) ^ _rotr(x, 18) ^ (x >> 3)
        s1 = _rotr(y, 17) ^ _rotr(y, 19) ^ (y >> 10)
        w.append((w[i - 16] + s0 + w[i - 7] + s1) & _MASK)

    a, b, c, d, e, f, g, h = state
    for i in range(64):
        t1 = (h + (_rotr(e, 6) ^ _rotr(e, 11) ^ _rotr(e, 25)) + ((e & f) ^ (~e & g)) + _K[i] + w[i]) & _MASK
        t2 = ((_rotr(a, 2) ^ _rotr(a, 13) ^ _rotr(a, 22)) + ((a & b) ^ (a & c) ^ (b & c))) & _MASK
        h, g, f, e, d, c, b, a = g, f, e, (d + t1) & _MASK, c, b, a, (t1 + t2) & _MASK

    return [(s + v) & _MASK for s, v in zip(state, (a, b, c, d, e, f, g, h))]


class SoftwareSha256:
    """
    Pure-Python SHA-256 block accumulator (FIPS 180-4).

    Same surface as hashlib's sha256 objects: update() may be called any
    number of times, digest()/hexdigest() do not end the accumulation.
    Slow; only meant for small files on hosts without a better primitive.
    """

    name = "sha256"
    digest_size = 32
    block_size = 64

    def __init__(self, data: bytes = b""):
        self._state: List[int] = list(_H0)
        self._pending = bytearray()   # < 64 bytes between updates
        self._length = 0              # total bytes fed
        if data:
            self.update(data)

    def update(self, data) -> None:
        data = bytes(data)
        self._length += len(data)
        self._pending.extend(data)

        full = len(self._pending) - (len(self._pending) % self.block_size)
        state = self._state
        for off in range(0, full, self.block_size):
            state = _compress(state, self._pending, off)
        self._state = state
        del self._pending[:full]

    def digest(self) -> bytes:
        bit_len = (self._length * 8) & 0xFFFFFFFFFFFFFFFF
        pad = (55 - len(self._pending)) % self.block_size
        tail = bytes(self._pending) + b"\x80" + b"\x00" * pad + struct.pack(">Q", bit_len)

        state = self._state
        for off in range(0, len(tail), self.block_size):
            state = _compress(state, tail, off)
        return struct.pack(">8I", *state)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def copy(self) -> "SoftwareSha256":
        other = SoftwareSha256()
        other._state = list(self._state)
        other._pending = bytearray(self._pending)
        other._length = self._length
        return other
