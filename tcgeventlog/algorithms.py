from __future__ import annotations
import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable
from .errors import UnsupportedAlgorithm

ALG_SHA1    = 0x0004
ALG_SHA256  = 0x000B
ALG_SHA384  = 0x000C
ALG_SHA512  = 0x000D
ALG_SM3_256 = 0x0012
ALG_SHA3_256 = 0x0027
ALG_SHA3_384 = 0x0028
ALG_SHA3_512 = 0x0029

@dataclass(frozen=True)
class DigestAlgorithm:
    id: int
    name: str
    output_length: int
    hashlib_name: str

    def digest(self, data: bytes)->bytes:
        try:
            h = hashlib.new(self.hashlib_name)
        except ValueError:
            raise UnsupportedAlgorithm(self.id) from None
        h.update(data)
        return h.digest()

class DigestAlgorithmRegistry:
    def __init__(self, algorithms: Iterable[DigestAlgorithm]):
        self._by_id: Dict[int, DigestAlgorithm] = {a.id: a for a in algorithms}

    def lookup(self, alg_id: int)->DigestAlgorithm:
        try:
            return self._by_id[alg_id]
        except KeyError:
            raise UnsupportedAlgorithm(alg_id) from None

    def __contains__(self, alg_id: int)->bool:
        return alg_id in self._by_id

SHA1 = DigestAlgorithm(ALG_SHA1, 'SHA-1', 20, 'sha1')
SHA256 = DigestAlgorithm(ALG_SHA256, 'SHA-256', 32, 'sha256')

# process-wide and read-only; parsers never mutate it
DEFAULT_REGISTRY = DigestAlgorithmRegistry([
    SHA1,
    SHA256,
    DigestAlgorithm(ALG_SHA384, 'SHA-384', 48, 'sha384'),
    DigestAlgorithm(ALG_SHA512, 'SHA-512', 64, 'sha512'),
    DigestAlgorithm(ALG_SM3_256, 'SM3-256', 32, 'sm3'),
    DigestAlgorithm(ALG_SHA3_256, 'SHA3-256', 32, 'sha3_256'),
    DigestAlgorithm(ALG_SHA3_384, 'SHA3-384', 48, 'sha3_384'),
    DigestAlgorithm(ALG_SHA3_512, 'SHA3-512', 64, 'sha3_512'),
])
