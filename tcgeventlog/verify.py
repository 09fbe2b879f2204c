from __future__ import annotations
import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, Optional
from .algorithms import ALG_SHA1, ALG_SHA256, DigestAlgorithm
from .errors import UnsupportedAlgorithm

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Verification:
    sha1: bytes
    sha256: bytes
    sha1_match: bool
    sha256_match: bool
    primary: Optional[bytes]
    matched: bool

def _logged(digests: Dict[int, bytes], primary_digest: bytes, alg_id: int, size: int)->Optional[bytes]:
    if alg_id in digests: return digests[alg_id]
    # legacy logs and single-bank records only carry the primary value
    return primary_digest if len(primary_digest) == size else None

def verify_content(content: bytes, primary_digest: bytes, digests: Dict[int, bytes], primary_alg: DigestAlgorithm)->Verification:
    """Recompute SHA-1 and SHA-256 over the event data and compare with what was logged."""
    sha1 = hashlib.sha1(content).digest()
    sha256 = hashlib.sha256(content).digest()
    logged1 = _logged(digests, primary_digest, ALG_SHA1, len(sha1))
    logged256 = _logged(digests, primary_digest, ALG_SHA256, len(sha256))
    if primary_alg.id == ALG_SHA1: primary: Optional[bytes] = sha1
    elif primary_alg.id == ALG_SHA256: primary = sha256
    else:
        try:
            primary = primary_alg.digest(content)
        except UnsupportedAlgorithm:
            logger.warning('cannot recompute %s digests on this platform', primary_alg.name)
            primary = None
    return Verification(sha1=sha1, sha256=sha256, sha1_match=logged1 == sha1, sha256_match=logged256 == sha256, primary=primary, matched=primary is not None and primary == primary_digest)
