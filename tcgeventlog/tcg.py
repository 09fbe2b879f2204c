from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from .algorithms import DEFAULT_REGISTRY, SHA1, DigestAlgorithm, DigestAlgorithmRegistry
from .cursor import ByteCursor
from .errors import MalformedRecord, MalformedSpecId, TruncatedInput, UnknownAlgorithmInRecord

logger = logging.getLogger(__name__)

EV_PREBOOT_CERT = 0x00000000
EV_POST_CODE = 0x00000001
EV_UNUSED = 0x00000002
EV_NO_ACTION = 0x00000003
EV_SEPARATOR = 0x00000004
EV_ACTION = 0x00000005
EV_EVENT_TAG = 0x00000006
EV_S_CRTM_CONTENTS = 0x00000007
EV_S_CRTM_VERSION = 0x00000008
EV_CPU_MICROCODE = 0x00000009
EV_PLATFORM_CONFIG_FLAGS = 0x0000000A
EV_TABLE_OF_DEVICES = 0x0000000B
EV_COMPACT_HASH = 0x0000000C
EV_IPL = 0x0000000D
EV_IPL_PARTITION_DATA = 0x0000000E
EV_NONHOST_CODE = 0x0000000F
EV_NONHOST_CONFIG = 0x00000010
EV_NONHOST_INFO = 0x00000011
EV_OMIT_BOOT_DEVICE_EVENTS = 0x00000012
EV_EFI_EVENT_BASE = 0x80000000
EV_EFI_VARIABLE_DRIVER_CONFIG = 0x80000001
EV_EFI_VARIABLE_BOOT = 0x80000002
EV_EFI_BOOT_SERVICES_APPLICATION = 0x80000003
EV_EFI_BOOT_SERVICES_DRIVER = 0x80000004
EV_EFI_RUNTIME_SERVICES_DRIVER = 0x80000005
EV_EFI_GPT_EVENT = 0x80000006
EV_EFI_ACTION = 0x80000007
EV_EFI_PLATFORM_FIRMWARE_BLOB = 0x80000008
EV_EFI_HANDOFF_TABLES = 0x80000009
EV_EFI_PLATFORM_FIRMWARE_BLOB2 = 0x8000000A
EV_EFI_HANDOFF_TABLES2 = 0x8000000B
EV_EFI_VARIABLE_BOOT2 = 0x8000000C
EV_EFI_HCRTM_EVENT = 0x80000010
EV_EFI_VARIABLE_AUTHORITY = 0x800000E0

EVENT_TYPE_NAMES: Dict[int, str] = {v: k for k, v in globals().items() if k.startswith('EV_')}

SHA1_DIGEST_SIZE = 20
SPEC_ID_SIGNATURE_AGILE = b'Spec ID Event03'
SPEC_ID_SIGNATURES_LEGACY = (b'Spec ID Event00', b'Spec ID Event02')
MAX_SPEC_ID_ALGORITHMS = 16

def event_type_name(event_type: int)->str:
    return EVENT_TYPE_NAMES.get(event_type, f'Unknown Event ID 0x{event_type:x}')

class LogFormat(enum.Enum):
    SHA1_LEGACY = 1
    CRYPTO_AGILE = 2

@dataclass(frozen=True)
class SpecIdEvent:
    signature: str
    platform_class: int
    version_minor: int
    version_major: int
    errata: int
    uintn_size: int
    algorithms: Tuple[Tuple[int, int], ...]
    vendor_info: bytes

    @property
    def crypto_agile(self)->bool:
        return self.signature == SPEC_ID_SIGNATURE_AGILE.decode()

@dataclass(frozen=True)
class SpecIdContext:
    format: LogFormat
    algorithms: Tuple[DigestAlgorithm, ...]
    spec_version: str = 'Unknown'
    spec_errata: str = 'Unknown'
    spec_id: Optional[SpecIdEvent] = None

    def __post_init__(self):
        if not self.algorithms:
            raise MalformedSpecId('no digest algorithms negotiated')
        if self.format is LogFormat.SHA1_LEGACY and self.algorithms != (SHA1,):
            raise MalformedSpecId('legacy format logs carry exactly one SHA-1 digest')

    @property
    def primary(self)->DigestAlgorithm:
        return self.algorithms[0]

    def algorithm_ids(self)->list[int]:
        return [a.id for a in self.algorithms]

LEGACY_CONTEXT = SpecIdContext(LogFormat.SHA1_LEGACY, (SHA1,))

@dataclass(frozen=True)
class RawRecord:
    pcr_index: int
    event_type: int
    digest: bytes
    digests: Tuple[Tuple[int, bytes], ...]
    content: bytes
    record: bytes

def is_spec_id_content(content: bytes)->bool:
    sig = content[:16].rstrip(b'\x00')
    return sig == SPEC_ID_SIGNATURE_AGILE or sig in SPEC_ID_SIGNATURES_LEGACY

def parse_spec_id_struct(data: bytes, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY)->SpecIdEvent:
    cur = ByteCursor(data, 'Spec ID event')
    try:
        sig = cur.read_exact(16).rstrip(b'\x00')
        if not (sig == SPEC_ID_SIGNATURE_AGILE or sig in SPEC_ID_SIGNATURES_LEGACY):
            raise MalformedSpecId(f'Spec ID signature mismatch: {sig!r}')
        platform_class = cur.read_u32_le()
        minor, major, errata, uintn = cur.read_u8(), cur.read_u8(), cur.read_u8(), cur.read_u8()
        algs = []
        if sig == SPEC_ID_SIGNATURE_AGILE:
            count = cur.read_u32_le()
            if not 0 < count <= MAX_SPEC_ID_ALGORITHMS:
                raise MalformedSpecId(f'Spec ID algorithm count invalid: {count}')
            for _ in range(count):
                alg_id, size = cur.read_u16_le(), cur.read_u16_le()
                alg = registry.lookup(alg_id)
                if size != alg.output_length:
                    raise MalformedSpecId(f'Spec ID declares {size} byte digests for {alg.name}, expected {alg.output_length}')
                algs.append((alg_id, size))
        vendor_info = cur.read_exact(cur.read_u8())
    except TruncatedInput as e:
        raise MalformedSpecId(str(e)) from e
    return SpecIdEvent(sig.decode('ascii'), platform_class, minor, major, errata, uintn, tuple(algs), vendor_info)

def context_from_spec_id(spec: SpecIdEvent, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY)->SpecIdContext:
    version = f'{spec.version_major}.{spec.version_minor}'
    if spec.crypto_agile:
        algs = tuple(registry.lookup(a) for a, _ in spec.algorithms)
        return SpecIdContext(LogFormat.CRYPTO_AGILE, algs, version, str(spec.errata), spec)
    return SpecIdContext(LogFormat.SHA1_LEGACY, (SHA1,), version, str(spec.errata), spec)

def read_record(cur: ByteCursor, ctx: SpecIdContext, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY, max_digest_count: int = 16)->RawRecord:
    start = cur.position
    pcr_index = cur.read_i32_le()
    event_type = cur.read_u32_le()
    if ctx.format is LogFormat.SHA1_LEGACY:
        digest = cur.read_exact(SHA1_DIGEST_SIZE)
        digests: Tuple[Tuple[int, bytes], ...] = ((SHA1.id, digest),)
    else:
        count = cur.read_u32_le()
        if count > max_digest_count:
            raise MalformedRecord(f'digest count {count} exceeds limit {max_digest_count}')
        negotiated = ctx.algorithm_ids()
        pairs = []
        for _ in range(count):
            alg_id = cur.read_u16_le()
            if alg_id not in negotiated:
                raise UnknownAlgorithmInRecord(alg_id, negotiated)
            pairs.append((alg_id, cur.read_exact(registry.lookup(alg_id).output_length)))
        digests = tuple(pairs)
        found = dict(digests)
        # fall back to the first listed value when the primary bank is absent
        digest = found.get(ctx.primary.id, digests[0][1] if digests else b'')
    size = cur.read_u32_le()
    content = cur.read_exact(size)
    return RawRecord(pcr_index, event_type, digest, digests, content, cur.slice_since(start))

def negotiate_spec_id(cur: ByteCursor, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY)->Tuple[SpecIdContext, RawRecord]:
    """Read record 0 with SHA-1 framing and derive the context for the rest of the log."""
    first = read_record(cur, LEGACY_CONTEXT, registry)
    if first.event_type != EV_NO_ACTION or not is_spec_id_content(first.content):
        logger.info('no Spec ID event in record 0, assuming SHA-1 log format')
        return LEGACY_CONTEXT, first
    ctx = context_from_spec_id(parse_spec_id_struct(first.content, registry), registry)
    logger.info('negotiated %s log, spec %s errata %s, algorithms %s', ctx.format.name, ctx.spec_version, ctx.spec_errata, ', '.join(a.name for a in ctx.algorithms))
    return ctx, first
