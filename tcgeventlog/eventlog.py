from __future__ import annotations
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from .algorithms import DEFAULT_REGISTRY, SHA1, DigestAlgorithm, DigestAlgorithmRegistry
from .config import Options
from .content import describe
from .cursor import ByteCursor
from .errors import FATAL, ContentDecodeError, EventLogError, FatalParseError
from .tcg import EV_NO_ACTION, LEGACY_CONTEXT, LogFormat, RawRecord, SpecIdContext, event_type_name, negotiate_spec_id, read_record
from .verify import Verification, verify_content

logger = logging.getLogger(__name__)

EVENTLOG_PATHS = ['/sys/kernel/security/tpm0/binary_bios_measurements', '/sys/kernel/security/tpm1/binary_bios_measurements',
                  '/sys/firmware/tpm/tpm0/binary_bios_measurements', '/sys/firmware/tpm/tpm1/binary_bios_measurements']

def _error_text(e: Optional[Exception])->Optional[str]:
    return None if e is None else f'{type(e).__name__}: {e}'

@dataclass(frozen=True)
class LogEntry:
    sequence_number: int
    pcr_index: int
    event_type: int
    digest: bytes
    digests: Tuple[Tuple[int, bytes], ...]
    raw_event_bytes: bytes
    record_bytes: bytes
    content_description: str
    verification: Verification
    algorithm: DigestAlgorithm = SHA1
    error: Optional[ContentDecodeError] = field(default=None, compare=False)
    # exceptions compare by identity; equality goes through the rendered error
    error_text: Optional[str] = field(default=None, init=False)

    def __post_init__(self):
        object.__setattr__(self, 'error_text', _error_text(self.error))

    @property
    def event_type_name(self)->str:
        return event_type_name(self.event_type)

    def digest_map(self)->Dict[int, bytes]:
        return dict(self.digests)

def entries_equal(a: LogEntry, b: LogEntry)->bool:
    """Same PCR and same primary digest. The event type is deliberately not compared."""
    return a.pcr_index == b.pcr_index and a.digest == b.digest

@dataclass(frozen=True)
class EventLog:
    context: SpecIdContext
    entries: Tuple[LogEntry, ...]
    error: Optional[FatalParseError] = field(default=None, compare=False)
    error_text: Optional[str] = field(default=None, init=False)

    def __post_init__(self):
        object.__setattr__(self, 'error_text', _error_text(self.error))

    @property
    def complete(self)->bool:
        return self.error is None

    @property
    def spec_version(self)->str:
        return self.context.spec_version

    @property
    def spec_errata(self)->str:
        return self.context.spec_errata

    @property
    def format(self)->LogFormat:
        return self.context.format

    def raise_for_error(self)->None:
        if self.error is not None: raise self.error

    def by_pcr(self, pcr_index: int)->List[LogEntry]:
        return [e for e in self.entries if e.pcr_index == pcr_index]

    def mismatches(self)->List[LogEntry]:
        # EV_NO_ACTION events are never extended into a PCR
        return [e for e in self.entries if e.event_type != EV_NO_ACTION and not e.verification.matched]

class AssemblerState(enum.Enum):
    AWAITING_SPEC_ID = 'awaiting-spec-id'
    STREAMING = 'streaming'
    DONE = 'done'

class LogAssembler:
    """Single-use driver turning one buffer into an EventLog."""

    def __init__(self, blob: bytes, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY, options: Options | None = None):
        self.state = AssemblerState.AWAITING_SPEC_ID
        self.context: SpecIdContext = LEGACY_CONTEXT
        self.entries: List[LogEntry] = []
        self._cursor = ByteCursor(blob)
        self._registry = registry
        self._options = options or Options()

    def _append(self, rec: RawRecord, alg: DigestAlgorithm)->None:
        seq = len(self.entries)
        description, err = describe(rec.event_type, rec.content)
        if err is not None:
            logger.warning('event %d (%s): %s', seq, event_type_name(rec.event_type), err)
        verification = verify_content(rec.content, rec.digest, dict(rec.digests), alg)
        self.entries.append(LogEntry(seq, rec.pcr_index, rec.event_type, rec.digest, rec.digests, rec.content, rec.record, description, verification, alg, err))

    def _step(self)->None:
        if self.state is AssemblerState.AWAITING_SPEC_ID:
            if self._cursor.at_end():
                self.state = AssemblerState.DONE; return
            self.context, first = negotiate_spec_id(self._cursor, self._registry)
            # record 0 is always framed as a SHA-1 event
            self._append(first, SHA1)
            self.state = AssemblerState.STREAMING
        elif self.state is AssemblerState.STREAMING:
            if self._cursor.at_end():
                self.state = AssemblerState.DONE; return
            rec = read_record(self._cursor, self.context, self._registry, self._options.max_digest_count)
            self._append(rec, self.context.primary)

    def run(self)->EventLog:
        if self.state is not AssemblerState.AWAITING_SPEC_ID:
            raise EventLogError('assembler already used')
        try:
            while self.state is not AssemblerState.DONE:
                self._step()
        except FATAL as e:
            e.entries_parsed = len(self.entries)
            e.last_index = len(self.entries) - 1
            self.state = AssemblerState.DONE
            logger.error('event log parse stopped after %d entries: %s', len(self.entries), e)
            return EventLog(self.context, tuple(self.entries), e)
        return EventLog(self.context, tuple(self.entries))

def parse_event_log(blob: bytes, registry: DigestAlgorithmRegistry = DEFAULT_REGISTRY, options: Options | None = None)->EventLog:
    return LogAssembler(blob, registry, options).run()

def _auto_eventlog_path()->str | None:
    for p in EVENTLOG_PATHS:
        if os.path.exists(p): return p
    return None

def load_event_log(path: str | None = None)->bytes:
    p = path or _auto_eventlog_path()
    if not p or not os.path.exists(p): raise EventLogError('event log not found; pass --event-log')
    try:
        with open(p, 'rb') as f: return f.read()
    except OSError as e:
        raise EventLogError(f'cannot read event log {p}: {e}')
