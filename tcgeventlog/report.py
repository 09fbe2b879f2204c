from __future__ import annotations
import json
from typing import Any, Dict, List, Optional
from jsonschema import validate as jsonschema_validate, ValidationError
from .algorithms import DEFAULT_REGISTRY
from .config import load_schema
from .errors import EventLogError
from .eventlog import EventLog, LogEntry

def _hex(data: bytes, limit: int)->str:
    if limit and len(data) > limit: return data[:limit].hex() + '...'
    return data.hex()

def hash_check(entry: LogEntry)->str:
    if entry.verification.matched: return 'Event digest matched hash of the event data'
    return f'Event digest DID NOT match the hash of the event data: {entry.digest.hex()}'

def render_entry(entry: LogEntry, event: bool = True, content: bool = False, hex_event: bool = False, hex_limit: int = 0)->str:
    lines: List[str] = []
    if event:
        lines.append(f'Event# {entry.sequence_number}: Index PCR[{entry.pcr_index}]')
        lines.append(f'Event Type: 0x{entry.event_type:x} {entry.event_type_name}')
        lines.append(f'digest ({entry.algorithm.name}): {entry.digest.hex()}')
        if entry.content_description:
            lines.append('Event Content:')
            lines.append(entry.content_description)
        if entry.error is not None:
            lines.append(f'Content decode error: {entry.error}')
        lines.append(hash_check(entry))
    if hex_event:
        header = entry.record_bytes[:len(entry.record_bytes) - len(entry.raw_event_bytes)]
        lines.append(f'Event (Hex no Content) ({len(header)} bytes): {_hex(header, hex_limit)}')
    if content:
        lines.append(f'Event content (Hex) ({len(entry.raw_event_bytes)} bytes): {_hex(entry.raw_event_bytes, hex_limit)}')
    return '\n'.join(lines)

def render_text(log: EventLog, event: bool = True, content: bool = False, hex_event: bool = False, pcr: Optional[int] = None, hex_limit: int = 0)->str:
    out = [f'TCG Event Log spec version: {log.spec_version} errata: {log.spec_errata}',
           f'Log format: {log.format.name}, digests: {", ".join(a.name for a in log.context.algorithms)}', '']
    for e in (log.entries if pcr is None else log.by_pcr(pcr)):
        out.append(render_entry(e, event, content, hex_event, hex_limit))
        out.append('')
    if not log.complete:
        out.append(f'INCOMPLETE: parsing stopped after {len(log.entries)} entries: {log.error}')
    else:
        out.append(f'Total: {len(log.entries)} entries, {len(log.mismatches())} digest mismatches')
    return '\n'.join(out)

def _alg_name(alg_id: int)->str:
    return DEFAULT_REGISTRY.lookup(alg_id).name if alg_id in DEFAULT_REGISTRY else f'0x{alg_id:04x}'

def entry_to_dict(e: LogEntry)->Dict[str, Any]:
    v = e.verification
    return {'sequence_number': e.sequence_number, 'pcr_index': e.pcr_index, 'event_type': e.event_type, 'event_type_name': e.event_type_name,
            'algorithm': e.algorithm.name, 'digest': e.digest.hex(),
            'digests': [{'algorithm_id': a, 'algorithm': _alg_name(a), 'digest': dig.hex()} for a, dig in e.digests],
            'event_size': len(e.raw_event_bytes), 'description': e.content_description,
            'verification': {'sha1': v.sha1.hex(), 'sha256': v.sha256.hex(), 'sha1_match': v.sha1_match, 'sha256_match': v.sha256_match, 'matched': v.matched},
            'error': str(e.error) if e.error is not None else None}

def render_json(log: EventLog, pcr: Optional[int] = None)->str:
    data = {'version': 1, '$schema': 'schema://tcgeventlog/eventlog.json',
            'spec_version': log.spec_version, 'spec_errata': log.spec_errata, 'format': log.format.name,
            'algorithms': [a.name for a in log.context.algorithms],
            'complete': log.complete, 'error': str(log.error) if log.error is not None else None,
            'entries_parsed': len(log.entries),
            'entries': [entry_to_dict(e) for e in (log.entries if pcr is None else log.by_pcr(pcr))]}
    try:
        jsonschema_validate(data, load_schema('eventlog.schema.json'))
    except ValidationError as e:
        raise EventLogError(f'report schema validation failed: {e.message}')
    return json.dumps(data, indent=2)
