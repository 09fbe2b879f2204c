from __future__ import annotations


class EventLogError(Exception):
    pass


class FatalParseError(EventLogError):
    """Raised when the byte offsets of later records can no longer be trusted."""
    entries_parsed: int = 0
    last_index: int = -1


class TruncatedInput(FatalParseError):
    pass


class MalformedSpecId(FatalParseError):
    pass


class MalformedRecord(FatalParseError):
    pass


class UnsupportedAlgorithm(FatalParseError):
    def __init__(self, alg_id: int):
        super().__init__(f'unsupported digest algorithm 0x{alg_id:04x}')
        self.alg_id = alg_id


class UnknownAlgorithmInRecord(FatalParseError):
    def __init__(self, alg_id: int, negotiated: list[int]):
        names = ', '.join(f'0x{a:04x}' for a in negotiated)
        super().__init__(f'digest algorithm 0x{alg_id:04x} was not negotiated (negotiated: {names})')
        self.alg_id = alg_id


class ContentDecodeError(EventLogError):
    pass


class ConfigError(EventLogError):
    pass


FATAL = (TruncatedInput, MalformedSpecId, MalformedRecord, UnsupportedAlgorithm, UnknownAlgorithmInRecord)
