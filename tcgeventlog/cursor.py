from __future__ import annotations
import struct
import uuid
from .errors import TruncatedInput


class ByteCursor:
    """Forward-only reader over an immutable buffer. All integers are little-endian."""

    def __init__(self, data: bytes, what: str = 'event log'):
        self._data = bytes(data)
        self._pos = 0
        self._what = what

    @property
    def position(self)->int:
        return self._pos

    def remaining(self)->int:
        return len(self._data) - self._pos

    def at_end(self)->bool:
        return self._pos >= len(self._data)

    def read_exact(self, n: int)->bytes:
        if n < 0: raise ValueError('negative read length')
        if n > self.remaining():
            raise TruncatedInput(f'{self._what} truncated at offset {self._pos}: need {n} bytes, {self.remaining()} left')
        out = self._data[self._pos:self._pos+n]
        self._pos += n
        return out

    def _unpack(self, fmt: str):
        return struct.unpack(fmt, self.read_exact(struct.calcsize(fmt)))[0]

    def read_u8(self)->int:
        return self.read_exact(1)[0]

    def read_u16_le(self)->int:
        return self._unpack('<H')

    def read_u32_le(self)->int:
        return self._unpack('<I')

    def read_i32_le(self)->int:
        return self._unpack('<i')

    def read_u64_le(self)->int:
        return self._unpack('<Q')

    def read_guid(self)->uuid.UUID:
        return uuid.UUID(bytes_le=self.read_exact(16))

    def slice_since(self, start: int)->bytes:
        return self._data[start:self._pos]

    def rest(self)->bytes:
        return self.read_exact(self.remaining())
