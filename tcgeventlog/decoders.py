"""Decoders for the content of individual event types.

Every decoder is a pure function taking the raw event bytes and returning a
human readable description. Decoders raise on malformed input; the caller
(see content.py) turns that into a per-entry error.
"""
from __future__ import annotations
import re
import struct
import uuid
from typing import List, Optional
from cryptography import x509
from cryptography.hazmat.primitives import hashes

from .algorithms import DEFAULT_REGISTRY
from .cursor import ByteCursor
from .errors import ContentDecodeError
from .tcg import is_spec_id_content, parse_spec_id_struct

MAX_HEX = 512

EFI_GLOBAL_VARIABLE = uuid.UUID('8be4df61-93ca-11d2-aa0d-00e098032b8c')
EFI_IMAGE_SECURITY_DATABASE = uuid.UUID('d719b2cb-3d3a-4596-a3bc-dad00e67656f')
EFI_CERT_X509 = uuid.UUID('a5c059a1-94e4-4aa7-87b5-ab155c2bf072')
EFI_CERT_SHA256 = uuid.UUID('c1c41626-504c-4092-aca9-41f936934328')

KNOWN_GUIDS = {
    EFI_GLOBAL_VARIABLE: 'EFI_GLOBAL_VARIABLE',
    EFI_IMAGE_SECURITY_DATABASE: 'EFI_IMAGE_SECURITY_DATABASE',
    EFI_CERT_X509: 'EFI_CERT_X509',
    EFI_CERT_SHA256: 'EFI_CERT_SHA256',
    uuid.UUID('605dab50-e046-4300-abb6-3dd810dd8b23'): 'SHIM_LOCK',
    uuid.UUID('77fa9abd-0359-4d32-bd60-28f4e78f784b'): 'MICROSOFT_VENDOR',
    uuid.UUID('eb9d2d30-2d88-11d3-9a16-0090273fc14d'): 'ACPI_TABLE',
    uuid.UUID('8868e871-e4f1-11d3-bc22-0080c73c8881'): 'ACPI_20_TABLE',
    uuid.UUID('eb9d2d31-2d88-11d3-9a16-0090273fc14d'): 'SMBIOS_TABLE',
    uuid.UUID('f2fd1544-9794-4a2c-992e-e5bbcf20e394'): 'SMBIOS3_TABLE',
    uuid.UUID('00000000-0000-0000-0000-000000000000'): 'NULL',
}

def guid_str(g: uuid.UUID)->str:
    name = KNOWN_GUIDS.get(g)
    return f'{g} ({name})' if name else str(g)

def _hex(data: bytes)->str:
    if len(data) > MAX_HEX: return data[:MAX_HEX].hex() + '...'
    return data.hex()

def printable(data: bytes)->bool:
    return all(32 <= b < 127 or b in (9, 10, 13) for b in data)

def _text(data: bytes)->str:
    s = data.split(b'\x00', 1)[0] if data.endswith(b'\x00') else data
    if printable(s): return s.decode('ascii')
    return _hex(data)

def _utf16(data: bytes)->str:
    return data.decode('utf-16-le').split('\x00', 1)[0]

def _blob(data: bytes, label: str)->str:
    base, length = struct.unpack('<QQ', data)
    return f'{label} base: 0x{base:x}\n{label} length: 0x{length:x}'

def decode_text(data: bytes)->str:
    return _text(data)

def decode_post_code(data: bytes)->str:
    if len(data) == 16 and not printable(data):
        return _blob(data, 'POST code')
    return _text(data)

def decode_spec_id(data: bytes)->str:
    spec = parse_spec_id_struct(data)
    lines = [f'Signature: {spec.signature}',
             f'Platform class: {spec.platform_class}',
             f'Spec version: {spec.version_major}.{spec.version_minor} errata {spec.errata}',
             f'UINTN size: {spec.uintn_size}']
    if spec.crypto_agile:
        lines.append(f'Number of algorithms: {len(spec.algorithms)}')
        lines += [f'  {DEFAULT_REGISTRY.lookup(a).name}: {size} bytes' for a, size in spec.algorithms]
    if spec.vendor_info:
        lines.append(f'Vendor info: {_text(spec.vendor_info)}')
    return '\n'.join(lines)

def decode_no_action(data: bytes)->str:
    if is_spec_id_content(data):
        return decode_spec_id(data)
    if data.startswith(b'StartupLocality\x00'):
        cur = ByteCursor(data[16:], 'StartupLocality event')
        return f'StartupLocality: {cur.read_u8()}'
    if data.startswith(b'SP800-155 Event'):
        return f'SP800-155 Event ({len(data)} bytes)'
    return _text(data)

def decode_event_tag(data: bytes)->str:
    cur = ByteCursor(data, 'tagged event')
    tag_id = cur.read_u32_le()
    tag_data = cur.read_exact(cur.read_u32_le())
    return f'Tagged event ID: 0x{tag_id:08x}\nTagged event data ({len(tag_data)} bytes): {_hex(tag_data)}'

def decode_s_crtm_contents(data: bytes)->str:
    if len(data) == 16 and not printable(data):
        return _blob(data, 'S-CRTM')
    return _text(data)

def _ascii_utf16(data: bytes)->Optional[str]:
    if len(data) % 2: return None
    try:
        text = _utf16(data)
    except UnicodeDecodeError:
        return None
    return text if text and text.isascii() and text.isprintable() else None

def decode_s_crtm_version(data: bytes)->str:
    text = _ascii_utf16(data)
    if text is not None:
        return f'S-CRTM version: {text}'
    if len(data) == 16:
        return f'S-CRTM version GUID: {uuid.UUID(bytes_le=data)}'
    return f'S-CRTM version: {_text(data)}'

def decode_compact_hash(data: bytes)->str:
    return _text(data)

def decode_ipl(data: bytes)->str:
    return data.split(b'\x00', 1)[0].decode('utf-8')

def decode_firmware_blob(data: bytes)->str:
    return _blob(data, 'Platform firmware blob')

def decode_firmware_blob2(data: bytes)->str:
    cur = ByteCursor(data, 'firmware blob')
    desc = cur.read_exact(cur.read_u8())
    return f'Blob description: {_text(desc)}\n' + _blob(cur.read_exact(16), 'Platform firmware blob')

def _handoff_tables(cur: ByteCursor)->List[str]:
    count = cur.read_u64_le()
    lines = [f'Number of tables: {count}']
    for _ in range(count):
        guid = cur.read_guid()
        lines.append(f'  {guid_str(guid)} at 0x{cur.read_u64_le():x}')
    return lines

def decode_handoff_tables(data: bytes)->str:
    return '\n'.join(_handoff_tables(ByteCursor(data, 'handoff table event')))

def decode_handoff_tables2(data: bytes)->str:
    cur = ByteCursor(data, 'handoff table event')
    desc = cur.read_exact(cur.read_u8())
    return '\n'.join([f'Table description: {_text(desc)}'] + _handoff_tables(cur))

# EFI_DEVICE_PATH_PROTOCOL type/subtype pairs we know how to render
def _device_path_node(kind: int, sub: int, body: bytes)->str:
    if (kind, sub) == (0x01, 0x01) and len(body) == 2:
        return f'PCI(device=0x{body[1]:x},function=0x{body[0]:x})'
    if (kind, sub) == (0x02, 0x01) and len(body) == 8:
        hid, uid = struct.unpack('<II', body)
        return f'ACPI(HID=0x{hid:x},UID=0x{uid:x})'
    if (kind, sub) == (0x03, 0x05) and len(body) == 2:
        return f'USB(port={body[0]},interface={body[1]})'
    if (kind, sub) == (0x03, 0x12) and len(body) == 6:
        return 'SATA(%04x/%04x/%04x)' % struct.unpack('<HHH', body)
    if (kind, sub) == (0x03, 0x17) and len(body) == 12:
        nsid, eui = struct.unpack('<IQ', body)
        return f'NVMe(namespace=0x{nsid:x},EUI=0x{eui:x})'
    if (kind, sub) == (0x04, 0x01) and len(body) == 38:
        part, start, size = struct.unpack('<IQQ', body[:20])
        fmt = {1: 'MBR', 2: 'GPT'}.get(body[36], f'0x{body[36]:x}')
        sig = uuid.UUID(bytes_le=body[20:36]) if body[37] == 2 else body[20:36].hex()
        return f'HD(partition={part},{fmt},{sig},start=0x{start:x},size=0x{size:x})'
    if (kind, sub) == (0x04, 0x04):
        return f'File({_utf16(body)})'
    if (kind, sub) == (0x04, 0x06) and len(body) == 16:
        return f'FvFile({uuid.UUID(bytes_le=body)})'
    if (kind, sub) == (0x04, 0x07) and len(body) == 16:
        return f'Fv({uuid.UUID(bytes_le=body)})'
    return f'Path(0x{kind:02x},0x{sub:02x},{body.hex()})'

def decode_device_path(data: bytes)->str:
    cur = ByteCursor(data, 'device path')
    nodes = []
    while not cur.at_end():
        kind, sub, length = cur.read_u8(), cur.read_u8(), cur.read_u16_le()
        if length < 4: raise ContentDecodeError(f'device path node length {length} too small')
        body = cur.read_exact(length - 4)
        if kind == 0x7F and sub == 0xFF: break
        if kind == 0x7F: nodes.append('/'); continue
        nodes.append(_device_path_node(kind, sub, body))
    return '/'.join(nodes)

def decode_image_load(data: bytes)->str:
    cur = ByteCursor(data, 'image load event')
    addr, length, link, path_len = (cur.read_u64_le() for _ in range(4))
    path = cur.read_exact(path_len)
    lines = [f'Image location in memory: 0x{addr:x}',
             f'Image length in memory: 0x{length:x}',
             f'Image link time address: 0x{link:x}']
    if path: lines.append(f'Device path: {decode_device_path(path)}')
    return '\n'.join(lines)

def decode_gpt(data: bytes)->str:
    cur = ByteCursor(data, 'GPT event')
    hdr = cur.read_exact(92)
    (sig, rev, hsize, _crc, _res, _my, _alt, first, last, disk_guid, _lba, nparts_hdr, entry_size, _acrc) = struct.unpack('<8sIIIIQQQQ16sQIII', hdr)
    if sig != b'EFI PART':
        raise ContentDecodeError(f'GPT header signature mismatch: {sig!r}')
    if hsize > 92: cur.read_exact(hsize - 92)
    count = cur.read_u64_le()
    lines = [f'GPT header revision: 0x{rev:08x}',
             f'Disk GUID: {uuid.UUID(bytes_le=disk_guid)}',
             f'Usable LBAs: {first}-{last}',
             f'Number of partitions: {count}']
    if entry_size < 128:
        raise ContentDecodeError(f'GPT partition entry size {entry_size} too small')
    for _ in range(count):
        entry = cur.read_exact(entry_size)
        ptype, puniq = uuid.UUID(bytes_le=entry[:16]), uuid.UUID(bytes_le=entry[16:32])
        start, end, _attrs = struct.unpack('<QQQ', entry[32:56])
        lines.append(f'  {_utf16(entry[56:128])}: type {ptype}, unique {puniq}, LBA {start}-{end}')
    return '\n'.join(lines)

def _certificate(der: bytes)->List[str]:
    cert = x509.load_der_x509_certificate(der)
    return [f'    Subject: {cert.subject.rfc4514_string()}',
            f'    Issuer: {cert.issuer.rfc4514_string()}',
            f'    Serial: {cert.serial_number:x}',
            f'    SHA-256 fingerprint: {cert.fingerprint(hashes.SHA256()).hex()}']

def _signature_data(sig_type: uuid.UUID, owner: uuid.UUID, data: bytes)->List[str]:
    lines = [f'  Signature owner: {guid_str(owner)}']
    if sig_type == EFI_CERT_X509:
        return lines + _certificate(data)
    if sig_type == EFI_CERT_SHA256:
        return lines + [f'    SHA-256: {data.hex()}']
    return lines + [f'    Data: {_hex(data)}']

def decode_signature_lists(data: bytes)->List[str]:
    cur = ByteCursor(data, 'EFI signature list')
    lines: List[str] = []
    while not cur.at_end():
        sig_type = cur.read_guid()
        list_size, header_size, sig_size = cur.read_u32_le(), cur.read_u32_le(), cur.read_u32_le()
        if sig_size < 16 or list_size < 28 + header_size:
            raise ContentDecodeError(f'EFI signature list sizes invalid ({list_size}/{header_size}/{sig_size})')
        cur.read_exact(header_size)
        body = ByteCursor(cur.read_exact(list_size - 28 - header_size), 'EFI signature list')
        lines.append(f'Signature type: {guid_str(sig_type)}')
        while not body.at_end():
            lines += _signature_data(sig_type, body.read_guid(), body.read_exact(sig_size - 16))
    return lines

def _variable_data(name: str, data: bytes, authority: bool)->List[str]:
    if len(data) == 1:
        return [f'{name} is {"enabled" if data[0] else "disabled"}']
    if name == 'BootOrder':
        if len(data) % 2: raise ContentDecodeError('BootOrder length is odd')
        return ['BootOrder: ' + ', '.join(f'Boot{b:04X}' for b in struct.unpack(f'<{len(data)//2}H', data))]
    if re.match(r'^Boot[0-9A-Fa-f]{4}$', name):
        cur = ByteCursor(data, 'EFI load option')
        attrs, path_len = cur.read_u32_le(), cur.read_u16_le()
        raw = cur.rest()
        end = next((i for i in range(0, len(raw) - 1, 2) if raw[i:i+2] == b'\x00\x00'), len(raw))
        desc, path = raw[:end].decode('utf-16-le'), raw[end+2:end+2+path_len]
        lines = [f'Description: {desc}', f'Active: {"yes" if attrs & 1 else "no"}']
        if path: lines.append(f'Device path: {decode_device_path(path)}')
        return lines
    if name in ('PK', 'KEK', 'db', 'dbx', 'dbt', 'dbr') and not authority:
        return decode_signature_lists(data) or ['(empty signature database)']
    if name == 'SbatLevel':
        return [f'SbatLevel: {_text(data)}']
    if authority and name not in ('MokList', 'MokListX') and len(data) > 16:
        return _signature_data(EFI_CERT_X509, uuid.UUID(bytes_le=data[:16]), data[16:])
    return [f'Data: {_hex(data)}']

def _efi_variable(data: bytes, authority: bool = False)->str:
    cur = ByteCursor(data, 'UEFI variable event')
    guid = cur.read_guid()
    name_len, data_len = cur.read_u64_le(), cur.read_u64_le()
    name = cur.read_exact(2 * name_len).decode('utf-16-le')
    value = cur.read_exact(data_len)
    lines = [f'UEFI Variable Name: {name}', f'UEFI Variable GUID: {guid_str(guid)}', f'UEFI Variable Data Length: {data_len}']
    return '\n'.join(lines + _variable_data(name, value, authority))

def decode_efi_variable(data: bytes)->str:
    return _efi_variable(data)

def decode_efi_variable_authority(data: bytes)->str:
    return _efi_variable(data, authority=True)
