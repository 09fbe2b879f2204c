import hashlib, struct

SIZES = {0x0004: 20, 0x000B: 32, 0x000C: 48, 0x000D: 64}
HASHES = {0x0004: hashlib.sha1, 0x000B: hashlib.sha256, 0x000C: hashlib.sha384, 0x000D: hashlib.sha512}

def legacy_record(pcr, etype, content, digest=None):
    if digest is None: digest = hashlib.sha1(content).digest()
    return struct.pack('<iI20sI', pcr, etype, digest, len(content)) + content

def agile_record(pcr, etype, content, algs=(0x000B,), digests=None):
    digests = digests or {a: HASHES[a](content).digest() for a in algs}
    out = struct.pack('<iII', pcr, etype, len(digests))
    for alg, dig in digests.items():
        out += struct.pack('<H', alg) + dig
    return out + struct.pack('<I', len(content)) + content

def spec_id_content(algs=((0x000B, 32),), major=2, minor=0, errata=0, vendor=b''):
    out = b'Spec ID Event03\x00' + struct.pack('<IBBBBI', 0, minor, major, errata, 2, len(algs))
    for alg, size in algs:
        out += struct.pack('<HH', alg, size)
    return out + struct.pack('<B', len(vendor)) + vendor

def spec_id_record(algs=((0x000B, 32),), **kw):
    return legacy_record(0, 0x3, spec_id_content(algs, **kw), digest=b'\x00'*20)

def efi_variable(guid, name, data):
    return guid.bytes_le + struct.pack('<QQ', len(name), len(data)) + name.encode('utf-16-le') + data

def file_path(path):
    body = (path + '\x00').encode('utf-16-le')
    return struct.pack('<BBH', 4, 4, 4 + len(body)) + body + struct.pack('<BBH', 0x7F, 0xFF, 4)
