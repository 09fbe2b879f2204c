import datetime, struct, uuid
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from tcgeventlog import parse_event_log
from tcgeventlog import tcg
from tcgeventlog.content import clean_text, describe
from tcgeventlog.decoders import EFI_CERT_X509, EFI_GLOBAL_VARIABLE, EFI_IMAGE_SECURITY_DATABASE
from tcgeventlog.errors import ContentDecodeError
from helpers import efi_variable, file_path, legacy_record

def _der_cert():
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'test.example.com')])
    cert = (x509.CertificateBuilder().subject_name(name).issuer_name(name).public_key(key.public_key())
            .serial_number(0x1234).not_valid_before(datetime.datetime(2020, 1, 1)).not_valid_after(datetime.datetime(2040, 1, 1))
            .sign(key, hashes.SHA256()))
    return cert.public_bytes(serialization.Encoding.DER)

def _signature_list(der):
    owner = uuid.UUID('77fa9abd-0359-4d32-bd60-28f4e78f784b')
    return EFI_CERT_X509.bytes_le + struct.pack('<III', 28 + 16 + len(der), 0, 16 + len(der)) + owner.bytes_le + der

def test_unknown_event_type_is_reported():
    assert describe(0x12345678, b'abc') == ('Unrecognized event type 0x12345678', None)

def test_separator_rendering():
    assert describe(tcg.EV_SEPARATOR, b'\x00'*20) == ('', None)
    assert describe(tcg.EV_SEPARATOR, b'\xff\xff\xff\xff') == ('', None)
    assert describe(tcg.EV_SEPARATOR, b'WBCL')[0] == 'Separator event content = WBCL'

def test_clean_text():
    assert clean_text('caf\xe9\x01 ok\tx\n ') == 'caf ok\tx'
    assert clean_text('\x00\x1b[0m') == '[0m'

def test_contentless_and_text_events():
    assert describe(tcg.EV_CPU_MICROCODE, b'\x01\x02') == ('', None)
    assert describe(tcg.EV_PREBOOT_CERT, b'')[0] == 'EV_PREBOOT_CERT'
    assert describe(tcg.EV_EFI_ACTION, b'Exit Boot Services Invocation')[0] == 'Exit Boot Services Invocation'
    assert describe(tcg.EV_IPL, b'grub_cmd: linux /vmlinuz\x00')[0] == 'grub_cmd: linux /vmlinuz'
    assert describe(tcg.EV_POST_CODE, b'ACPI DATA')[0] == 'ACPI DATA'
    assert describe(tcg.EV_S_CRTM_VERSION, 'Version 1.0\x00'.encode('utf-16-le'))[0] == 'S-CRTM version: Version 1.0'
    assert describe(tcg.EV_NO_ACTION, b'StartupLocality\x00\x03')[0] == 'StartupLocality: 3'

def test_binary_structures():
    desc, err = describe(tcg.EV_EFI_PLATFORM_FIRMWARE_BLOB, struct.pack('<QQ', 0xff000000, 0x1000))
    assert err is None and 'base: 0xff000000' in desc and 'length: 0x1000' in desc
    smbios = uuid.UUID('eb9d2d31-2d88-11d3-9a16-0090273fc14d')
    desc, _ = describe(tcg.EV_EFI_HANDOFF_TABLES, struct.pack('<Q', 1) + smbios.bytes_le + struct.pack('<Q', 0x7f000))
    assert 'SMBIOS_TABLE' in desc and '0x7f000' in desc
    desc, _ = describe(tcg.EV_EVENT_TAG, struct.pack('<II', 0x1234, 3) + b'abc')
    assert 'Tagged event ID: 0x00001234' in desc and '616263' in desc

def test_efi_variables():
    desc, _ = describe(tcg.EV_EFI_VARIABLE_DRIVER_CONFIG, efi_variable(EFI_GLOBAL_VARIABLE, 'SecureBoot', b'\x01'))
    assert 'UEFI Variable Name: SecureBoot' in desc and 'SecureBoot is enabled' in desc
    assert 'EFI_GLOBAL_VARIABLE' in desc
    desc, _ = describe(tcg.EV_EFI_VARIABLE_BOOT, efi_variable(EFI_GLOBAL_VARIABLE, 'BootOrder', struct.pack('<HH', 1, 0)))
    assert 'BootOrder: Boot0001, Boot0000' in desc
    path = file_path('\\EFI\\systemd\\systemd-bootx64.efi')
    option = struct.pack('<IH', 1, len(path)) + 'Linux Boot Manager\x00'.encode('utf-16-le') + path
    desc, err = describe(tcg.EV_EFI_VARIABLE_BOOT, efi_variable(EFI_GLOBAL_VARIABLE, 'Boot0001', option))
    assert err is None
    assert 'Description: Linux Boot Manager' in desc and 'File(\\EFI\\systemd\\systemd-bootx64.efi)' in desc

def test_image_load_event():
    path = file_path('\\EFI\\BOOT\\BOOTX64.EFI')
    desc, err = describe(tcg.EV_EFI_BOOT_SERVICES_APPLICATION, struct.pack('<QQQQ', 0x1000, 0x2000, 0, len(path)) + path)
    assert err is None
    assert 'Image location in memory: 0x1000' in desc and 'File(\\EFI\\BOOT\\BOOTX64.EFI)' in desc

def test_gpt_event():
    disk = uuid.UUID('11111111-2222-3333-4444-555555555555')
    hdr = struct.pack('<8sIIIIQQQQ16sQIII', b'EFI PART', 0x10000, 92, 0, 0, 1, 100, 34, 99, disk.bytes_le, 2, 128, 128, 0)
    entry = uuid.uuid4().bytes_le + uuid.uuid4().bytes_le + struct.pack('<QQQ', 34, 99, 0) + 'EFI System'.encode('utf-16-le').ljust(72, b'\x00')
    desc, err = describe(tcg.EV_EFI_GPT_EVENT, hdr + struct.pack('<Q', 1) + entry)
    assert err is None and str(disk) in desc and 'EFI System: type' in desc

def test_signature_database_certificates():
    data = efi_variable(EFI_IMAGE_SECURITY_DATABASE, 'db', _signature_list(_der_cert()))
    desc, err = describe(tcg.EV_EFI_VARIABLE_DRIVER_CONFIG, data)
    assert err is None
    assert 'EFI_CERT_X509' in desc and 'CN=test.example.com' in desc and 'Serial: 1234' in desc

def test_bad_content_is_attached_to_entry():
    bad_db = efi_variable(EFI_IMAGE_SECURITY_DATABASE, 'db', _signature_list(b'\x30\x03\x02\x01\x00'))
    blob = legacy_record(0, tcg.EV_EFI_GPT_EVENT, b'\x00'*10) + legacy_record(7, tcg.EV_EFI_VARIABLE_DRIVER_CONFIG, bad_db) + legacy_record(4, tcg.EV_EFI_ACTION, b'ok')
    log = parse_event_log(blob)
    assert log.complete and len(log.entries) == 3
    gpt, db, action = log.entries
    assert isinstance(gpt.error, ContentDecodeError) and 'EV_EFI_GPT_EVENT' in gpt.content_description
    assert isinstance(db.error, ContentDecodeError)
    assert action.error is None and action.content_description == 'ok'
    assert gpt.verification.matched

def test_s_crtm_version_text_or_guid():
    assert describe(tcg.EV_S_CRTM_VERSION, 'v1.2.3\x00\x00'.encode('utf-16-le'))[0] == 'S-CRTM version: v1.2.3'
    guid = uuid.UUID('a5c059a1-94e4-4aa7-87b5-ab155c2bf072')
    assert describe(tcg.EV_S_CRTM_VERSION, guid.bytes_le)[0] == f'S-CRTM version GUID: {guid}'

def test_unexpected_decoder_failure_is_contained(monkeypatch):
    import tcgeventlog.content as content
    def broken(data):
        raise TypeError('unexpected')
    monkeypatch.setitem(content.DISPATCH, tcg.EV_EFI_ACTION, broken)
    log = parse_event_log(legacy_record(4, tcg.EV_EFI_ACTION, b'a') + legacy_record(4, tcg.EV_SEPARATOR, b'\x00'*4))
    assert log.complete and len(log.entries) == 2
    assert isinstance(log.entries[0].error, ContentDecodeError)
    assert log.entries[0].content_description == 'EV_EFI_ACTION: unexpected'
