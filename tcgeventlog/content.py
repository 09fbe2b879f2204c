from __future__ import annotations
import logging
import re
from typing import Callable, Dict, Optional, Tuple
from . import decoders as d
from . import tcg
from .errors import ContentDecodeError

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], str]

def _empty(data: bytes)->str:
    return ''

def _preboot_cert(data: bytes)->str:
    return 'EV_PREBOOT_CERT'

def decode_separator(data: bytes)->str:
    # all-zero and binary separators carry no text worth showing
    if not data or not any(data) or not d.printable(data):
        return ''
    return f'Separator event content = {data.decode("ascii")}'

DISPATCH: Dict[int, Decoder] = {
    tcg.EV_PREBOOT_CERT: _preboot_cert,
    tcg.EV_POST_CODE: d.decode_post_code,
    tcg.EV_UNUSED: _empty,
    tcg.EV_NO_ACTION: d.decode_no_action,
    tcg.EV_SEPARATOR: decode_separator,
    tcg.EV_ACTION: d.decode_text,
    tcg.EV_EVENT_TAG: d.decode_event_tag,
    tcg.EV_S_CRTM_CONTENTS: d.decode_s_crtm_contents,
    tcg.EV_S_CRTM_VERSION: d.decode_s_crtm_version,
    tcg.EV_CPU_MICROCODE: _empty,
    tcg.EV_PLATFORM_CONFIG_FLAGS: _empty,
    tcg.EV_TABLE_OF_DEVICES: _empty,
    tcg.EV_COMPACT_HASH: d.decode_compact_hash,
    tcg.EV_IPL: d.decode_ipl,
    tcg.EV_IPL_PARTITION_DATA: _empty,
    tcg.EV_NONHOST_CODE: _empty,
    tcg.EV_NONHOST_CONFIG: _empty,
    tcg.EV_NONHOST_INFO: _empty,
    tcg.EV_OMIT_BOOT_DEVICE_EVENTS: _empty,
    tcg.EV_EFI_EVENT_BASE: _empty,
    tcg.EV_EFI_VARIABLE_DRIVER_CONFIG: d.decode_efi_variable,
    tcg.EV_EFI_VARIABLE_BOOT: d.decode_efi_variable,
    tcg.EV_EFI_VARIABLE_BOOT2: d.decode_efi_variable,
    tcg.EV_EFI_VARIABLE_AUTHORITY: d.decode_efi_variable_authority,
    tcg.EV_EFI_BOOT_SERVICES_APPLICATION: d.decode_image_load,
    tcg.EV_EFI_BOOT_SERVICES_DRIVER: d.decode_image_load,
    tcg.EV_EFI_RUNTIME_SERVICES_DRIVER: d.decode_image_load,
    tcg.EV_EFI_GPT_EVENT: d.decode_gpt,
    tcg.EV_EFI_ACTION: d.decode_text,
    tcg.EV_EFI_PLATFORM_FIRMWARE_BLOB: d.decode_firmware_blob,
    tcg.EV_EFI_PLATFORM_FIRMWARE_BLOB2: d.decode_firmware_blob2,
    tcg.EV_EFI_HANDOFF_TABLES: d.decode_handoff_tables,
    tcg.EV_EFI_HANDOFF_TABLES2: d.decode_handoff_tables2,
    tcg.EV_EFI_HCRTM_EVENT: _empty,
}

_NON_ASCII = re.compile(r'[^\x00-\x7f]')
_CONTROL = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')

def clean_text(text: str)->str:
    text = _NON_ASCII.sub('', text)
    text = _CONTROL.sub('', text)
    text = ''.join(c for c in text if c.isprintable() or c in '\t\n\r')
    return text.strip()

def describe(event_type: int, data: bytes)->Tuple[str, Optional[ContentDecodeError]]:
    """Decode one entry's content. Never raises for bad content."""
    decoder = DISPATCH.get(event_type)
    if decoder is None:
        return f'Unrecognized event type 0x{event_type:x}', None
    try:
        return clean_text(decoder(data)), None
    except Exception as e:
        # a bad entry never aborts the log
        err = e if isinstance(e, ContentDecodeError) else ContentDecodeError(f'{tcg.event_type_name(event_type)}: {e}')
        return clean_text(str(err)), err
