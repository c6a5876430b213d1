from __future__ import annotations

import re
import secrets
import struct
import time
import uuid

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
ID_LENGTH = 22
MAX_DOCUMENT_ID_LENGTH = 36

_DOCUMENT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def _base58_22(raw: bytes) -> str:
    if len(raw) != 16:
        raise ValueError("id encoder requires exactly 16 bytes")
    n = int.from_bytes(raw, "big")
    chars: list[str] = []
    while n > 0:
        n, rem = divmod(n, 58)
        chars.append(BASE58_ALPHABET[rem])
    encoded = "".join(reversed(chars))
    return encoded.rjust(ID_LENGTH, BASE58_ALPHABET[0])


def new_document_id() -> str:
    return _base58_22(uuid.uuid4().bytes)


def new_task_id() -> str:
    # uuid7 layout: 48-bit ms timestamp, version and variant bits, random tail.
    ts_bytes = struct.pack(">Q", int(time.time() * 1000))[2:]
    raw = bytearray(ts_bytes + secrets.token_bytes(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return _base58_22(bytes(raw))


def is_valid_document_id(value: object) -> bool:
    if not isinstance(value, str):
        return False
    if not 0 < len(value) <= MAX_DOCUMENT_ID_LENGTH:
        return False
    return bool(_DOCUMENT_ID_RE.match(value))
