"""Byte-level encoding helpers: obfuscation, run-length coding, checksums and timestamps."""

from __future__ import annotations

import hashlib
import random
import re
import time
from datetime import datetime, timedelta, timezone

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
_LEADING_DIGITS = re.compile(r"\d+")


def _derive_key(password: str, salt: str) -> int:
    digest = hashlib.sha256((password + salt).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


def encrypt_data(data: bytes, password: str, salt: str = "") -> bytes:
    """XOR the data with a key derived from the password and salt."""
    key = _derive_key(password, salt)
    return bytes(byte ^ ((key >> (i % 8)) & 0xFF) for i, byte in enumerate(data))


def decrypt_data(data: bytes, password: str, salt: str = "") -> bytes:
    """Undo encrypt_data; XOR is its own inverse."""
    return encrypt_data(data, password, salt)


def compress_data(data: bytes) -> bytes:
    """Run-length encode the data as (count, value) byte pairs, runs capped at 255."""
    out = bytearray()
    if not data:
        return bytes(out)
    current = data[0]
    count = 1
    for byte in data[1:]:
        if byte == current and count < 255:
            count += 1
        else:
            out += bytes((count, current))
            current = byte
            count = 1
    out += bytes((count, current))
    return bytes(out)


def decompress_data(data: bytes) -> bytes:
    """Expand (count, value) pairs; a trailing unpaired byte is ignored."""
    out = bytearray()
    pairs = iter(data)
    for count, value in zip(pairs, pairs):
        out += bytes((value,)) * count
    return bytes(out)


def calculate_checksum(data: bytes) -> str:
    """Lower-case hexadecimal SHA-256 of the data."""
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, checksum: str) -> bool:
    """True when the data's checksum matches the given one."""
    return calculate_checksum(data) == checksum


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 UTC text with milliseconds, e.g. 2024-01-02T03:04:05.678Z.

    Naive datetimes are taken to be in UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return f"{utc.strftime(_TIMESTAMP_FORMAT)}.{utc.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse text written by format_timestamp into an aware UTC datetime.

    Text that cannot be parsed yields the current time.
    """
    if len(text) >= 19:
        try:
            moment = datetime.strptime(text[:19], _TIMESTAMP_FORMAT).replace(
                tzinfo=timezone.utc
            )
        except ValueError:
            pass
        else:
            if len(text) > 20 and text[19] == ".":
                match = _LEADING_DIGITS.match(text[20:23])
                if match:
                    moment += timedelta(milliseconds=int(match.group()))
            return moment
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    """A session identifier built from the current time and a random number, both hex."""
    seconds = int(time.time())
    return f"session_{seconds:x}_{random.getrandbits(32):x}"