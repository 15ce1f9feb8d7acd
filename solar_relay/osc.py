"""
Minimal Open Sound Control 1.0 message encoding.

Only single string-argument messages are produced: numeric readings are
formatted as decimal strings before they get here, so the type tag is always
``,s``.
"""

from __future__ import annotations

ALIGNMENT = 4
STRING_TYPE_TAG = ",s"


def pad(data: bytes) -> bytes:
    """Append NUL bytes until the length is a multiple of four."""
    remainder = len(data) % ALIGNMENT
    if remainder == 0:
        return data
    return data + b"\0" * (ALIGNMENT - remainder)


def encode_message(address: str, argument: str) -> bytes:
    address_part = pad(address.encode("utf-8"))
    tag_part = pad(STRING_TYPE_TAG.encode("ascii"))
    argument_part = pad(argument.encode("utf-8") + b"\0")
    return address_part + tag_part + argument_part
