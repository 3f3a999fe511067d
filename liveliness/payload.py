"""On-chain attestation payload and epoch arithmetic.

The payload is the standard ABI encoding of ``(address, bool)``: two 32-byte
words, the address right-aligned in the first and 0/1 in the second. The
validator's acceptance test is an exact byte comparison, so encoding must be
a pure function of its inputs.
"""

from __future__ import annotations

import re

DEFAULT_EPOCH = 10

_WORD = 32
_ADDRESS_BYTES = 20
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def epoch_boundary(height: int, epoch: int = DEFAULT_EPOCH) -> int:
    """Highest height <= ``height`` that is a multiple of ``epoch``."""
    if epoch <= 0:
        raise ValueError(f"epoch must be positive, got {epoch}")
    if height < 0:
        raise ValueError(f"height must be non-negative, got {height}")
    return height - (height % epoch)


def is_epoch_boundary(height: int, epoch: int = DEFAULT_EPOCH) -> bool:
    return height >= 0 and height % epoch == 0


def is_address(value: str) -> bool:
    """True for a ``0x``-prefixed 20-byte hex identity."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def encode_attestation(address: str, is_valid: bool) -> str:
    """ABI-encode ``(address, bool)`` as ``0x``-prefixed lower-case hex."""
    if not is_address(address):
        raise ValueError(f"not a 20-byte address: {address!r}")
    raw = bytes.fromhex(address[2:])
    word_address = raw.rjust(_WORD, b"\x00")
    word_flag = (1 if is_valid else 0).to_bytes(_WORD, "big")
    return "0x" + (word_address + word_flag).hex()


def decode_attestation(data: str) -> tuple[str, bool]:
    """Inverse of :func:`encode_attestation`.

    Raises:
        ValueError: If ``data`` is not a canonical two-word encoding.
    """
    raw = payload_bytes(data)
    if len(raw) != 2 * _WORD:
        raise ValueError(f"expected {2 * _WORD} bytes, got {len(raw)}")

    word_address, word_flag = raw[:_WORD], raw[_WORD:]
    if any(word_address[: _WORD - _ADDRESS_BYTES]):
        raise ValueError("address word has non-zero padding")
    flag = int.from_bytes(word_flag, "big")
    if flag not in (0, 1):
        raise ValueError(f"bool word out of range: {flag}")

    return "0x" + word_address[_WORD - _ADDRESS_BYTES:].hex(), flag == 1


def payload_bytes(data: str) -> bytes:
    """Hex payload to bytes, with or without the ``0x`` prefix."""
    text = data[2:] if data[:2].lower() == "0x" else data
    return bytes.fromhex(text)


__all__ = [
    "DEFAULT_EPOCH",
    "decode_attestation",
    "encode_attestation",
    "epoch_boundary",
    "is_address",
    "is_epoch_boundary",
    "payload_bytes",
]
