"""Call data and return decoding for the attestation-center and registry contracts.

Only the handful of view functions the selector needs are covered, so the
four-byte selectors are fixed constants and return values are decoded word by
word.
"""

from __future__ import annotations

from liveliness.payload import is_address, payload_bytes

_WORD = 32

# keccak256(signature)[:4]
GET_ACTIVE_OPERATORS_DETAILS = "0x9878eccb"  # getActiveOperatorsDetails()
AVS_LOGIC = "0xb0817c44"  # avsLogic()
REGISTRATIONS = "0x942e6bcf"  # registrations(address)

# (address operator, uint256 operatorId, uint256 votingPower)
_OPERATOR_DETAIL_WORDS = 3


def _address_word(address: str) -> str:
    if not is_address(address):
        raise ValueError(f"not a 20-byte address: {address!r}")
    return address[2:].lower().rjust(2 * _WORD, "0")


def _word(raw: bytes, index: int) -> bytes:
    start = index * _WORD
    if start + _WORD > len(raw):
        raise ValueError(f"return data too short for word {index}")
    return raw[start:start + _WORD]


def _uint(raw: bytes, index: int) -> int:
    return int.from_bytes(_word(raw, index), "big")


def _address(raw: bytes, index: int) -> str:
    word = _word(raw, index)
    if any(word[:_WORD - 20]):
        raise ValueError(f"word {index} is not an address")
    return "0x" + word[_WORD - 20:].hex()


def encode_call(selector: str, *addresses: str) -> str:
    """Call data for ``selector`` with address arguments."""
    return selector + "".join(_address_word(a) for a in addresses)


def decode_address(data: str) -> str:
    """Single ``address`` return value."""
    return _address(payload_bytes(data), 0)


def decode_active_operators(data: str) -> list[str]:
    """Operator addresses from ``getActiveOperatorsDetails()``, in contract order."""
    raw = payload_bytes(data)
    offset = _uint(raw, 0)
    if offset % _WORD:
        raise ValueError(f"unaligned array offset {offset}")
    base = offset // _WORD
    count = _uint(raw, base)

    operators = []
    for i in range(count):
        operators.append(_address(raw, base + 1 + i * _OPERATOR_DETAIL_WORDS))
    return operators


def decode_registration_endpoint(data: str) -> str:
    """The endpoint string of ``registrations(address) -> (uint256, uint256, string)``."""
    raw = payload_bytes(data)
    offset = _uint(raw, 2)
    if offset % _WORD:
        raise ValueError(f"unaligned string offset {offset}")
    length = _uint(raw, offset // _WORD)
    start = offset + _WORD
    if start + length > len(raw):
        raise ValueError("string runs past return data")
    return raw[start:start + length].decode("utf-8")


__all__ = [
    "AVS_LOGIC",
    "GET_ACTIVE_OPERATORS_DETAILS",
    "REGISTRATIONS",
    "decode_active_operators",
    "decode_address",
    "decode_registration_endpoint",
    "encode_call",
]
