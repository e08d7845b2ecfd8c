"""Decoding utilities: topic parsing, ABI data decoding and value normalization."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode as abi_decode

from .specs import DataFieldSpec, TopicFieldSpec


def hex_to_bytes(h: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string."""
    h = h[2:] if h.lower().startswith("0x") else h
    return bytes.fromhex(h) if h else b""


def element_type(typ: str) -> str:
    """Element type of an array type: "uint256[]" → "uint256", "address[2][]" → "address[2]"."""
    return typ[: typ.rindex("[")]


def normalize_value(value: Any, typ: str | None = None) -> Any:
    """Map eth-abi output to storage-friendly values.

    - addresses → lowercased 0x-hex
    - bytes / bytesN → 0x-hex
    - arrays / tuples → lists (recursively)
    - ints, bools, strings unchanged
    """
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        inner = element_type(typ) if typ and typ.endswith("]") else None
        return [normalize_value(v, inner) for v in value]
    if typ == "address" and isinstance(value, str):
        return value.lower()
    return value


def parse_topic_field(topic_hex: str, spec: TopicFieldSpec) -> Any:
    """Parse one indexed topic according to the declared type.

    Indexed dynamic values (string, bytes, arrays) are stored on-chain as their
    keccak hash; the hash hex is returned as-is.
    """
    raw = hex_to_bytes(topic_hex)
    if len(raw) != 32:
        raise ValueError(f"topic {spec.index} ({spec.name}) is {len(raw)} bytes, expected 32")
    if spec.hashed:
        return "0x" + raw.hex()
    (value,) = abi_decode([spec.type], raw)
    return normalize_value(value, spec.type)


def decode_data_fields(data: bytes, specs: Sequence[DataFieldSpec]) -> dict[str, Any]:
    """Decode the non-indexed fields from the ABI-encoded data section."""
    if not specs:
        return {}
    values = abi_decode([s.type for s in specs], data)
    return {s.name: normalize_value(v, s.type) for s, v in zip(specs, values)}
