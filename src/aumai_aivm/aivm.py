"""
Metadata codec for AIVM files (Safetensors containers).

File layout::

    [0, 8)          header length H, unsigned 64-bit little-endian
    [8, 8 + H)      UTF-8 JSON header; "__metadata__" holds a flat str -> str map
    [8 + H, end)    tensor payload, never touched here
"""

from __future__ import annotations

import json
import logging
import struct
from typing import Any

from .errors import ContainerFormatError

__all__ = [
    "read_raw",
    "write_raw",
]

logger = logging.getLogger(__name__)

_LENGTH_PREFIX = struct.Struct("<Q")
_METADATA_KEY = "__metadata__"


def _split(data: bytes) -> tuple[dict[str, Any], int]:
    """Return the decoded header and the offset where the payload starts."""
    if len(data) < _LENGTH_PREFIX.size:
        raise ContainerFormatError(
            f"file too short for a Safetensors header ({len(data)} bytes)"
        )
    (header_size,) = _LENGTH_PREFIX.unpack_from(data, 0)
    payload_offset = _LENGTH_PREFIX.size + header_size
    if payload_offset > len(data):
        raise ContainerFormatError(
            f"header length {header_size} exceeds the {len(data) - _LENGTH_PREFIX.size} "
            "bytes available"
        )
    try:
        header = json.loads(data[_LENGTH_PREFIX.size:payload_offset].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ContainerFormatError(f"header is not valid JSON: {exc}") from exc
    if not isinstance(header, dict):
        raise ContainerFormatError("header is not a JSON object")
    return header, payload_offset


def _metadata_of(header: dict[str, Any]) -> dict[str, str]:
    metadata = header.get(_METADATA_KEY)
    if metadata is None:
        return {}
    if not isinstance(metadata, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in metadata.items()
    ):
        raise ContainerFormatError(f"{_METADATA_KEY!r} is not a flat string map")
    return metadata


def read_raw(data: bytes) -> dict[str, str]:
    """
    Return the ``__metadata__`` map of a Safetensors container.

    A header without ``__metadata__`` yields an empty dict.
    """
    header, _ = _split(data)
    metadata = dict(_metadata_of(header))
    logger.debug("Read %d metadata entries from Safetensors header", len(metadata))
    return metadata


def write_raw(data: bytes, entries: dict[str, str]) -> bytes:
    """
    Upsert *entries* into the ``__metadata__`` map and return the new file.

    Existing keys not in *entries* are kept. The header is re-encoded and its
    length prefix recomputed; the payload is copied from the original offset,
    so the file may grow or shrink.
    """
    header, payload_offset = _split(data)
    metadata = _metadata_of(header)
    metadata.update(entries)
    header[_METADATA_KEY] = metadata

    new_header = json.dumps(header, ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )
    logger.debug(
        "Rewriting Safetensors header: %d -> %d bytes",
        payload_offset - _LENGTH_PREFIX.size,
        len(new_header),
    )
    return b"".join(
        [_LENGTH_PREFIX.pack(len(new_header)), new_header, data[payload_offset:]]
    )
