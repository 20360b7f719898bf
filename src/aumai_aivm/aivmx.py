"""
Metadata codec for AIVMX files (ONNX containers).

Metadata lives in ``ModelProto.metadata_props``, a list of ``{key, value}``
string pairs. Everything else in the protobuf message passes through as is.
"""

from __future__ import annotations

import logging

import onnx
from google.protobuf.message import DecodeError

from .errors import ContainerFormatError

__all__ = [
    "read_raw",
    "write_raw",
]

logger = logging.getLogger(__name__)


def _load(data: bytes) -> onnx.ModelProto:
    model = onnx.ModelProto()
    try:
        model.ParseFromString(data)
    except DecodeError as exc:
        raise ContainerFormatError(f"not an ONNX model: {exc}") from exc
    return model


def read_raw(data: bytes) -> dict[str, str]:
    """Return the metadata properties of an ONNX model, skipping empty ones."""
    model = _load(data)
    metadata = {
        prop.key: prop.value
        for prop in model.metadata_props
        if prop.key and prop.value
    }
    logger.debug("Read %d metadata props from ONNX model", len(metadata))
    return metadata


def write_raw(data: bytes, entries: dict[str, str]) -> bytes:
    """
    Upsert *entries* into the model's metadata properties.

    A property with a matching key has its value replaced; otherwise a new
    property is appended. Returns the re-serialized model.
    """
    model = _load(data)
    props: dict[str, onnx.StringStringEntryProto] = {}
    for prop in model.metadata_props:
        props.setdefault(prop.key, prop)
    for key, value in entries.items():
        prop = props.get(key)
        if prop is None:
            props[key] = model.metadata_props.add(key=key, value=value)
        else:
            prop.value = value
    logger.debug("Writing %d metadata props to ONNX model", len(model.metadata_props))
    return model.SerializeToString()
