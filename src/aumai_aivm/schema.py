"""Validation of raw container metadata into typed AIVM metadata."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

import pydantic

from .errors import UnsupportedArchitectureError, ValidationError
from .models import (
    AIVM_HYPER_PARAMETERS_KEY,
    AIVM_MANIFEST_KEY,
    AIVM_STYLE_VECTORS_KEY,
    MAX_STYLE_LOCAL_ID,
    AivmManifest,
    AivmMetadata,
    ModelArchitecture,
    StyleBertVITS2HyperParameters,
)

__all__ = [
    "check_id_maps",
    "hyper_parameters_schema",
    "parse_architecture",
    "parse_hyper_parameters",
    "serialize_aivm_metadata",
    "validate_aivm_metadata",
]

logger = logging.getLogger(__name__)

_HYPER_PARAMETERS_SCHEMAS: dict[ModelArchitecture, type[StyleBertVITS2HyperParameters]] = {
    ModelArchitecture.StyleBertVITS2: StyleBertVITS2HyperParameters,
    ModelArchitecture.StyleBertVITS2JPExtra: StyleBertVITS2HyperParameters,
}


def parse_architecture(architecture: ModelArchitecture | str) -> ModelArchitecture:
    """Coerce *architecture* to a ``ModelArchitecture`` member."""
    try:
        return ModelArchitecture(architecture)
    except ValueError:
        raise UnsupportedArchitectureError(architecture) from None


def hyper_parameters_schema(
    architecture: ModelArchitecture | str,
) -> type[StyleBertVITS2HyperParameters]:
    """Return the hyperparameter model for *architecture*."""
    schema = _HYPER_PARAMETERS_SCHEMAS.get(parse_architecture(architecture))
    if schema is None:
        raise UnsupportedArchitectureError(architecture)
    return schema


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "(root)"
    return f"{location}: {first['msg']} ({exc.error_count()} error(s))"


def _load_json(stage: str, data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(stage, f"not valid JSON: {exc}") from exc


def parse_hyper_parameters(
    architecture: ModelArchitecture | str, data: bytes | str
) -> StyleBertVITS2HyperParameters:
    """
    Parse a hyperparameter JSON document for *architecture*.

    Raises ``UnsupportedArchitectureError`` for an unknown architecture and
    ``ValidationError`` (stage ``hyper_parameters``) for malformed input.
    """
    schema = hyper_parameters_schema(architecture)
    obj = _load_json("hyper_parameters", data)
    try:
        return schema.model_validate(obj)
    except pydantic.ValidationError as exc:
        raise ValidationError("hyper_parameters", _describe(exc)) from exc


def check_id_maps(hyper_parameters: StyleBertVITS2HyperParameters) -> None:
    """
    Check the speaker and style id maps of *hyper_parameters*.

    Both maps must be non-empty; speaker ids must be non-negative and unique,
    style ids must lie in [0, 31] and be unique across the whole map.
    """
    spk2id = hyper_parameters.data.spk2id
    style2id = hyper_parameters.data.style2id
    if not spk2id:
        raise ValidationError("hyper_parameters", "no speakers in spk2id")
    if not style2id:
        raise ValidationError("hyper_parameters", "no styles in style2id")

    speakers_by_id: dict[int, str] = {}
    for name, speaker_id in spk2id.items():
        if speaker_id < 0:
            raise ValidationError(
                "hyper_parameters", f"speaker {name!r} has negative id {speaker_id}"
            )
        if speaker_id in speakers_by_id:
            raise ValidationError(
                "hyper_parameters",
                f"speakers {speakers_by_id[speaker_id]!r} and {name!r} share id {speaker_id}",
            )
        speakers_by_id[speaker_id] = name

    styles_by_id: dict[int, str] = {}
    for name, style_id in style2id.items():
        if not 0 <= style_id <= MAX_STYLE_LOCAL_ID:
            raise ValidationError(
                "hyper_parameters",
                f"style {name!r} has id {style_id} outside [0, {MAX_STYLE_LOCAL_ID}]",
            )
        if style_id in styles_by_id:
            raise ValidationError(
                "hyper_parameters",
                f"styles {styles_by_id[style_id]!r} and {name!r} share id {style_id}",
            )
        styles_by_id[style_id] = name


def validate_aivm_metadata(raw_metadata: dict[str, str]) -> AivmMetadata:
    """
    Validate the flat metadata map of a container and build ``AivmMetadata``.

    The manifest is checked first, then the hyperparameters against the
    manifest's architecture, then the optional base64 style vectors.
    """
    raw_manifest = raw_metadata.get(AIVM_MANIFEST_KEY)
    if not raw_manifest:
        raise ValidationError("manifest", f"{AIVM_MANIFEST_KEY!r} not found")
    try:
        manifest = AivmManifest.model_validate(_load_json("manifest", raw_manifest))
    except pydantic.ValidationError as exc:
        raise ValidationError("manifest", _describe(exc)) from exc

    schema = hyper_parameters_schema(manifest.model_architecture)
    raw_hyper_parameters = raw_metadata.get(AIVM_HYPER_PARAMETERS_KEY)
    if not raw_hyper_parameters:
        raise ValidationError(
            "hyper_parameters", f"{AIVM_HYPER_PARAMETERS_KEY!r} not found"
        )
    obj = _load_json("hyper_parameters", raw_hyper_parameters)
    try:
        hyper_parameters = schema.model_validate(obj)
    except pydantic.ValidationError as exc:
        raise ValidationError("hyper_parameters", _describe(exc)) from exc

    style_vectors: bytes | None = None
    raw_style_vectors = raw_metadata.get(AIVM_STYLE_VECTORS_KEY)
    if raw_style_vectors:
        try:
            style_vectors = base64.b64decode(raw_style_vectors, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("style_vectors", f"not valid base64: {exc}") from exc

    logger.debug(
        "Validated metadata for %r (%d speaker(s))",
        manifest.name,
        len(manifest.speakers),
    )
    return AivmMetadata(
        manifest=manifest,
        hyper_parameters=hyper_parameters,
        style_vectors=style_vectors,
    )


def serialize_aivm_metadata(metadata: AivmMetadata) -> dict[str, str]:
    """
    Flatten *metadata* into the ``str -> str`` map stored in containers.

    Hyperparameters are dumped with ``exclude_unset`` so that only keys read
    from the source document are written back.
    """
    entries = {
        AIVM_MANIFEST_KEY: metadata.manifest.model_dump_json(),
        AIVM_HYPER_PARAMETERS_KEY: metadata.hyper_parameters.model_dump_json(
            exclude_unset=True
        ),
    }
    if metadata.style_vectors is not None:
        entries[AIVM_STYLE_VECTORS_KEY] = base64.b64encode(
            metadata.style_vectors
        ).decode("ascii")
    return entries
