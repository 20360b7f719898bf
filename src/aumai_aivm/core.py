"""Core logic for aumai-aivm."""

from __future__ import annotations

import logging
import uuid

import pydantic

from . import aivm, aivmx
from .errors import ReconciliationError, ValidationError
from .models import (
    DEFAULT_AIVM_MANIFEST,
    DEFAULT_ICON_DATA_URL,
    NEUTRAL_STYLE_NAME,
    NORMAL_STYLE_NAME,
    SUPPORTED_LANGUAGES,
    TRAINING_FILES_PLACEHOLDER,
    VALIDATION_FILES_PLACEHOLDER,
    AivmManifest,
    AivmMetadata,
    AivmSpeaker,
    AivmStyle,
    ModelArchitecture,
    ModelFormat,
    StyleBertVITS2HyperParameters,
)
from .schema import (
    check_id_maps,
    hyper_parameters_schema,
    parse_architecture,
    parse_hyper_parameters,
    serialize_aivm_metadata,
    validate_aivm_metadata,
)

__all__ = [
    "apply_manifest_to_hyper_parameters",
    "generate_aivm_metadata",
    "read_aivm_metadata",
    "read_aivmx_metadata",
    "synced",
    "update_aivm_metadata",
    "write_aivm_metadata",
    "write_aivmx_metadata",
]

logger = logging.getLogger(__name__)

# Architectures whose checkpoints cannot run without a style-vector file
_STYLE_VECTOR_ARCHITECTURES = frozenset(
    {ModelArchitecture.StyleBertVITS2, ModelArchitecture.StyleBertVITS2JPExtra}
)


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _prepare_hyper_parameters(
    architecture: ModelArchitecture,
    hyper_parameters: bytes | str,
    style_vectors: bytes | None,
) -> StyleBertVITS2HyperParameters:
    parsed = parse_hyper_parameters(architecture, hyper_parameters)
    check_id_maps(parsed)
    if architecture in _STYLE_VECTOR_ARCHITECTURES and not style_vectors:
        raise ValidationError(
            "style_vectors", f"{architecture.value} models require style vectors"
        )
    return parsed


def _derive_architecture(
    hyper_parameters: StyleBertVITS2HyperParameters,
) -> ModelArchitecture:
    if hyper_parameters.data.use_jp_extra:
        return ModelArchitecture.StyleBertVITS2JPExtra
    return ModelArchitecture.StyleBertVITS2


def _style_name(name: str, style2id: dict[str, int]) -> str:
    """Rename "Neutral" to the Japanese "normal" label unless that name is taken."""
    if name == NEUTRAL_STYLE_NAME and NORMAL_STYLE_NAME not in style2id:
        return NORMAL_STYLE_NAME
    return name


def _new_style(name: str, local_id: int, style2id: dict[str, int]) -> AivmStyle:
    return AivmStyle.model_construct(
        name=_style_name(name, style2id),
        icon=None,
        local_id=local_id,
        voice_samples=[],
    )


def _new_speaker(
    name: str,
    local_id: int,
    languages: list[str],
    style2id: dict[str, int],
) -> AivmSpeaker:
    return AivmSpeaker.model_construct(
        name=name,
        icon=DEFAULT_ICON_DATA_URL,
        supported_languages=list(languages),
        uuid=str(uuid.uuid4()),
        local_id=local_id,
        styles=[
            _new_style(style_name, style_id, style2id)
            for style_name, style_id in style2id.items()
        ],
    )


def _revalidate(manifest: AivmManifest) -> AivmManifest:
    """Run the full manifest schema over a manifest assembled in code."""
    try:
        return AivmManifest.model_validate(manifest.model_dump())
    except pydantic.ValidationError as exc:
        raise ValidationError("manifest", str(exc)) from exc


# ------------------------------------------------------------------
# Reconciliation
# ------------------------------------------------------------------


def generate_aivm_metadata(
    model_architecture: ModelArchitecture | str,
    hyper_parameters: bytes | str,
    style_vectors: bytes | None = None,
) -> AivmMetadata:
    """
    Build fresh AIVM metadata from a hyperparameter file.

    Every speaker in ``spk2id`` becomes a speaker with a new UUID and the
    default icon, and gets one style per ``style2id`` entry. Speaker and style
    order follow the order of the maps in the JSON document; local ids are the
    mapped ids.
    """
    architecture = parse_architecture(model_architecture)
    parsed = _prepare_hyper_parameters(architecture, hyper_parameters, style_vectors)

    derived = _derive_architecture(parsed)
    languages = SUPPORTED_LANGUAGES[derived]
    style2id = parsed.data.style2id

    manifest = DEFAULT_AIVM_MANIFEST.model_copy(deep=True)
    manifest.name = parsed.model_name
    manifest.model_architecture = derived
    manifest.uuid = str(uuid.uuid4())
    manifest.speakers = [
        _new_speaker(speaker_name, speaker_id, languages, style2id)
        for speaker_name, speaker_id in parsed.data.spk2id.items()
    ]
    manifest = _revalidate(manifest)

    logger.info(
        "Generated metadata for %r: %d speaker(s), %d style(s) each",
        manifest.name,
        len(manifest.speakers),
        len(style2id),
    )
    return AivmMetadata(
        manifest=manifest,
        hyper_parameters=parsed,
        style_vectors=style_vectors,
    )


def update_aivm_metadata(
    existing: AivmMetadata,
    hyper_parameters: bytes | str,
    style_vectors: bytes | None = None,
) -> tuple[AivmMetadata, list[str]]:
    """
    Reconcile *existing* metadata with replacement hyperparameters.

    Speakers and styles are matched by local id, so a retained speaker keeps
    its UUID, name, icon and styles even if it was renamed in ``spk2id``.
    Unmatched existing entries are dropped and unmatched new ids are added.
    When *style_vectors* is ``None`` the existing style vectors are kept.

    Returns the updated metadata and a list of warnings describing every
    language change, removal and addition: removals and language changes
    first, in the original manifest order, then additions. *existing* is not
    modified.
    """
    architecture = existing.manifest.model_architecture
    if style_vectors is None:
        style_vectors = existing.style_vectors
    parsed = _prepare_hyper_parameters(architecture, hyper_parameters, style_vectors)

    derived = _derive_architecture(parsed)
    languages = SUPPORTED_LANGUAGES[derived]
    spk2id = parsed.data.spk2id
    style2id = parsed.data.style2id
    speaker_names = {speaker_id: name for name, speaker_id in spk2id.items()}
    style_names = {style_id: name for name, style_id in style2id.items()}

    manifest = existing.manifest.model_copy(deep=True)
    # Drops (and language changes) first in original order, then additions
    drops: list[str] = []
    additions: list[str] = []
    speakers: list[AivmSpeaker] = []
    matched_speakers: set[int] = set()

    for speaker in manifest.speakers:
        if speaker.local_id not in speaker_names:
            drops.append(
                f"Speaker {speaker.name!r} (local_id {speaker.local_id}) "
                "was removed because its id is no longer in spk2id."
            )
            continue
        matched_speakers.add(speaker.local_id)

        if speaker.supported_languages != languages:
            speaker.supported_languages = list(languages)
            drops.append(
                f"Supported languages of speaker {speaker.name!r} "
                f"changed to {', '.join(languages)}."
            )

        styles: list[AivmStyle] = []
        matched_styles: set[int] = set()
        for style in speaker.styles:
            if style.local_id in style_names:
                matched_styles.add(style.local_id)
                styles.append(style)
            else:
                drops.append(
                    f"Style {style.name!r} (local_id {style.local_id}) of speaker "
                    f"{speaker.name!r} was removed because its id is no longer in style2id."
                )
        for style_id, style_name in style_names.items():
            if style_id in matched_styles:
                continue
            style = _new_style(style_name, style_id, style2id)
            styles.append(style)
            additions.append(
                f"Style {style.name!r} (local_id {style_id}) was added to speaker "
                f"{speaker.name!r}."
            )
        speaker.styles = styles
        speakers.append(speaker)

    for speaker_id, speaker_name in speaker_names.items():
        if speaker_id in matched_speakers:
            continue
        speakers.append(_new_speaker(speaker_name, speaker_id, languages, style2id))
        additions.append(
            f"Speaker {speaker_name!r} (local_id {speaker_id}) was added."
        )

    if not speakers:
        raise ReconciliationError("update left the model without speakers")
    for speaker in speakers:
        if not speaker.styles:
            raise ReconciliationError(
                f"update left speaker {speaker.name!r} without styles"
            )

    manifest.speakers = speakers
    manifest.model_architecture = derived
    manifest = _revalidate(manifest)

    warnings = drops + additions
    for warning in warnings:
        logger.info(warning)
    return (
        AivmMetadata(
            manifest=manifest,
            hyper_parameters=parsed,
            style_vectors=style_vectors,
        ),
        warnings,
    )


def apply_manifest_to_hyper_parameters(metadata: AivmMetadata) -> None:
    """
    Project the manifest back onto the hyperparameters, in place.

    Sets the model name, replaces dataset paths with placeholders, re-keys
    ``spk2id`` and ``style2id`` by the manifest's names (ids absent from the
    current maps are omitted) and recomputes the counts. Must run before the
    metadata is written to a container. Idempotent.
    """
    manifest = metadata.manifest
    hyper_parameters_schema(manifest.model_architecture)
    if not metadata.style_vectors:
        raise ValidationError("style_vectors", "style vectors are not set")

    hyper_parameters = metadata.hyper_parameters
    data = hyper_parameters.data
    hyper_parameters.model_name = manifest.name
    data.training_files = TRAINING_FILES_PLACEHOLDER
    data.validation_files = VALIDATION_FILES_PLACEHOLDER

    speaker_ids = set(data.spk2id.values())
    spk2id: dict[str, int] = {}
    for speaker in manifest.speakers:
        if speaker.local_id in speaker_ids:
            spk2id[speaker.name] = speaker.local_id

    style_ids = set(data.style2id.values())
    style2id: dict[str, int] = {}
    for speaker in manifest.speakers:
        for style in speaker.styles:
            if style.local_id in style_ids:
                style2id[style.name] = style.local_id

    data.spk2id = spk2id
    data.style2id = style2id
    data.n_speakers = len(spk2id)
    data.num_styles = len(style2id)


def synced(metadata: AivmMetadata) -> AivmMetadata:
    """Return a deep copy of *metadata* with the manifest applied to it."""
    copy = metadata.model_copy(deep=True)
    apply_manifest_to_hyper_parameters(copy)
    return copy


# ------------------------------------------------------------------
# Containers
# ------------------------------------------------------------------


def _check_format(metadata: AivmMetadata, expected: ModelFormat) -> AivmMetadata:
    if metadata.manifest.model_format != expected:
        raise ValidationError(
            "manifest",
            f"model_format is {metadata.manifest.model_format.value!r}, "
            f"expected {expected.value!r}",
        )
    return metadata


def read_aivm_metadata(data: bytes) -> AivmMetadata:
    """Read and validate the metadata of an AIVM (Safetensors) file."""
    return _check_format(
        validate_aivm_metadata(aivm.read_raw(data)), ModelFormat.Safetensors
    )


def read_aivmx_metadata(data: bytes) -> AivmMetadata:
    """Read and validate the metadata of an AIVMX (ONNX) file."""
    return _check_format(validate_aivm_metadata(aivmx.read_raw(data)), ModelFormat.ONNX)


def write_aivm_metadata(data: bytes, metadata: AivmMetadata) -> bytes:
    """
    Embed *metadata* into a Safetensors file and return the new file bytes.

    *metadata* is modified in place: its model format is set to Safetensors
    and the manifest is applied to its hyperparameters.
    """
    metadata.manifest.model_format = ModelFormat.Safetensors
    apply_manifest_to_hyper_parameters(metadata)
    return aivm.write_raw(data, serialize_aivm_metadata(metadata))


def write_aivmx_metadata(data: bytes, metadata: AivmMetadata) -> bytes:
    """
    Embed *metadata* into an ONNX file and return the new file bytes.

    *metadata* is modified in place: its model format is set to ONNX and the
    manifest is applied to its hyperparameters.
    """
    metadata.manifest.model_format = ModelFormat.ONNX
    apply_manifest_to_hyper_parameters(metadata)
    return aivmx.write_raw(data, serialize_aivm_metadata(metadata))
