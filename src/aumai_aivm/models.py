"""Pydantic models for aumai-aivm."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StringConstraints, model_validator

__all__ = [
    "AIVM_HYPER_PARAMETERS_KEY",
    "AIVM_MANIFEST_KEY",
    "AIVM_STYLE_VECTORS_KEY",
    "AivmManifest",
    "AivmMetadata",
    "AivmSpeaker",
    "AivmStyle",
    "AivmVoiceSample",
    "DEFAULT_AIVM_MANIFEST",
    "DEFAULT_ICON_DATA_URL",
    "ModelArchitecture",
    "ModelFormat",
    "StyleBertVITS2HyperParameters",
]

# Keys of the flat metadata map stored in both container kinds
AIVM_MANIFEST_KEY = "aivm_manifest"
AIVM_HYPER_PARAMETERS_KEY = "aivm_hyper_parameters"
AIVM_STYLE_VECTORS_KEY = "aivm_style_vectors"

SUPPORTED_MANIFEST_VERSION = "1.0"

NEUTRAL_STYLE_NAME = "Neutral"
NORMAL_STYLE_NAME = "ノーマル"

# Replace environment-dependent dataset paths before distribution
TRAINING_FILES_PLACEHOLDER = "train.list"
VALIDATION_FILES_PLACEHOLDER = "val.list"

MAX_STYLE_LOCAL_ID = 31

DEFAULT_ICON_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

_IMAGE_DATA_URL = r"^data:image/(jpeg|png);base64,[A-Za-z0-9+/=]+$"
_AUDIO_DATA_URL = r"^data:audio/(wav|mp4);base64,[A-Za-z0-9+/=]+$"
_UUID = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
_SEMVER = (
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_BCP47 = (
    r"^[a-z]{2,3}(?:-[A-Z]{4})?(?:-(?:[A-Z]{2}|\d{3}))?"
    r"(?:-(?:[A-Za-z0-9]{5,8}|\d[A-Za-z0-9]{3}))*"
    r"(?:-[A-Za-z](?:-[A-Za-z0-9]{2,8})+)*(?:-x(?:-[A-Za-z0-9]{1,8})+)?$"
)

ImageDataURL = Annotated[str, StringConstraints(pattern=_IMAGE_DATA_URL)]
LanguageTag = Annotated[str, StringConstraints(pattern=_BCP47)]
CreatorName = Annotated[str, StringConstraints(min_length=1, max_length=255)]
NonNegativeInt = Annotated[StrictInt, Field(ge=0)]


class ModelArchitecture(str, Enum):
    """Voice synthesis architectures an AIVM manifest may declare."""

    StyleBertVITS2 = "Style-Bert-VITS2"                     # ja, en-US, zh-CN
    StyleBertVITS2JPExtra = "Style-Bert-VITS2 (JP-Extra)"   # ja only


class ModelFormat(str, Enum):
    """Weight format, one per container kind."""

    Safetensors = "Safetensors"   # .aivm
    ONNX = "ONNX"                 # .aivmx


SUPPORTED_LANGUAGES: dict[ModelArchitecture, list[str]] = {
    ModelArchitecture.StyleBertVITS2: ["ja", "en-US", "zh-CN"],
    ModelArchitecture.StyleBertVITS2JPExtra: ["ja"],
}


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class AivmVoiceSample(BaseModel):
    """An audio clip demonstrating a style, with its transcript."""

    audio: str = Field(pattern=_AUDIO_DATA_URL)
    transcript: str = Field(min_length=1)


class AivmStyle(BaseModel):
    """
    A speaking style of a speaker.

    ``icon`` may be ``None``, in which case the speaker icon is shown.
    """

    name: str = Field(min_length=1, max_length=20)
    icon: ImageDataURL | None = None
    local_id: StrictInt = Field(ge=0, le=MAX_STYLE_LOCAL_ID)
    voice_samples: list[AivmVoiceSample] = Field(default_factory=list)


class AivmSpeaker(BaseModel):
    """A speaker of the model, identified model-wide by ``local_id``."""

    name: str = Field(min_length=1, max_length=80)
    icon: ImageDataURL
    supported_languages: list[LanguageTag]
    uuid: str = Field(pattern=_UUID)
    local_id: StrictInt = Field(ge=0)
    styles: list[AivmStyle] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_style_ids(self) -> AivmSpeaker:
        seen: set[int] = set()
        for style in self.styles:
            if style.local_id in seen:
                raise ValueError(
                    f"speaker {self.name!r} has duplicate style local_id {style.local_id}"
                )
            seen.add(style.local_id)
        return self


class AivmManifest(BaseModel):
    """
    AIVM manifest: identity, licensing and speaker/style catalog of a model.

    Only manifest version ``"1.0"`` is supported.
    """

    model_config = ConfigDict(protected_namespaces=())

    manifest_version: str = Field(pattern=r"^1\.0$")
    name: str = Field(min_length=1, max_length=80)
    description: str = Field(default="", max_length=140)
    creators: list[CreatorName] = Field(default_factory=list)
    license: Annotated[str, StringConstraints(min_length=1)] | None = None
    model_architecture: ModelArchitecture
    model_format: ModelFormat
    training_epochs: NonNegativeInt | None = None
    training_steps: NonNegativeInt | None = None
    uuid: str = Field(pattern=_UUID)
    version: str = Field(pattern=_SEMVER)
    speakers: list[AivmSpeaker] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_speaker_ids(self) -> AivmManifest:
        seen: set[int] = set()
        for speaker in self.speakers:
            if speaker.local_id in seen:
                raise ValueError(f"duplicate speaker local_id {speaker.local_id}")
            seen.add(speaker.local_id)
        return self


DEFAULT_AIVM_MANIFEST = AivmManifest(
    manifest_version=SUPPORTED_MANIFEST_VERSION,
    name="Model Name",
    model_architecture=ModelArchitecture.StyleBertVITS2JPExtra,
    model_format=ModelFormat.Safetensors,
    uuid="00000000-0000-0000-0000-000000000000",
    version="1.0.0",
    speakers=[
        AivmSpeaker(
            name="Speaker Name",
            icon=DEFAULT_ICON_DATA_URL,
            supported_languages=["ja"],
            uuid="00000000-0000-0000-0000-000000000000",
            local_id=0,
            styles=[AivmStyle(name=NORMAL_STYLE_NAME, local_id=0)],
        )
    ],
)


# ---------------------------------------------------------------------------
# Style-Bert-VITS2 hyperparameters
# ---------------------------------------------------------------------------
#
# Checkpoints from different Style-Bert-VITS2 releases carry different keys,
# so everything except the fields this library reads is optional, and
# unknown keys are kept as extras.


class _PassThrough(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())


class StyleBertVITS2TrainConfig(_PassThrough):
    log_interval: int | None = None
    eval_interval: int | None = None
    seed: int | None = None
    epochs: int | None = None
    learning_rate: int | float | None = None
    betas: tuple[int | float, int | float] | None = None
    eps: int | float | None = None
    batch_size: int | None = None
    bf16_run: bool | None = None
    fp16_run: bool | None = None
    lr_decay: int | float | None = None
    segment_size: int | None = None
    init_lr_ratio: int | None = None
    warmup_epochs: int | None = None
    c_mel: int | None = None
    c_kl: int | float | None = None
    c_commit: int | None = None
    skip_optimizer: bool | None = None
    freeze_ZH_bert: bool | None = None
    freeze_JP_bert: bool | None = None
    freeze_EN_bert: bool | None = None
    freeze_emo: bool | None = None
    freeze_style: bool | None = None
    freeze_decoder: bool | None = None


class StyleBertVITS2DataConfig(_PassThrough):
    use_jp_extra: bool | None = None
    training_files: str | None = None
    validation_files: str | None = None
    max_wav_value: int | float | None = None
    sampling_rate: int | None = None
    filter_length: int | None = None
    hop_length: int | None = None
    win_length: int | None = None
    n_mel_channels: int | None = None
    mel_fmin: int | float | None = None
    mel_fmax: int | float | None = None
    add_blank: bool | None = None
    n_speakers: StrictInt
    cleaned_text: bool | None = None
    spk2id: dict[str, StrictInt]
    num_styles: StrictInt
    style2id: dict[str, StrictInt]


class StyleBertVITS2SLMConfig(_PassThrough):
    model: str | None = None
    sr: int | None = None
    hidden: int | None = None
    nlayers: int | None = None
    initial_channel: int | None = None


class StyleBertVITS2ModelConfig(_PassThrough):
    use_spk_conditioned_encoder: bool | None = None
    use_noise_scaled_mas: bool | None = None
    use_mel_posterior_encoder: bool | None = None
    use_duration_discriminator: bool | None = None
    use_wavlm_discriminator: bool | None = None
    inter_channels: int | None = None
    hidden_channels: int | None = None
    filter_channels: int | None = None
    n_heads: int | None = None
    n_layers: int | None = None
    kernel_size: int | None = None
    p_dropout: int | float | None = None
    resblock: str | None = None
    resblock_kernel_sizes: list[int] | None = None
    resblock_dilation_sizes: list[list[int]] | None = None
    upsample_rates: list[int] | None = None
    upsample_initial_channel: int | None = None
    upsample_kernel_sizes: list[int] | None = None
    n_layers_q: int | None = None
    use_spectral_norm: bool | None = None
    gin_channels: int | None = None
    slm: StyleBertVITS2SLMConfig | None = None


class StyleBertVITS2HyperParameters(_PassThrough):
    """
    Training configuration (``config.json``) of a Style-Bert-VITS2 model.

    Serialize with ``model_dump_json(exclude_unset=True)`` so that keys absent
    from the source file are not written back as ``null``.
    """

    model_name: str
    version: str
    train: StyleBertVITS2TrainConfig
    data: StyleBertVITS2DataConfig
    model: StyleBertVITS2ModelConfig


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class AivmMetadata(BaseModel):
    """All metadata carried by an AIVM / AIVMX file."""

    manifest: AivmManifest
    hyper_parameters: StyleBertVITS2HyperParameters
    style_vectors: bytes | None = None

    def summary(self) -> dict[str, Any]:
        """Return a compact, JSON-friendly overview of the manifest."""
        return {
            "name": self.manifest.name,
            "uuid": self.manifest.uuid,
            "version": self.manifest.version,
            "architecture": self.manifest.model_architecture.value,
            "format": self.manifest.model_format.value,
            "speakers": [
                {
                    "name": speaker.name,
                    "local_id": speaker.local_id,
                    "styles": [style.name for style in speaker.styles],
                }
                for speaker in self.manifest.speakers
            ],
        }
