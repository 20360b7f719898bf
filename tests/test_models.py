"""Tests for aumai_aivm.models."""

from __future__ import annotations

from typing import Any

import pydantic
import pytest

from aumai_aivm.models import (
    DEFAULT_AIVM_MANIFEST,
    DEFAULT_ICON_DATA_URL,
    AivmManifest,
    AivmSpeaker,
    AivmStyle,
    AivmVoiceSample,
    ModelArchitecture,
    ModelFormat,
)


def _manifest_dict(**overrides: Any) -> dict[str, Any]:
    data = DEFAULT_AIVM_MANIFEST.model_dump(mode="json")
    data.update(overrides)
    return data


def _speaker_dict(**overrides: Any) -> dict[str, Any]:
    data = DEFAULT_AIVM_MANIFEST.speakers[0].model_dump(mode="json")
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestAivmManifest:
    def test_default_manifest_is_valid(self) -> None:
        manifest = AivmManifest.model_validate(_manifest_dict())
        assert manifest.manifest_version == "1.0"
        assert manifest.model_architecture is ModelArchitecture.StyleBertVITS2JPExtra
        assert manifest.model_format is ModelFormat.Safetensors

    def test_defaults_applied(self) -> None:
        data = _manifest_dict()
        for key in ("description", "creators", "license", "training_epochs", "training_steps"):
            del data[key]
        manifest = AivmManifest.model_validate(data)
        assert manifest.description == ""
        assert manifest.creators == []
        assert manifest.license is None
        assert manifest.training_epochs is None

    @pytest.mark.parametrize("version", ["1.1", "2.0", "1.0.0", ""])
    def test_rejects_other_manifest_versions(self, version: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(manifest_version=version))

    @pytest.mark.parametrize("field", ["training_epochs", "training_steps"])
    def test_rejects_string_counters(self, field: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(**{field: "5"}))

    def test_name_length_bounds(self) -> None:
        AivmManifest.model_validate(_manifest_dict(name="n" * 80))
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(name="n" * 81))
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(name=""))

    def test_description_max_length(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(description="d" * 141))

    def test_empty_license_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(license=""))

    def test_negative_training_steps_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(training_steps=-1))

    def test_unknown_architecture_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(model_architecture="VITS"))

    @pytest.mark.parametrize("version", ["1.0.0", "0.3.12", "1.0.0-beta.1", "2.1.0+build.5"])
    def test_accepts_semver(self, version: str) -> None:
        assert AivmManifest.model_validate(_manifest_dict(version=version)).version == version

    @pytest.mark.parametrize("version", ["1.0", "01.0.0", "v1.0.0"])
    def test_rejects_non_semver(self, version: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(version=version))

    def test_rejects_bad_uuid(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(uuid="not-a-uuid"))

    def test_requires_speakers(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(speakers=[]))

    def test_rejects_duplicate_speaker_local_ids(self) -> None:
        speaker = _speaker_dict()
        with pytest.raises(pydantic.ValidationError, match="duplicate speaker local_id"):
            AivmManifest.model_validate(_manifest_dict(speakers=[speaker, speaker]))

    def test_creator_length_bounds(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmManifest.model_validate(_manifest_dict(creators=[""]))
        manifest = AivmManifest.model_validate(
            _manifest_dict(creators=["Jane Doe <jane.doe@example.com>"])
        )
        assert manifest.creators == ["Jane Doe <jane.doe@example.com>"]


# ---------------------------------------------------------------------------
# Speaker / style / voice sample
# ---------------------------------------------------------------------------


class TestAivmSpeaker:
    def test_requires_styles(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmSpeaker.model_validate(_speaker_dict(styles=[]))

    def test_rejects_duplicate_style_local_ids(self) -> None:
        styles = [{"name": "A", "local_id": 3}, {"name": "B", "local_id": 3}]
        with pytest.raises(pydantic.ValidationError, match="duplicate style local_id"):
            AivmSpeaker.model_validate(_speaker_dict(styles=styles))

    def test_rejects_negative_local_id(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmSpeaker.model_validate(_speaker_dict(local_id=-1))

    @pytest.mark.parametrize("local_id", ["0", True, 0.0])
    def test_rejects_non_integer_local_id(self, local_id: Any) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmSpeaker.model_validate(_speaker_dict(local_id=local_id))

    @pytest.mark.parametrize("icon", ["data:image/gif;base64,AAAA", "http://example.com/a.png", ""])
    def test_rejects_bad_icon(self, icon: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmSpeaker.model_validate(_speaker_dict(icon=icon))

    def test_accepts_jpeg_icon(self) -> None:
        speaker = AivmSpeaker.model_validate(_speaker_dict(icon="data:image/jpeg;base64,/9j/4AAQ"))
        assert speaker.icon.startswith("data:image/jpeg")

    @pytest.mark.parametrize("tag", ["ja", "en-US", "zh-CN", "es-419"])
    def test_accepts_language_tags(self, tag: str) -> None:
        speaker = AivmSpeaker.model_validate(_speaker_dict(supported_languages=[tag]))
        assert speaker.supported_languages == [tag]

    @pytest.mark.parametrize("tag", ["JA", "en_US", "english"])
    def test_rejects_language_tags(self, tag: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmSpeaker.model_validate(_speaker_dict(supported_languages=[tag]))


class TestAivmStyle:
    def test_defaults(self) -> None:
        style = AivmStyle(name="Happy", local_id=1)
        assert style.icon is None
        assert style.voice_samples == []

    @pytest.mark.parametrize("local_id", [0, 31])
    def test_local_id_bounds_accepted(self, local_id: int) -> None:
        assert AivmStyle(name="s", local_id=local_id).local_id == local_id

    @pytest.mark.parametrize("local_id", [-1, 32])
    def test_local_id_bounds_rejected(self, local_id: int) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmStyle(name="s", local_id=local_id)

    @pytest.mark.parametrize("local_id", ["1", False])
    def test_local_id_must_be_integer(self, local_id: Any) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmStyle.model_validate({"name": "s", "local_id": local_id})

    def test_name_max_length(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AivmStyle(name="s" * 21, local_id=0)

    def test_icon_must_be_image_data_url(self) -> None:
        assert AivmStyle(name="s", local_id=0, icon=DEFAULT_ICON_DATA_URL).icon
        with pytest.raises(pydantic.ValidationError):
            AivmStyle(name="s", local_id=0, icon="data:audio/wav;base64,AAAA")

    def test_voice_sample_formats(self) -> None:
        sample = AivmVoiceSample(audio="data:audio/mp4;base64,AAAA", transcript="こんにちは")
        assert sample.transcript == "こんにちは"
        with pytest.raises(pydantic.ValidationError):
            AivmVoiceSample(audio="data:audio/mp3;base64,AAAA", transcript="x")
        with pytest.raises(pydantic.ValidationError):
            AivmVoiceSample(audio="data:audio/wav;base64,AAAA", transcript="")
