"""Shared test fixtures for aumai-aivm."""

from __future__ import annotations

import json
import struct
from typing import Any

import onnx
import pytest
from onnx import TensorProto, helper

from aumai_aivm.core import generate_aivm_metadata
from aumai_aivm.models import AivmMetadata, ModelArchitecture


# ---------------------------------------------------------------------------
# Hyperparameters / style vectors
# ---------------------------------------------------------------------------


def make_hyper_parameters(
    spk2id: dict[str, int] | None = None,
    style2id: dict[str, int] | None = None,
    use_jp_extra: bool = True,
) -> dict[str, Any]:
    spk2id = {"Alice": 0} if spk2id is None else spk2id
    style2id = {"Neutral": 0, "Happy": 1} if style2id is None else style2id
    return {
        "model_name": "alice-model",
        "version": "2.4.1-JP-Extra",
        "num_gpus": 1,
        "train": {
            "log_interval": 200,
            "learning_rate": 0.0001,
            "betas": [0.8, 0.99],
            "batch_size": 2,
            "bf16_run": False,
        },
        "data": {
            "use_jp_extra": use_jp_extra,
            "training_files": "/home/user/Data/alice/train.list",
            "validation_files": "/home/user/Data/alice/val.list",
            "sampling_rate": 44100,
            "mel_fmax": None,
            "n_speakers": len(spk2id),
            "spk2id": spk2id,
            "num_styles": len(style2id),
            "style2id": style2id,
            "custom_key": "kept",
        },
        "model": {
            "hidden_channels": 192,
            "slm": {"model": "./slm/wavlm-base-plus", "sr": 16000},
        },
    }


def encode(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, ensure_ascii=False).encode("utf-8")


@pytest.fixture()
def hyper_parameters() -> bytes:
    return encode(make_hyper_parameters())


@pytest.fixture()
def style_vectors() -> bytes:
    return b"\x93NUMPY\x01\x00" + bytes(range(64))


@pytest.fixture()
def metadata(hyper_parameters: bytes, style_vectors: bytes) -> AivmMetadata:
    return generate_aivm_metadata(
        ModelArchitecture.StyleBertVITS2JPExtra, hyper_parameters, style_vectors
    )


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


PAYLOAD = struct.pack("<4f", 1.0, 2.0, 3.0, 4.0)


def make_safetensors(
    header: dict[str, Any] | None = None, payload: bytes = PAYLOAD
) -> bytes:
    if header is None:
        header = {
            "__metadata__": {"format": "pt"},
            "weight": {"dtype": "F32", "shape": [4], "data_offsets": [0, 16]},
        }
    header_bytes = json.dumps(header).encode("utf-8")
    return struct.pack("<Q", len(header_bytes)) + header_bytes + payload


def make_onnx_model() -> onnx.ModelProto:
    node = helper.make_node("Identity", ["x"], ["y"], name="identity")
    graph = helper.make_graph(
        [node],
        "voice",
        [helper.make_tensor_value_info("x", TensorProto.FLOAT, [1, 4])],
        [helper.make_tensor_value_info("y", TensorProto.FLOAT, [1, 4])],
        initializer=[helper.make_tensor("w", TensorProto.FLOAT, [2], [0.5, 1.5])],
    )
    model = helper.make_model(graph, producer_name="aumai-aivm-tests")
    model.metadata_props.add(key="author", value="tests")
    return model


@pytest.fixture()
def safetensors_bytes() -> bytes:
    return make_safetensors()


@pytest.fixture()
def onnx_bytes() -> bytes:
    return make_onnx_model().SerializeToString()
