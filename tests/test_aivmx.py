"""Tests for aumai_aivm.aivmx (ONNX metadata codec)."""

from __future__ import annotations

import onnx
import pytest
from conftest import make_onnx_model

from aumai_aivm import aivmx
from aumai_aivm.errors import ContainerFormatError


def _parse(data: bytes) -> onnx.ModelProto:
    model = onnx.ModelProto()
    model.ParseFromString(data)
    return model


class TestReadRaw:
    def test_reads_metadata_props(self, onnx_bytes: bytes) -> None:
        assert aivmx.read_raw(onnx_bytes) == {"author": "tests"}

    def test_skips_empty_keys_and_values(self) -> None:
        model = make_onnx_model()
        model.metadata_props.add(key="", value="orphan")
        model.metadata_props.add(key="blank", value="")
        assert aivmx.read_raw(model.SerializeToString()) == {"author": "tests"}

    def test_model_without_props(self) -> None:
        model = make_onnx_model()
        del model.metadata_props[:]
        assert aivmx.read_raw(model.SerializeToString()) == {}

    def test_garbage_raises(self) -> None:
        # Field 1 with wire type 7, which protobuf does not define
        with pytest.raises(ContainerFormatError):
            aivmx.read_raw(b"\x0f\x0f\x0f\x0f")


class TestWriteRaw:
    def test_round_trip_merges_over_existing(self, onnx_bytes: bytes) -> None:
        entries = {"aivm_manifest": '{"name": "テスト"}', "aivm_style_vectors": "AAAA"}
        out = aivmx.write_raw(onnx_bytes, entries)
        assert aivmx.read_raw(out) == {**aivmx.read_raw(onnx_bytes), **entries}

    def test_overwrites_existing_key_in_place(self, onnx_bytes: bytes) -> None:
        out = aivmx.write_raw(onnx_bytes, {"author": "someone else"})
        props = [(p.key, p.value) for p in _parse(out).metadata_props]
        assert props == [("author", "someone else")]

    def test_appends_new_keys_in_order(self, onnx_bytes: bytes) -> None:
        out = aivmx.write_raw(onnx_bytes, {"b": "2", "a": "1"})
        assert [p.key for p in _parse(out).metadata_props] == ["author", "b", "a"]

    def test_graph_and_weights_preserved(self, onnx_bytes: bytes) -> None:
        original = _parse(onnx_bytes)
        updated = _parse(aivmx.write_raw(onnx_bytes, {"k": "v"}))
        assert updated.graph == original.graph
        assert updated.ir_version == original.ir_version
        assert list(updated.opset_import) == list(original.opset_import)
        assert updated.producer_name == "aumai-aivm-tests"

    def test_garbage_raises(self) -> None:
        with pytest.raises(ContainerFormatError):
            aivmx.write_raw(b"\x0f\x0f\x0f\x0f", {"k": "v"})
