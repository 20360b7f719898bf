"""
aumai-aivm quickstart: working demo of generate, write, read, update and sync.

Run directly:

    python examples/quickstart.py

All demos work on in-memory bytes; nothing is written to disk.
"""

from __future__ import annotations

import json
import struct


def _toy_safetensors() -> bytes:
    """A minimal Safetensors file holding one float32 tensor."""
    header = {"weight": {"dtype": "F32", "shape": [2], "data_offsets": [0, 8]}}
    header_bytes = json.dumps(header).encode("utf-8")
    return struct.pack("<Q", len(header_bytes)) + header_bytes + struct.pack("<2f", 0.5, 1.5)


def _toy_hyper_parameters(spk2id: dict[str, int]) -> bytes:
    """A trimmed Style-Bert-VITS2 config.json."""
    return json.dumps(
        {
            "model_name": "quickstart",
            "version": "2.4.1-JP-Extra",
            "train": {"batch_size": 2},
            "data": {
                "use_jp_extra": True,
                "training_files": "/home/me/Data/quickstart/train.list",
                "validation_files": "/home/me/Data/quickstart/val.list",
                "n_speakers": len(spk2id),
                "spk2id": spk2id,
                "num_styles": 2,
                "style2id": {"Neutral": 0, "Happy": 1},
            },
            "model": {"hidden_channels": 192},
        }
    ).encode("utf-8")


# ---------------------------------------------------------------------------
# Demo 1: Generate metadata and embed it into a Safetensors file
# ---------------------------------------------------------------------------

def demo_generate_and_write() -> bytes:
    """Generate metadata from hyperparameters and write an AIVM file."""
    print("\n=== Demo 1: Generate and write an AIVM file ===")

    from aumai_aivm.core import generate_aivm_metadata, write_aivm_metadata

    metadata = generate_aivm_metadata(
        "Style-Bert-VITS2 (JP-Extra)",
        _toy_hyper_parameters({"Alice": 0}),
        b"\x93NUMPY fake style vectors",
    )
    print(f"  Model name   : {metadata.manifest.name}")
    print(f"  Model UUID   : {metadata.manifest.uuid}")
    for speaker in metadata.manifest.speakers:
        styles = ", ".join(style.name for style in speaker.styles)
        print(f"  Speaker      : {speaker.name} [{speaker.local_id}] -> {styles}")

    aivm_bytes = write_aivm_metadata(_toy_safetensors(), metadata)
    print(f"  AIVM size    : {len(aivm_bytes):,} bytes")
    print(f"  Dataset path : {metadata.hyper_parameters.data.training_files}")
    return aivm_bytes


# ---------------------------------------------------------------------------
# Demo 2: Read it back
# ---------------------------------------------------------------------------

def demo_read(aivm_bytes: bytes) -> None:
    """Read and validate the metadata of an AIVM file."""
    print("\n=== Demo 2: Read metadata ===")

    from aumai_aivm.core import read_aivm_metadata

    metadata = read_aivm_metadata(aivm_bytes)
    print(json.dumps(metadata.summary(), ensure_ascii=False, indent=2))


# ---------------------------------------------------------------------------
# Demo 3: Replace hyperparameters, keeping speaker identity
# ---------------------------------------------------------------------------

def demo_update(aivm_bytes: bytes) -> None:
    """Update an AIVM file with hyperparameters that add a second speaker."""
    print("\n=== Demo 3: Update with new hyperparameters ===")

    from aumai_aivm.core import read_aivm_metadata, update_aivm_metadata, write_aivm_metadata

    existing = read_aivm_metadata(aivm_bytes)
    updated, warnings = update_aivm_metadata(
        existing, _toy_hyper_parameters({"Alice": 0, "Bob": 1})
    )
    for warning in warnings:
        print(f"  WARNING: {warning}")

    first = existing.manifest.speakers[0].uuid
    kept = updated.manifest.speakers[0].uuid
    print(f"  Alice UUID kept : {first == kept}")

    result = read_aivm_metadata(write_aivm_metadata(aivm_bytes, updated))
    print(f"  spk2id          : {result.hyper_parameters.data.spk2id}")


def main() -> None:
    print("aumai-aivm quickstart demo")
    print("=" * 40)

    aivm_bytes = demo_generate_and_write()
    demo_read(aivm_bytes)
    demo_update(aivm_bytes)

    print("\n" + "=" * 40)
    print("All demos completed successfully.")


if __name__ == "__main__":
    main()
