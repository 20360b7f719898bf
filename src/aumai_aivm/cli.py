"""CLI entry point for aumai-aivm."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from .core import (
    generate_aivm_metadata,
    read_aivm_metadata,
    read_aivmx_metadata,
    update_aivm_metadata,
    write_aivm_metadata,
    write_aivmx_metadata,
)
from .errors import AivmError
from .models import AivmMetadata, ModelArchitecture

_SAFETENSORS_SUFFIXES = {".aivm", ".safetensors"}
_ONNX_SUFFIXES = {".aivmx", ".onnx"}


def _is_onnx(path: Path) -> bool:
    suffix = path.suffix.lower()
    if suffix in _ONNX_SUFFIXES:
        return True
    if suffix in _SAFETENSORS_SUFFIXES:
        return False
    raise click.BadParameter(
        f"cannot tell the container kind of {path.name!r} from its extension"
    )


def _read(path: Path) -> AivmMetadata:
    data = path.read_bytes()
    if _is_onnx(path):
        return read_aivmx_metadata(data)
    return read_aivm_metadata(data)


def _write(path: Path, metadata: AivmMetadata, output: Path) -> None:
    data = path.read_bytes()
    if _is_onnx(path):
        output.write_bytes(write_aivmx_metadata(data, metadata))
    else:
        output.write_bytes(write_aivm_metadata(data, metadata))


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="aumai-aivm")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """AumAI AIVM: manage metadata of AIVM / AIVMX voice model files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("show")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the .aivm or .aivmx file.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON.")
def show_command(file_path: Path, as_json: bool) -> None:
    """Show the manifest of an AIVM / AIVMX file."""
    try:
        metadata = _read(file_path)
    except AivmError as exc:
        _fail(exc)
        return

    summary = metadata.summary()
    if as_json:
        click.echo(json.dumps(summary, ensure_ascii=False, indent=2))
        return

    click.echo(f"Name        : {summary['name']}")
    click.echo(f"UUID        : {summary['uuid']}")
    click.echo(f"Version     : {summary['version']}")
    click.echo(f"Architecture: {summary['architecture']}")
    click.echo(f"Format      : {summary['format']}")
    click.echo(f"\nSpeakers ({len(summary['speakers'])}):")
    for speaker in summary["speakers"]:
        click.echo(
            f"  [{speaker['local_id']}] {speaker['name']}: {', '.join(speaker['styles'])}"
        )
    if metadata.style_vectors is None:
        click.echo("\nStyle vectors: (none)")
    else:
        click.echo(f"\nStyle vectors: {len(metadata.style_vectors)} bytes")


@main.command("create")
@click.option(
    "--model",
    "model_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Safetensors (.safetensors/.aivm) or ONNX (.onnx/.aivmx) model file.",
)
@click.option(
    "--hyper-parameters",
    "hyper_parameters_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Hyperparameter file (config.json).",
)
@click.option(
    "--style-vectors",
    "style_vectors_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Style vector file (style_vectors.npy).",
)
@click.option(
    "--architecture",
    type=click.Choice([a.value for a in ModelArchitecture]),
    default=ModelArchitecture.StyleBertVITS2JPExtra.value,
    show_default=True,
    help="Model architecture.",
)
@click.option(
    "--output",
    "output_path",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the resulting file.",
)
def create_command(
    model_path: Path,
    hyper_parameters_path: Path,
    style_vectors_path: Path | None,
    architecture: str,
    output_path: Path,
) -> None:
    """Generate metadata and embed it into a model file."""
    style_vectors = style_vectors_path.read_bytes() if style_vectors_path else None
    try:
        metadata = generate_aivm_metadata(
            architecture, hyper_parameters_path.read_bytes(), style_vectors
        )
        _write(model_path, metadata, output_path)
    except AivmError as exc:
        _fail(exc)
        return

    click.echo(f"Created: {output_path}")
    click.echo(f"  Name        : {metadata.manifest.name}")
    click.echo(f"  UUID        : {metadata.manifest.uuid}")
    click.echo(f"  Speakers    : {len(metadata.manifest.speakers)}")


@main.command("update")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Existing .aivm or .aivmx file.",
)
@click.option(
    "--hyper-parameters",
    "hyper_parameters_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Replacement hyperparameter file (config.json).",
)
@click.option(
    "--style-vectors",
    "style_vectors_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Replacement style vector file; the existing one is kept if omitted.",
)
@click.option(
    "--output",
    "output_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the result (defaults to overwriting --file).",
)
def update_command(
    file_path: Path,
    hyper_parameters_path: Path,
    style_vectors_path: Path | None,
    output_path: Path | None,
) -> None:
    """Replace the hyperparameters of a file, keeping speaker identity."""
    style_vectors = style_vectors_path.read_bytes() if style_vectors_path else None
    try:
        existing = _read(file_path)
        metadata, warnings = update_aivm_metadata(
            existing, hyper_parameters_path.read_bytes(), style_vectors
        )
        _write(file_path, metadata, output_path or file_path)
    except AivmError as exc:
        _fail(exc)
        return

    for warning in warnings:
        click.echo(f"WARNING: {warning}", err=True)
    click.echo(f"Updated: {output_path or file_path}")


if __name__ == "__main__":
    main()
