"""Image ingestion command."""

import base64
from pathlib import Path
from typing import List

import click

from photoseek.cli.base import CliCommand
from photoseek.errors import PhotoseekError
from photoseek.upload_pipeline import MIME_TYPES_BY_EXTENSION


def find_image_files(directory: Path, recursive: bool = True) -> List[Path]:
    """Return supported image files under ``directory`` in a stable order."""
    pattern = "**/*" if recursive else "*"
    return sorted(
        path for path in directory.glob(pattern)
        if path.is_file() and path.suffix.lstrip(".").lower() in MIME_TYPES_BY_EXTENSION
    )


@click.command(name="ingest")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--recursive/--no-recursive", default=True, help="Process subdirectories")
def ingest_command(directory: Path, recursive: bool):
    """Tag, store and embed every image in a local directory."""
    cmd = IngestCommand(directory, recursive)
    uploaded, failed = cmd.run()
    if failed:
        raise click.exceptions.Exit(1)


class IngestCommand(CliCommand):
    """Push each image in a directory through the upload pipeline."""

    def __init__(self, directory: Path, recursive: bool, settings=None):
        super().__init__(settings)
        self.directory = Path(directory)
        self.recursive = recursive

    async def execute(self):
        image_files = find_image_files(self.directory, self.recursive)
        click.echo(f"Found {len(image_files)} images in {self.directory}")
        if not image_files:
            return 0, 0

        uploaded = 0
        failed = 0
        for image_path in image_files:
            try:
                encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
                photo = await self.services.upload_pipeline.upload(image_path.name, encoded)
            except (OSError, PhotoseekError) as exc:
                failed += 1
                click.echo(f"✗ {image_path.name}: {exc}", err=True)
                continue
            uploaded += 1
            click.echo(f"✓ {photo.file_name} (#{photo.photo_id}): {', '.join(photo.tags)}")

        click.echo(f"\nUploaded {uploaded} images, {failed} failed")
        return uploaded, failed
