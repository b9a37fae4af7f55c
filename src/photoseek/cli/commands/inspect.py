"""Read-only commands: list stored photos and run searches."""

from typing import Iterable, Optional

import click

from photoseek.cli.base import CliCommand
from photoseek.store import PhotoRecord


def _echo_photos(photos: Iterable[PhotoRecord]) -> None:
    for photo in photos:
        distance = f" [{photo.distance:.4f}]" if photo.distance is not None else ""
        click.echo(f"#{photo.photo_id} {photo.file_name}{distance}: {', '.join(photo.tags)}")


@click.command(name="list-images")
@click.option("--tags", default=None, help="Comma-separated tag filter")
def list_images_command(tags: Optional[str]):
    """List stored photos, newest first."""
    ListImagesCommand(tags).run()


class ListImagesCommand(CliCommand):

    def __init__(self, tags: Optional[str], settings=None):
        super().__init__(settings)
        self.tags = tags

    async def execute(self):
        photos = await self.services.search.list_photos(self.tags)
        _echo_photos(photos)
        click.echo(f"{len(photos)} photos")
        return photos


@click.command(name="search")
@click.argument("query")
@click.option("--limit", type=int, default=None, help="Maximum vector matches (1-200)")
@click.option("--max-distance", type=float, default=None, help="Hard cosine distance cutoff")
@click.option("--tags-only", is_flag=True, default=False, help="Skip embeddings and match extracted tags")
def search_command(query: str, limit: Optional[int], max_distance: Optional[float], tags_only: bool):
    """Search photos with a free-text query."""
    SearchCommand(query, limit, max_distance, tags_only).run()


class SearchCommand(CliCommand):

    def __init__(self, query, limit, max_distance, tags_only, settings=None):
        super().__init__(settings)
        self.query = query
        self.limit = limit
        self.max_distance = max_distance
        self.tags_only = tags_only

    async def execute(self):
        search = self.services.search
        if self.tags_only:
            outcome = await search.tag_search(self.query)
        else:
            outcome = await search.semantic_search(
                self.query,
                limit=self.limit,
                max_distance=self.max_distance,
            )
        if outcome.fallback_reason:
            click.echo(f"Fell back to tag search: {outcome.fallback_reason}")
        if outcome.tags is not None:
            click.echo(f"Tags: {', '.join(outcome.tags) or '(none)'}")
        _echo_photos(outcome.photos)
        click.echo(f"{len(outcome.photos)} photos")
        return outcome
