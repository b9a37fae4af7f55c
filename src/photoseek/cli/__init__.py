"""Photoseek CLI entry point with lazy command registration."""

from __future__ import annotations

import click

_COMMANDS_REGISTERED = False


def _register_commands_once() -> None:
    global _COMMANDS_REGISTERED
    if _COMMANDS_REGISTERED:
        return

    from .commands import ingest, inspect

    cli.add_command(ingest.ingest_command, name="ingest")
    cli.add_command(inspect.list_images_command, name="list-images")
    cli.add_command(inspect.search_command, name="search")

    _COMMANDS_REGISTERED = True


class _LazyCLIGroup(click.Group):
    def list_commands(self, ctx):
        _register_commands_once()
        return super().list_commands(ctx)

    def get_command(self, ctx, cmd_name):
        _register_commands_once()
        return super().get_command(ctx, cmd_name)


@click.group(cls=_LazyCLIGroup)
def cli():
    """Photoseek CLI for bulk ingestion and ad-hoc searches."""
    pass


if __name__ == "__main__":
    cli()
