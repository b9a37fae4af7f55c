"""Base command class for shared CLI setup/teardown."""

import asyncio

import click

from photoseek.dependencies import AppServices, build_services
from photoseek.logging_config import configure_logging
from photoseek.settings import Settings, get_settings


class CliCommand:
    """Base class for CLI commands that drive the pipelines outside the API."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or get_settings()
        self.services: AppServices = None

    def setup(self) -> AppServices:
        """Build the store, the model client and the pipelines."""
        configure_logging(self.settings)
        self.services = build_services(self.settings)
        return self.services

    async def cleanup(self) -> None:
        """Close the HTTP client and dispose of the engine."""
        if self.services:
            await self.services.aclose()
            self.services = None

    async def execute(self):
        """Async command body - override in subclasses."""
        raise NotImplementedError

    async def _main(self):
        if self.services is None:
            self.setup()
        try:
            return await self.execute()
        finally:
            await self.cleanup()

    def run(self):
        """Execute the command on a fresh event loop."""
        try:
            return asyncio.run(self._main())
        except KeyboardInterrupt:
            raise click.Abort()
