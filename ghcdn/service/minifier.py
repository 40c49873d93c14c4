"""External minifier invoked as a subprocess."""

import asyncio
import logging
import shlex
from typing import Protocol

from ghcdn.config.settings import Settings
from ghcdn.service.exceptions import MinifyError

logger = logging.getLogger(__name__)

# Minified suffix -> suffix of the source file it is produced from
MINIFIED_SUFFIXES = {
    ".min.js": ".js",
    ".min.css": ".css",
}


def unminified_sibling(file: str) -> str | None:
    """Return ``foo.js`` for ``foo.min.js``, None for files that are not minified."""
    for suffix, source_suffix in MINIFIED_SUFFIXES.items():
        if file.endswith(suffix) and len(file) > len(suffix):
            return file[: -len(suffix)] + source_suffix
    return None


class Minifier(Protocol):
    """Transforms source bytes of the given extension into minified bytes."""

    async def minify(self, source: bytes, extension: str) -> bytes: ...


class CommandMinifier:
    """Runs the command configured for an extension, source on stdin, result on stdout."""

    def __init__(self, settings: Settings) -> None:
        self.commands = settings.minify_commands

    async def minify(self, source: bytes, extension: str) -> bytes:
        command = self.commands.get(extension)
        if not command:
            raise MinifyError(f"No minifier configured for {extension}")

        argv = shlex.split(command)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise MinifyError(f"Cannot start minifier {argv[0]}: {e}") from e

        stdout, stderr = await process.communicate(source)
        if process.returncode != 0:
            logger.warning(
                f"Minifier {argv[0]} exited with {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )
            raise MinifyError(f"{argv[0]} exited with {process.returncode}")
        return stdout
