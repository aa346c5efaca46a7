"""Snippet directory on the local filesystem."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from ..sync.protocol import LocalArtifact

logger = logging.getLogger("snipsync.stores.local")

MAX_NAME_LENGTH = 255
_INVALID_NAME_CHARS = re.compile(r'[<>:"|?*\\/]')


def validate_snippet_name(name: str, extension: str = ".css") -> None:
    """Raise ValueError unless ``name`` is a plain snippet filename."""
    if not name:
        raise ValueError("Snippet name must not be empty")
    if not name.endswith(extension):
        raise ValueError(f"Snippet name must end with {extension}")
    if _INVALID_NAME_CHARS.search(name):
        raise ValueError(f"Snippet name {name!r} contains invalid characters")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError("Snippet name is too long")


def _read_raw(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


class SnippetDirectory:
    """Local store backed by a flat directory of snippet files.

    File access is synchronous; snippet files are small and the engine
    processes them one at a time.
    """

    def __init__(self, directory: Path, extension: str = ".css"):
        self.directory = directory
        self.extension = extension

    async def list_artifacts(self) -> List[LocalArtifact]:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            return []

        artifacts: List[LocalArtifact] = []
        for file_path in sorted(self.directory.iterdir()):
            if not file_path.is_file() or not file_path.name.endswith(self.extension):
                continue
            stat = file_path.stat()
            artifacts.append(
                LocalArtifact(
                    name=file_path.name,
                    content=_read_raw(file_path),
                    path=str(file_path),
                    last_modified=stat.st_mtime,
                )
            )

        logger.debug("Found %d snippets in %s", len(artifacts), self.directory)
        return artifacts

    async def read_artifact(self, name: str) -> str:
        return _read_raw(self._path_for(name))

    async def write_artifact(self, name: str, content: str) -> bool:
        if not name.endswith(self.extension):
            name += self.extension
        target = self._path_for(name)
        self.directory.mkdir(parents=True, exist_ok=True)
        # newline="" keeps the line endings exactly as received.
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.debug("Wrote snippet %s (%d chars)", target, len(content))
        return True

    def _path_for(self, name: str) -> Path:
        validate_snippet_name(name, self.extension)
        return self.directory / name


__all__ = ["SnippetDirectory", "validate_snippet_name"]
