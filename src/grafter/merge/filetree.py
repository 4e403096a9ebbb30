"""
File tree handles: the engine's only route to the filesystem.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from grafter.exceptions import FileWriteError
from grafter.logging_config import logger


def normalize_path(path: str) -> str:
    """Project-relative POSIX path without a leading './'."""
    normalized = Path(path.replace("\\", "/")).as_posix()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class FileTree(ABC):
    """Synchronous exists/read/write over project-relative paths."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def read(self, path: str) -> str:
        ...

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        ...


class DiskFileTree(FileTree):
    """
    Files under a project root on disk.

    Writes are atomic (temp file + rename) and create missing parent
    directories. Failures raise FileWriteError and are never retried.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        with open(self._resolve(path), 'r', encoding='utf-8', newline='') as f:
            return f.read()

    def write(self, path: str, content: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=".tmp"
            )
        except OSError as e:
            raise FileWriteError(normalize_path(path), str(e)) from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
            os.replace(temp_path, str(target))
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.debug(f"Temp file already gone: {temp_path}")
            raise FileWriteError(normalize_path(path), str(e)) from e

        logger.debug(f"Atomic write completed: {target}")


class MemoryFileTree(FileTree):
    """Dictionary-backed tree, used for tests and previews."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = {
            normalize_path(path): content for path, content in (files or {}).items()
        }

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self.files

    def read(self, path: str) -> str:
        try:
            return self.files[normalize_path(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write(self, path: str, content: str) -> None:
        self.files[normalize_path(path)] = content


class OverlayFileTree(FileTree):
    """
    Reads fall through to a base tree; writes stay in memory.

    Gives dry runs the same sequential visibility as a real run (a later
    entry sees files created by an earlier one) without touching the base.
    """

    def __init__(self, base: FileTree):
        self.base = base
        self.changes: Dict[str, str] = {}

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self.changes or self.base.exists(path)

    def read(self, path: str) -> str:
        key = normalize_path(path)
        if key in self.changes:
            return self.changes[key]
        return self.base.read(path)

    def write(self, path: str, content: str) -> None:
        self.changes[normalize_path(path)] = content
