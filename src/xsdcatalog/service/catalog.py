"""Catalog access: directory listing of ``.xsd`` files and safe retrieval of their text.

Both classes are read-only views over a catalog root directory and hold no
state beyond their configuration; every listing is rebuilt from disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import unquote

from xsdcatalog.exceptions import CatalogReadError, PathTraversalError, SchemaNotFoundError
from xsdcatalog.models.catalog import CatalogNode, DirectoryNode, FileNode

logger = logging.getLogger("xsdcatalog.catalog")

SCHEMA_SUFFIX = ".xsd"


class CatalogIndexer:
    """Builds the browsable tree of schema files under a root directory.

    Children are listed directories first, then files, each sorted by name.
    Entries that cannot be read are left out (or listed with no children)
    instead of failing the whole listing.
    """

    def __init__(self, root: Path, max_depth: int = 16) -> None:
        self._root = root
        self._max_depth = max_depth

    @property
    def root(self) -> Path:
        return self._root

    def list_catalog(self) -> list[CatalogNode]:
        try:
            real_root = self._root.resolve(strict=True)
        except OSError as exc:
            logger.warning("Catalog root %s is not accessible: %s", self._root, exc)
            return []
        if not real_root.is_dir():
            logger.warning("Catalog root %s is not a directory", self._root)
            return []
        return self._walk(real_root, real_root, "", 1)

    def _walk(self, real_root: Path, directory: Path, relative: str, depth: int) -> list[CatalogNode]:
        if depth > self._max_depth:
            logger.warning("Not descending into %s: maximum depth %d reached", relative, self._max_depth)
            return []
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.warning("Skipping unreadable catalog directory %s: %s", directory, exc)
            return []

        directories: list[CatalogNode] = []
        files: list[CatalogNode] = []
        for entry in entries:
            path = f"{relative}/{entry.name}" if relative else entry.name
            try:
                if entry.is_symlink() and not self._inside(real_root, Path(entry.path)):
                    logger.warning("Skipping symlink %s: it points outside the catalog root", path)
                    continue
                if entry.is_dir():
                    children = self._walk(real_root, Path(entry.path), path, depth + 1)
                    directories.append(DirectoryNode(name=entry.name, path=path, children=children))
                elif entry.name.endswith(SCHEMA_SUFFIX) and entry.is_file():
                    files.append(FileNode(name=entry.name, path=path))
            except OSError as exc:
                # removed or changed while we were listing it
                logger.debug("Omitting catalog entry %s: %s", path, exc)
        return directories + files

    @staticmethod
    def _inside(real_root: Path, link: Path) -> bool:
        try:
            target = link.resolve(strict=True)
        except OSError:
            return False
        return target.is_relative_to(real_root)


class ContentResolver:
    """Maps client-supplied relative paths to the text of catalog files."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def read_schema(self, relative_path: str) -> str:
        """Return the UTF-8 text of the schema at ``relative_path``.

        The path is URL-decoded once, joined to the root and canonicalized;
        containment is checked on the canonical result, so ``..`` segments,
        absolute paths and symlinks cannot reach outside the root.

        Raises ``PathTraversalError``, ``SchemaNotFoundError`` or
        ``CatalogReadError``.
        """
        decoded = unquote(relative_path)
        if "\x00" in decoded:
            raise PathTraversalError("path contains a NUL byte")

        try:
            real_root = self._root.resolve()
            resolved = (real_root / decoded).resolve()
        except OSError as exc:
            raise SchemaNotFoundError(f"schema '{decoded}' not found") from exc
        if not resolved.is_relative_to(real_root):
            logger.warning("Rejected path outside the catalog root: %r", relative_path)
            raise PathTraversalError("path resolves outside the catalog root")

        if not resolved.name.endswith(SCHEMA_SUFFIX) or not resolved.is_file():
            raise SchemaNotFoundError(f"schema '{decoded}' not found")
        try:
            return resolved.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise SchemaNotFoundError(f"schema '{decoded}' not found") from None
        except UnicodeDecodeError as exc:
            raise CatalogReadError(f"schema '{decoded}' is not valid UTF-8") from exc
        except OSError as exc:
            raise CatalogReadError(f"could not read schema '{decoded}': {exc}") from exc
