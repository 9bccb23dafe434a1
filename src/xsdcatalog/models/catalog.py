"""Catalog tree nodes: a tagged variant of directories and schema files."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class FileNode(BaseModel):
    """A ``.xsd`` file in the catalog."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str = Field(description="Location relative to the catalog root, '/'-separated")
    kind: Literal["file"] = "file"


class DirectoryNode(BaseModel):
    """A directory in the catalog with its (already filtered) children."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str = Field(description="Location relative to the catalog root, '/'-separated")
    kind: Literal["directory"] = "directory"
    children: list[CatalogNode] = []


CatalogNode = Annotated[FileNode | DirectoryNode, Field(discriminator="kind")]

DirectoryNode.model_rebuild()
