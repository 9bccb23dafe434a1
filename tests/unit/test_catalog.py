"""Tests for catalog listing and safe schema retrieval."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from xsdcatalog.exceptions import CatalogReadError, PathTraversalError, SchemaNotFoundError
from xsdcatalog.models.catalog import DirectoryNode, FileNode
from xsdcatalog.service.catalog import CatalogIndexer, ContentResolver
from tests.conftest import MINIMAL_SCHEMA, ORDER_SCHEMA


def _shape(nodes) -> list:
    """Reduce a tree to (name, children) tuples for easy comparison."""
    return [
        (n.name, _shape(n.children)) if isinstance(n, DirectoryNode) else n.name
        for n in nodes
    ]


class TestCatalogIndexer:
    def test_tree_layout(self, catalog_root: Path) -> None:
        tree = CatalogIndexer(catalog_root).list_catalog()
        assert _shape(tree) == [
            ("empty", []),
            ("orders", [("v2", ["order.xsd"]), "order.xsd"]),
            "common.xsd",
        ]

    def test_paths_are_relative_and_slash_separated(self, catalog_root: Path) -> None:
        tree = CatalogIndexer(catalog_root).list_catalog()
        orders = tree[1]
        assert isinstance(orders, DirectoryNode)
        v2 = orders.children[0]
        assert isinstance(v2, DirectoryNode)
        leaf = v2.children[0]
        assert isinstance(leaf, FileNode)
        assert leaf.path == "orders/v2/order.xsd"
        assert leaf.kind == "file"

    def test_only_lowercase_xsd_suffix_listed(self, catalog_root: Path) -> None:
        names = [n.name for n in CatalogIndexer(catalog_root).list_catalog()]
        assert "legacy.XSD" not in names
        assert "notes.txt" not in names

    def test_every_listed_file_is_readable(self, catalog_root: Path) -> None:
        resolver = ContentResolver(catalog_root)

        def files(nodes):
            for node in nodes:
                if isinstance(node, DirectoryNode):
                    yield from files(node.children)
                else:
                    yield node

        listed = list(files(CatalogIndexer(catalog_root).list_catalog()))
        assert len(listed) == 3
        for node in listed:
            assert resolver.read_schema(node.path)

    def test_missing_root_lists_nothing(self, tmp_path: Path) -> None:
        assert CatalogIndexer(tmp_path / "nope").list_catalog() == []

    def test_root_that_is_a_file_lists_nothing(self, tmp_path: Path) -> None:
        target = tmp_path / "file.xsd"
        target.write_text(MINIMAL_SCHEMA, encoding="utf-8")
        assert CatalogIndexer(target).list_catalog() == []

    def test_symlink_outside_root_is_skipped(self, catalog_root: Path, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.xsd").write_text(MINIMAL_SCHEMA, encoding="utf-8")
        os.symlink(outside, catalog_root / "linked")
        os.symlink(outside / "secret.xsd", catalog_root / "secret.xsd")

        names = [n.name for n in CatalogIndexer(catalog_root).list_catalog()]
        assert "linked" not in names
        assert "secret.xsd" not in names

    def test_symlink_inside_root_is_followed(self, catalog_root: Path) -> None:
        os.symlink(catalog_root / "orders" / "v2", catalog_root / "latest")
        tree = CatalogIndexer(catalog_root).list_catalog()
        assert ("latest", ["order.xsd"]) in _shape(tree)

    def test_depth_limit(self, catalog_root: Path) -> None:
        tree = CatalogIndexer(catalog_root, max_depth=1).list_catalog()
        assert _shape(tree) == [("empty", []), ("orders", []), "common.xsd"]

    def test_listing_reflects_disk_changes(self, catalog_root: Path) -> None:
        indexer = CatalogIndexer(catalog_root)
        before = len(indexer.list_catalog())
        (catalog_root / "added.xsd").write_text(MINIMAL_SCHEMA, encoding="utf-8")
        assert len(indexer.list_catalog()) == before + 1


class TestContentResolver:
    def test_read_nested_schema(self, catalog_root: Path) -> None:
        assert ContentResolver(catalog_root).read_schema("orders/order.xsd") == ORDER_SCHEMA

    def test_dot_segments_inside_root_are_allowed(self, catalog_root: Path) -> None:
        text = ContentResolver(catalog_root).read_schema("orders/../common.xsd")
        assert text == MINIMAL_SCHEMA

    def test_percent_encoded_path(self, catalog_root: Path) -> None:
        assert ContentResolver(catalog_root).read_schema("orders%2Forder.xsd") == ORDER_SCHEMA

    @pytest.mark.parametrize(
        "path",
        [
            "../../secrets.xsd",
            "orders/../../secrets.xsd",
            "%2e%2e/%2e%2e/secrets.xsd",
            "/etc/passwd",
        ],
    )
    def test_traversal_rejected(self, catalog_root: Path, path: str) -> None:
        with pytest.raises(PathTraversalError, match="outside the catalog root"):
            ContentResolver(catalog_root).read_schema(path)

    @pytest.mark.parametrize("path", ["common\x00.xsd", "common%00.xsd"])
    def test_nul_byte_rejected(self, catalog_root: Path, path: str) -> None:
        with pytest.raises(PathTraversalError):
            ContentResolver(catalog_root).read_schema(path)

    def test_symlink_escape_rejected(self, catalog_root: Path, tmp_path: Path) -> None:
        secret = tmp_path / "secret.xsd"
        secret.write_text(MINIMAL_SCHEMA, encoding="utf-8")
        os.symlink(secret, catalog_root / "innocent.xsd")
        with pytest.raises(PathTraversalError):
            ContentResolver(catalog_root).read_schema("innocent.xsd")

    @pytest.mark.parametrize(
        "path", ["orders/missing.xsd", "orders/README.md", "orders", "notes.txt", "legacy.XSD", ""]
    )
    def test_not_found(self, catalog_root: Path, path: str) -> None:
        with pytest.raises(SchemaNotFoundError):
            ContentResolver(catalog_root).read_schema(path)

    def test_undecodable_file(self, catalog_root: Path) -> None:
        (catalog_root / "binary.xsd").write_bytes(b"\xff\xfe\x00<")
        with pytest.raises(CatalogReadError, match="not valid UTF-8"):
            ContentResolver(catalog_root).read_schema("binary.xsd")

    def test_read_error_is_an_internal_failure(self) -> None:
        assert CatalogReadError.code == "INTERNAL_FAILURE"
