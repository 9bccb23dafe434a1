"""FastMCP server exposing the schema catalog and the validator as MCP tools.

Run via::

    xsdcatalog-mcp                       # reads .env (default: stdio)
    MCP_TRANSPORT=http xsdcatalog-mcp    # streamable HTTP on port 9000
    MCP_TRANSPORT=sse  xsdcatalog-mcp    # legacy SSE on port 9000

Settings are loaded from environment variables and ``.env`` file; see
``.env.example`` for available options.
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from xsdcatalog import __version__
from xsdcatalog.exceptions import InternalFailureError, XsdCatalogError
from xsdcatalog.models.catalog import CatalogNode, DirectoryNode
from xsdcatalog.service.validation import ValidationService
from xsdcatalog.settings import Settings

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("xsdcatalog.mcp")

mcp = FastMCP("XSD Catalog")
_service: ValidationService | None = None


def _get_service() -> ValidationService:
    if _service is None:
        raise ToolError("Validation service not initialised")
    return _service


def _tool_error(exc: XsdCatalogError) -> ToolError:
    if isinstance(exc, InternalFailureError):
        logger.error("Internal failure (%s): %s", type(exc).__name__, exc.message)
        return ToolError(f"[{exc.code}] internal error, see server logs")
    location = ""
    line = getattr(exc, "line", None)
    if line is not None:
        location = f" (line {line})"
    return ToolError(f"[{exc.code}] {exc.message}{location}")


def _render_tree(nodes: list[CatalogNode], indent: int = 0) -> list[str]:
    lines: list[str] = []
    for node in nodes:
        if isinstance(node, DirectoryNode):
            lines.append(f"{'  ' * indent}{node.name}/")
            lines.extend(_render_tree(node.children, indent + 1))
        else:
            lines.append(f"{'  ' * indent}{node.name}  ({node.path})")
    return lines


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool
def list_catalog() -> str:
    """List the XML Schemas available in the catalog as an indented tree.

    Use a file's path (shown in parentheses) with ``get_schema`` to fetch it.
    """
    nodes = _get_service().list_catalog()
    if not nodes:
        return "The catalog is empty."
    return "\n".join(_render_tree(nodes))


@mcp.tool
def get_schema(path: str) -> str:
    """Return the text of a catalog schema.

    Args:
        path: Location relative to the catalog root, e.g. ``orders/order.xsd``.
    """
    logger.info("get_schema called (path=%s)", path)
    try:
        return _get_service().read_schema(path)
    except XsdCatalogError as exc:
        raise _tool_error(exc) from exc


@mcp.tool
def validate_document(document_text: str, schema_text: str) -> str:
    """Validate an XML document against an XML Schema and list every violation.

    Args:
        document_text: The XML document.
        schema_text: The XSD schema, e.g. as returned by ``get_schema``.
    """
    logger.info(
        "validate_document called (document length=%d, schema length=%d)",
        len(document_text),
        len(schema_text),
    )
    try:
        result = _get_service().validate(document_text, schema_text)
    except XsdCatalogError as exc:
        raise _tool_error(exc) from exc

    if result.valid:
        return "Document is valid."
    lines = [f"Document is invalid ({len(result.diagnostics)} problem(s)):"]
    for diagnostic in result.diagnostics:
        line = f"  {diagnostic}"
        if diagnostic.path:
            line += f"  (at {diagnostic.path})"
        lines.append(line)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "XSD Catalog MCP Server v%s starting (transport=%s, catalog=%s)",
        __version__,
        settings.mcp_transport,
        settings.catalog_root,
    )

    global _service  # noqa: PLW0603
    _service = ValidationService(settings)

    if settings.mcp_transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport=settings.mcp_transport,
            host=settings.mcp_server_host,
            port=settings.mcp_server_port,
            log_level=settings.log_level.lower(),
        )


if __name__ == "__main__":
    main()
