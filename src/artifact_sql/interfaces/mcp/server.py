"""
MCP server exposing the artifact SQL session as tools.

Tools:
 - list_artifacts
 - get_docs
 - get_schema
 - query
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from artifact_sql.interfaces.hypha.service import ServiceOperations
from artifact_sql.session import SessionContext
from artifact_sql.settings import Settings

try:
    from mcp.server.fastmcp import FastMCP
except Exception as exc:
    raise RuntimeError(
        "The 'mcp' package is required for the MCP server. Install with: pip install mcp"
    ) from exc


# Global configuration
_SETTINGS: Optional[Settings] = None
_CONTEXT: Optional[SessionContext] = None
_SERVER = FastMCP("artifact-sql")

# Configure logging for MCP server
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr)  # MCP uses stdout for protocol
    ],
)
logger = logging.getLogger(__name__)


def configure(settings: Optional[Settings] = None, context: Optional[SessionContext] = None) -> None:
    """Set the session used by the tools. A context wins over settings."""
    global _SETTINGS, _CONTEXT
    _SETTINGS = context.settings if context is not None else settings
    _CONTEXT = context


def _context() -> SessionContext:
    """Return the session, creating it on first use."""
    global _CONTEXT
    if _CONTEXT is None:
        _CONTEXT = SessionContext(_SETTINGS or Settings())
    return _CONTEXT


def _operations() -> ServiceOperations:
    return ServiceOperations(_context())


# -------------------------
# MARK: Tools
# -------------------------


@_SERVER.tool("list_artifacts")
async def list_artifacts() -> Dict[str, Any]:
    """Return the artifacts of the configured collection."""
    try:
        items = await _context().list_artifacts()
        return {
            "collection": _context().settings.collection,
            "artifacts": [
                {"id": a.id, "name": a.display_name, "files": list(a.files)} for a in items
            ],
            "total": len(items),
        }
    except Exception as e:
        logger.error("Error in list_artifacts: %s", e)
        return {"error": str(e), "artifacts": [], "total": 0}


@_SERVER.tool("get_docs")
async def get_docs(artifact: str) -> str:
    """Get README.md content from an artifact (empty string when absent)."""
    try:
        return await _operations().get_docs(artifact)
    except Exception as e:
        logger.error("Error in get_docs: %s", e)
        return ""


@_SERVER.tool("get_schema")
async def get_schema(artifact: str) -> Dict[str, Any]:
    """Bind an artifact's dataset and return its column metadata."""
    try:
        return await _operations().get_schema(artifact)
    except Exception as e:
        logger.error("Error in get_schema: %s", e)
        return {"error": str(e)}


@_SERVER.tool("query")
async def query(artifact: str, sql: str) -> Dict[str, Any]:
    """Bind an artifact's dataset as table `dataset` and run SQL against it."""
    try:
        return await _operations().query(artifact, sql)
    except Exception as e:
        logger.error("Error in query: %s", e)
        return {"error": str(e)}


# Transport functions
def run(settings: Optional[Settings] = None) -> None:
    """Run MCP server over stdio."""
    configure(settings)
    logger.info("Starting MCP server for collection: %s", (settings or Settings()).collection)
    asyncio.run(_SERVER.run_stdio_async())


async def _run_http(host: str, port: int) -> None:
    """Start HTTP server with explicit uvicorn configuration."""
    try:
        import uvicorn
    except ImportError:
        raise RuntimeError("uvicorn is required for HTTP mode: pip install uvicorn")

    app = _SERVER.streamable_http_app()
    config = uvicorn.Config(
        app,
        host=host,
        port=int(port),
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


def run_http(
    settings: Optional[Settings] = None, *, host: str = "127.0.0.1", port: int = 8765
) -> None:
    """Run MCP server over HTTP."""
    configure(settings)
    logger.info("Starting HTTP MCP server on %s:%d", host, port)
    asyncio.run(_run_http(host, port))
