"""Hypha service exposing docs, schema and query over the session.

Registered once per session. Every operation returns plain structured
values (strings, lists, dicts) since results cross the RPC boundary.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from artifact_sql.session import SessionContext

logger = logging.getLogger(__name__)

SERVICE_NAME = "DuckDB SQL Worker"
SERVICE_DESCRIPTION = "Run SQL with DuckDB over Hypha artifacts"


@dataclass(frozen=True)
class OperationSpec:
    """External contract of one exposed operation."""

    name: str
    docs: str
    params: Tuple[Tuple[str, str], ...]  # (name, type)
    returns: str  # "string" | "object"

    def schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.docs,
            "parameters": {
                "type": "object",
                "properties": {name: {"type": kind} for name, kind in self.params},
                "required": [name for name, _ in self.params],
            },
            "returns": {"type": self.returns},
        }


OPERATIONS: Tuple[OperationSpec, ...] = (
    OperationSpec(
        name="get_docs",
        docs="Get README.md content from artifact",
        params=(("artifact", "string"),),
        returns="string",
    ),
    OperationSpec(
        name="get_schema",
        docs="Get schema of the dataset CSV in artifact",
        params=(("artifact", "string"),),
        returns="object",
    ),
    OperationSpec(
        name="query",
        docs="Run SQL against the dataset CSV of artifact (table name: dataset)",
        params=(("artifact", "string"), ("sql", "string")),
        returns="object",
    ),
)


class ServiceOperations:
    """Handlers behind the exposed operations; shared by Hypha and MCP."""

    def __init__(self, context: SessionContext) -> None:
        self.context = context

    async def get_docs(self, artifact: str) -> str:
        """Return the docs file text, or "" when it cannot be fetched."""
        art = await self.context.resolver.resolve(artifact)
        try:
            return await self.context.fetch_docs(art)
        except Exception as exc:  # noqa: BLE001
            logger.info("No docs for %s: %s", art.id, exc)
            return ""

    async def get_schema(self, artifact: str) -> Dict[str, Any]:
        await self.context.bind(artifact)
        result = await self.context.facade.get_schema()
        return result.to_payload()

    async def query(self, artifact: str, sql: str) -> Dict[str, Any]:
        await self.context.bind(artifact)
        result = await self.context.facade.run_query(sql)
        if result is None:
            return {"columns": [], "rows": []}
        return result.to_payload()


def build_service_descriptor(context: SessionContext) -> Dict[str, Any]:
    """Return the descriptor passed to `server.register_service`."""
    ops = ServiceOperations(context)
    settings = context.settings

    async def get_docs(artifact: str) -> str:
        return await ops.get_docs(artifact)

    async def get_schema(artifact: str) -> Dict[str, Any]:
        return await ops.get_schema(artifact)

    async def query(artifact: str, sql: str) -> Dict[str, Any]:
        return await ops.query(artifact, sql)

    handlers = {"get_docs": get_docs, "get_schema": get_schema, "query": query}
    descriptor: Dict[str, Any] = {
        "id": settings.service_id,
        "name": SERVICE_NAME,
        "description": SERVICE_DESCRIPTION,
        "config": {"visibility": settings.visibility},
    }
    for spec in OPERATIONS:
        handler = handlers[spec.name]
        handler.__doc__ = spec.docs
        handler.__schema__ = spec.schema()  # type: ignore[attr-defined]
        descriptor[spec.name] = handler
    return descriptor


def _service_id(registered: Any) -> Optional[str]:
    if isinstance(registered, Mapping):
        value = registered.get("id")
    else:
        value = getattr(registered, "id", None)
    return str(value) if value is not None else None


async def register_service(context: SessionContext, server: Any = None) -> Optional[str]:
    """Register the service once per session and return its id.

    Repeated or concurrent calls return the id of the first registration.
    """
    if context.service_registered:
        return context.service_id
    if context.pending_registration is None:
        context.pending_registration = asyncio.ensure_future(_register(context, server))
    pending = context.pending_registration
    try:
        return await asyncio.shield(pending)
    finally:
        if context.pending_registration is pending and pending.done():
            context.pending_registration = None


async def _register(context: SessionContext, server: Any) -> Optional[str]:
    if server is None:
        server = await context.connection.server()
    registered = await server.register_service(build_service_descriptor(context))
    context.service_id = _service_id(registered) or context.settings.service_id
    context.service_registered = True
    logger.info("Service registered %s", context.service_id)
    return context.service_id


__all__ = [
    "OPERATIONS",
    "OperationSpec",
    "ServiceOperations",
    "build_service_descriptor",
    "register_service",
]
